"""Error codes dictionary for the render API.

This is the single source of truth for all error codes, their retryability,
and suggested fixes. Used by exception handlers and by the job pipeline to
generate machine-readable error responses.
"""

from typing import TypedDict


class ErrorCodeSpec(TypedDict, total=False):
    """Specification for an error code."""

    retryable: bool
    suggested_fix: str


# Error codes dictionary - single source of truth
ERROR_CODES: dict[str, ErrorCodeSpec] = {
    # ==========================================================================
    # Client input errors (never retryable without changing the request)
    # ==========================================================================
    "MISSING_AUDIO": {
        "retryable": False,
        "suggested_fix": "Attach the audio track as the 'audioFile' multipart field",
    },
    "INVALID_SCENES": {
        "retryable": False,
        "suggested_fix": (
            "Send 'scenes' as a JSON array; every scene needs a positive 'duration' "
            "and exactly one of 'videoUrl' or 'imageFile'"
        ),
    },
    "INVALID_ASSET": {
        "retryable": False,
        "suggested_fix": "Upload image assets as PNG, JPEG, GIF or WebP files",
    },
    # ==========================================================================
    # Lookup errors
    # ==========================================================================
    "JOB_NOT_FOUND": {
        "retryable": False,
        "suggested_fix": "Use the jobId returned by POST /jobs on this server instance",
    },
    # ==========================================================================
    # Integrity errors (defects, fatal to the job)
    # ==========================================================================
    "SCENE_INTEGRITY": {"retryable": False},
    "REASSEMBLY_INTEGRITY": {"retryable": False},
    "MISSING_SEGMENTS": {
        "retryable": False,
        "suggested_fix": "Make sure every imageFile reference names an uploaded file",
    },
    "JOB_STATE": {"retryable": False},
    # ==========================================================================
    # Remote dispatch / source errors (resubmission may succeed)
    # ==========================================================================
    "WORKER_DISPATCH_FAILED": {
        "retryable": True,
        "suggested_fix": "Check that every configured worker endpoint is reachable and resubmit",
    },
    "SCENE_SOURCE_UNAVAILABLE": {
        "retryable": True,
        "suggested_fix": "Check that the scene video URL is publicly downloadable",
    },
    # ==========================================================================
    # Encoding engine errors
    # ==========================================================================
    "MISSING_SEGMENT_FILE": {"retryable": False},
    "ENCODER_FAILED": {"retryable": True},
    # ==========================================================================
    # System errors
    # ==========================================================================
    "INTERNAL_ERROR": {"retryable": True},
}


def get_error_spec(code: str) -> ErrorCodeSpec:
    """Get error specification by code.

    Args:
        code: The error code

    Returns:
        ErrorCodeSpec with retryable flag and suggested fix
    """
    return ERROR_CODES.get(code, {"retryable": False})


def is_retryable(code: str) -> bool:
    """Check if an error code is retryable."""
    spec = get_error_spec(code)
    return spec.get("retryable", False)
