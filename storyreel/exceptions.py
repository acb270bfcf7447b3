"""Custom exceptions for the storyreel backend.

Every failure the render pipeline can record on a job, or the HTTP layer can
report to a client, is a StoryreelError carrying a machine-readable code.
"""

from collections.abc import Iterable

from storyreel.constants.error_codes import get_error_spec, is_retryable
from storyreel.schemas.errors import ErrorInfo


class StoryreelError(Exception):
    """Base exception for all storyreel application errors."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
        suggested_fix: str | None = None,
    ):
        self.message = message or self.__class__.message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.suggested_fix = suggested_fix
        super().__init__(self.message)

    def to_error_info(self) -> ErrorInfo:
        """Convert exception to ErrorInfo for API response."""
        spec = get_error_spec(self.code)
        return ErrorInfo(
            code=self.code,
            message=self.message,
            retryable=is_retryable(self.code),
            suggested_fix=self.suggested_fix or spec.get("suggested_fix"),
        )


# =============================================================================
# Client Input Errors (400)
# =============================================================================


class ValidationError(StoryreelError):
    """Base class for request validation errors."""

    code = "VALIDATION_ERROR"
    status_code = 400


class MissingAudioError(ValidationError):
    """The mandatory audio track was not uploaded."""

    code = "MISSING_AUDIO"
    message = "No audio file found. Audio file is mandatory."


class InvalidSceneError(ValidationError):
    """The scene list could not be parsed."""

    code = "INVALID_SCENES"
    message = "Invalid scene list"

    def __init__(self, message: str | None = None, *, index: int | None = None):
        msg = message or self.message
        if index is not None:
            msg = f"Scene {index}: {msg}"
        super().__init__(msg)


class InvalidAssetError(ValidationError):
    """An uploaded still-image asset is not a readable image."""

    code = "INVALID_ASSET"
    message = "Invalid image asset"

    def __init__(self, asset_ref: str | None = None, reason: str | None = None):
        message = f"Invalid image asset: {asset_ref}" if asset_ref else self.message
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


# =============================================================================
# Lookup Errors (404)
# =============================================================================


class JobNotFoundError(StoryreelError):
    """Job id is unknown to this process."""

    code = "JOB_NOT_FOUND"
    status_code = 404
    message = "Job not found"

    def __init__(self, job_id: str | None = None):
        message = f"Job not found: {job_id}" if job_id else self.message
        super().__init__(message)


# =============================================================================
# Integrity Errors (fatal to the job)
# =============================================================================


class SceneIntegrityError(StoryreelError):
    """Scene order indices are not unique and contiguous."""

    code = "SCENE_INTEGRITY"
    message = "Scene order indices must be unique and contiguous"


class ReassemblyIntegrityError(StoryreelError):
    """Two rendered segments claim the same scene position."""

    code = "REASSEMBLY_INTEGRITY"
    message = "Duplicate rendered segment"

    def __init__(self, order_index: int | None = None):
        message = (
            f"Duplicate rendered segment for scene {order_index}"
            if order_index is not None
            else self.message
        )
        super().__init__(message)


class MissingSegmentsError(StoryreelError):
    """Fewer rendered segments came back than scenes were submitted."""

    code = "MISSING_SEGMENTS"
    message = "Rendered segments are missing"

    def __init__(self, missing: Iterable[int] | None = None):
        self.missing = sorted(missing) if missing is not None else []
        message = (
            f"Rendered segments missing for scenes: {self.missing}"
            if self.missing
            else self.message
        )
        super().__init__(message)


class JobStateError(StoryreelError):
    """Illegal job lifecycle transition."""

    code = "JOB_STATE"
    message = "Illegal job state transition"


# =============================================================================
# Remote Dispatch / Source Errors
# =============================================================================


class WorkerDispatchError(StoryreelError):
    """One or more worker round trips failed."""

    code = "WORKER_DISPATCH_FAILED"
    status_code = 502
    message = "Worker dispatch failed"

    def __init__(self, failures: dict[str, str] | None = None):
        self.failures = failures or {}
        if self.failures:
            details = "; ".join(f"{worker}: {reason}" for worker, reason in self.failures.items())
            message = f"Worker dispatch failed ({len(self.failures)} worker(s)): {details}"
        else:
            message = self.message
        super().__init__(message)


class SceneSourceError(StoryreelError):
    """A scene's remote video could not be fetched."""

    code = "SCENE_SOURCE_UNAVAILABLE"
    status_code = 502
    message = "Scene source could not be downloaded"


# =============================================================================
# Encoding Engine Errors
# =============================================================================


class MissingSegmentFileError(StoryreelError):
    """A segment file expected on the scratch filesystem does not exist."""

    code = "MISSING_SEGMENT_FILE"
    message = "Scene video not found"

    def __init__(self, path: str | None = None):
        message = f"Scene video not found: {path}" if path else self.message
        super().__init__(message)


class EncoderError(StoryreelError):
    """The external encoder exited unsuccessfully or timed out."""

    code = "ENCODER_FAILED"
    message = "Encoder failed"

    def __init__(self, stage: str, detail: str | None = None):
        self.stage = stage
        self.detail = detail or ""
        message = f"{stage} failed"
        if self.detail:
            message = f"{message}: {self.detail}"
        super().__init__(message)
