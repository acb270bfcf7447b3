from storyreel.schemas.errors import ErrorInfo, ErrorResponse
from storyreel.schemas.job import (
    JobRecord,
    JobResponse,
    JobStatus,
    MergeVideosResponse,
    SubmitJobResponse,
)
from storyreel.schemas.worker import ProcessedScene, WorkerRequest, WorkerResponse, WorkerScene

__all__ = [
    "ErrorInfo",
    "ErrorResponse",
    "JobRecord",
    "JobResponse",
    "JobStatus",
    "MergeVideosResponse",
    "SubmitJobResponse",
    "ProcessedScene",
    "WorkerRequest",
    "WorkerResponse",
    "WorkerScene",
]
