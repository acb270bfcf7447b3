from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class JobStatus(str, Enum):
    """Lifecycle states of a render job."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.PROCESSING


class JobRecord(BaseModel):
    """Immutable snapshot of a job as held by the job store."""

    model_config = ConfigDict(frozen=True)

    id: str
    status: JobStatus = JobStatus.PROCESSING
    result_url: str | None = None
    error: str | None = None
    created_at: datetime
    updated_at: datetime


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JobResponse(_CamelModel):
    job_id: str
    status: JobStatus
    result_url: str | None = None
    error: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: JobRecord) -> "JobResponse":
        return cls(
            job_id=record.id,
            status=record.status,
            result_url=record.result_url,
            error=record.error,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class SubmitJobResponse(_CamelModel):
    job_id: str
    status_url: str


class MergeVideosResponse(_CamelModel):
    video_url: str
