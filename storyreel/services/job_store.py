"""In-memory render job registry.

Jobs live for the lifetime of the process only. The store is written exactly
twice per job (creation and terminal transition) and read by any number of
concurrent status polls, so a single lock around the dict is sufficient.
"""

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from uuid import uuid4

from storyreel.exceptions import JobStateError
from storyreel.schemas.job import JobRecord, JobStatus

logger = logging.getLogger(__name__)


class JobStore(ABC):
    """Narrow interface the render pipeline uses to track job lifecycle."""

    @abstractmethod
    def create(self) -> JobRecord:
        """Create a new job in the processing state."""

    @abstractmethod
    def transition(
        self,
        job_id: str,
        status: JobStatus,
        *,
        result_url: str | None = None,
        error: str | None = None,
    ) -> JobRecord:
        """Move a processing job to a terminal state."""

    @abstractmethod
    def get(self, job_id: str) -> JobRecord | None:
        """Get a job snapshot, or None if the id is unknown."""


class InMemoryJobStore(JobStore):
    """Thread-safe in-memory job store."""

    def __init__(self) -> None:
        self._jobs: dict[str, JobRecord] = {}
        self._lock = threading.Lock()

    def create(self) -> JobRecord:
        now = datetime.now(timezone.utc)
        record = JobRecord(id=uuid4().hex, created_at=now, updated_at=now)
        with self._lock:
            self._jobs[record.id] = record
        logger.info(f"[JOB] Created job {record.id}")
        return record

    def transition(
        self,
        job_id: str,
        status: JobStatus,
        *,
        result_url: str | None = None,
        error: str | None = None,
    ) -> JobRecord:
        if not status.is_terminal:
            raise JobStateError(f"Cannot transition job {job_id} to {status.value}")
        if status is JobStatus.COMPLETED and not result_url:
            raise JobStateError(f"Completed job {job_id} requires a result URL")

        with self._lock:
            current = self._jobs.get(job_id)
            if current is None:
                raise JobStateError(f"Cannot transition unknown job {job_id}")
            if current.status.is_terminal:
                raise JobStateError(
                    f"Job {job_id} is already {current.status.value}; "
                    f"refusing transition to {status.value}"
                )
            record = current.model_copy(
                update={
                    "status": status,
                    "result_url": result_url if status is JobStatus.COMPLETED else None,
                    "error": error if status is JobStatus.FAILED else None,
                    "updated_at": datetime.now(timezone.utc),
                }
            )
            self._jobs[job_id] = record

        logger.info(f"[JOB] Job {job_id} -> {status.value}")
        return record

    def get(self, job_id: str) -> JobRecord | None:
        with self._lock:
            return self._jobs.get(job_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)
