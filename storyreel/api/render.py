"""Merge API endpoints: synchronous merge and background jobs."""

import logging

from fastapi import APIRouter, Request, status

from storyreel.api.deps import Jobs, Orchestrator, public_base_url, read_submission
from storyreel.exceptions import JobNotFoundError
from storyreel.schemas.job import JobResponse, MergeVideosResponse, SubmitJobResponse

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/merge-videos", response_model=MergeVideosResponse)
async def merge_videos(request: Request, orchestrator: Orchestrator) -> MergeVideosResponse:
    """
    Render and merge a storyboard, blocking until the video is ready.

    Scenes are rendered in this process; no workers are involved.
    """
    submission = await read_submission(request)
    base_url = public_base_url(request)

    video_url = await orchestrator.merge_now(
        submission.scenes, submission.assets, submission.audio, base_url
    )
    logger.info(f"[MERGE] Finished: {video_url}")
    return MergeVideosResponse(video_url=video_url)


@router.post(
    "/jobs",
    response_model=SubmitJobResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def submit_job(request: Request, orchestrator: Orchestrator) -> SubmitJobResponse:
    """Start a distributed merge job and return immediately."""
    submission = await read_submission(request)
    base_url = public_base_url(request)

    handle = orchestrator.submit(
        submission.scenes, submission.assets, submission.audio, base_url
    )
    return SubmitJobResponse(
        job_id=handle.job_id,
        status_url=f"{base_url}/jobs/{handle.job_id}",
    )


@router.get(
    "/jobs/{job_id}",
    response_model=JobResponse,
    response_model_exclude_none=True,
)
async def get_job(job_id: str, jobs: Jobs) -> JobResponse:
    """Poll a job's status."""
    record = jobs.get(job_id)
    if record is None:
        raise JobNotFoundError(job_id)
    return JobResponse.from_record(record)
