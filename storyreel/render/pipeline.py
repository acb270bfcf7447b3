"""
Render orchestration for storyboard merge requests.

Job mode (distributed):
1. Partition scenes across the worker pool
2. Dispatch partitions to workers concurrently and wait for all of them
3. Reassemble segments in original scene order
4. Concatenate segments
5. Mux the audio track
6. Publish the result and mark the job completed

Synchronous mode renders every scene in-process instead of steps 1-2.

Any stage failure ends the job as failed with the error message. Nothing is
retried. The job's scratch directory is reclaimed on every path, before the
terminal status is written.
"""

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from uuid import uuid4

from storyreel.config import get_settings
from storyreel.exceptions import (
    InvalidSceneError,
    MissingAudioError,
    MissingSegmentsError,
    StoryreelError,
)
from storyreel.render.encoder import MediaEncoder
from storyreel.render.models import AudioTrack, RenderedSegment, Scene, StillImage
from storyreel.render.partitioner import partition_scenes, validate_scene_indices
from storyreel.render.reassembler import find_gaps, reassemble_segments
from storyreel.render.scene_renderer import SceneRenderer
from storyreel.schemas.job import JobRecord, JobStatus
from storyreel.services.image_assets import write_image_asset
from storyreel.services.job_store import JobStore
from storyreel.services.output_store import OutputStore
from storyreel.services.scratch_space import ScratchSpace
from storyreel.services.worker_client import WorkerDispatchClient

logger = logging.getLogger(__name__)


def describe_error(exc: BaseException) -> str:
    """Human-readable message recorded on a failed job."""
    if isinstance(exc, StoryreelError):
        return exc.message
    return f"{exc.__class__.__name__}: {exc}" if str(exc) else exc.__class__.__name__


@dataclass
class JobHandle:
    """Completion handle for one background render job."""

    job_id: str
    task: asyncio.Task

    def done(self) -> bool:
        return self.task.done()

    async def wait(self) -> JobRecord:
        """Wait until the job has reached a terminal state."""
        return await asyncio.shield(self.task)


class RenderOrchestrator:
    """Owns the end-to-end stage sequence for every render request."""

    def __init__(
        self,
        job_store: JobStore,
        dispatcher: WorkerDispatchClient,
        encoder: MediaEncoder,
        scratch: ScratchSpace,
        output_store: OutputStore,
        scene_renderer: Optional[SceneRenderer] = None,
        workers: Optional[Sequence[str]] = None,
        allow_segment_gaps: Optional[bool] = None,
    ):
        settings = get_settings()
        self.job_store = job_store
        self.dispatcher = dispatcher
        self.encoder = encoder
        self.scratch = scratch
        self.output_store = output_store
        self.scene_renderer = scene_renderer or SceneRenderer(encoder=encoder)
        self.workers = tuple(workers if workers is not None else settings.worker_endpoints)
        self.allow_segment_gaps = (
            settings.allow_segment_gaps if allow_segment_gaps is None else allow_segment_gaps
        )
        self._handles: dict[str, JobHandle] = {}

    # ========================================================================
    # Job mode
    # ========================================================================

    def submit(
        self,
        scenes: Sequence[Scene],
        assets: Mapping[str, bytes],
        audio: Optional[AudioTrack],
        base_url: str,
    ) -> JobHandle:
        """Create a job record and start its pipeline in the background.

        Must be called from a running event loop.
        """
        record = self.job_store.create()
        task = asyncio.create_task(
            self.run_job(record.id, scenes, assets, audio, base_url),
            name=f"render-job-{record.id}",
        )
        handle = JobHandle(job_id=record.id, task=task)
        self._handles[record.id] = handle
        task.add_done_callback(lambda _: self._handles.pop(record.id, None))
        return handle

    def get_handle(self, job_id: str) -> Optional[JobHandle]:
        """Handle of a job that is still running, if any."""
        return self._handles.get(job_id)

    async def run_job(
        self,
        job_id: str,
        scenes: Sequence[Scene],
        assets: Mapping[str, bytes],
        audio: Optional[AudioTrack],
        base_url: str,
    ) -> JobRecord:
        """Run the distributed pipeline for an existing processing job."""
        try:
            work_dir = self.scratch.allocate(prefix=job_id)
            try:
                result_url = await self._run_distributed(job_id, work_dir, scenes, assets, audio, base_url)
            finally:
                self.scratch.reclaim(work_dir)
        except asyncio.CancelledError:
            logger.warning(f"[JOB] Job {job_id} cancelled")
            self.job_store.transition(job_id, JobStatus.FAILED, error="Job cancelled before completion")
            raise
        except Exception as e:
            logger.error(f"[JOB] Job {job_id} failed: {describe_error(e)}")
            return self.job_store.transition(job_id, JobStatus.FAILED, error=describe_error(e))

        return self.job_store.transition(job_id, JobStatus.COMPLETED, result_url=result_url)

    async def _run_distributed(
        self,
        job_id: str,
        work_dir: Path,
        scenes: Sequence[Scene],
        assets: Mapping[str, bytes],
        audio: Optional[AudioTrack],
        base_url: str,
    ) -> str:
        logger.info(f"[JOB] Job {job_id}: partitioning {len(scenes)} scene(s) across {len(self.workers)} worker(s)")
        tasks = partition_scenes(scenes, self.workers, assets)

        logger.info(f"[JOB] Job {job_id}: dispatching to workers")
        batches = await self.dispatcher.dispatch(tasks, work_dir)

        logger.info(f"[JOB] Job {job_id}: reassembling segments")
        segments = self._reassemble(batches, len(scenes))

        return await self._assemble(segments, audio, work_dir, f"{job_id}.mp4", base_url)

    # ========================================================================
    # Synchronous mode
    # ========================================================================

    async def merge_now(
        self,
        scenes: Sequence[Scene],
        assets: Mapping[str, bytes],
        audio: Optional[AudioTrack],
        base_url: str,
    ) -> str:
        """Render every scene in-process and return the result URL.

        Raises:
            MissingAudioError: If no audio track was supplied
            InvalidSceneError: If an image scene names an asset that was not uploaded
            StoryreelError: If any stage fails
        """
        if audio is None:
            raise MissingAudioError()
        validate_scene_indices(scenes)
        for scene in scenes:
            if isinstance(scene.source, StillImage) and scene.source.asset_ref not in assets:
                raise InvalidSceneError(
                    f"imageFile '{scene.source.asset_ref}' was not uploaded",
                    index=scene.order_index,
                )

        with self.scratch.session(prefix="merge") as work_dir:
            asset_dir = work_dir / "assets"
            asset_dir.mkdir()
            asset_paths = {
                ref: write_image_asset(ref, data, asset_dir, i)
                for i, (ref, data) in enumerate(assets.items())
            }

            logger.info(f"[MERGE] Rendering {len(scenes)} scene(s) in-process")
            rendered = await self.scene_renderer.render_all(scenes, work_dir, asset_paths)
            segments = self._reassemble([rendered], len(scenes))

            return await self._assemble(
                segments, audio, work_dir, f"merged_{uuid4().hex}.mp4", base_url
            )

    # ========================================================================
    # Shared stages
    # ========================================================================

    def _reassemble(
        self, batches: list[list[RenderedSegment]], scene_count: int
    ) -> list[RenderedSegment]:
        segments = reassemble_segments(batches)
        missing = find_gaps(segments, scene_count)
        if missing:
            if not self.allow_segment_gaps:
                raise MissingSegmentsError(missing)
            logger.warning(
                f"[REASSEMBLE] Continuing without segments for scenes {missing} "
                f"({len(segments)}/{scene_count} rendered)"
            )
        return segments

    async def _assemble(
        self,
        segments: list[RenderedSegment],
        audio: Optional[AudioTrack],
        work_dir: Path,
        output_filename: str,
        base_url: str,
    ) -> str:
        """Concatenate, mux audio and publish. Each stage waits for the previous one."""
        merged_path = str(work_dir / "merged_video.mp4")
        await self.encoder.concatenate([str(s.local_path) for s in segments], merged_path)

        audio_path = None
        if audio is not None:
            audio_path = str(work_dir / f"audio{audio.suffix}")
            Path(audio_path).write_bytes(audio.data)

        final_path = str(work_dir / "final_video.mp4")
        await self.encoder.mux_audio(merged_path, audio_path, final_path)

        return self.output_store.publish(final_path, output_filename, base_url)

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def aclose(self) -> None:
        """Cancel running jobs and release the dispatch client."""
        handles = list(self._handles.values())
        for handle in handles:
            handle.task.cancel()
        if handles:
            await asyncio.gather(*(h.task for h in handles), return_exceptions=True)
        await self.dispatcher.aclose()
