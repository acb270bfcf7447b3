"""HTTP client that fans scene partitions out to render workers."""

import asyncio
import base64
import binascii
import json
import logging
from pathlib import Path
from typing import Optional

import httpx
from pydantic import ValidationError

from storyreel.config import get_settings
from storyreel.exceptions import WorkerDispatchError
from storyreel.render.models import RenderedSegment, WorkerTask
from storyreel.schemas.worker import WorkerResponse

logger = logging.getLogger(__name__)


def build_worker_payload(task: WorkerTask) -> dict:
    """Build the request body for one worker: scenes plus base64 assets."""
    return {
        "scenes": [scene.to_dict() for scene in task.scenes],
        "assets": {
            ref: base64.b64encode(data).decode("ascii") for ref, data in task.assets.items()
        },
    }


def _describe_failure(exc: BaseException, timeout_s: float) -> str:
    """Short human-readable reason for a failed worker call."""
    if isinstance(exc, httpx.TimeoutException):
        return f"timed out after {timeout_s:.0f}s"
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code} from worker"
    if isinstance(exc, httpx.RequestError):
        return f"transport error: {exc.__class__.__name__}: {exc}"
    if isinstance(exc, (json.JSONDecodeError, ValidationError)):
        return "malformed worker response"
    if isinstance(exc, binascii.Error):
        return f"invalid segment encoding: {exc}"
    return str(exc) or exc.__class__.__name__


class WorkerDispatchClient:
    """One round trip per worker task, all tasks in flight at once.

    dispatch() is a join barrier: it waits for every call to settle and then
    either returns every worker's segments or raises for the whole job.
    """

    def __init__(
        self,
        timeout_s: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.timeout_s = (
            timeout_s if timeout_s is not None else get_settings().worker_request_timeout_s
        )
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self.timeout_s)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _call_worker(self, task: WorkerTask) -> list[tuple[int, bytes]]:
        """POST one partition and decode the returned segments."""
        logger.info(
            f"[DISPATCH] Sending {len(task.scenes)} scene(s) to worker "
            f"{task.worker_index} ({task.target_worker})"
        )
        response = await self._client.post(
            task.target_worker,
            json=build_worker_payload(task),
            timeout=self.timeout_s,
        )
        response.raise_for_status()
        body = WorkerResponse.model_validate(response.json())

        owned = task.order_indices
        decoded: list[tuple[int, bytes]] = []
        for processed in body.processed_scenes:
            if processed.order_index not in owned:
                raise ValueError(
                    f"worker returned scene {processed.order_index}, "
                    f"which was not assigned to it"
                )
            decoded.append(
                (processed.order_index, base64.b64decode(processed.video_data, validate=True))
            )

        logger.info(
            f"[DISPATCH] Worker {task.worker_index} returned {len(decoded)} segment(s)"
        )
        return decoded

    async def dispatch(
        self, tasks: list[WorkerTask], work_dir: Path
    ) -> list[list[RenderedSegment]]:
        """Run every non-empty task concurrently and write the segments to disk.

        Args:
            tasks: Output of partition_scenes
            work_dir: The job's scratch directory

        Returns:
            One batch of RenderedSegment per dispatched worker

        Raises:
            WorkerDispatchError: If any single worker call failed
        """
        active = [task for task in tasks if not task.is_empty]
        skipped = len(tasks) - len(active)
        if skipped:
            logger.info(f"[DISPATCH] Skipping {skipped} worker(s) with no scenes")

        results = await asyncio.gather(
            *(self._call_worker(task) for task in active),
            return_exceptions=True,
        )

        failures: dict[str, str] = {}
        for task, result in zip(active, results):
            if isinstance(result, BaseException):
                reason = _describe_failure(result, self.timeout_s)
                logger.error(
                    f"[DISPATCH] Worker {task.worker_index} ({task.target_worker}) failed: {reason}"
                )
                failures[f"worker {task.worker_index} ({task.target_worker})"] = reason
        if failures:
            raise WorkerDispatchError(failures)

        segments_dir = work_dir / "segments"
        segments_dir.mkdir(parents=True, exist_ok=True)

        batches: list[list[RenderedSegment]] = []
        for task, decoded in zip(active, results):
            batch: list[RenderedSegment] = []
            for n, (order_index, data) in enumerate(decoded):
                path = segments_dir / f"scene_{order_index:04d}_w{task.worker_index}_{n}.mp4"
                path.write_bytes(data)
                batch.append(RenderedSegment(order_index=order_index, local_path=path))
            batches.append(batch)

        return batches
