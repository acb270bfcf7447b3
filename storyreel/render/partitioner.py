"""Round-robin partitioning of a job's scenes across the worker pool."""

import logging
from collections.abc import Mapping, Sequence

from storyreel.exceptions import SceneIntegrityError
from storyreel.render.models import Scene, StillImage, WorkerTask

logger = logging.getLogger(__name__)


def validate_scene_indices(scenes: Sequence[Scene]) -> None:
    """Check that order indices are unique and cover [0, N).

    Raises:
        SceneIntegrityError: On duplicate, negative or missing indices
    """
    seen: set[int] = set()
    for scene in scenes:
        if scene.order_index in seen:
            raise SceneIntegrityError(f"Duplicate scene order index: {scene.order_index}")
        seen.add(scene.order_index)

    expected = set(range(len(scenes)))
    if seen != expected:
        unexpected = sorted(seen - expected)
        missing = sorted(expected - seen)
        raise SceneIntegrityError(
            f"Scene order indices must cover 0..{len(scenes) - 1}: "
            f"missing={missing}, unexpected={unexpected}"
        )


def partition_scenes(
    scenes: Sequence[Scene],
    workers: Sequence[str],
    assets: Mapping[str, bytes] | None = None,
) -> list[WorkerTask]:
    """Assign every scene to worker ``order_index % len(workers)``.

    Returns one task per worker, in worker order; tasks may be empty. Image
    scenes carry their referenced asset into the owning task. An image scene
    whose asset was not uploaded is dropped from its task and will be
    reported later as a missing segment.

    Args:
        scenes: Scenes with original order indices
        workers: Worker endpoint URLs
        assets: Uploaded image assets keyed by reference

    Returns:
        List of WorkerTask, len(workers) long
    """
    if not scenes:
        raise ValueError("Cannot partition an empty scene list")
    if not workers:
        raise ValueError("At least one worker endpoint is required")

    validate_scene_indices(scenes)
    assets = assets or {}

    tasks = [
        WorkerTask(target_worker=endpoint, worker_index=i)
        for i, endpoint in enumerate(workers)
    ]

    for scene in sorted(scenes, key=lambda s: s.order_index):
        task = tasks[scene.order_index % len(tasks)]

        if isinstance(scene.source, StillImage):
            ref = scene.source.asset_ref
            if ref not in assets:
                logger.warning(
                    f"[PARTITION] Scene {scene.order_index} references missing asset "
                    f"'{ref}', dropping it from worker {task.worker_index}"
                )
                continue
            task.assets[ref] = assets[ref]

        task.scenes.append(scene)

    for task in tasks:
        logger.info(
            f"[PARTITION] Worker {task.worker_index} ({task.target_worker}): "
            f"scenes={[s.order_index for s in task.scenes]}, assets={len(task.assets)}"
        )

    return tasks
