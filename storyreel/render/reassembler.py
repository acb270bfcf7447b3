"""Restore original scene order from concurrently produced segments."""

from collections.abc import Iterable

from storyreel.exceptions import ReassemblyIntegrityError
from storyreel.render.models import RenderedSegment


def reassemble_segments(batches: Iterable[Iterable[RenderedSegment]]) -> list[RenderedSegment]:
    """Flatten per-worker batches and sort them by order index.

    Raises:
        ReassemblyIntegrityError: If two segments share an order index
    """
    by_index: dict[int, RenderedSegment] = {}
    for batch in batches:
        for segment in batch:
            if segment.order_index in by_index:
                raise ReassemblyIntegrityError(segment.order_index)
            by_index[segment.order_index] = segment

    return [by_index[i] for i in sorted(by_index)]


def find_gaps(segments: Iterable[RenderedSegment], scene_count: int) -> list[int]:
    """Return the scene positions in [0, scene_count) that have no segment."""
    present = {segment.order_index for segment in segments}
    return [i for i in range(scene_count) if i not in present]
