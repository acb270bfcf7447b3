"""Tests for restoring scene order after concurrent rendering."""

import random
from pathlib import Path

import pytest

from storyreel.exceptions import ReassemblyIntegrityError
from storyreel.render.models import RemoteVideo, RenderedSegment, Scene
from storyreel.render.partitioner import partition_scenes
from storyreel.render.reassembler import find_gaps, reassemble_segments


def _segment(order_index: int) -> RenderedSegment:
    return RenderedSegment(order_index=order_index, local_path=Path(f"/tmp/seg_{order_index}.mp4"))


class TestReassembleSegments:
    def test_sorts_interleaved_batches(self):
        batches = [[_segment(0), _segment(2), _segment(4)], [_segment(1), _segment(3)]]

        result = reassemble_segments(batches)

        assert [s.order_index for s in result] == [0, 1, 2, 3, 4]

    def test_batch_arrival_order_does_not_matter(self):
        batches = [[_segment(3), _segment(1)], [_segment(4), _segment(0), _segment(2)]]
        result = reassemble_segments(reversed(batches))

        assert [s.order_index for s in result] == [0, 1, 2, 3, 4]

    def test_empty_batches(self):
        assert reassemble_segments([[], []]) == []

    def test_duplicate_index_raises(self):
        with pytest.raises(ReassemblyIntegrityError, match="scene 2"):
            reassemble_segments([[_segment(2)], [_segment(2)]])

    @pytest.mark.parametrize("worker_count", [1, 2, 3, 4])
    def test_reassembly_inverts_partition(self, worker_count):
        """Whatever order workers finish in, reassembly yields the submitted order."""
        scenes = [
            Scene(order_index=i, source=RemoteVideo(url=f"https://cdn.test/{i}.mp4"), duration=1.0)
            for i in range(9)
        ]
        workers = [f"http://w{i}.test/process-scenes" for i in range(worker_count)]
        tasks = partition_scenes(scenes, workers)

        batches = [[_segment(s.order_index) for s in task.scenes] for task in tasks]
        random.Random(worker_count).shuffle(batches)

        result = reassemble_segments(batches)

        assert [s.order_index for s in result] == [s.order_index for s in scenes]


class TestFindGaps:
    def test_no_gaps(self):
        assert find_gaps([_segment(0), _segment(1)], 2) == []

    def test_reports_missing_positions(self):
        assert find_gaps([_segment(0), _segment(3)], 5) == [1, 2, 4]

    def test_all_missing(self):
        assert find_gaps([], 3) == [0, 1, 2]
