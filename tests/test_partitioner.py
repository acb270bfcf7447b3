"""Tests for round-robin scene partitioning."""

import pytest

from storyreel.exceptions import SceneIntegrityError
from storyreel.render.models import RemoteVideo, Scene, StillImage
from storyreel.render.partitioner import partition_scenes, validate_scene_indices


def _video_scenes(count: int) -> list[Scene]:
    return [
        Scene(order_index=i, source=RemoteVideo(url=f"https://cdn.test/{i}.mp4"), duration=1.0)
        for i in range(count)
    ]


def _workers(count: int) -> list[str]:
    return [f"http://worker-{i}.test/process-scenes" for i in range(count)]


class TestPartitionScenes:
    """Tests for partition_scenes."""

    def test_round_robin_assignment(self):
        tasks = partition_scenes(_video_scenes(5), _workers(2))

        assert [s.order_index for s in tasks[0].scenes] == [0, 2, 4]
        assert [s.order_index for s in tasks[1].scenes] == [1, 3]

    def test_one_task_per_worker_in_worker_order(self):
        workers = _workers(3)
        tasks = partition_scenes(_video_scenes(4), workers)

        assert [t.target_worker for t in tasks] == workers
        assert [t.worker_index for t in tasks] == [0, 1, 2]

    def test_more_workers_than_scenes_leaves_empty_tasks(self):
        tasks = partition_scenes(_video_scenes(2), _workers(4))

        assert [t.is_empty for t in tasks] == [False, False, True, True]

    def test_keeps_original_order_index(self):
        tasks = partition_scenes(_video_scenes(6), _workers(3))

        # Worker 2 owns scenes 2 and 5, not 0 and 1
        assert [s.order_index for s in tasks[2].scenes] == [2, 5]

    @pytest.mark.parametrize("scene_count", [1, 2, 3, 7, 12])
    @pytest.mark.parametrize("worker_count", [1, 2, 3, 5])
    def test_is_a_true_partition(self, scene_count, worker_count):
        scenes = _video_scenes(scene_count)
        tasks = partition_scenes(scenes, _workers(worker_count))

        assigned = [s.order_index for t in tasks for s in t.scenes]
        assert sorted(assigned) == list(range(scene_count))
        assert len(assigned) == len(set(assigned))
        for task in tasks:
            assert all(s.order_index % worker_count == task.worker_index for s in task.scenes)

    def test_assets_follow_their_scenes(self):
        scenes = [
            Scene(order_index=0, source=StillImage(asset_ref="a"), duration=1.0),
            Scene(order_index=1, source=StillImage(asset_ref="b"), duration=1.0),
            Scene(order_index=2, source=RemoteVideo(url="https://cdn.test/c.mp4"), duration=1.0),
            Scene(order_index=3, source=StillImage(asset_ref="d"), duration=1.0),
        ]
        assets = {"a": b"A", "b": b"B", "d": b"D", "unused": b"U"}

        tasks = partition_scenes(scenes, _workers(2), assets)

        assert tasks[0].assets == {"a": b"A"}
        assert tasks[1].assets == {"b": b"B", "d": b"D"}

    def test_shared_asset_is_copied_to_each_owning_task(self):
        scenes = [
            Scene(order_index=0, source=StillImage(asset_ref="logo"), duration=1.0),
            Scene(order_index=1, source=StillImage(asset_ref="logo"), duration=1.0),
        ]
        tasks = partition_scenes(scenes, _workers(2), {"logo": b"L"})

        assert tasks[0].assets == {"logo": b"L"}
        assert tasks[1].assets == {"logo": b"L"}

    def test_scene_with_missing_asset_is_dropped(self):
        scenes = [
            Scene(order_index=0, source=StillImage(asset_ref="present"), duration=1.0),
            Scene(order_index=1, source=StillImage(asset_ref="absent"), duration=1.0),
            Scene(order_index=2, source=RemoteVideo(url="https://cdn.test/v.mp4"), duration=1.0),
        ]
        tasks = partition_scenes(scenes, _workers(1), {"present": b"P"})

        assert [s.order_index for s in tasks[0].scenes] == [0, 2]
        assert "absent" not in tasks[0].assets

    def test_empty_scene_list_rejected(self):
        with pytest.raises(ValueError, match="empty scene list"):
            partition_scenes([], _workers(2))

    def test_empty_worker_list_rejected(self):
        with pytest.raises(ValueError, match="worker endpoint"):
            partition_scenes(_video_scenes(2), [])


class TestValidateSceneIndices:
    """Tests for the unique, contiguous order index invariant."""

    def test_contiguous_indices_pass(self):
        validate_scene_indices(_video_scenes(4))

    def test_duplicate_index_rejected(self):
        scenes = _video_scenes(2) + [
            Scene(order_index=1, source=RemoteVideo(url="https://cdn.test/x.mp4"), duration=1.0)
        ]
        with pytest.raises(SceneIntegrityError, match="Duplicate"):
            validate_scene_indices(scenes)

    def test_gap_rejected(self):
        scenes = [
            Scene(order_index=0, source=RemoteVideo(url="https://cdn.test/0.mp4"), duration=1.0),
            Scene(order_index=2, source=RemoteVideo(url="https://cdn.test/2.mp4"), duration=1.0),
        ]
        with pytest.raises(SceneIntegrityError, match="missing=\\[1\\]"):
            validate_scene_indices(scenes)

    def test_partition_checks_integrity(self):
        scenes = [Scene(order_index=5, source=RemoteVideo(url="https://cdn.test/5.mp4"), duration=1.0)]
        with pytest.raises(SceneIntegrityError):
            partition_scenes(scenes, _workers(1))
