from storyreel.render.models import (
    AudioTrack,
    RemoteVideo,
    RenderedSegment,
    Scene,
    StillImage,
    WorkerTask,
)
from storyreel.render.partitioner import partition_scenes, validate_scene_indices
from storyreel.render.reassembler import find_gaps, reassemble_segments

__all__ = [
    "AudioTrack",
    "RemoteVideo",
    "RenderedSegment",
    "Scene",
    "StillImage",
    "WorkerTask",
    "partition_scenes",
    "validate_scene_indices",
    "find_gaps",
    "reassemble_segments",
]
