"""Domain types shared by the render pipeline stages."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union


@dataclass(frozen=True)
class RemoteVideo:
    """Scene backed by a video clip that has to be downloaded."""

    url: str


@dataclass(frozen=True)
class StillImage:
    """Scene backed by an uploaded image, referenced by asset name."""

    asset_ref: str


SceneSource = Union[RemoteVideo, StillImage]


@dataclass(frozen=True)
class Scene:
    """One storyboard entry.

    order_index is the scene's position in the submitted list. It is the only
    key used to restore order after concurrent rendering.
    """

    order_index: int
    source: SceneSource
    duration: float
    paragraph: Optional[str] = None

    @property
    def is_image(self) -> bool:
        return isinstance(self.source, StillImage)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the worker wire format."""
        data: dict[str, Any] = {
            "orderIndex": self.order_index,
            "duration": self.duration,
            "paragraph": self.paragraph,
        }
        if isinstance(self.source, RemoteVideo):
            data["videoUrl"] = self.source.url
        else:
            data["imageFile"] = self.source.asset_ref
        return data


@dataclass
class WorkerTask:
    """The partition of a job's scenes routed to one worker endpoint."""

    target_worker: str
    worker_index: int
    scenes: list[Scene] = field(default_factory=list)
    assets: dict[str, bytes] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.scenes

    @property
    def order_indices(self) -> set[int]:
        return {scene.order_index for scene in self.scenes}


@dataclass(frozen=True)
class AudioTrack:
    """The uploaded soundtrack for a merge request."""

    filename: str
    data: bytes

    @property
    def suffix(self) -> str:
        return Path(self.filename).suffix.lower() or ".audio"


@dataclass(frozen=True)
class RenderedSegment:
    """A rendered clip for exactly one scene, stored in the job's scratch space."""

    order_index: int
    local_path: Path
