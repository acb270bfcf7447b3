import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator
from pydantic import ValidationError as PydanticValidationError

from storyreel.exceptions import InvalidSceneError
from storyreel.render.models import RemoteVideo, Scene, StillImage


class SceneInput(BaseModel):
    """One storyboard entry as submitted by the client."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    paragraph: str | None = None
    duration: float = Field(gt=0, allow_inf_nan=False)
    video_url: str | None = Field(default=None, alias="videoUrl")
    image_file: str | None = Field(default=None, alias="imageFile")

    @model_validator(mode="before")
    @classmethod
    def _split_combined_source(cls, data: Any) -> Any:
        # videoUrlOrImageFile: a string is a clip URL, an upload descriptor names an asset
        if not isinstance(data, dict) or "videoUrlOrImageFile" not in data:
            return data
        data = dict(data)
        value = data.pop("videoUrlOrImageFile")
        if isinstance(value, str):
            data.setdefault("videoUrl", value)
        elif isinstance(value, dict):
            ref = value.get("fieldname") or value.get("filename") or value.get("originalname")
            if ref:
                data.setdefault("imageFile", ref)
        return data

    @model_validator(mode="after")
    def _exactly_one_source(self) -> "SceneInput":
        if (self.video_url is None) == (self.image_file is None):
            raise ValueError("exactly one of videoUrl or imageFile is required")
        if self.video_url is not None and not self.video_url.startswith(("http://", "https://")):
            raise ValueError(f"videoUrl must be an http(s) URL: {self.video_url}")
        return self

    def to_scene(self, order_index: int) -> Scene:
        if self.video_url is not None:
            source = RemoteVideo(url=self.video_url)
        else:
            source = StillImage(asset_ref=self.image_file)
        return Scene(
            order_index=order_index,
            source=source,
            duration=self.duration,
            paragraph=self.paragraph,
        )


_scene_list_adapter = TypeAdapter(list[SceneInput])


def parse_scenes(raw: str | list[Any]) -> list[Scene]:
    """Parse the submitted scene list and assign original order indices.

    Raises:
        InvalidSceneError: If the payload is not a non-empty list of valid scenes
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise InvalidSceneError(f"scenes is not valid JSON: {e.msg}")

    if not isinstance(raw, list) or not raw:
        raise InvalidSceneError("scenes must be a non-empty JSON array")

    try:
        inputs = _scene_list_adapter.validate_python(raw)
    except PydanticValidationError as e:
        first_error = e.errors()[0]
        loc = first_error.get("loc", ())
        index = loc[0] if loc and isinstance(loc[0], int) else None
        field = " -> ".join(str(x) for x in loc[1:])
        msg = first_error.get("msg", "invalid scene")
        raise InvalidSceneError(f"{field}: {msg}" if field else msg, index=index)

    return [scene_input.to_scene(i) for i, scene_input in enumerate(inputs)]
