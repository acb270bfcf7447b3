"""Wire contract between the orchestrator and render workers.

Binary payloads (image assets in requests, rendered segments in responses)
travel base64-encoded inside JSON bodies.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class WorkerScene(_CamelModel):
    order_index: int = Field(ge=0)
    duration: float = Field(gt=0, allow_inf_nan=False)
    paragraph: str | None = None
    video_url: str | None = None
    image_file: str | None = None


class WorkerRequest(BaseModel):
    scenes: list[WorkerScene]
    assets: dict[str, str] = Field(default_factory=dict)  # asset ref -> base64


class ProcessedScene(_CamelModel):
    order_index: int
    video_data: str  # base64-encoded MP4 segment
    duration: float | None = None
    paragraph: str | None = None


class WorkerResponse(_CamelModel):
    processed_scenes: list[ProcessedScene]
