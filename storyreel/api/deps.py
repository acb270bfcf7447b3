from dataclasses import dataclass, field
from typing import Annotated, Optional

from fastapi import Depends, Request
from starlette.datastructures import UploadFile

from storyreel.exceptions import InvalidSceneError, MissingAudioError
from storyreel.render.models import AudioTrack, Scene
from storyreel.render.pipeline import RenderOrchestrator
from storyreel.render.scene_renderer import SceneRenderer
from storyreel.schemas.scene import parse_scenes
from storyreel.services.image_assets import identify_image
from storyreel.services.job_store import JobStore
from storyreel.services.scratch_space import ScratchSpace

# Multipart field carrying the soundtrack; every other file field is an image asset
AUDIO_FIELD = "audioFile"
SCENES_FIELD = "scenes"


def get_orchestrator(request: Request) -> RenderOrchestrator:
    return request.app.state.orchestrator


def get_job_store(request: Request) -> JobStore:
    return request.app.state.orchestrator.job_store


def get_scene_renderer(request: Request) -> SceneRenderer:
    return request.app.state.orchestrator.scene_renderer


def get_scratch_space(request: Request) -> ScratchSpace:
    return request.app.state.orchestrator.scratch


Orchestrator = Annotated[RenderOrchestrator, Depends(get_orchestrator)]
Jobs = Annotated[JobStore, Depends(get_job_store)]
Renderer = Annotated[SceneRenderer, Depends(get_scene_renderer)]
Scratch = Annotated[ScratchSpace, Depends(get_scratch_space)]


def public_base_url(request: Request) -> str:
    """``{scheme}://{host}`` as seen by the client."""
    host = request.headers.get("host") or request.url.netloc
    return f"{request.url.scheme}://{host}"


@dataclass
class Submission:
    """A parsed merge request."""

    scenes: list[Scene]
    audio: Optional[AudioTrack]
    assets: dict[str, bytes] = field(default_factory=dict)


async def read_submission(request: Request) -> Submission:
    """Parse the multipart merge request.

    Raises:
        MissingAudioError: If no non-empty audioFile was uploaded
        InvalidSceneError: If the scenes field is missing or malformed
        InvalidAssetError: If an uploaded image cannot be decoded
    """
    form = await request.form()

    audio: Optional[AudioTrack] = None
    assets: dict[str, bytes] = {}
    for field_name, value in form.multi_items():
        if not isinstance(value, UploadFile):
            continue
        data = await value.read()
        if field_name == AUDIO_FIELD:
            if data:
                audio = AudioTrack(filename=value.filename or "audio", data=data)
            continue
        identify_image(field_name, data)
        assets[field_name] = data

    if audio is None:
        raise MissingAudioError()

    raw_scenes = form.get(SCENES_FIELD)
    if not isinstance(raw_scenes, str):
        raise InvalidSceneError("the 'scenes' form field is required")

    return Submission(scenes=parse_scenes(raw_scenes), audio=audio, assets=assets)
