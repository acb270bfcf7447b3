"""Worker-side endpoint: render a partition of scenes and return the segments."""

import base64
import binascii
import logging

from fastapi import APIRouter

from storyreel.api.deps import Renderer, Scratch
from storyreel.exceptions import InvalidAssetError, InvalidSceneError
from storyreel.render.models import RemoteVideo, Scene, StillImage
from storyreel.schemas.worker import ProcessedScene, WorkerRequest, WorkerResponse, WorkerScene
from storyreel.services.image_assets import write_image_asset

router = APIRouter()
logger = logging.getLogger(__name__)


def _to_scene(worker_scene: WorkerScene) -> Scene:
    if worker_scene.video_url:
        source = RemoteVideo(url=worker_scene.video_url)
    elif worker_scene.image_file:
        source = StillImage(asset_ref=worker_scene.image_file)
    else:
        raise InvalidSceneError("videoUrl or imageFile is required", index=worker_scene.order_index)
    return Scene(
        order_index=worker_scene.order_index,
        source=source,
        duration=worker_scene.duration,
        paragraph=worker_scene.paragraph,
    )


@router.post("/process-scenes", response_model=WorkerResponse)
async def process_scenes(body: WorkerRequest, renderer: Renderer, scratch: Scratch) -> WorkerResponse:
    """Render every scene of the partition, in the order received."""
    scenes = [_to_scene(s) for s in body.scenes]
    logger.info(f"[WORKER] Rendering scenes {[s.order_index for s in scenes]}")

    with scratch.session(prefix="worker") as work_dir:
        asset_dir = work_dir / "assets"
        asset_dir.mkdir()
        asset_paths = {}
        for i, (ref, encoded) in enumerate(body.assets.items()):
            try:
                data = base64.b64decode(encoded, validate=True)
            except binascii.Error:
                raise InvalidAssetError(ref, "invalid base64 payload")
            asset_paths[ref] = write_image_asset(ref, data, asset_dir, i)

        processed = []
        for scene in scenes:
            segment = await renderer.render(scene, work_dir, asset_paths)
            processed.append(
                ProcessedScene(
                    order_index=scene.order_index,
                    video_data=base64.b64encode(segment.local_path.read_bytes()).decode("ascii"),
                    duration=scene.duration,
                    paragraph=scene.paragraph,
                )
            )

    return WorkerResponse(processed_scenes=processed)
