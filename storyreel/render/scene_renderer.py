"""Per-scene rendering used by workers and by the synchronous merge endpoint."""

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Optional

import httpx

from storyreel.config import get_settings
from storyreel.exceptions import SceneSourceError
from storyreel.render.encoder import MediaEncoder
from storyreel.render.models import RemoteVideo, RenderedSegment, Scene

logger = logging.getLogger(__name__)


class SceneRenderer:
    """Turns one scene into a fixed-duration video segment."""

    def __init__(
        self,
        encoder: Optional[MediaEncoder] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        download_timeout_s: Optional[float] = None,
    ):
        self.encoder = encoder or MediaEncoder()
        self._http_client = http_client
        self.download_timeout_s = (
            download_timeout_s if download_timeout_s is not None else get_settings().download_timeout_s
        )

    async def download_video(self, url: str, dest: Path) -> Path:
        """Stream a remote clip to disk.

        Raises:
            SceneSourceError: If the clip cannot be fetched
        """
        logger.info(f"[SCENE] Downloading {url}")
        client = self._http_client or httpx.AsyncClient(timeout=self.download_timeout_s)
        try:
            async with client.stream("GET", url, follow_redirects=True) as response:
                response.raise_for_status()
                with open(dest, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        f.write(chunk)
        except httpx.HTTPError as e:
            raise SceneSourceError(f"Failed to download scene video {url}: {e}")
        finally:
            if self._http_client is None:
                await client.aclose()
        return dest

    async def render(
        self,
        scene: Scene,
        work_dir: Path,
        asset_paths: Mapping[str, Path],
    ) -> RenderedSegment:
        """Render a single scene into ``work_dir``.

        Args:
            scene: Scene to render
            work_dir: Scratch directory owned by the caller
            asset_paths: Local files for image asset references
        """
        output_path = work_dir / f"scene_{scene.order_index}.mp4"

        if isinstance(scene.source, RemoteVideo):
            downloaded = work_dir / f"downloaded_{scene.order_index}.mp4"
            await self.download_video(scene.source.url, downloaded)
            await self.encoder.render_video_scene(str(downloaded), str(output_path), scene.duration)
        else:
            image_path = asset_paths.get(scene.source.asset_ref)
            if image_path is None:
                raise SceneSourceError(
                    f"Scene {scene.order_index} references asset "
                    f"'{scene.source.asset_ref}', which was not provided"
                )
            await self.encoder.render_image_scene(str(image_path), str(output_path), scene.duration)

        return RenderedSegment(order_index=scene.order_index, local_path=output_path)

    async def render_all(
        self,
        scenes: Sequence[Scene],
        work_dir: Path,
        asset_paths: Mapping[str, Path],
    ) -> list[RenderedSegment]:
        """Render scenes one after another, in the given order."""
        segments = []
        for scene in scenes:
            segments.append(await self.render(scene, work_dir, asset_paths))
        return segments
