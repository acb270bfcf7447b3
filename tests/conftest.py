"""
Pytest fixtures for storyreel tests.

No test needs FFmpeg or network access:
- StubEncoder replaces the FFmpeg process runner and writes deterministic
  bytes, so concatenation order is visible in the output file.
- Workers and remote clips are served by httpx.MockTransport handlers.
"""

import base64
import io
import json
import tempfile
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest
from PIL import Image

from storyreel.exceptions import EncoderError
from storyreel.render.encoder import MediaEncoder
from storyreel.render.models import AudioTrack, RemoteVideo, Scene, StillImage
from storyreel.render.pipeline import RenderOrchestrator
from storyreel.render.scene_renderer import SceneRenderer
from storyreel.services.job_store import InMemoryJobStore
from storyreel.services.output_store import OutputStore
from storyreel.services.scratch_space import ScratchSpace
from storyreel.services.worker_client import WorkerDispatchClient

WORKER_URLS = [
    "http://worker-1.test/process-scenes",
    "http://worker-2.test/process-scenes",
]


class StubEncoder(MediaEncoder):
    """MediaEncoder whose process runner fabricates outputs.

    - scene renders write b"rendered:<input name>"
    - concatenation writes the concatenated bytes of the listed files
    - audio mux appends b"+audio" to the video bytes
    """

    def __init__(self, fail_stage: str | None = None):
        super().__init__(ffmpeg_path="ffmpeg-stub")
        self.fail_stage = fail_stage
        self.calls: list[tuple[str, list[str]]] = []

    async def _run(self, cmd: list[str], stage: str) -> None:
        self.calls.append((stage, cmd))
        if stage == self.fail_stage:
            raise EncoderError(stage, "stub failure: Invalid data found when processing input")

        output = Path(cmd[-1])
        input_path = Path(cmd[cmd.index("-i") + 1])
        if stage == "Concatenation":
            data = b""
            for line in input_path.read_text().splitlines():
                listed = line.strip()[len("file '"):-1].replace("'\\''", "'")
                data += Path(listed).read_bytes()
            output.write_bytes(data)
        elif stage == "Audio mux":
            output.write_bytes(input_path.read_bytes() + b"+audio")
        else:
            output.write_bytes(f"rendered:{input_path.name}".encode())

    def stages(self) -> list[str]:
        return [stage for stage, _ in self.calls]


def segment_bytes(order_index: int) -> bytes:
    return f"[scene-{order_index}]".encode()


def make_worker_handler(
    failing: dict[str, Callable[[httpx.Request], httpx.Response]] | None = None,
    calls: list[str] | None = None,
) -> Callable[[httpx.Request], httpx.Response]:
    """Build a MockTransport handler that behaves like a pool of render workers.

    Each healthy worker answers with one segment per scene whose bytes encode
    the scene's order index.
    """
    failing = failing or {}

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if calls is not None:
            calls.append(url)
        if url in failing:
            return failing[url](request)
        body = json.loads(request.content)
        processed = [
            {
                "orderIndex": scene["orderIndex"],
                "videoData": base64.b64encode(segment_bytes(scene["orderIndex"])).decode(),
                "duration": scene["duration"],
                "paragraph": scene.get("paragraph"),
            }
            for scene in body["scenes"]
        ]
        return httpx.Response(200, json={"processedScenes": processed})

    return handler


@pytest.fixture
def temp_output_dir():
    """Temporary directory for test outputs."""
    with tempfile.TemporaryDirectory(prefix="storyreel_test_") as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def png_bytes() -> bytes:
    """A small valid PNG image."""
    buffer = io.BytesIO()
    Image.new("RGB", (64, 36), "red").save(buffer, "PNG")
    return buffer.getvalue()


@pytest.fixture
def audio_track() -> AudioTrack:
    return AudioTrack(filename="narration.mp3", data=b"ID3-fake-audio")


@pytest.fixture
def mixed_scenes() -> list[Scene]:
    """Scenario scenes: two image-backed, one video-backed."""
    return [
        Scene(order_index=0, source=StillImage(asset_ref="img0"), duration=2.0, paragraph="Intro"),
        Scene(order_index=1, source=RemoteVideo(url="https://cdn.test/clip.mp4"), duration=3.5),
        Scene(order_index=2, source=StillImage(asset_ref="img2"), duration=1.5, paragraph="Outro"),
    ]


@pytest.fixture
def mixed_assets(png_bytes) -> dict[str, bytes]:
    return {"img0": png_bytes, "img2": png_bytes}


@pytest.fixture
def stub_encoder() -> StubEncoder:
    return StubEncoder()


@pytest.fixture
def scratch(temp_output_dir) -> ScratchSpace:
    return ScratchSpace(temp_output_dir / "scratch")


@pytest.fixture
def output_store(temp_output_dir) -> OutputStore:
    return OutputStore(temp_output_dir / "published")


@pytest.fixture
def clip_transport() -> httpx.MockTransport:
    """Serves remote scene clips."""
    return httpx.MockTransport(lambda request: httpx.Response(200, content=b"fake-mp4-clip"))


def build_orchestrator(
    handler: Callable[[httpx.Request], httpx.Response],
    encoder: MediaEncoder,
    scratch: ScratchSpace,
    output_store: OutputStore,
    clip_transport: httpx.MockTransport | None = None,
    **kwargs,
) -> RenderOrchestrator:
    dispatcher = WorkerDispatchClient(
        timeout_s=5.0,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    clip_client = httpx.AsyncClient(
        transport=clip_transport or httpx.MockTransport(lambda r: httpx.Response(404))
    )
    return RenderOrchestrator(
        job_store=InMemoryJobStore(),
        dispatcher=dispatcher,
        encoder=encoder,
        scratch=scratch,
        output_store=output_store,
        scene_renderer=SceneRenderer(encoder=encoder, http_client=clip_client),
        workers=kwargs.pop("workers", WORKER_URLS),
        **kwargs,
    )


@pytest.fixture
def orchestrator(stub_encoder, scratch, output_store, clip_transport) -> RenderOrchestrator:
    return build_orchestrator(
        make_worker_handler(), stub_encoder, scratch, output_store, clip_transport
    )
