import json
from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="STORYREEL_",
        extra="ignore",
    )

    # Application
    app_name: str = "Storyreel API"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    # Worker pool - stored as string, parsed via computed property
    worker_endpoints_raw: str = (
        "http://localhost:8001/process-scenes,http://localhost:8002/process-scenes"
    )
    # Seconds allowed for one worker round trip (request + rendering + response)
    worker_request_timeout_s: float = 600.0
    # Expose POST /process-scenes so this process can also act as a worker
    enable_worker_api: bool = True

    @computed_field
    @property
    def worker_endpoints(self) -> list[str]:
        """Parse worker endpoints from pipe/comma-separated string or JSON array."""
        v = self.worker_endpoints_raw.strip()
        if v.startswith("["):
            try:
                return [str(e).strip() for e in json.loads(v) if str(e).strip()]
            except json.JSONDecodeError:
                pass
        separator = "|" if "|" in v else ","
        return [e.strip() for e in v.split(separator) if e.strip()]

    # FFmpeg
    ffmpeg_path: str = "ffmpeg"
    # Upper bound for a single encoder invocation
    ffmpeg_timeout_s: float = 900.0

    # Render settings
    render_width: int = 1280
    render_height: int = 720
    render_fps: int = 30
    render_video_codec: str = "libx264"
    render_audio_codec: str = "aac"
    render_audio_bitrate: str = "192k"

    # Remote clip download
    download_timeout_s: float = 120.0

    # Local directories
    scratch_root: str = "/tmp/storyreel-scratch"
    output_dir: str = "/tmp/storyreel-output"

    # Reassembly: continue with fewer segments than scenes instead of failing
    allow_segment_gaps: bool = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
