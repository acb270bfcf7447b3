import logging
import shutil
from pathlib import Path

from storyreel.config import get_settings

logger = logging.getLogger(__name__)


class OutputStore:
    """Local directory of finished videos, served as static files."""

    def __init__(self, base_path: str | Path | None = None) -> None:
        self.base_path = Path(base_path or get_settings().output_dir)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def get_file_path(self, filename: str) -> Path:
        return self.base_path / filename

    def get_public_url(self, base_url: str, filename: str) -> str:
        """Build the URL a client can download ``filename`` from."""
        return f"{base_url.rstrip('/')}/{filename}"

    def publish(self, local_path: str | Path, filename: str, base_url: str) -> str:
        """Move a finished artifact out of scratch space and return its URL."""
        destination = self.get_file_path(filename)
        shutil.move(str(local_path), str(destination))
        logger.info(f"[OUTPUT] Published {destination}")
        return self.get_public_url(base_url, filename)
