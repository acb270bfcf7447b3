"""Per-job scratch directories on the local filesystem."""

import logging
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from storyreel.config import get_settings

logger = logging.getLogger(__name__)


class ScratchSpace:
    """Allocates and reclaims isolated working directories.

    Each allocation is a fresh directory under ``root``; nothing is shared
    between jobs.
    """

    def __init__(self, root: str | Path | None = None) -> None:
        self.root = Path(root or get_settings().scratch_root)

    def allocate(self, prefix: str = "job") -> Path:
        """Create a new empty working directory."""
        self.root.mkdir(parents=True, exist_ok=True)
        path = Path(tempfile.mkdtemp(prefix=f"storyreel_{prefix}_", dir=self.root))
        logger.debug(f"[SCRATCH] Allocated {path}")
        return path

    def reclaim(self, path: Path) -> None:
        """Remove a working directory and everything in it."""
        try:
            shutil.rmtree(path)
            logger.debug(f"[SCRATCH] Reclaimed {path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"[SCRATCH] Failed to reclaim {path}: {e}")

    @contextmanager
    def session(self, prefix: str = "job") -> Iterator[Path]:
        """Allocate a directory for the duration of a with-block."""
        path = self.allocate(prefix)
        try:
            yield path
        finally:
            self.reclaim(path)
