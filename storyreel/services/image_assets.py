"""Still-image asset checks."""

import io
import logging
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from storyreel.exceptions import InvalidAssetError

logger = logging.getLogger(__name__)

FORMAT_EXTENSIONS = {
    "PNG": ".png",
    "JPEG": ".jpg",
    "GIF": ".gif",
    "WEBP": ".webp",
    "BMP": ".bmp",
}


def identify_image(asset_ref: str, data: bytes) -> str:
    """Return the Pillow format name of an image payload.

    Raises:
        InvalidAssetError: If the payload is empty, not an image, or truncated
    """
    if not data:
        raise InvalidAssetError(asset_ref, "empty file")
    try:
        with Image.open(io.BytesIO(data)) as img:
            image_format = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise InvalidAssetError(asset_ref, str(e) or "unreadable image")

    if image_format not in FORMAT_EXTENSIONS:
        raise InvalidAssetError(asset_ref, f"unsupported format {image_format}")
    return image_format


def write_image_asset(asset_ref: str, data: bytes, directory: Path, index: int) -> Path:
    """Validate an image payload and store it under a safe generated name."""
    image_format = identify_image(asset_ref, data)
    path = directory / f"asset_{index}{FORMAT_EXTENSIONS[image_format]}"
    path.write_bytes(data)
    logger.debug(f"[ASSETS] Stored '{asset_ref}' ({image_format}, {len(data)} bytes) at {path}")
    return path
