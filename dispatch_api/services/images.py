"""
Image Encoding Service

Uploaded images are re-encoded to WebP for the web client, and a tiny
blurred PNG is produced as an inline placeholder shown while the real image
loads.

Pillow is synchronous; callers in async code run these functions through
asyncio.to_thread().
"""

import base64
import io
import logging
import os
from dataclasses import dataclass

from PIL import Image, ImageFilter, ImageOps

from dispatch_api.config import settings


logger = logging.getLogger(__name__)


ALLOWED_IMAGE_TYPES = frozenset({
    "image/png",
    "image/gif",
    "image/jpeg",
    "image/jpg",
    "image/webp",
})

WEBP_QUALITY = 80

# Width of the blur placeholder in pixels; height follows the aspect ratio
BLUR_PLACEHOLDER_WIDTH = 10


@dataclass
class EncodedImage:
    file_name: str
    path: str
    buffer: bytes


def is_allowed_image_type(content_type: str | None) -> bool:
    return content_type in ALLOWED_IMAGE_TYPES


def _open_image(buffer: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(buffer))
    # Rotate according to EXIF orientation so phones' photos display upright
    image = ImageOps.exif_transpose(image)
    if image.mode not in ("RGB", "RGBA"):
        image = image.convert("RGBA")
    return image


def encode_image_webp(buffer: bytes, path_type: str, image_id: str) -> EncodedImage:
    """
    Re-encode raw upload bytes as WebP.

    Args:
        buffer: Uploaded file contents
        path_type: Sub-directory of UPLOAD_DIR ("bleeter", ...)
        image_id: File name without extension

    Returns:
        The encoded bytes and where they should be written. Nothing is
        written to disk here.
    """
    image = _open_image(buffer)

    output = io.BytesIO()
    image.save(output, format="WEBP", quality=WEBP_QUALITY)

    file_name = f"{image_id}.webp"
    path = os.path.join(settings.UPLOAD_DIR, path_type, file_name)
    return EncodedImage(file_name=file_name, path=path, buffer=output.getvalue())


def generate_blur_placeholder(image: EncodedImage) -> str:
    """Return a base64 PNG data URI of a heavily downscaled, blurred copy."""
    source = _open_image(image.buffer)

    width, height = source.size
    target_height = max(1, round(height * BLUR_PLACEHOLDER_WIDTH / max(width, 1)))
    thumb = source.resize((BLUR_PLACEHOLDER_WIDTH, target_height))
    thumb = thumb.filter(ImageFilter.GaussianBlur(radius=1))

    output = io.BytesIO()
    thumb.save(output, format="PNG")
    encoded = base64.b64encode(output.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def write_image(image: EncodedImage) -> None:
    os.makedirs(os.path.dirname(image.path), exist_ok=True)
    with open(image.path, "wb") as f:
        f.write(image.buffer)
    logger.info(f"Wrote image {image.path} ({len(image.buffer)} bytes)")


def remove_image(image: EncodedImage) -> None:
    """Delete a written image; a missing file is not an error."""
    try:
        os.remove(image.path)
    except FileNotFoundError:
        pass
