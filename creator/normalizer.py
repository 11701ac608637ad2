"""
Client-side image normalization.

An uploaded photo is decoded, scaled so its longer side fits
``MAX_IMAGE_DIMENSION`` and re-encoded as JPEG with decreasing quality until
the data URI fits ``TARGET_IMAGE_BYTES`` or the quality floor is reached.
The result is best-effort: hitting the floor still returns the last encoding.
"""

import asyncio
import logging
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image, ImageOps

from config.settings import settings

from .errors import ImageDecodeError
from .utils import to_data_uri

logger = logging.getLogger(__name__)


def scaled_size(width: int, height: int, max_dimension: int) -> Tuple[int, int]:
    """
    Size that fits ``max_dimension`` on the longer side.
    The longer side becomes exactly ``max_dimension``; only the shorter side is rounded.
    """
    if width <= max_dimension and height <= max_dimension:
        return width, height
    if width >= height:
        return max_dimension, max(1, round(height * max_dimension / width))
    return max(1, round(width * max_dimension / height)), max_dimension


def decode_image(raw: bytes) -> Image.Image:
    """
    Decode raw bytes into an RGB image with EXIF orientation applied.
    Raises ImageDecodeError for anything Pillow cannot read.
    """
    if not raw:
        raise ImageDecodeError("empty file")
    try:
        img = Image.open(BytesIO(raw))
        img.load()
        img = ImageOps.exif_transpose(img)
    except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as e:
        raise ImageDecodeError(str(e) or type(e).__name__) from e
    return _to_rgb(img)


def _to_rgb(img: Image.Image) -> Image.Image:
    # JPEG has no alpha channel: flatten transparency on white
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def _encode_jpeg(img: Image.Image, quality: int) -> bytes:
    buf = BytesIO()
    img.save(buf, format="JPEG", quality=quality, optimize=True)
    return buf.getvalue()


def normalize_image(
    raw: bytes,
    max_dimension: Optional[int] = None,
    target_bytes: Optional[int] = None,
    quality_start: Optional[int] = None,
    quality_step: Optional[int] = None,
    quality_floor: Optional[int] = None,
) -> str:
    """
    Rescale and re-encode an uploaded image.

    Args:
        raw: File bytes as uploaded (any format Pillow decodes).
        max_dimension: Cap on the longer side in px.
        target_bytes: Budget for the length of the returned data URI.
        quality_start / quality_step / quality_floor: JPEG quality in percent.

    Returns:
        ``data:image/jpeg;base64,...`` string.

    Raises:
        ImageDecodeError: the bytes are not a readable image.
    """
    max_dimension = max_dimension or settings.MAX_IMAGE_DIMENSION
    target_bytes = target_bytes or settings.TARGET_IMAGE_BYTES
    quality = quality_start or settings.JPEG_QUALITY_START
    quality_step = quality_step or settings.JPEG_QUALITY_STEP
    quality_floor = quality_floor or settings.JPEG_QUALITY_FLOOR

    img = decode_image(raw)
    original_size = img.size
    new_size = scaled_size(img.width, img.height, max_dimension)
    if new_size != img.size:
        img = img.resize(new_size, Image.Resampling.LANCZOS)

    data_uri = to_data_uri(_encode_jpeg(img, quality))
    while len(data_uri) > target_bytes and quality > quality_floor:
        quality = max(quality - quality_step, quality_floor)
        data_uri = to_data_uri(_encode_jpeg(img, quality))

    logger.debug(
        "[Normalizer] %sx%s -> %sx%s, quality=%s, %s bytes",
        original_size[0], original_size[1], new_size[0], new_size[1], quality, len(data_uri),
    )
    if len(data_uri) > target_bytes:
        logger.info("[Normalizer] Quality floor reached, image is %s bytes over budget",
                    len(data_uri) - target_bytes)
    return data_uri


async def normalize_image_async(raw: bytes, timeout: Optional[float] = None, **kwargs) -> str:
    """
    Run normalize_image on a worker thread, bounded by ``timeout`` seconds.
    Both unreadable input and a stalled decode raise ImageDecodeError.
    """
    timeout = settings.NORMALIZE_TIMEOUT if timeout is None else timeout
    try:
        return await asyncio.wait_for(asyncio.to_thread(normalize_image, raw, **kwargs), timeout)
    except asyncio.TimeoutError as e:
        logger.warning("[Normalizer] Gave up after %ss", timeout)
        raise ImageDecodeError(f"image processing took longer than {timeout:g} seconds") from e


def make_thumbnail(raw: bytes, size: Optional[int] = None) -> bytes:
    """Small JPEG preview used by conversation turns and gallery items."""
    size = size or settings.THUMBNAIL_SIZE
    img = decode_image(raw)
    img.thumbnail((size, size), Image.Resampling.LANCZOS)
    return _encode_jpeg(img, 80)
