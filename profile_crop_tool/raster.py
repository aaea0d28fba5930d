"""
Square-crop rasterization and JPEG encoding (Qt-free).

``to_square_crop`` takes the largest centered square inside the crop rect,
scales it to a fixed output edge and encodes it.  The same function serves
the 512 px upload and the small live preview.  It is pure: identical
``(image, rect, output_size, quality)`` always produce identical bytes.

Safe to import in worker threads.
"""

import io
import logging
from dataclasses import dataclass

from PIL import Image

from profile_crop_tool.config import (
    JPEG_QUALITY_DEFAULT, JPEG_SUBSAMPLING, OUTPUT_MIME_TYPE,
)
from profile_crop_tool.models import Rect

logger = logging.getLogger(__name__)

# Background used when flattening transparent sources for JPEG
_FLATTEN_BACKGROUND = (255, 255, 255)


class RenderError(RuntimeError):
    """The crop could not be rasterized or encoded."""


@dataclass(frozen=True)
class RasterOutput:
    """Encoded square crop."""
    data: bytes
    size: int
    mime_type: str = OUTPUT_MIME_TYPE


def square_region(rect: Rect) -> tuple[float, float, float]:
    """Return ``(square_x, square_y, side)`` of the square inscribed in *rect*."""
    side = min(rect.w, rect.h)
    square_x = rect.x + (rect.w - side) / 2
    square_y = rect.y + (rect.h - side) / 2
    return square_x, square_y, side


def flatten_rgb(image: Image.Image) -> Image.Image:
    """Convert *image* to RGB, compositing any alpha onto white."""
    if image.mode == "RGB":
        return image
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, _FLATTEN_BACKGROUND)
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return image.convert("RGB")


def render_square(image: Image.Image, rect: Rect, output_size: int) -> Image.Image:
    """Scale the inscribed square of *rect* to an ``output_size``² RGB image."""
    sx, sy, side = square_region(rect)
    box = (sx, sy, sx + side, sy + side)
    try:
        return flatten_rgb(image).resize(
            (output_size, output_size),
            Image.Resampling.LANCZOS,
            box=box,
        )
    except (OSError, ValueError) as exc:
        raise RenderError(f"Failed to render crop {box}: {exc}") from exc


def encode_jpeg(image: Image.Image, quality: int = JPEG_QUALITY_DEFAULT) -> bytes:
    """Encode *image* as a baseline JPEG with no optional metadata."""
    buf = io.BytesIO()
    try:
        image.save(buf, "JPEG", quality=quality, subsampling=JPEG_SUBSAMPLING, optimize=False)
    except (OSError, ValueError) as exc:
        raise RenderError(f"Failed to encode JPEG: {exc}") from exc
    return buf.getvalue()


def to_square_crop(
    image: Image.Image,
    rect: Rect,
    output_size: int,
    quality: int = JPEG_QUALITY_DEFAULT,
) -> RasterOutput:
    """Rasterize the centered square of *rect* at ``output_size`` and encode it."""
    squared = render_square(image, rect, output_size)
    data = encode_jpeg(squared, quality)
    logger.debug("Rendered %dpx square crop from %s (%d bytes)", output_size, rect, len(data))
    return RasterOutput(data, output_size)
