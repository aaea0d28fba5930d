"""
Qt-free image I/O utilities.

Opens the source photo the host hands over (a path or raw bytes),
enforcing the upload limits, and generates unique output paths for
saved crops.  PSD sources are flattened with psd-tools, everything else
goes through Pillow.  Safe to import in worker threads.
"""

import io
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError
from psd_tools import PSDImage

from profile_crop_tool.config import IMAGE_EXTENSIONS, MAX_SOURCE_BYTES, OUTPUT_SUFFIX

# Magic bytes at the start of every Photoshop document
_PSD_SIGNATURE = b"8BPS"


class SourceImageError(ValueError):
    """The supplied source is not an acceptable image."""


def _read_source(source: Path | str | bytes) -> tuple[bytes, str]:
    """Return ``(payload, label)`` for a path or an in-memory upload."""
    if isinstance(source, (bytes, bytearray)):
        return bytes(source), "<upload>"
    path = Path(source)
    if path.suffix.lower() not in IMAGE_EXTENSIONS:
        raise SourceImageError(f"Please upload an image file ({path.name})")
    try:
        size = path.stat().st_size
    except OSError as exc:
        raise SourceImageError(f"Cannot read {path}: {exc}") from exc
    # Check before reading so oversized files never land in memory
    if size > MAX_SOURCE_BYTES:
        raise SourceImageError(_too_large_message(size))
    try:
        return path.read_bytes(), path.name
    except OSError as exc:
        raise SourceImageError(f"Cannot read {path}: {exc}") from exc


def _too_large_message(size: int) -> str:
    limit_mb = MAX_SOURCE_BYTES / (1024 * 1024)
    return f"File size must be less than {limit_mb:g}MB (got {size / (1024 * 1024):.2f}MB)"


def validate_source(source: Path | str | bytes) -> bytes:
    """
    Check size and type limits and return the raw payload.

    Raises SourceImageError when the source is too large, empty, or does
    not carry a supported image extension.
    """
    payload, label = _read_source(source)
    if not payload:
        raise SourceImageError(f"{label} is empty")
    if len(payload) > MAX_SOURCE_BYTES:
        raise SourceImageError(_too_large_message(len(payload)))
    return payload


def open_image(source: Path | str | bytes) -> Image.Image:
    """
    Decode a source photo into a fully loaded Pillow image.

    EXIF orientation is applied so the bitmap matches what the user saw
    when picking the file.  Raises SourceImageError for anything that is
    not a readable image.
    """
    payload = validate_source(source)

    if payload.startswith(_PSD_SIGNATURE):
        try:
            psd = PSDImage.open(io.BytesIO(payload))
            img = psd.composite()
        except (OSError, ValueError) as exc:
            raise SourceImageError(f"Could not read PSD document: {exc}") from exc
        if img is None:
            raise SourceImageError("PSD document has no visible pixels")
        return img

    try:
        img = Image.open(io.BytesIO(payload))
        img.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise SourceImageError("Please upload an image file") from exc

    img = ImageOps.exif_transpose(img)
    if img.mode not in ("RGB", "RGBA"):
        img = img.convert("RGBA" if "A" in img.getbands() or "transparency" in img.info else "RGB")
    return img


def output_filename(stem: str) -> str:
    """File name for a saved crop of *stem*."""
    return f"{stem}{OUTPUT_SUFFIX}"


def unique_path(out_path: Path) -> Path:
    """Return a unique path by appending -01, -02, etc. if file already exists."""
    if not out_path.exists():
        return out_path
    stem = out_path.stem
    suffix = out_path.suffix
    parent = out_path.parent
    counter = 1
    while True:
        candidate = parent / f"{stem}-{counter:02d}{suffix}"
        if not candidate.exists():
            return candidate
        counter += 1
