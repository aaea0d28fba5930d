"""
Application constants and configuration.

Default values for the crop editor live here.  Runtime overrides are
loaded from settings.json via the settings module, which validates them
against the bounds below.

The ``config_dir()`` helper returns the platform-appropriate config
directory used by the settings module.
"""

import os
import sys
from pathlib import Path

# =============================================================================
# APP IDENTITY & CONFIG DIRECTORY
# =============================================================================
APP_NAME = "profile-crop-tool"


def config_dir() -> Path:
    """Return the platform-appropriate config directory, creating it if needed."""
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    directory = base / APP_NAME
    directory.mkdir(parents=True, exist_ok=True)
    return directory


# =============================================================================
# CROP GEOMETRY
# =============================================================================
# Minimum crop size (pixels in image coordinates)
MIN_CROP_SIZE = 10

# Hit tolerance for corner/edge handles (pixels in screen coordinates)
HIT_TOLERANCE = 16

# Nudge amounts (pixels in image coordinates)
NUDGE_SMALL = 1
NUDGE_LARGE = 10

# =============================================================================
# OUTPUT
# =============================================================================
# Square output edge for the uploaded crop
SAVE_OUTPUT_SIZE = 512

# Live preview edge; the dialog offers the small and the large thumbnail
PREVIEW_OUTPUT_SIZE = 128
PREVIEW_OUTPUT_SIZES = (80, 128)

# JPEG export defaults (Pillow quality scale)
JPEG_QUALITY_DEFAULT = 95
JPEG_QUALITY_MIN = 1
JPEG_QUALITY_MAX = 100

# 4:4:4 chroma, Pillow integer value
JPEG_SUBSAMPLING = 0

OUTPUT_MIME_TYPE = "image/jpeg"
OUTPUT_SUFFIX = ".jpg"

# Bounds accepted for a configured output edge
OUTPUT_SIZE_MIN = 16
OUTPUT_SIZE_MAX = 4096

# =============================================================================
# SOURCE IMAGES
# =============================================================================
# Largest accepted source upload (5 MB)
MAX_SOURCE_BYTES = 5 * 1024 * 1024

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".bmp", ".tiff", ".tif", ".webp", ".psd"}
