import io
import os

import pytest
from PIL import Image

from profile_crop_tool.models import DisplayRect, ImageDimensions


def gradient_image(width: int, height: int, mode: str = "RGB") -> Image.Image:
    """Deterministic test image whose pixels encode their coordinates."""
    img = Image.new("RGB", (width, height))
    img.putdata([
        (x * 255 // max(1, width - 1), y * 255 // max(1, height - 1), (x + y) % 256)
        for y in range(height)
        for x in range(width)
    ])
    return img.convert(mode) if mode != "RGB" else img


def png_bytes(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, "PNG")
    return buf.getvalue()


@pytest.fixture
def dims():
    return ImageDimensions(1000, 800)


@pytest.fixture
def identity_display():
    """Image drawn 1:1 at the widget origin."""
    return DisplayRect(0, 0, 1000, 800)


@pytest.fixture
def half_display():
    """Image drawn at half scale, offset inside the widget."""
    return DisplayRect(20, 10, 500, 400)


@pytest.fixture
def photo():
    return gradient_image(200, 120)


@pytest.fixture
def qapp():
    pytest.importorskip("PyQt6", reason="PyQt6 is required for UI tests", exc_type=ImportError)
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    from PyQt6.QtWidgets import QApplication

    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    return app
