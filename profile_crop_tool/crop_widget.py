"""
Qt side of the crop tool: the interactive selection widget and its threads.

Holds ``pil_to_qpixmap``, the background ``ImageLoaderThread`` and
``EncodeThread``, and the ``ImageCropWidget`` editor.  All crop geometry is
delegated to a ``CropSession``; the widget only translates Qt events into
session calls and paints the result.
"""

from pathlib import Path

from PIL import Image
from PyQt6.QtWidgets import QWidget, QSizePolicy
from PyQt6.QtCore import Qt, QRectF, QPointF, pyqtSignal, QThread
from PyQt6.QtGui import (
    QPainter, QPainterPath, QPixmap, QColor, QPen, QBrush, QImage,
    QHideEvent, QKeyEvent, QMouseEvent, QPaintEvent, QResizeEvent,
)

from profile_crop_tool.config import NUDGE_SMALL, NUDGE_LARGE
from profile_crop_tool.geometry import classify, handle_points, to_client
from profile_crop_tool.image_io import open_image
from profile_crop_tool.models import DisplayRect, Direction, HitKind
from profile_crop_tool.raster import square_region
from profile_crop_tool.session import CropSession, EncodeJob

# Half-size of the painted handle squares (screen pixels)
HANDLE_PAINT_SIZE = 5

_RESIZE_CURSORS = {
    Direction.N: Qt.CursorShape.SizeVerCursor,
    Direction.S: Qt.CursorShape.SizeVerCursor,
    Direction.E: Qt.CursorShape.SizeHorCursor,
    Direction.W: Qt.CursorShape.SizeHorCursor,
    Direction.NW: Qt.CursorShape.SizeFDiagCursor,
    Direction.SE: Qt.CursorShape.SizeFDiagCursor,
    Direction.NE: Qt.CursorShape.SizeBDiagCursor,
    Direction.SW: Qt.CursorShape.SizeBDiagCursor,
}


# =============================================================================
# Qt ↔ PIL helpers
# =============================================================================

def pil_to_qpixmap(pil_img: Image.Image) -> QPixmap:
    """Convert a PIL Image to QPixmap."""
    img_rgba = pil_img.convert("RGBA")
    data = img_rgba.tobytes("raw", "RGBA")
    qimg = QImage(data, img_rgba.width, img_rgba.height, QImage.Format.Format_RGBA8888)
    # QImage borrows ``data``; copy before it goes out of scope
    return QPixmap.fromImage(qimg.copy())


# =============================================================================
# Background workers
# =============================================================================

class ImageLoaderThread(QThread):
    """Background thread for decoding the source photo."""
    loaded = pyqtSignal(object)  # PIL.Image.Image
    error = pyqtSignal(str)

    def __init__(self, source: Path | bytes, parent=None):
        super().__init__(parent)
        self._source = source

    def run(self):
        try:
            self.loaded.emit(open_image(self._source))
        except Exception as e:
            self.error.emit(str(e))


class EncodeThread(QThread):
    """Runs one ``EncodeJob`` off the UI thread."""
    encoded = pyqtSignal(object, object)  # EncodeJob, RasterOutput | None

    def __init__(self, job: EncodeJob, parent=None):
        super().__init__(parent)
        self._job = job

    def run(self):
        self.encoded.emit(self._job, self._job.run())


# =============================================================================
# Image Crop Widget — interactive crop overlay on image
# =============================================================================

class ImageCropWidget(QWidget):
    """Widget that displays an image with a drawable, movable, resizable crop overlay."""

    crop_changed = pyqtSignal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setMinimumSize(320, 240)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        self.setMouseTracking(True)

        self._pixmap: QPixmap | None = None
        self._session: CropSession | None = None
        self._display = DisplayRect()
        self._grabbing = False
        self._loading = False

    def set_loading(self, loading: bool):
        """Show/hide loading indicator."""
        self._loading = loading
        self.update()

    def set_session(self, session: CropSession, pixmap: QPixmap):
        """Attach a crop session and the pixmap of its source image."""
        self._release_pointer()
        self._loading = False
        self._session = session
        self._pixmap = pixmap
        self._update_display_mapping()
        self.update()

    def session(self) -> CropSession | None:
        return self._session

    def has_image(self) -> bool:
        """Return True if an image is loaded and ready for crop operations."""
        return self._pixmap is not None and self._session is not None

    def is_grabbing(self) -> bool:
        """True while pointer capture is held for an active drag."""
        return self._grabbing

    def clear(self):
        self._release_pointer()
        self._pixmap = None
        self._session = None
        self._display = DisplayRect()
        self.update()

    def display_rect(self) -> DisplayRect:
        return self._display

    # --- Coordinate mapping ---

    def _update_display_mapping(self):
        """Calculate the letterboxed image rect and hand it to the session."""
        if not self._session:
            return
        img_w, img_h = self._session.dims.width, self._session.dims.height
        if img_w == 0 or img_h == 0:
            return
        ww, wh = self.width(), self.height()
        scale = min(ww / img_w, wh / img_h)
        disp_w = img_w * scale
        disp_h = img_h * scale
        self._display = DisplayRect((ww - disp_w) / 2, (wh - disp_h) / 2, disp_w, disp_h)
        self._session.set_display_rect(self._display)

    def _crop_display_rect(self) -> QRectF | None:
        rect = self._session.rect if self._session else None
        if rect is None:
            return None
        dims = self._session.dims
        left, top = to_client(rect.x, rect.y, self._display, dims)
        right, bottom = to_client(rect.right, rect.bottom, self._display, dims)
        return QRectF(QPointF(left, top), QPointF(right, bottom))

    def _square_display_rect(self) -> QRectF | None:
        rect = self._session.rect if self._session else None
        if rect is None:
            return None
        sx, sy, side = square_region(rect)
        dims = self._session.dims
        left, top = to_client(sx, sy, self._display, dims)
        right, bottom = to_client(sx + side, sy + side, self._display, dims)
        return QRectF(QPointF(left, top), QPointF(right, bottom))

    # --- Pointer capture ---

    def _grab_pointer(self):
        if not self._grabbing:
            self.grabMouse()
            self._grabbing = True

    def _release_pointer(self):
        if self._session and self._session.is_dragging:
            self._session.pointer_cancel()
        if self._grabbing:
            self.releaseMouse()
            self._grabbing = False

    # --- Painting ---

    def paintEvent(self, event: QPaintEvent):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.fillRect(self.rect(), QColor(30, 30, 30))

        if not self._pixmap or not self._session:
            painter.setPen(QColor(128, 128, 128))
            msg = "Loading image…" if self._loading else "No image loaded"
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, msg)
            painter.end()
            return

        d = self._display
        dest = QRectF(d.left, d.top, d.width, d.height)
        painter.drawPixmap(dest.toRect(), self._pixmap)

        crop_rect = self._crop_display_rect()
        if crop_rect is None:
            painter.setPen(QColor(255, 255, 255))
            painter.drawText(
                dest.toRect(),
                Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignBottom,
                "Drag to select an area",
            )
            painter.end()
            return

        # Shade everything but the selection
        shade = QPainterPath()
        shade.setFillRule(Qt.FillRule.OddEvenFill)
        shade.addRect(dest)
        shade.addRect(crop_rect)
        painter.fillPath(shade, QBrush(QColor(0, 0, 0, 150)))

        # Crop border
        painter.setPen(QPen(QColor(255, 255, 255), 2))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(crop_rect)

        # Inscribed square that will actually be exported
        square = self._square_display_rect()
        if square is not None and square != crop_rect:
            painter.setPen(QPen(QColor(255, 255, 255, 120), 1, Qt.PenStyle.DashLine))
            painter.drawRect(square)

        # Corner and edge handles
        painter.setPen(QPen(QColor(0, 0, 0), 1))
        painter.setBrush(QBrush(QColor(255, 255, 255)))
        hs = HANDLE_PAINT_SIZE
        for hx, hy in handle_points(self._session.rect, self._display, self._session.dims).values():
            painter.drawRect(QRectF(hx - hs, hy - hs, hs * 2, hs * 2))

        # Crop size label
        painter.setPen(QColor(255, 255, 255))
        r = self._session.rect
        label = f"{round(r.w)} × {round(r.h)}"
        painter.drawText(
            crop_rect.adjusted(0, -20, 0, 0).toRect(),
            Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignBottom,
            label,
        )

        painter.end()

    def resizeEvent(self, event: QResizeEvent):
        self._update_display_mapping()
        super().resizeEvent(event)

    def hideEvent(self, event: QHideEvent):
        self._release_pointer()
        super().hideEvent(event)

    # --- Mouse interaction ---

    def _update_cursor(self, pos: QPointF):
        s = self._session
        hit = classify(pos.x(), pos.y(), s.rect, self._display, s.dims, s.settings.hit_tolerance)
        if hit.kind in (HitKind.CORNER, HitKind.EDGE):
            self.setCursor(_RESIZE_CURSORS[hit.direction])
        elif hit.kind is HitKind.INTERIOR:
            self.setCursor(Qt.CursorShape.SizeAllCursor)
        else:
            self.setCursor(Qt.CursorShape.CrossCursor)

    def mousePressEvent(self, event: QMouseEvent):
        if event.button() != Qt.MouseButton.LeftButton or not self.has_image():
            return
        pos = event.position()
        self._session.pointer_down(pos.x(), pos.y())
        if self._session.is_dragging:
            self._grab_pointer()

    def mouseMoveEvent(self, event: QMouseEvent):
        if not self.has_image():
            return
        pos = event.position()
        if not self._session.is_dragging:
            self._update_cursor(pos)
            return
        if self._session.pointer_move(pos.x(), pos.y()):
            self.crop_changed.emit()
            self.update()

    def mouseReleaseEvent(self, event: QMouseEvent):
        if event.button() != Qt.MouseButton.LeftButton or not self._session:
            return
        self._session.pointer_up()
        self._release_pointer()
        self._update_cursor(event.position())

    # --- Keyboard nudge ---

    def keyPressEvent(self, event: QKeyEvent):
        if not self.has_image():
            super().keyPressEvent(event)
            return
        key = event.key()
        if key == Qt.Key.Key_Escape.value and self._session.is_dragging:
            self._release_pointer()
            self.update()
            return
        amount = NUDGE_LARGE if event.modifiers() & Qt.KeyboardModifier.ShiftModifier else NUDGE_SMALL
        offsets = {
            Qt.Key.Key_Left.value: (-amount, 0),
            Qt.Key.Key_Right.value: (amount, 0),
            Qt.Key.Key_Up.value: (0, -amount),
            Qt.Key.Key_Down.value: (0, amount),
        }
        offset = offsets.get(key)
        if offset is None:
            super().keyPressEvent(event)
            return
        if self._session.nudge(*offset):
            self.crop_changed.emit()
            self.update()
