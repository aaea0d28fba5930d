"""
Crop dialog: the profile-photo crop modal.

Loads the source photo in the background, hosts the ``ImageCropWidget``
next to a live square preview, and emits ``cropped(bytes)`` with the
encoded JPEG when the user saves.  Rejecting the dialog (Cancel, Esc,
window close) cancels the session, so an encode still running at that
point is discarded when it finishes.
"""

import logging
from pathlib import Path

from PyQt6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QPushButton, QLabel, QWidget,
    QDialogButtonBox, QGroupBox,
)
from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QPixmap

from profile_crop_tool.crop_widget import (
    EncodeThread, ImageCropWidget, ImageLoaderThread, pil_to_qpixmap,
)
from profile_crop_tool.models import Rect
from profile_crop_tool.raster import RasterOutput
from profile_crop_tool.session import CropSession, EncodeJob
from profile_crop_tool.settings import CropSettings

logger = logging.getLogger(__name__)

_STYLE_ERROR = "color: #d32f2f;"
_STYLE_NORMAL = ""


class CropDialog(QDialog):
    """Modal that turns a source photo into a square profile picture."""

    cropped = pyqtSignal(bytes)
    cancelled = pyqtSignal()
    load_failed = pyqtSignal(str)

    def __init__(
        self,
        source: Path | bytes,
        settings: CropSettings | None = None,
        parent: QWidget | None = None,
    ):
        super().__init__(parent)
        self.setWindowTitle("Crop Profile Picture")
        self.setMinimumSize(640, 420)

        self._settings = settings or CropSettings()
        self._session: CropSession | None = None
        self._encoders: list[EncodeThread] = []
        self._closed = False

        self._build_ui()
        self._update_button_states()

        self._crop_widget.set_loading(True)
        self._loader = ImageLoaderThread(source, self)
        self._loader.loaded.connect(self._on_image_loaded)
        self._loader.error.connect(self._on_image_load_error)
        self._loader.start()

    # =========================================================================
    # UI construction
    # =========================================================================

    def _build_ui(self):
        layout = QVBoxLayout(self)

        hint = QLabel("Drag to select an area. Drag inside to move, drag the edges to resize.")
        hint.setWordWrap(True)
        layout.addWidget(hint)

        body = QHBoxLayout()
        layout.addLayout(body, stretch=1)

        self._crop_widget = ImageCropWidget()
        body.addWidget(self._crop_widget, stretch=1)

        preview_group = QGroupBox("Preview")
        preview_layout = QVBoxLayout(preview_group)
        size = self._settings.preview_output_size
        self._preview_label = QLabel()
        self._preview_label.setFixedSize(size, size)
        self._preview_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._preview_label.setStyleSheet("background: #1e1e1e; border: 1px solid #444;")
        preview_layout.addWidget(self._preview_label)
        self._size_label = QLabel("Crop: —")
        preview_layout.addWidget(self._size_label)
        preview_layout.addStretch(1)
        body.addWidget(preview_group)

        self._status_label = QLabel("")
        self._status_label.setWordWrap(True)
        layout.addWidget(self._status_label)

        self._buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Save | QDialogButtonBox.StandardButton.Cancel
        )
        self._buttons.accepted.connect(self._save)
        self._buttons.rejected.connect(self.reject)
        layout.addWidget(self._buttons)

    def save_button(self) -> QPushButton:
        return self._buttons.button(QDialogButtonBox.StandardButton.Save)

    def crop_widget(self) -> ImageCropWidget:
        return self._crop_widget

    def session(self) -> CropSession | None:
        return self._session

    # =========================================================================
    # Image loading
    # =========================================================================

    def _on_image_loaded(self, image):
        """Called when background image loading completes."""
        if self._closed:
            return  # Dialog went away before loading finished
        self._session = CropSession(
            image,
            self._settings,
            on_confirm=self._on_confirmed,
            on_rect_changed=self._on_rect_changed,
        )
        self._crop_widget.set_session(self._session, pil_to_qpixmap(image))
        self._crop_widget.setFocus()
        logger.info("Loaded source image %dx%d", image.width, image.height)
        self._update_button_states()

    def _on_image_load_error(self, error: str):
        """Called when background image loading fails."""
        self._crop_widget.set_loading(False)
        self._set_status(f"Failed to load image: {error}", error=True)
        logger.warning("Failed to load source image: %s", error)
        self.load_failed.emit(error)

    # =========================================================================
    # Crop state
    # =========================================================================

    def _on_rect_changed(self, rect: Rect | None):
        self._update_button_states()
        self._update_preview()
        if rect is None:
            self._size_label.setText("Crop: —")
        else:
            side = round(min(rect.w, rect.h))
            self._size_label.setText(f"Crop: {round(rect.w)} × {round(rect.h)}\nSquare: {side}px")

    def _update_preview(self):
        output = self._session.preview() if self._session else None
        if output is None:
            self._preview_label.clear()
            return
        pixmap = QPixmap()
        pixmap.loadFromData(output.data, "JPEG")
        self._preview_label.setPixmap(pixmap)

    def _update_button_states(self):
        can_save = self._session is not None and self._session.can_confirm and not self._encoders
        self.save_button().setEnabled(can_save)

    def _set_status(self, text: str, error: bool = False):
        self._status_label.setText(text)
        self._status_label.setStyleSheet(_STYLE_ERROR if error else _STYLE_NORMAL)

    # =========================================================================
    # Save / cancel
    # =========================================================================

    def _save(self):
        if self._session is None:
            return
        job = self._session.begin_confirm()
        if job is None:
            return
        encoder = EncodeThread(job, self)
        encoder.encoded.connect(self._on_encoded)
        encoder.finished.connect(lambda e=encoder: self._forget_encoder(e))
        self._encoders.append(encoder)
        self._set_status("Saving…")
        self._update_button_states()
        encoder.start()

    def _forget_encoder(self, encoder: EncodeThread):
        if encoder in self._encoders:
            self._encoders.remove(encoder)
        if not self._closed:
            self._update_button_states()

    def _on_encoded(self, job: EncodeJob, output: RasterOutput | None):
        """Called on the UI thread when an encode finishes."""
        delivered = self._session is not None and self._session.deliver(job, output)
        if not delivered and not self._closed:
            self._set_status("Could not render the crop. Please try again.", error=True)

    def _on_confirmed(self, data: bytes):
        logger.info("Crop confirmed (%d bytes)", len(data))
        self._closed = True
        self._crop_widget.clear()
        self.cropped.emit(data)
        self.accept()

    def reject(self):
        """Cancel the session; any encode still in flight will be ignored."""
        if not self._closed:
            self._closed = True
            if self._session is not None:
                self._session.cancel()
            self._crop_widget.clear()
            self.cancelled.emit()
        super().reject()

    def wait_for_workers(self, msecs: int = 5000):
        """Block until background threads finish (used on shutdown)."""
        self._loader.wait(msecs)
        for encoder in list(self._encoders):
            encoder.wait(msecs)
