"""Tests for the CropDialog load / save / cancel lifecycle."""

from __future__ import annotations

import io

import pytest

pytest.importorskip(
    "PyQt6",
    reason="PyQt6 is required for UI tests",
    exc_type=ImportError,
)

from PIL import Image
from PyQt6.QtWidgets import QApplication

from conftest import gradient_image, png_bytes
from profile_crop_tool.crop_dialog import CropDialog
from profile_crop_tool.models import DisplayRect
from profile_crop_tool.settings import CropSettings


def wait_loaded(dialog: CropDialog):
    dialog.wait_for_workers()
    QApplication.processEvents()


def wait_encoded(dialog: CropDialog):
    dialog.wait_for_workers()
    QApplication.processEvents()
    QApplication.processEvents()


@pytest.fixture
def dialog(qapp):
    d = CropDialog(png_bytes(gradient_image(200, 120)), CropSettings(save_output_size=64))
    d.resize(800, 500)
    yield d
    d.wait_for_workers()
    d.deleteLater()


def select_area(dialog: CropDialog):
    session = dialog.session()
    session.set_display_rect(DisplayRect(0, 0, 200, 120))
    session.pointer_down(10, 10)
    session.pointer_move(110, 90)
    session.pointer_up()


def test_loads_source_into_session(dialog):
    wait_loaded(dialog)
    session = dialog.session()
    assert session is not None
    assert (session.dims.width, session.dims.height) == (200, 120)
    assert dialog.crop_widget().has_image()
    assert not dialog.save_button().isEnabled()


def test_selection_enables_save_and_preview(dialog):
    wait_loaded(dialog)
    select_area(dialog)
    assert dialog.save_button().isEnabled()
    assert dialog._preview_label.pixmap() is not None
    assert not dialog._preview_label.pixmap().isNull()


def test_save_emits_cropped_jpeg(dialog):
    results, accepted = [], []
    dialog.cropped.connect(results.append)
    dialog.accepted.connect(lambda: accepted.append(True))
    wait_loaded(dialog)
    select_area(dialog)

    dialog.save_button().click()
    assert not dialog.save_button().isEnabled()
    wait_encoded(dialog)

    assert len(results) == 1
    with Image.open(io.BytesIO(results[0])) as decoded:
        assert decoded.size == (64, 64)
    assert dialog.session().is_closed
    assert accepted == [True]


def test_cancel_during_encode_drops_result(dialog):
    results, cancels, rejected = [], [], []
    dialog.cropped.connect(results.append)
    dialog.cancelled.connect(lambda: cancels.append(True))
    dialog.rejected.connect(lambda: rejected.append(True))
    wait_loaded(dialog)
    select_area(dialog)

    dialog.save_button().click()
    dialog.reject()
    wait_encoded(dialog)

    assert results == []
    assert cancels == [True]
    assert dialog.session().is_closed
    assert rejected == [True]


def test_reject_before_load_ignores_late_image(qapp):
    d = CropDialog(png_bytes(gradient_image(50, 50)))
    d.reject()
    wait_loaded(d)
    assert d.session() is None
    d.deleteLater()


def test_invalid_source_reports_error(qapp):
    errors = []
    d = CropDialog(b"not an image at all")
    d.load_failed.connect(errors.append)
    wait_loaded(d)
    assert errors and "image file" in errors[0]
    assert d.session() is None
    assert not d.save_button().isEnabled()
    d.deleteLater()
