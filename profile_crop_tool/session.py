"""
Crop session: wires pointer events to the drag reducer and the rasterizer.

A ``CropSession`` lives exactly as long as the crop modal.  It is created
once the source image has loaded, owns one ``DragState`` (crop rect plus
active mode), and ends either by confirming, which hands the encoded
square to ``on_confirm``, or by ``cancel()``/``close()``.

Encoding happens off the UI thread.  ``begin_confirm()`` snapshots
everything the encoder needs into an ``EncodeJob``; the job runs anywhere
and its result comes back through ``deliver()``.  Every teardown bumps the
session generation, so a job that finishes after cancel is dropped instead
of calling back into a dead session.

This module is Qt-free.
"""

import logging
from dataclasses import dataclass
from typing import Callable

from PIL import Image

from profile_crop_tool.drag import (
    DragState, PointerCancel, PointerDown, PointerEvent, PointerMove, PointerUp,
    nudge, reduce,
)
from profile_crop_tool.models import DisplayRect, DragMode, ImageDimensions, Rect, is_valid_crop
from profile_crop_tool.raster import RasterOutput, RenderError, flatten_rgb, to_square_crop
from profile_crop_tool.settings import CropSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EncodeJob:
    """Immutable snapshot of one confirm request."""
    image: Image.Image
    rect: Rect
    output_size: int
    quality: int
    generation: int

    def run(self) -> RasterOutput | None:
        """Rasterize and encode; returns None if rendering fails."""
        try:
            return to_square_crop(self.image, self.rect, self.output_size, self.quality)
        except RenderError as exc:
            logger.warning("Crop encode failed: %s", exc)
            return None


class CropSession:
    """Interactive crop state for one source image."""

    def __init__(
        self,
        image: Image.Image,
        settings: CropSettings | None = None,
        on_confirm: Callable[[bytes], None] | None = None,
        on_cancel: Callable[[], None] | None = None,
        on_rect_changed: Callable[[Rect | None], None] | None = None,
    ):
        # Composite transparency once; previews then resample an RGB bitmap
        self._image = flatten_rgb(image)
        self._dims = ImageDimensions(*image.size)
        self._settings = settings or CropSettings()
        self._on_confirm = on_confirm
        self._on_cancel = on_cancel
        self._on_rect_changed = on_rect_changed

        self._display = DisplayRect()
        self._state = DragState()
        self._generation = 0
        self._closed = False

    # --- Read-only state ---

    @property
    def dims(self) -> ImageDimensions:
        return self._dims

    @property
    def settings(self) -> CropSettings:
        return self._settings

    @property
    def display(self) -> DisplayRect:
        return self._display

    @property
    def rect(self) -> Rect | None:
        return self._state.rect

    @property
    def mode(self) -> DragMode:
        return self._state.mode

    @property
    def is_dragging(self) -> bool:
        return self._state.mode.is_active

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def can_confirm(self) -> bool:
        """False until a crop that meets the minimum size exists."""
        if self._closed:
            return False
        return is_valid_crop(self._state.rect, self._dims, self._settings.min_size)

    # --- Layout ---

    def set_display_rect(self, display: DisplayRect) -> None:
        """Record where the image is currently drawn in client coordinates."""
        self._display = display

    # --- Pointer input ---

    def _dispatch(self, event: PointerEvent) -> bool:
        if self._closed:
            return False
        before = self._state.rect
        self._state = reduce(
            self._state, event, self._display, self._dims,
            self._settings.min_size, self._settings.hit_tolerance,
        )
        changed = self._state.rect != before
        if changed and self._on_rect_changed is not None:
            self._on_rect_changed(self._state.rect)
        return changed

    def pointer_down(self, x: float, y: float) -> bool:
        return self._dispatch(PointerDown(x, y))

    def pointer_move(self, x: float, y: float) -> bool:
        return self._dispatch(PointerMove(x, y))

    def pointer_up(self) -> bool:
        return self._dispatch(PointerUp())

    def pointer_cancel(self) -> bool:
        return self._dispatch(PointerCancel())

    def nudge(self, dx: float, dy: float) -> bool:
        """Shift the crop by whole bitmap pixels; ignored mid-drag or without a crop."""
        if self._closed or self.is_dragging or self._state.rect is None:
            return False
        before = self._state.rect
        self._state = DragState(rect=nudge(before, dx, dy, self._dims))
        changed = self._state.rect != before
        if changed and self._on_rect_changed is not None:
            self._on_rect_changed(self._state.rect)
        return changed

    # --- Output ---

    def preview(self, size: int | None = None) -> RasterOutput | None:
        """Low-resolution live preview of the current crop, or None if there is none."""
        if not self.can_confirm:
            return None
        try:
            return to_square_crop(
                self._image, self._state.rect,
                size or self._settings.preview_output_size,
                self._settings.quality,
            )
        except RenderError as exc:
            logger.warning("Preview render failed: %s", exc)
            return None

    def begin_confirm(self) -> EncodeJob | None:
        """Snapshot the current crop for encoding; None while confirm is disabled."""
        if not self.can_confirm:
            return None
        self._generation += 1
        return EncodeJob(
            image=self._image,
            rect=self._state.rect,
            output_size=self._settings.save_output_size,
            quality=self._settings.quality,
            generation=self._generation,
        )

    def deliver(self, job: EncodeJob, output: RasterOutput | None) -> bool:
        """
        Hand a finished encode to ``on_confirm``.

        Returns True if the callback fired.  Results from superseded jobs,
        from a session that was cancelled or closed meanwhile, and failed
        encodes (``output is None``) are dropped.
        """
        if self._closed or job.generation != self._generation:
            logger.debug("Dropping stale encode result (job %d, session %d)",
                         job.generation, self._generation)
            return False
        if output is None:
            return False
        self._teardown()
        if self._on_confirm is not None:
            self._on_confirm(output.data)
        return True

    def confirm_sync(self) -> bool:
        """Encode on the calling thread and deliver immediately."""
        job = self.begin_confirm()
        if job is None:
            return False
        return self.deliver(job, job.run())

    # --- Teardown ---

    def _teardown(self) -> None:
        self._state = DragState()
        self._generation += 1
        self._closed = True

    def cancel(self) -> None:
        """Discard the crop, invalidate in-flight encodes and notify ``on_cancel`` once."""
        if self._closed:
            return
        self._teardown()
        logger.debug("Crop session cancelled")
        if self._on_cancel is not None:
            self._on_cancel()

    def close(self) -> None:
        """Tear down without any callback (host unmounted the modal)."""
        if self._closed:
            return
        self._teardown()
