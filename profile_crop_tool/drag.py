"""
Drag state machine for the crop overlay (Qt-free).

The interaction is an explicit reducer: ``reduce(state, event, ...)``
takes the current ``DragState`` and one pointer event and returns the next
state.  The reducer never mutates its input, so it can be unit-tested
without a widget.

States::

    Idle --down(outside)--> Draw        --up/cancel--> Idle
    Idle --down(interior)-> Move        --up/cancel--> Idle
    Idle --down(handle)---> Resize(dir) --up/cancel--> Idle

The crop rect survives the return to Idle; only the next draw gesture
replaces it.
"""

from dataclasses import dataclass, field, replace

from profile_crop_tool.config import HIT_TOLERANCE, MIN_CROP_SIZE
from profile_crop_tool.geometry import bitmap_delta, classify, to_bitmap
from profile_crop_tool.models import (
    Direction, DisplayRect, DragAnchor, DragKind, DragMode, HitKind, HitResult,
    ImageDimensions, Rect, clamp_rect,
)


# =============================================================================
# Events and state
# =============================================================================
@dataclass(frozen=True)
class PointerDown:
    x: float
    y: float


@dataclass(frozen=True)
class PointerMove:
    x: float
    y: float


@dataclass(frozen=True)
class PointerUp:
    pass


@dataclass(frozen=True)
class PointerCancel:
    pass


PointerEvent = PointerDown | PointerMove | PointerUp | PointerCancel


@dataclass(frozen=True)
class DragState:
    """One crop rect plus at most one active drag mode."""
    mode: DragMode = field(default_factory=DragMode.idle)
    anchor: DragAnchor | None = None
    rect: Rect | None = None


# =============================================================================
# Per-mode geometry
# =============================================================================
def draw_rect(
    anchor_x: float, anchor_y: float,
    mx: float, my: float,
    dims: ImageDimensions,
    min_size: float = MIN_CROP_SIZE,
) -> Rect:
    """Normalized bounding box of the anchor corner and the pointer."""
    rect = Rect(min(anchor_x, mx), min(anchor_y, my), abs(mx - anchor_x), abs(my - anchor_y))
    return clamp_rect(rect, dims, min_size)


def move_rect(start: Rect, ddx: float, ddy: float, dims: ImageDimensions) -> Rect:
    """Translate *start* by a bitmap-space delta, keeping it inside the image."""
    x = max(0.0, min(start.x + ddx, dims.width - start.w))
    y = max(0.0, min(start.y + ddy, dims.height - start.h))
    return Rect(x, y, start.w, start.h)


def resize_rect(
    start: Rect,
    direction: Direction,
    mx: float, my: float,
    dims: ImageDimensions,
    min_size: float = MIN_CROP_SIZE,
) -> Rect:
    """Drag the edges named by *direction* to the pointer at ``(mx, my)``."""
    x, y, w, h = start.x, start.y, start.w, start.h

    if direction.moves_top:
        y = my
        h = start.bottom - my
    elif direction.moves_bottom:
        h = my - start.y
    if direction.moves_left:
        x = mx
        w = start.right - mx
    elif direction.moves_right:
        w = mx - start.x

    # Minimum size pins the edge opposite the one being dragged
    if w < min_size:
        w = min_size
        if direction.moves_left:
            x = start.right - min_size
    if h < min_size:
        h = min_size
        if direction.moves_top:
            y = start.bottom - min_size

    if x < 0:
        w += x
        x = 0.0
    if y < 0:
        h += y
        y = 0.0
    if x + w > dims.width:
        w = dims.width - x
    if y + h > dims.height:
        h = dims.height - y

    return clamp_rect(Rect(x, y, w, h), dims, min_size)


def nudge(rect: Rect, dx: float, dy: float, dims: ImageDimensions) -> Rect:
    """Shift *rect* by whole bitmap pixels (keyboard arrows)."""
    return move_rect(rect, dx, dy, dims)


# =============================================================================
# Reducer
# =============================================================================
def _mode_for_hit(hit: HitResult) -> DragMode:
    if hit.kind is HitKind.OUTSIDE:
        return DragMode.draw()
    if hit.kind is HitKind.INTERIOR:
        return DragMode.move()
    return DragMode.resize(hit.direction)


def reduce(
    state: DragState,
    event: PointerEvent,
    display: DisplayRect,
    dims: ImageDimensions,
    min_size: float = MIN_CROP_SIZE,
    tolerance: float = HIT_TOLERANCE,
) -> DragState:
    """Return the drag state that follows *event*."""
    if isinstance(event, (PointerUp, PointerCancel)):
        if not state.mode.is_active:
            return state
        return replace(state, mode=DragMode.idle(), anchor=None)

    if isinstance(event, PointerDown):
        if state.mode.is_active:
            return state
        point = to_bitmap(event.x, event.y, display, dims)
        if point is None:
            return state
        hit = classify(event.x, event.y, state.rect, display, dims, tolerance)
        anchor = DragAnchor(event.x, event.y, state.rect, point[0], point[1])
        return replace(state, mode=_mode_for_hit(hit), anchor=anchor)

    if isinstance(event, PointerMove):
        if not state.mode.is_active or state.anchor is None:
            return state
        point = to_bitmap(event.x, event.y, display, dims)
        if point is None:
            return state
        mx, my = point
        anchor = state.anchor
        kind = state.mode.kind

        if kind is DragKind.DRAW:
            rect = draw_rect(anchor.bitmap_x, anchor.bitmap_y, mx, my, dims, min_size)
        elif kind is DragKind.MOVE:
            delta = bitmap_delta(event.x - anchor.client_x, event.y - anchor.client_y, display, dims)
            rect = move_rect(anchor.rect_at_start, delta[0], delta[1], dims)
        else:
            rect = resize_rect(anchor.rect_at_start, state.mode.direction, mx, my, dims, min_size)
        return replace(state, rect=rect)

    raise TypeError(f"Unknown pointer event: {event!r}")
