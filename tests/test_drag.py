"""Tests for the drag reducer."""

import random

import pytest

from profile_crop_tool.drag import (
    DragState, PointerCancel, PointerDown, PointerMove, PointerUp,
    draw_rect, move_rect, nudge, reduce, resize_rect,
)
from profile_crop_tool.models import (
    DisplayRect, Direction, DragKind, DragMode, ImageDimensions, Rect, is_valid_crop,
)


def drag(state, display, dims, start, *points, release=True):
    """Run a full pointer gesture through the reducer."""
    state = reduce(state, PointerDown(*start), display, dims)
    for point in points:
        state = reduce(state, PointerMove(*point), display, dims)
    if release:
        state = reduce(state, PointerUp(), display, dims)
    return state


# =============================================================================
# Draw
# =============================================================================

def test_draw_is_normalized(dims, identity_display):
    forward = drag(DragState(), identity_display, dims, (100, 100), (500, 500))
    backward = drag(DragState(), identity_display, dims, (500, 500), (100, 100))
    assert forward.rect == Rect(100, 100, 400, 400)
    assert backward.rect == forward.rect


def test_draw_mixed_direction(dims, identity_display):
    state = drag(DragState(), identity_display, dims, (300, 100), (100, 400))
    assert state.rect == Rect(100, 100, 200, 300)


def test_draw_converts_through_display_scale(dims, half_display):
    state = drag(DragState(), half_display, dims, (20, 10), (70, 60))
    assert state.rect == Rect(0, 0, 100, 100)


def test_draw_enforces_minimum_size(dims, identity_display):
    state = drag(DragState(), identity_display, dims, (100, 100), (103, 102))
    assert state.rect == Rect(100, 100, 10, 10)


def test_draw_replaces_previous_rect(dims, identity_display):
    state = DragState(rect=Rect(100, 100, 100, 100))
    state = drag(state, identity_display, dims, (600, 600), (700, 650))
    assert state.rect == Rect(600, 600, 100, 50)


def test_click_outside_without_moving_keeps_rect(dims, identity_display):
    state = DragState(rect=Rect(100, 100, 100, 100))
    state = drag(state, identity_display, dims, (600, 600))
    assert state.rect == Rect(100, 100, 100, 100)
    assert not state.mode.is_active


def test_draw_rect_clamps_past_the_image():
    dims = ImageDimensions(100, 100)
    assert draw_rect(95, 95, 100, 100, dims) == Rect(90, 90, 10, 10)


# =============================================================================
# Move
# =============================================================================

def test_pointer_down_inside_enters_move(dims, identity_display):
    state = DragState(rect=Rect(50, 50, 200, 200))
    state = reduce(state, PointerDown(150, 150), identity_display, dims)
    assert state.mode == DragMode.move()
    assert state.anchor.rect_at_start == Rect(50, 50, 200, 200)


def test_move_translates_rect(dims, identity_display):
    state = DragState(rect=Rect(50, 50, 200, 200))
    state = drag(state, identity_display, dims, (150, 150), (180, 130))
    assert state.rect == Rect(80, 30, 200, 200)


def test_move_clamps_at_left_edge(dims, identity_display):
    state = DragState(rect=Rect(50, 50, 200, 200))
    state = drag(state, identity_display, dims, (150, 150), (-350, 150))
    assert state.rect.x == 0
    assert state.rect.w == 200
    assert state.rect.y == 50


def test_move_rect_by_delta():
    dims = ImageDimensions(1000, 800)
    moved = move_rect(Rect(50, 50, 200, 200), -500, 0, dims)
    assert moved == Rect(0, 50, 200, 200)
    assert move_rect(Rect(50, 50, 200, 200), 5000, 5000, dims) == Rect(800, 600, 200, 200)


def test_move_scales_delta(dims, half_display):
    state = DragState(rect=Rect(100, 100, 200, 200))
    # Client (120, 110) is bitmap (200, 200), inside the rect
    state = drag(state, half_display, dims, (120, 110), (130, 115))
    assert state.rect == Rect(120, 110, 200, 200)


# =============================================================================
# Resize
# =============================================================================

def test_pointer_down_on_handle_enters_resize(dims, identity_display):
    state = DragState(rect=Rect(100, 100, 200, 200))
    state = reduce(state, PointerDown(300, 300), identity_display, dims)
    assert state.mode.kind is DragKind.RESIZE
    assert state.mode.direction is Direction.SE


def test_resize_se_clamps_to_image():
    dims = ImageDimensions(1000, 800)
    display = DisplayRect(0, 0, 1000, 800)
    state = DragState(rect=Rect(900, 700, 100, 100))
    state = drag(state, display, dims, (1000, 800), (2000, 2000))
    rect = state.rect
    assert rect.w <= 100
    assert rect.x + rect.w <= 1000
    assert rect.y + rect.h <= 800


@pytest.mark.parametrize("direction, pointer, expected", [
    (Direction.N, (0, 150), Rect(100, 150, 200, 150)),
    (Direction.S, (0, 250), Rect(100, 100, 200, 150)),
    (Direction.W, (50, 0), Rect(50, 100, 250, 200)),
    (Direction.E, (400, 0), Rect(100, 100, 300, 200)),
    (Direction.NE, (350, 50), Rect(100, 50, 250, 250)),
    (Direction.NW, (150, 150), Rect(150, 150, 150, 150)),
    (Direction.SE, (250, 350), Rect(100, 100, 150, 250)),
    (Direction.SW, (0, 400), Rect(0, 100, 300, 300)),
])
def test_resize_directions(dims, direction, pointer, expected):
    start = Rect(100, 100, 200, 200)
    assert resize_rect(start, direction, *pointer, dims) == expected


def test_resize_past_opposite_edge_holds_minimum(dims):
    start = Rect(100, 100, 200, 200)
    # Dragging the west edge beyond the east edge pins the east edge
    assert resize_rect(start, Direction.W, 900, 0, dims) == Rect(290, 100, 10, 200)
    assert resize_rect(start, Direction.S, 0, 0, dims) == Rect(100, 100, 200, 10)


def test_resize_never_leaves_the_image(dims):
    start = Rect(0, 0, 1000, 800)
    rect = resize_rect(start, Direction.NW, 1000, 800, dims)
    assert is_valid_crop(rect, dims)


# =============================================================================
# Transitions
# =============================================================================

def test_pointer_up_returns_to_idle_and_keeps_rect(dims, identity_display):
    state = drag(DragState(), identity_display, dims, (100, 100), (300, 300), release=False)
    assert state.mode == DragMode.draw()
    rect = state.rect
    state = reduce(state, PointerUp(), identity_display, dims)
    assert state.mode == DragMode.idle()
    assert state.anchor is None
    assert state.rect == rect


def test_pointer_cancel_returns_to_idle(dims, identity_display):
    state = drag(DragState(), identity_display, dims, (100, 100), (300, 300), release=False)
    state = reduce(state, PointerCancel(), identity_display, dims)
    assert not state.mode.is_active
    assert state.rect == Rect(100, 100, 200, 200)


def test_second_pointer_down_is_ignored_mid_drag(dims, identity_display):
    state = drag(DragState(), identity_display, dims, (100, 100), (300, 300), release=False)
    again = reduce(state, PointerDown(200, 200), identity_display, dims)
    assert again is state


def test_move_while_idle_is_noop(dims, identity_display):
    state = DragState(rect=Rect(100, 100, 100, 100))
    assert reduce(state, PointerMove(500, 500), identity_display, dims) is state


def test_unready_display_is_noop(dims):
    unready = DisplayRect()
    state = DragState()
    assert reduce(state, PointerDown(10, 10), unready, dims) is state

    ready = DisplayRect(0, 0, 1000, 800)
    drawing = reduce(state, PointerDown(10, 10), ready, dims)
    assert reduce(drawing, PointerMove(200, 200), unready, dims) is drawing


def test_reducer_does_not_mutate_input(dims, identity_display):
    state = DragState(rect=Rect(100, 100, 100, 100))
    reduce(state, PointerDown(150, 150), identity_display, dims)
    assert state.mode == DragMode.idle()
    assert state.anchor is None


def test_unknown_event_is_rejected(dims, identity_display):
    with pytest.raises(TypeError):
        reduce(DragState(), object(), identity_display, dims)


def test_nudge_clamps(dims):
    assert nudge(Rect(5, 5, 100, 100), -10, 0, dims) == Rect(0, 5, 100, 100)
    assert nudge(Rect(5, 5, 100, 100), 1, 10, dims) == Rect(6, 15, 100, 100)


def test_random_gestures_preserve_bounds():
    rng = random.Random(1234)
    dims = ImageDimensions(640, 480)
    display = DisplayRect(30, 20, 320, 240)
    state = DragState()
    for _ in range(300):
        start = (rng.uniform(-50, 400), rng.uniform(-50, 300))
        points = [(rng.uniform(-200, 600), rng.uniform(-200, 500)) for _ in range(rng.randint(1, 5))]
        state = drag(state, display, dims, start, *points)
        assert is_valid_crop(state.rect, dims), state.rect
        assert not state.mode.is_active
