"""
Coordinate mapping and handle hit testing (Qt-free).

Pure geometric functions for converting between client (widget) pixels
and bitmap pixels, and for classifying a pointer position against the
current crop rectangle.  Nothing here touches Qt events or session state.
"""

from profile_crop_tool.config import HIT_TOLERANCE
from profile_crop_tool.models import (
    DisplayRect, Direction, HitKind, HitResult, ImageDimensions, Rect,
)


# =============================================================================
# Coordinate mapping
# =============================================================================
def to_bitmap(
    client_x: float,
    client_y: float,
    display: DisplayRect,
    dims: ImageDimensions,
) -> tuple[float, float] | None:
    """Map a client point into bitmap space, clamped to the image.

    Returns ``None`` while the image has not been laid out yet (zero-sized
    display rect); callers must leave the crop rect untouched in that case.
    """
    if not display.is_ready:
        return None
    x = (client_x - display.left) * dims.width / display.width
    y = (client_y - display.top) * dims.height / display.height
    return max(0.0, min(x, float(dims.width))), max(0.0, min(y, float(dims.height)))


def to_client(x: float, y: float, display: DisplayRect, dims: ImageDimensions) -> tuple[float, float]:
    """Project a bitmap point out into client space (no clamping)."""
    if dims.width == 0 or dims.height == 0:
        return display.left, display.top
    cx = x / dims.width * display.width + display.left
    cy = y / dims.height * display.height + display.top
    return cx, cy


def bitmap_delta(
    dx: float,
    dy: float,
    display: DisplayRect,
    dims: ImageDimensions,
) -> tuple[float, float] | None:
    """Convert a client-space delta into a bitmap-space delta."""
    if not display.is_ready:
        return None
    return dx * dims.width / display.width, dy * dims.height / display.height


# =============================================================================
# Hit testing
# =============================================================================
def handle_points(rect: Rect, display: DisplayRect, dims: ImageDimensions) -> dict[Direction, tuple[float, float]]:
    """Return client-space positions of the 4 corner and 4 edge-midpoint handles."""
    left, top = to_client(rect.x, rect.y, display, dims)
    right, bottom = to_client(rect.right, rect.bottom, display, dims)
    mid_x = (left + right) / 2
    mid_y = (top + bottom) / 2
    return {
        Direction.NW: (left, top),
        Direction.NE: (right, top),
        Direction.SW: (left, bottom),
        Direction.SE: (right, bottom),
        Direction.N: (mid_x, top),
        Direction.S: (mid_x, bottom),
        Direction.W: (left, mid_y),
        Direction.E: (right, mid_y),
    }


_CORNERS = (Direction.NW, Direction.NE, Direction.SW, Direction.SE)
_EDGES = (Direction.N, Direction.S, Direction.W, Direction.E)


def classify(
    client_x: float,
    client_y: float,
    rect: Rect | None,
    display: DisplayRect,
    dims: ImageDimensions,
    tolerance: float = HIT_TOLERANCE,
) -> HitResult:
    """Classify a client point against the crop rectangle.

    Handles are tested in client space so the hit target keeps the same
    on-screen size whatever the image scale.  Corners win over edges, edges
    over the interior.  Without a rect everything is OUTSIDE.
    """
    if rect is None or not display.is_ready:
        return HitResult(HitKind.OUTSIDE)

    points = handle_points(rect, display, dims)

    def nearest(candidates: tuple[Direction, ...]) -> Direction | None:
        # Small rects put several handles in range; take the closest one
        best, best_dist = None, None
        for direction in candidates:
            px, py = points[direction]
            dx, dy = abs(client_x - px), abs(client_y - py)
            if dx > tolerance or dy > tolerance:
                continue
            dist = dx * dx + dy * dy
            if best_dist is None or dist < best_dist:
                best, best_dist = direction, dist
        return best

    corner = nearest(_CORNERS)
    if corner is not None:
        return HitResult(HitKind.CORNER, corner)
    edge = nearest(_EDGES)
    if edge is not None:
        return HitResult(HitKind.EDGE, edge)

    left, top = points[Direction.NW]
    right, bottom = points[Direction.SE]
    if left <= client_x <= right and top <= client_y <= bottom:
        return HitResult(HitKind.INTERIOR)
    return HitResult(HitKind.OUTSIDE)
