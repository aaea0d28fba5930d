"""
Data models and crop-geometry utilities.

Rect and ImageDimensions are the core data structures shared by the drag
reducer, the session and the rasterizer.  Rects are always expressed in
bitmap (natural image) pixels; DisplayRect is the only type in client
(widget) pixels.  ``clamp_rect`` and ``is_valid_crop`` enforce the
in-bounds and minimum-size invariants every stored rect must satisfy.
"""

from dataclasses import dataclass
from enum import Enum

from profile_crop_tool.config import MIN_CROP_SIZE

# Float slack for bounds checks; clamped edges are computed as ``width - w``
_EPSILON = 1e-6


# =============================================================================
# Data classes
# =============================================================================
@dataclass(frozen=True)
class ImageDimensions:
    """Natural bitmap size of the loaded source image."""
    width: int
    height: int


@dataclass(frozen=True)
class DisplayRect:
    """Where the image is drawn, in client coordinates."""
    left: float = 0.0
    top: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def is_ready(self) -> bool:
        return self.width > 0 and self.height > 0


@dataclass(frozen=True)
class Rect:
    """Crop rectangle in bitmap coordinates."""
    x: float = 0.0
    y: float = 0.0
    w: float = 0.0
    h: float = 0.0

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def bottom(self) -> float:
        return self.y + self.h


class Direction(Enum):
    """Compass direction of a resize handle."""
    N = "n"
    S = "s"
    E = "e"
    W = "w"
    NE = "ne"
    NW = "nw"
    SE = "se"
    SW = "sw"

    @property
    def moves_top(self) -> bool:
        return self in (Direction.N, Direction.NE, Direction.NW)

    @property
    def moves_bottom(self) -> bool:
        return self in (Direction.S, Direction.SE, Direction.SW)

    @property
    def moves_left(self) -> bool:
        return self in (Direction.W, Direction.NW, Direction.SW)

    @property
    def moves_right(self) -> bool:
        return self in (Direction.E, Direction.NE, Direction.SE)


class HitKind(Enum):
    CORNER = "corner"
    EDGE = "edge"
    INTERIOR = "interior"
    OUTSIDE = "outside"


@dataclass(frozen=True)
class HitResult:
    """Outcome of a hit test; ``direction`` is set for corners and edges."""
    kind: HitKind
    direction: Direction | None = None


class DragKind(Enum):
    IDLE = "idle"
    DRAW = "draw"
    MOVE = "move"
    RESIZE = "resize"


@dataclass(frozen=True)
class DragMode:
    """Active pointer interaction.  ``direction`` is only set for RESIZE."""
    kind: DragKind = DragKind.IDLE
    direction: Direction | None = None

    @classmethod
    def idle(cls) -> "DragMode":
        return cls(DragKind.IDLE)

    @classmethod
    def draw(cls) -> "DragMode":
        return cls(DragKind.DRAW)

    @classmethod
    def move(cls) -> "DragMode":
        return cls(DragKind.MOVE)

    @classmethod
    def resize(cls, direction: Direction) -> "DragMode":
        return cls(DragKind.RESIZE, direction)

    @property
    def is_active(self) -> bool:
        return self.kind is not DragKind.IDLE


@dataclass(frozen=True)
class DragAnchor:
    """Pointer-down snapshot used as the reference for drag deltas.

    ``bitmap_x``/``bitmap_y`` hold the pointer in image space; the draw
    gesture uses them as the fixed corner of the new rectangle.
    """
    client_x: float
    client_y: float
    rect_at_start: Rect | None = None
    bitmap_x: float = 0.0
    bitmap_y: float = 0.0


# =============================================================================
# Crop math utilities
# =============================================================================
def clamp_rect(rect: Rect, dims: ImageDimensions, min_size: float = MIN_CROP_SIZE) -> Rect:
    """Clamp a rectangle to image bounds and the minimum size.

    Width and height are first raised to *min_size* (but never beyond the
    image), then the origin is shifted so the rect stays in bounds.  Rects
    that already satisfy every invariant come back unchanged.
    """
    # Images smaller than min_size collapse the rect to the full image
    w = min(max(min_size, rect.w), dims.width)
    h = min(max(min_size, rect.h), dims.height)
    x = max(0.0, min(rect.x, dims.width - w))
    y = max(0.0, min(rect.y, dims.height - h))
    return Rect(x, y, w, h)


def is_valid_crop(rect: Rect | None, dims: ImageDimensions, min_size: float = MIN_CROP_SIZE) -> bool:
    """Return True if *rect* can be confirmed and handed to the rasterizer."""
    if rect is None:
        return False
    if rect.w < min_size - _EPSILON or rect.h < min_size - _EPSILON:
        return False
    if rect.x < 0 or rect.y < 0:
        return False
    return rect.right <= dims.width + _EPSILON and rect.bottom <= dims.height + _EPSILON
