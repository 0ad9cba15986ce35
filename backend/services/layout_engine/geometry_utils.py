"""
Axis-aligned rectangle primitives for the overlay layout engine.

Everything here is pure: rectangles are immutable and every helper
returns a new value. Items are laid out as squares (``Square``); pockets,
safe zones and the canvas are general rectangles (``Rect``).
"""

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union


@dataclass(frozen=True)
class Canvas:
    """Overlay canvas size in pixels."""

    width: float
    height: float

    @property
    def shortest_side(self) -> float:
        return min(self.width, self.height)

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def rect(self) -> "Rect":
        return Rect(0.0, 0.0, self.width, self.height)


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle; (x, y) is the top-left corner."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center(self) -> tuple:
        return (self.x + self.width / 2, self.y + self.height / 2)

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class Square:
    """An item footprint: square of edge ``size`` at (x, y)."""

    x: float
    y: float
    size: float

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.size, self.size)

    @property
    def area(self) -> float:
        return self.size * self.size


Box = Union[Rect, Square]


def _as_rect(shape: Box) -> Rect:
    return shape.rect if isinstance(shape, Square) else shape


def round_half_up(value: float) -> int:
    """Round halves up. Uses floor(x+0.5) instead of round() to avoid banker's rounding."""
    return int(math.floor(value + 0.5))


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp *value* into ``[lo, hi]``; *hi* wins when the bounds cross."""
    return min(max(value, lo), hi)


def intersect(a: Box, b: Box) -> Optional[Rect]:
    """
    Intersection of two rectangles, or ``None``.

    Rectangles that only touch along an edge do not intersect.
    """
    ra, rb = _as_rect(a), _as_rect(b)
    x1 = max(ra.x, rb.x)
    y1 = max(ra.y, rb.y)
    x2 = min(ra.right, rb.right)
    y2 = min(ra.bottom, rb.bottom)
    if x2 <= x1 or y2 <= y1:
        return None
    return Rect(x1, y1, x2 - x1, y2 - y1)


def subtract(source: Rect, cut: Rect) -> List[Rect]:
    """
    Cover ``source \\ cut`` with up to four rectangles.

    Pieces are ordered top, bottom, left, right of the intersection band.
    The top and bottom pieces span the full source width; the left and
    right pieces only span the height of the intersection. Pieces whose
    width or height is 1px or less are dropped.
    """
    inter = intersect(source, cut)
    if inter is None:
        return [source]

    remainder: List[Rect] = []
    if inter.y > source.y:
        remainder.append(Rect(source.x, source.y, source.width, inter.y - source.y))
    if inter.bottom < source.bottom:
        remainder.append(Rect(source.x, inter.bottom, source.width, source.bottom - inter.bottom))
    if inter.x > source.x:
        remainder.append(Rect(source.x, inter.y, inter.x - source.x, inter.height))
    if inter.right < source.right:
        remainder.append(Rect(inter.right, inter.y, source.right - inter.right, inter.height))

    return [r for r in remainder if r.width > 1 and r.height > 1]


def subtract_all(sources: Iterable[Rect], cuts: Iterable[Rect]) -> List[Rect]:
    """Subtract every cut from every source rectangle, in order."""
    rects = list(sources)
    for cut in cuts:
        rects = [piece for rect in rects for piece in subtract(rect, cut)]
    return rects


def rects_overlap(a: Box, b: Box) -> bool:
    """Strict overlap test; shared edges are not an overlap."""
    ra, rb = _as_rect(a), _as_rect(b)
    return ra.x < rb.right and ra.right > rb.x and ra.y < rb.bottom and ra.bottom > rb.y


def overlap_area(a: Box, b: Box) -> float:
    ra, rb = _as_rect(a), _as_rect(b)
    width = max(0.0, min(ra.right, rb.right) - max(ra.x, rb.x))
    height = max(0.0, min(ra.bottom, rb.bottom) - max(ra.y, rb.y))
    return width * height


def overlap_ratio(a: Box, b: Box) -> float:
    """
    Overlap area relative to the smaller of the two shapes.

    A small item fully inside a large one yields 1.0 regardless of order.
    """
    overlap = overlap_area(a, b)
    if overlap == 0:
        return 0.0
    smaller = min(_as_rect(a).area, _as_rect(b).area)
    if smaller <= 0:
        return 0.0
    return overlap / smaller


def total_overlap_area(shape: Box, zones: Iterable[Rect]) -> float:
    return sum(overlap_area(shape, zone) for zone in zones)


def clamp_square(square: Square, canvas: Canvas) -> Square:
    """Move (and if needed shrink) *square* so it lies inside the canvas."""
    size = min(square.size, canvas.shortest_side)
    return Square(
        x=clamp(square.x, 0.0, canvas.width - size),
        y=clamp(square.y, 0.0, canvas.height - size),
        size=size,
    )


def pad_safe_zone(zone: Rect, padding: float, canvas: Canvas) -> Rect:
    """Grow *zone* by *padding* on every side, cropped to the canvas."""
    x = clamp(zone.x - padding, 0.0, canvas.width)
    y = clamp(zone.y - padding, 0.0, canvas.height)
    width = min(canvas.width - x, zone.width + padding * 2)
    height = min(canvas.height - y, zone.height + padding * 2)
    return Rect(x, y, width, height)
