"""
Pocket builder: partitions the canvas into usable sub-regions.

Pipeline
--------
1. Inset the canvas by a fixed margin (the *base* rectangle).
2. Pad every safe zone and subtract it from the base (guillotine cuts).
3. Drop slivers, weight each region by its share of the canvas and
   subdivide elongated regions into a row/column of slices.
4. Add edge-band pockets along the four borders (also cut by the zones)
   with a higher priority, which pulls items toward the frame edges.
5. Fall back to a single pocket when nothing usable survives.

Pockets are rebuilt on every layout pass; their ``usage`` and
``used_area`` counters are mutated in place by the generator.
"""

import logging
from dataclasses import dataclass
from typing import List, Sequence

from services.layout_constants import DEFAULT_POLICY, LayoutPolicy

from .geometry_utils import Canvas, Rect, pad_safe_zone, round_half_up, subtract_all

logger = logging.getLogger(__name__)

FULL_CANVAS_POCKET = "fallback-canvas"
FALLBACK_POCKET = "fallback"
EDGE_BANDS = ("edge-top", "edge-bottom", "edge-left", "edge-right")


@dataclass
class Pocket:
    """A usable region plus its per-pass usage counters."""

    name: str
    rect: Rect
    max_size: float
    priority: float = 1.0
    usage: int = 0
    used_area: float = 0.0

    @property
    def area(self) -> float:
        return self.rect.area

    @property
    def is_edge_band(self) -> bool:
        return self.name.startswith("edge-")

    def record(self, size: float) -> None:
        """Count one placed item of edge *size* against this pocket."""
        self.usage += 1
        self.used_area += size * size

    def __repr__(self) -> str:
        r = self.rect
        return (
            f"Pocket({self.name}, ({r.x:.0f},{r.y:.0f},{r.width:.0f}x{r.height:.0f}), "
            f"max={self.max_size:.0f}, prio={self.priority:.2f}, used={self.usage})"
        )


def create_pocket(name: str, rect: Rect, max_size: float, priority: float = 1.0) -> Pocket:
    """Build a pocket whose ``max_size`` never exceeds its own short side (floor 48)."""
    bounded = max(48.0, min(max_size, rect.width, rect.height))
    return Pocket(name=name, rect=rect, max_size=bounded, priority=priority)


def subdivide_pocket(pocket: Pocket, policy: LayoutPolicy = DEFAULT_POLICY) -> List[Pocket]:
    """
    Slice an elongated pocket into up to ``subdivide_max_slices`` columns
    (wide) or rows (tall) sized toward ``subdivide_target``.

    Slices keep a small gap between each other so neighbouring pockets do
    not touch. Returns ``[pocket]`` unchanged when no split applies.
    """
    rect = pocket.rect
    aspect = rect.width / max(1.0, rect.height)
    inverse_aspect = rect.height / max(1.0, rect.width)

    columns = 1
    rows = 1
    if aspect > policy.subdivide_aspect:
        columns = min(policy.subdivide_max_slices, max(1, round_half_up(rect.width / policy.subdivide_target)))
    if inverse_aspect > policy.subdivide_aspect:
        rows = min(policy.subdivide_max_slices, max(1, round_half_up(rect.height / policy.subdivide_target)))
    if columns == 1 and rows == 1:
        return [pocket]

    slice_w = rect.width / columns
    slice_h = rect.height / rows
    gap_x = min(policy.subdivide_gap, slice_w * policy.subdivide_gap_fraction) if columns > 1 else 0.0
    gap_y = min(policy.subdivide_gap, slice_h * policy.subdivide_gap_fraction) if rows > 1 else 0.0
    width = slice_w - gap_x
    height = slice_h - gap_y
    if width < policy.subdivide_min_slice or height < policy.subdivide_min_slice:
        return [pocket]

    segments: List[Pocket] = []
    for row in range(rows):
        for col in range(columns):
            seg = Rect(
                rect.x + col * slice_w + gap_x / 2,
                rect.y + row * slice_h + gap_y / 2,
                width,
                height,
            )
            segments.append(
                create_pocket(f"{pocket.name}-{len(segments)}", seg, pocket.max_size, pocket.priority + 0.05)
            )
    return segments


def _edge_band_pockets(base: Rect, canvas: Canvas, padded_zones: Sequence[Rect],
                       policy: LayoutPolicy) -> List[Pocket]:
    thickness = max(policy.edge_band_min_thickness, canvas.shortest_side * policy.edge_band_fraction)
    bands = {
        "edge-top": Rect(base.x, base.y, base.width, thickness),
        "edge-bottom": Rect(base.x, base.bottom - thickness, base.width, thickness),
        "edge-left": Rect(base.x, base.y, thickness, base.height),
        "edge-right": Rect(base.right - thickness, base.y, thickness, base.height),
    }
    pockets: List[Pocket] = []
    for name in EDGE_BANDS:
        pieces = subtract_all([bands[name]], padded_zones)
        for idx, piece in enumerate(pieces):
            if piece.width <= policy.edge_band_min_size or piece.height <= policy.edge_band_min_size:
                continue
            pockets.append(
                create_pocket(f"{name}-{idx}", piece, max(80.0, min(piece.width, piece.height)),
                              policy.edge_band_priority)
            )
    return pockets


def build_pockets(canvas: Canvas, safe_zones: Sequence[Rect],
                  policy: LayoutPolicy = DEFAULT_POLICY) -> List[Pocket]:
    """
    Partition *canvas* minus the padded *safe_zones* into pockets.

    Never returns an empty list. When the padded zones swallow the whole
    usable area the result is a single ``FULL_CANVAS_POCKET`` spanning the
    canvas, signalling that safe-zone avoidance cannot be honoured.
    """
    margin = policy.canvas_margin
    base = Rect(margin, margin, max(0.0, canvas.width - margin * 2), max(0.0, canvas.height - margin * 2))
    if base.width <= 0 or base.height <= 0:
        logger.debug(f"Canvas {canvas.width}x{canvas.height} too small for margin {margin}")
        return [create_pocket(FALLBACK_POCKET, canvas.rect, max(80.0, canvas.shortest_side), 1.0)]

    padded = [pad_safe_zone(zone, policy.safe_zone_padding, canvas) for zone in safe_zones]
    available = subtract_all([base], padded)
    if not available:
        logger.warning("Safe zones cover the whole canvas; using a single full-canvas pocket")
        return [create_pocket(FULL_CANVAS_POCKET, canvas.rect, max(80.0, canvas.shortest_side), 1.0)]

    pockets: List[Pocket] = []
    for index, rect in enumerate(r for r in available if r.width > policy.sliver_size and r.height > policy.sliver_size):
        priority = min(1.2, 0.85 + rect.area / max(1.0, canvas.area))
        region = create_pocket(f"pocket-{index}", rect, max(70.0, min(rect.width, rect.height)), priority)
        pockets.extend(subdivide_pocket(region, policy))

    pockets.extend(_edge_band_pockets(base, canvas, padded, policy))

    if not pockets:
        logger.debug("No pocket survived filtering; falling back to the base rectangle")
        return [create_pocket(FALLBACK_POCKET, base, max(90.0, min(base.width, base.height)), 1.0)]

    logger.debug(f"Built {len(pockets)} pockets for {canvas.width}x{canvas.height} "
                 f"with {len(safe_zones)} safe zone(s)")
    return pockets


def covers_full_canvas(pockets: Sequence[Pocket]) -> bool:
    """True when the builder gave up on safe zones for this pass."""
    return len(pockets) == 1 and pockets[0].name == FULL_CANVAS_POCKET
