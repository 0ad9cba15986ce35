"""
Main overlay layout generator: public API of the layout engine.

Coordinates pocket building, pocket selection, placement resolution,
density tracking, rotation and z-ordering for one snapshot of approved
items. One pass is synchronous and deterministic: the same canvas, safe
zones and item ids (in the same order) always produce the same
placements, so a polling overlay does not jitter between refreshes.
"""

import logging
import math
from dataclasses import asdict, dataclass
from typing import List, Optional, Sequence

from services.layout_constants import DEFAULT_POLICY, Z_INDEX_BASE, LayoutPolicy

from .density import DensityMap
from .geometry_utils import Canvas, Rect, Square, clamp, pad_safe_zone, round_half_up
from .pockets import Pocket, build_pockets, covers_full_canvas
from .prng import item_seed, random_from_hash, seed_for
from .resolver import (
    initial_square,
    keep_outside_safe_zones,
    overlap_score,
    resolve_overlaps,
    zone_intrusion,
)
from .selector import select_pocket

logger = logging.getLogger(__name__)


class LayoutInputError(ValueError):
    """Raised for inputs the engine cannot lay out at all (e.g. empty canvas)."""


@dataclass(frozen=True)
class SizeBounds:
    """Item edge bounds for one pass."""

    min_size: float
    max_size: float
    base_size: float


@dataclass
class Placement:
    """Absolute draw instruction for one item."""

    id: str
    x: float
    y: float
    size: float
    rotation: float = 0.0
    z_index: int = 0
    pocket: str = ""
    best_effort: bool = False

    @property
    def square(self) -> Square:
        return Square(self.x, self.y, self.size)

    def to_dict(self) -> dict:
        return asdict(self)

    def __repr__(self) -> str:
        flag = " best-effort" if self.best_effort else ""
        return (
            f"Placement({self.id}, ({self.x:.1f},{self.y:.1f}) size={self.size:.1f} "
            f"rot={self.rotation:.1f} z={self.z_index}{flag})"
        )


def compute_size_bounds(canvas: Canvas, pockets: Sequence[Pocket], item_count: int,
                        policy: LayoutPolicy = DEFAULT_POLICY) -> SizeBounds:
    """
    Derive (min, max, base) item edge from the canvas and the item count.

    Larger canvases give larger items; more items share the pocket area
    and shrink the base size, never growing it. The base size is capped
    so the items together cover at most ``max_fill_ratio`` of the free
    area.
    """
    shortest = canvas.shortest_side
    min_size = max(policy.min_size_floor, round_half_up(shortest * policy.min_size_fraction))
    max_size = min(policy.max_size_ceiling, round_half_up(shortest * policy.max_size_fraction))
    # edge bands overlap the region pockets; only regions are disjoint
    available = sum(p.area for p in pockets if not p.is_edge_band) or canvas.area
    area_per_item = available / max(1, item_count)
    adaptive = math.sqrt(area_per_item) * policy.adaptive_size_factor
    crowded = math.sqrt(area_per_item * policy.max_fill_ratio)
    base = clamp(min(max(shortest * policy.base_size_fraction, adaptive), crowded), min_size, max_size)
    return SizeBounds(min_size=float(min_size), max_size=float(max_size), base_size=float(base))


def item_rotation(seed: str, enabled: bool, policy: LayoutPolicy = DEFAULT_POLICY) -> float:
    """Small cosmetic tilt in degrees; about one item in ten stays flat."""
    if not enabled:
        return 0.0
    sign = 1 if random_from_hash(seed_for(seed, "rotation-sign"), 0, 1) >= 0.5 else -1
    magnitude = random_from_hash(seed_for(seed, "rotation-mag"), *policy.rotation_range)
    flatten = random_from_hash(seed_for(seed, "rotation-flat"), 0, 1)
    if flatten > policy.rotation_keep_chance:
        return 0.0
    return sign * magnitude


def assign_z_order(placements: Sequence[Placement], base: int = Z_INDEX_BASE) -> None:
    """z grows with ascending size, so the smallest item gets ``base`` (stable for ties)."""
    for rank, placement in enumerate(sorted(placements, key=lambda p: p.size)):
        placement.z_index = base + rank


class OverlayLayoutGenerator:
    """
    Lay out approved items on an overlay canvas.

    Typical workflow::

        gen = OverlayLayoutGenerator(Canvas(1920, 1080), safe_zones=[zone])
        placements = gen.generate(["sub-1", "sub-2", "sub-3"])
    """

    def __init__(
        self,
        canvas: Canvas,
        safe_zones: Optional[Sequence[Rect]] = None,
        rotation_enabled: bool = True,
        policy: LayoutPolicy = DEFAULT_POLICY,
    ):
        """
        Parameters
        ----------
        canvas : Canvas
            Overlay size in pixels; both sides must be positive.
        safe_zones : list[Rect], optional
            Active (already enabled and scaled) zones to keep clear.
            Pass an empty list when the streamer disabled them.
        rotation_enabled : bool
            When False every rotation is 0.
        policy : LayoutPolicy
            Engine constants.
        """
        if canvas.width <= 0 or canvas.height <= 0:
            raise LayoutInputError(f"Canvas must be positive, got {canvas.width}x{canvas.height}")
        self.canvas = canvas
        self.safe_zones = list(safe_zones or [])
        self.rotation_enabled = rotation_enabled
        self.policy = policy

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build_pockets(self) -> List[Pocket]:
        return build_pockets(self.canvas, self.safe_zones, self.policy)

    def size_bounds(self, item_count: int) -> SizeBounds:
        return compute_size_bounds(self.canvas, self.build_pockets(), item_count, self.policy)

    def _zones_for(self, pockets: Sequence[Pocket]) -> List[Rect]:
        if self.safe_zones and covers_full_canvas(pockets):
            return []
        return self.safe_zones

    def active_safe_zones(self) -> List[Rect]:
        """Zones actually honoured by ``generate`` (empty when they cover the canvas)."""
        return self._zones_for(self.build_pockets())

    def generate(self, item_ids: Sequence) -> List[Placement]:
        """
        Compute one placement per item id, in input order.

        Never fails for geometric reasons: placements that could not fully
        satisfy the safe zones or the overlap tolerance are returned with
        ``best_effort=True``.
        """
        ids = [str(i) for i in item_ids]
        canvas = self.canvas
        policy = self.policy

        pockets = self.build_pockets()
        zones = self._zones_for(pockets)
        if self.safe_zones and not zones:
            logger.warning("Safe zones leave no usable area; ignoring them for this pass")
        padded = [pad_safe_zone(z, policy.safe_zone_padding, canvas) for z in zones]

        density = DensityMap.create(canvas, policy.density_cols, policy.density_rows)
        bounds = compute_size_bounds(canvas, pockets, len(ids), policy)

        squares: List[Square] = []
        placements: List[Placement] = []
        for index, item_id in enumerate(ids):
            seed = item_seed(item_id, index)
            pocket = select_pocket(pockets, index, seed, density, canvas, policy)

            capacity = max(60.0, min(bounds.max_size, pocket.max_size * 1.05))
            min_for_pocket = min(bounds.min_size, capacity)
            scale = random_from_hash(seed_for(seed, "scale"), *policy.scale_range)
            desired = clamp(bounds.base_size * scale, max(52.0, min_for_pocket * 0.95), capacity)

            square = initial_square(pocket, desired, seed, canvas)
            square = keep_outside_safe_zones(square, padded, canvas, policy)
            square = resolve_overlaps(square, squares, padded, canvas, seed, policy)

            best_effort = (
                zone_intrusion(square, padded) > 0
                or overlap_score(square, squares) > policy.max_overlap_ratio
            )
            if best_effort:
                logger.debug(f"Item {item_id} placed best-effort in {pocket.name}")

            squares.append(square)
            pocket.record(square.size)
            density.apply(square)
            placements.append(
                Placement(
                    id=item_id,
                    x=square.x,
                    y=square.y,
                    size=square.size,
                    rotation=item_rotation(seed, self.rotation_enabled, policy),
                    pocket=pocket.name,
                    best_effort=best_effort,
                )
            )

        assign_z_order(placements)

        degraded = sum(1 for p in placements if p.best_effort)
        if degraded:
            logger.warning(f"{degraded}/{len(placements)} items placed best-effort "
                           f"({len(pockets)} pockets, canvas {canvas.width}x{canvas.height})")
        logger.info(f"Overlay layout: {len(placements)} items, {len(pockets)} pockets, "
                    f"base size {bounds.base_size:.0f}px")
        return placements


def generate_overlay_layout(
    canvas: Canvas,
    item_ids: Sequence,
    safe_zones: Optional[Sequence[Rect]] = None,
    rotation_enabled: bool = True,
    policy: LayoutPolicy = DEFAULT_POLICY,
) -> List[Placement]:
    """One-shot convenience wrapper around ``OverlayLayoutGenerator``."""
    return OverlayLayoutGenerator(canvas, safe_zones, rotation_enabled, policy).generate(item_ids)


__all__ = [
    "LayoutInputError",
    "OverlayLayoutGenerator",
    "Placement",
    "SizeBounds",
    "assign_z_order",
    "compute_size_bounds",
    "generate_overlay_layout",
    "item_rotation",
]
