"""
Placement resolution: turn a chosen pocket into a concrete square.

Stages
------
1. ``initial_square``        - seeded offset inside the pocket.
2. ``keep_outside_safe_zones`` - push the square out of padded safe zones.
3. ``resolve_overlaps``      - bounded ring search against prior items,
   shrinking between rounds, then ``find_low_overlap_placement``
   (seeded samples) and ``scan_for_clear_spot`` (grid sweep).

Every stage has a bounded retry budget and returns its least-bad
candidate when the budget runs out, so resolution always terminates with
*some* placement. Callers detect the degraded case with
``zone_intrusion`` / ``overlap_score``.

All safe zones handed to this module are already padded.
"""

import logging
import math
from typing import List, Optional, Sequence

import numpy as np

from services.layout_constants import DEFAULT_POLICY, SHRINK_FLOOR, LayoutPolicy

from .geometry_utils import (
    Canvas,
    Rect,
    Square,
    clamp,
    clamp_square,
    overlap_ratio,
    rects_overlap,
    total_overlap_area,
)
from .pockets import Pocket
from .prng import random_from_hash, seed_for

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Scoring helpers
# ---------------------------------------------------------------------------

def overlap_score(candidate: Square, existing: Sequence[Square]) -> float:
    """Worst overlap ratio of *candidate* against any placed square."""
    if not existing:
        return 0.0
    return max(overlap_ratio(candidate, placed) for placed in existing)


def zone_intrusion(candidate: Square, padded_zones: Sequence[Rect]) -> float:
    """Total area of *candidate* lying inside the padded zones."""
    return total_overlap_area(candidate, padded_zones)


def is_acceptable(candidate: Square, existing: Sequence[Square],
                  policy: LayoutPolicy = DEFAULT_POLICY) -> bool:
    return overlap_score(candidate, existing) <= policy.max_overlap_ratio


# ---------------------------------------------------------------------------
# Stage 1: initial position inside the pocket
# ---------------------------------------------------------------------------

def initial_square(pocket: Pocket, size: float, seed: str, canvas: Canvas) -> Square:
    """Seeded position for an item of edge *size* inside *pocket*."""
    padding = min(size * 0.12, 18.0)
    x_range = max(1.0, pocket.rect.width - size - padding * 2)
    y_range = max(1.0, pocket.rect.height - size - padding * 2)
    x = pocket.rect.x + padding + random_from_hash(seed_for(seed, "offset-x", pocket.usage), 0, x_range)
    y = pocket.rect.y + padding + random_from_hash(seed_for(seed, "offset-y", pocket.usage), 0, y_range)
    return clamp_square(Square(x, y, size), canvas)


# ---------------------------------------------------------------------------
# Stage 2: safe-zone push-out
# ---------------------------------------------------------------------------

def _escape_candidates(candidate: Square, zone: Rect, canvas: Canvas, pad: float):
    """(available_gap, x, y) for shifting left, right, above and below *zone*."""
    size = candidate.size
    y_side = clamp(candidate.y, pad, canvas.height - size - pad)
    x_side = clamp(candidate.x, pad, canvas.width - size - pad)
    return [
        (zone.x, max(0.0, zone.x - size - pad), y_side),
        (canvas.width - zone.right, min(canvas.width - size - pad, zone.right + pad), y_side),
        (zone.y, x_side, max(0.0, zone.y - size - pad)),
        (canvas.height - zone.bottom, x_side, min(canvas.height - size - pad, zone.bottom + pad)),
    ]


def keep_outside_single_zone(square: Square, zone: Rect, canvas: Canvas,
                             policy: LayoutPolicy = DEFAULT_POLICY) -> Square:
    """
    Move *square* just outside *zone*, toward the side with the most room.

    The item shrinks when the chosen gap is tighter than its edge. When no
    side can take it, the item shrinks step by step down to the floor and,
    at the floor, is parked in a top corner.
    """
    pad = policy.safe_zone_padding
    candidate = clamp_square(square, canvas)
    while True:
        if not rects_overlap(candidate, zone):
            return candidate

        options = []
        for available, x, y in _escape_candidates(candidate, zone, canvas, pad):
            if available <= pad:
                continue
            size = max(SHRINK_FLOOR, min(candidate.size, available - pad / 2))
            option = clamp_square(Square(x, y, size), canvas)
            if option.size >= SHRINK_FLOOR and not rects_overlap(option, zone):
                options.append((available, option))
        if options:
            return max(options, key=lambda pair: pair[0])[1]

        if candidate.size <= SHRINK_FLOOR:
            corner = clamp_square(Square(pad, pad, candidate.size), canvas)
            if not rects_overlap(corner, zone):
                return corner
            return clamp_square(Square(canvas.width - candidate.size - pad, pad, candidate.size), canvas)

        candidate = clamp_square(
            Square(candidate.x, candidate.y, max(SHRINK_FLOOR, candidate.size * policy.zone_shrink)), canvas
        )


def keep_outside_safe_zones(square: Square, padded_zones: Sequence[Rect], canvas: Canvas,
                            policy: LayoutPolicy = DEFAULT_POLICY) -> Square:
    """
    Push *square* out of every padded zone.

    Zones are processed in turn until none overlaps or the retry budget
    (``max(min_zone_retries, 4 * zones)`` sweeps) runs out. A sweep that
    moves nothing gets one seeded nudge. On exhaustion the four canvas
    corners and the corner opposite each zone are tried with a shrunk
    item, and the one with the least zone overlap wins (may be non-zero).
    """
    candidate = clamp_square(square, canvas)
    if not padded_zones:
        return candidate

    pad = policy.safe_zone_padding
    for attempt in range(max(policy.min_zone_retries, len(padded_zones) * 4)):
        moved = False
        for zone in padded_zones:
            nxt = keep_outside_single_zone(candidate, zone, canvas, policy)
            if nxt.x != candidate.x or nxt.y != candidate.y:
                moved = True
            candidate = nxt
        if not any(rects_overlap(candidate, zone) for zone in padded_zones):
            return candidate
        if not moved:
            jx = random_from_hash(seed_for(str(square.x), attempt, "jx"), -pad, pad)
            jy = random_from_hash(seed_for(str(square.y), attempt, "jy"), -pad, pad)
            candidate = clamp_square(Square(candidate.x + jx, candidate.y + jy, candidate.size), canvas)
            break

    if not any(rects_overlap(candidate, zone) for zone in padded_zones):
        return candidate

    shrunk = max(SHRINK_FLOOR, candidate.size * policy.zone_fallback_shrink)
    far_x = canvas.width - shrunk - pad
    far_y = canvas.height - shrunk - pad
    positions = [(pad, pad), (far_x, pad), (pad, far_y), (far_x, far_y)]
    for zone in padded_zones:
        zx, zy = zone.center
        positions.append((
            clamp(far_x if zx < canvas.width / 2 else pad, 0.0, canvas.width),
            clamp(far_y if zy < canvas.height / 2 else pad, 0.0, canvas.height),
        ))

    best = candidate
    best_score = math.inf
    for x, y in positions:
        option = clamp_square(Square(x, y, shrunk), canvas)
        score = total_overlap_area(option, padded_zones)
        if score == 0:
            return option
        if score < best_score:
            best_score = score
            best = option

    logger.debug(f"Safe-zone push-out exhausted, best intrusion {best_score:.0f}px²")
    return best


# ---------------------------------------------------------------------------
# Stage 3: overlap resolution against already placed items
# ---------------------------------------------------------------------------

def _ring_offsets(shift: float, steps: int, jitter_seed: str) -> List[tuple]:
    offsets = [(0.0, 0.0), (shift, 0.0), (-shift, 0.0), (0.0, shift), (0.0, -shift)]
    for i in range(steps):
        angle = (i / steps) * math.pi * 2 + random_from_hash(seed_for(jitter_seed, i), 0, math.pi / 6)
        offsets.append((math.cos(angle) * shift, math.sin(angle) * shift))
    return offsets


def find_low_overlap_placement(
    seed_candidate: Square,
    existing: Sequence[Square],
    padded_zones: Sequence[Rect],
    canvas: Canvas,
    seed: str,
    policy: LayoutPolicy = DEFAULT_POLICY,
) -> Square:
    """Seeded uniform samples over the whole canvas."""
    if is_acceptable(seed_candidate, existing, policy):
        return seed_candidate
    best = seed_candidate
    best_score = overlap_score(seed_candidate, existing)

    width_limit = max(0.0, canvas.width - seed_candidate.size)
    height_limit = max(0.0, canvas.height - seed_candidate.size)
    for attempt in range(policy.fallback_samples):
        sample_seed = seed_for(seed, "fallback", attempt)
        candidate = clamp_square(
            Square(
                random_from_hash(seed_for(sample_seed, "x"), 0, width_limit),
                random_from_hash(seed_for(sample_seed, "y"), 0, height_limit),
                seed_candidate.size,
            ),
            canvas,
        )
        candidate = keep_outside_safe_zones(candidate, padded_zones, canvas, policy)
        score = overlap_score(candidate, existing)
        if score < best_score:
            best_score = score
            best = candidate
        if score <= policy.max_overlap_ratio * 0.8:
            return candidate

    logger.debug(f"Overlap search exhausted for {seed}, best ratio {best_score:.3f}")
    return best


def _scan_axis(span: float, step: float) -> np.ndarray:
    if span <= 0:
        return np.zeros(1)
    return np.append(np.arange(0.0, span, step), span)


def scan_for_clear_spot(
    anchor: Square,
    existing: Sequence[Square],
    padded_zones: Sequence[Rect],
    canvas: Canvas,
    policy: LayoutPolicy = DEFAULT_POLICY,
) -> Optional[Square]:
    """
    Deterministic grid sweep of the whole canvas for a square clear of the
    padded zones and within tolerance of every placed square.

    Starts at the anchor's size and shrinks by ``overlap_shrink`` down to
    ``SHRINK_FLOOR``. At each size the clear spot nearest the anchor wins.
    Returns None when nothing fits even at the floor.
    """
    placed = np.array([(s.x, s.y, s.size) for s in existing], dtype=float).reshape(-1, 3)
    zones = np.array([(z.x, z.y, z.right, z.bottom) for z in padded_zones], dtype=float).reshape(-1, 4)
    limit = policy.max_overlap_ratio * 0.8
    coarsest = math.sqrt(canvas.area / policy.scan_max_points)
    anchor_x, anchor_y = anchor.x + anchor.size / 2, anchor.y + anchor.size / 2

    size = min(anchor.size, canvas.shortest_side)
    while True:
        step = max(policy.scan_min_step, size * policy.scan_step_fraction, coarsest)
        gx, gy = np.meshgrid(_scan_axis(canvas.width - size, step), _scan_axis(canvas.height - size, step))
        gx, gy = gx.ravel(), gy.ravel()
        clear = np.ones(gx.shape, dtype=bool)

        if len(placed):
            ow = np.minimum(gx[:, None] + size, placed[:, 0] + placed[:, 2]) - np.maximum(gx[:, None], placed[:, 0])
            oh = np.minimum(gy[:, None] + size, placed[:, 1] + placed[:, 2]) - np.maximum(gy[:, None], placed[:, 1])
            inter = np.clip(ow, 0.0, None) * np.clip(oh, 0.0, None)
            ratio = inter / np.minimum(size * size, placed[:, 2] ** 2)
            clear &= ratio.max(axis=1) <= limit
        if len(zones):
            zw = np.minimum(gx[:, None] + size, zones[:, 2]) - np.maximum(gx[:, None], zones[:, 0])
            zh = np.minimum(gy[:, None] + size, zones[:, 3]) - np.maximum(gy[:, None], zones[:, 1])
            clear &= ~((zw > 0) & (zh > 0)).any(axis=1)

        if clear.any():
            xs, ys = gx[clear], gy[clear]
            dist = (xs + size / 2 - anchor_x) ** 2 + (ys + size / 2 - anchor_y) ** 2
            pick = int(np.argmin(dist))
            return Square(float(xs[pick]), float(ys[pick]), float(size))
        if size <= SHRINK_FLOOR:
            return None
        size = max(SHRINK_FLOOR, size * policy.overlap_shrink)


def resolve_overlaps(
    square: Square,
    existing: Sequence[Square],
    padded_zones: Sequence[Rect],
    canvas: Canvas,
    seed: str = "",
    policy: LayoutPolicy = DEFAULT_POLICY,
) -> Square:
    """
    Move (and shrink) *square* until its worst overlap ratio against
    *existing* is within ``policy.max_overlap_ratio``.

    Each round tries the current spot, four cardinal shifts and a jittered
    ring of angular shifts; the radius and the item shrink every round.
    Seeded canvas samples follow, then a grid sweep that keeps shrinking
    down to the floor. Returns the best candidate found even if still
    above tolerance.
    """
    if not existing:
        return square

    size = square.size
    best = square
    best_score = math.inf
    for rnd in range(policy.overlap_rounds):
        shift = size * (0.58 - rnd * 0.05)
        jitter_seed = seed_for(seed, "overlap", square.x, square.y, rnd)
        for dx, dy in _ring_offsets(shift, policy.overlap_angular_steps, jitter_seed):
            candidate = clamp_square(Square(square.x + dx, square.y + dy, size), canvas)
            candidate = keep_outside_safe_zones(candidate, padded_zones, canvas, policy)
            score = overlap_score(candidate, existing)
            if score < best_score:
                best_score = score
                best = candidate
            if score <= policy.max_overlap_ratio and zone_intrusion(candidate, padded_zones) == 0:
                return candidate
        size = min(size, max(policy.overlap_shrink_floor, size * policy.overlap_shrink))

    result = find_low_overlap_placement(best, existing, padded_zones, canvas, seed, policy)
    if is_acceptable(result, existing, policy) and zone_intrusion(result, padded_zones) == 0:
        return result

    spot = scan_for_clear_spot(Square(square.x, square.y, result.size), existing, padded_zones, canvas, policy)
    if spot is None:
        logger.debug(f"No clear spot left for {seed}; keeping best-effort placement")
        return result
    return spot
