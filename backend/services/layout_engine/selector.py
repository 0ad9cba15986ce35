"""
Pocket selection: which region should the next item go into?

Each pocket is scored on free area, usage history, priority, alignment
with a rotating desired direction, closeness to the canvas edge and the
density map, plus a small seeded jitter. The winner is drawn from the top
few candidates with the seeded PRNG so consecutive items don't form
visually identical runs, while the same input always picks the same
pocket.
"""

import math
from typing import List, Sequence, Tuple

from services.layout_constants import DEFAULT_POLICY, LayoutPolicy

from .density import DensityMap
from .geometry_utils import Canvas, Rect, clamp
from .pockets import Pocket, create_pocket
from .prng import random_from_hash, seed_for

# left, top, right, bottom (screen coordinates, y grows downward)
DIRECTION_ANGLES = (math.pi, -math.pi / 2, 0.0, math.pi / 2)


def desired_angle(index: int) -> float:
    """Direction bias for the *index*-th item; cycles every four items."""
    return DIRECTION_ANGLES[index % len(DIRECTION_ANGLES)]


def fallback_pocket() -> Pocket:
    return create_pocket("fallback", Rect(16.0, 16.0, 240.0, 240.0), 160.0, 1.0)


def score_pockets(
    pockets: Sequence[Pocket],
    index: int,
    seed: str,
    density: DensityMap,
    canvas: Canvas,
) -> List[Tuple[float, Pocket]]:
    """Score every pocket for item *index*; highest score first."""
    expected_usage = index // max(1, len(pockets))
    cx, cy = canvas.width / 2, canvas.height / 2
    want = desired_angle(index)
    min_usage = min(p.usage for p in pockets)
    max_usage = max(p.usage for p in pockets)
    half_short = max(1.0, canvas.shortest_side * 0.5)

    scored = []
    for pocket in pockets:
        area = pocket.area
        free_area = max(1.0, area - pocket.used_area)

        # Penalties: superlinear reuse, running ahead of an even spread, saturation
        headroom = max(0, pocket.usage - expected_usage)
        usage_penalty = (max(0, pocket.usage) ** 1.15) * max(70.0, pocket.max_size * 0.25) + headroom * 110
        saturation = pocket.used_area / max(1.0, area)

        px, py = pocket.rect.center
        angle = math.atan2(py - cy, px - cx)
        angle_diff = abs(((angle - want + math.pi * 3) % (math.pi * 2)) - math.pi)
        directional = math.cos(angle_diff) * 0.9

        nearest_edge = min(px, canvas.width - px, py, canvas.height - py)
        edge_bias = clamp(1 - nearest_edge / half_short, 0.0, 1.0) * 0.55

        noise = random_from_hash(seed_for(seed, pocket.name, "jitter"), -40, 40)
        density_factor = 1 - density.sample(pocket.rect)

        usage_ratio = 0.0 if max_usage == 0 else pocket.usage / max_usage
        spread = clamp(1.2 - usage_ratio * 0.8, 0.55, 1.2)
        diversity = 1.08 if pocket.usage == min_usage else 1.0

        positive = (
            free_area * pocket.priority * density_factor * 0.45
            + free_area * 0.15
            + free_area * (directional * 0.7 + edge_bias * 0.6)
        )
        score = positive * spread * diversity - usage_penalty - saturation * 80 + noise
        scored.append((score, pocket))

    # stable: equal scores keep pocket order
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return scored


def select_pocket(
    pockets: Sequence[Pocket],
    index: int,
    seed: str,
    density: DensityMap,
    canvas: Canvas,
    policy: LayoutPolicy = DEFAULT_POLICY,
) -> Pocket:
    """Pick a pocket for item *index* among the best-scoring candidates."""
    if not pockets:
        return fallback_pocket()

    scored = score_pockets(pockets, index, seed, density, canvas)
    pool = scored[:min(policy.candidate_pool, len(scored))]
    pick = math.floor(random_from_hash(seed_for(seed, "pocket-choice", index), 0, 0.999) * len(pool))
    return pool[pick][1]
