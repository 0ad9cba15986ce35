"""
Post-hoc audit of an overlay layout.

Re-checks a finished layout with Shapely boxes, independently of the
rectangle arithmetic the engine used to build it:
  - every item lies inside the canvas
  - no item intrudes into a padded safe zone
  - pairwise overlap ratio stays within tolerance

Best-effort placements are counted separately; a layout whose only
violations come from flagged placements is ``DEGRADED``, not ``FAIL``.
"""

from typing import Dict, List, Sequence, Tuple

from shapely.geometry import Polygon, box

from services.layout_constants import DEFAULT_POLICY, LayoutPolicy

from .generator import Placement
from .geometry_utils import Canvas, Rect, pad_safe_zone

# Float slack for items clamped flush against the canvas edge
EDGE_EPSILON = 1e-6


def _item_box(p: Placement) -> Polygon:
    return box(p.x, p.y, p.x + p.size, p.y + p.size)


def detect_item_overlaps(placements: Sequence[Placement],
                         tolerance: float) -> List[Tuple[int, int, float]]:
    """
    Return ``(i, j, ratio)`` for item pairs whose overlap ratio exceeds
    *tolerance*. Ratios are relative to the smaller item.
    """
    boxes = [_item_box(p) for p in placements]
    overlaps = []
    for i in range(len(boxes)):
        for j in range(i + 1, len(boxes)):
            inter = boxes[i].intersection(boxes[j]).area
            if inter <= 0:
                continue
            ratio = inter / min(boxes[i].area, boxes[j].area)
            if ratio > tolerance:
                overlaps.append((i, j, ratio))
    return overlaps


def detect_zone_intrusions(placements: Sequence[Placement], padded_zones: Sequence[Rect]) -> List[int]:
    """Indices of items that intersect any padded safe zone with positive area."""
    zone_polys = [box(z.x, z.y, z.right, z.bottom) for z in padded_zones]
    hits = []
    for idx, p in enumerate(placements):
        item = _item_box(p)
        if any(item.intersection(zone).area > 0 for zone in zone_polys):
            hits.append(idx)
    return hits


def items_within_canvas(placements: Sequence[Placement], canvas: Canvas) -> List[int]:
    """Indices of items that stick out of the canvas."""
    frame = box(-EDGE_EPSILON, -EDGE_EPSILON, canvas.width + EDGE_EPSILON, canvas.height + EDGE_EPSILON)
    return [idx for idx, p in enumerate(placements) if not frame.covers(_item_box(p))]


def validate_overlay_layout(
    placements: Sequence[Placement],
    canvas: Canvas,
    safe_zones: Sequence[Rect] = (),
    policy: LayoutPolicy = DEFAULT_POLICY,
) -> Dict:
    """
    Audit *placements* and return a JSON-ready report.

    *safe_zones* are the active (unpadded) zones the layout was built
    against; they are padded here the same way the engine pads them.
    """
    padded = [pad_safe_zone(z, policy.safe_zone_padding, canvas) for z in safe_zones]
    outside = items_within_canvas(placements, canvas)
    intrusions = detect_zone_intrusions(placements, padded)
    overlaps = detect_item_overlaps(placements, policy.max_overlap_ratio)
    flagged = {idx for idx, p in enumerate(placements) if p.best_effort}

    unexplained_intrusions = [i for i in intrusions if i not in flagged]
    # a pair is explained when the later item (placed against the earlier) is flagged
    unexplained_overlaps = [(i, j) for i, j, _ in overlaps if j not in flagged]

    if outside or unexplained_intrusions or unexplained_overlaps:
        overall = "FAIL"
    elif intrusions or overlaps or flagged:
        overall = "DEGRADED"
    else:
        overall = "PASS"

    return {
        "overall": overall,
        "item_count": len(placements),
        "outside_canvas": outside,
        "safe_zone_intrusions": intrusions,
        "overlapping_pairs": [[i, j, round(r, 4)] for i, j, r in overlaps],
        "max_overlap_ratio": round(max((r for _, _, r in overlaps), default=0.0), 4),
        "best_effort": sorted(flagged),
    }
