"""
End-to-end overlay layout scenarios.

Runs the generator the way the overlay page does on each poll and audits
the result with the Shapely-based validator.
"""
import sys, os
sys.path.insert(0, os.path.dirname(__file__) or '.')
from itertools import combinations

import pytest

import services.layout_engine.generator as generator_module
from services.layout_constants import DEFAULT_POLICY, SHRINK_FLOOR, Z_INDEX_BASE
from services.layout_engine import (
    Canvas,
    LayoutInputError,
    OverlayLayoutGenerator,
    Rect,
    compute_size_bounds,
    generate_overlay_layout,
    validate_overlay_layout,
)
from services.layout_engine.geometry_utils import overlap_ratio, pad_safe_zone, rects_overlap
from services.layout_engine.pockets import FULL_CANVAS_POCKET, create_pocket

HD = Canvas(1920, 1080)
SD = Canvas(1280, 720)
CENTER_ZONE = Rect(480, 216, 960, 648)


def _ids(n, prefix="sub"):
    return [f"{prefix}-{i}" for i in range(n)]


def _inside(p, canvas):
    eps = 1e-6
    return p.x >= -eps and p.y >= -eps and p.x + p.size <= canvas.width + eps \
        and p.y + p.size <= canvas.height + eps


def _worst_pair(placements):
    return max((overlap_ratio(a.square, b.square) for a, b in combinations(placements, 2)), default=0.0)


# ====================================================================
# Scenarios
# ====================================================================

def test_few_items_no_zones_pass_cleanly():
    gen = OverlayLayoutGenerator(HD, [])
    placements = gen.generate(_ids(5))
    bounds = gen.size_bounds(5)

    assert [p.id for p in placements] == _ids(5)
    for p in placements:
        assert _inside(p, HD)
        assert bounds.min_size <= p.size <= bounds.max_size
        assert not p.best_effort

    report = validate_overlay_layout(placements, HD)
    assert report["overall"] == "PASS"
    assert report["item_count"] == 5
    assert report["overlapping_pairs"] == []


def test_center_zone_respected():
    placements = generate_overlay_layout(HD, _ids(20), [CENTER_ZONE])
    padded = pad_safe_zone(CENTER_ZONE, DEFAULT_POLICY.safe_zone_padding, HD)

    assert len(placements) == 20
    for p in placements:
        assert _inside(p, HD)
        assert not p.best_effort
        assert not rects_overlap(p.square, padded), p
    assert _worst_pair(placements) <= DEFAULT_POLICY.max_overlap_ratio

    report = validate_overlay_layout(placements, HD, [CENTER_ZONE])
    assert report["overall"] == "PASS"


def test_center_zone_uses_edge_bands():
    gen = OverlayLayoutGenerator(HD, [CENTER_ZONE])
    pockets = gen.build_pockets()
    assert any(p.is_edge_band for p in pockets)
    placements = gen.generate(_ids(12))
    used = {p.pocket for p in placements}
    assert all(name.startswith(("pocket-", "edge-")) for name in used)


def test_ten_items_around_center_zone():
    placements = generate_overlay_layout(HD, _ids(10), [CENTER_ZONE])
    padded = pad_safe_zone(CENTER_ZONE, 32, HD)

    assert len(placements) == 10
    for p in placements:
        assert _inside(p, HD)
        assert not rects_overlap(p.square, padded), p
        assert not p.best_effort
    assert _worst_pair(placements) <= 0.05
    assert any(p.is_edge_band for p in OverlayLayoutGenerator(HD, [CENTER_ZONE]).build_pockets())

    report = validate_overlay_layout(placements, HD, [CENTER_ZONE])
    assert report["overall"] == "PASS"
    assert report["safe_zone_intrusions"] == []


@pytest.mark.parametrize("per_pocket", [0.5, 1, 2])
def test_overlap_bound_holds_up_to_twice_the_pockets(per_pocket):
    gen = OverlayLayoutGenerator(HD, [CENTER_ZONE])
    count = int(len(gen.build_pockets()) * per_pocket)
    placements = gen.generate(_ids(count))

    assert len(placements) == count
    assert _worst_pair(placements) <= DEFAULT_POLICY.max_overlap_ratio
    assert not [p.id for p in placements if p.best_effort]
    assert all(p.size >= SHRINK_FLOOR for p in placements)

    report = validate_overlay_layout(placements, HD, gen.active_safe_zones())
    assert report["overall"] == "PASS"


def test_zone_covering_canvas_is_ignored():
    zone = Rect(32, 18, 1216, 684)
    gen = OverlayLayoutGenerator(SD, [zone])
    assert gen.active_safe_zones() == []

    placements = gen.generate(_ids(10))
    assert len(placements) == 10
    assert all(_inside(p, SD) for p in placements)
    assert {p.pocket for p in placements} == {FULL_CANVAS_POCKET}

    report = validate_overlay_layout(placements, SD, gen.active_safe_zones())
    assert report["overall"] in ("PASS", "DEGRADED")


def test_same_input_same_layout():
    a = generate_overlay_layout(HD, _ids(25), [CENTER_ZONE])
    b = generate_overlay_layout(HD, _ids(25), [CENTER_ZONE])
    assert a == b
    assert [p.to_dict() for p in a] == [p.to_dict() for p in b]


def test_different_ids_change_layout():
    a = generate_overlay_layout(HD, _ids(6, "alpha"), [])
    b = generate_overlay_layout(HD, _ids(6, "beta"), [])
    assert [(p.x, p.y) for p in a] != [(p.x, p.y) for p in b]


def test_crowded_four_pockets_terminates(monkeypatch):
    quadrants = [
        Rect(28, 28, 600, 320),
        Rect(652, 28, 600, 320),
        Rect(28, 372, 600, 320),
        Rect(652, 372, 600, 320),
    ]

    def four_pockets(canvas, safe_zones, policy=DEFAULT_POLICY):
        return [create_pocket(f"q-{i}", rect, 260) for i, rect in enumerate(quadrants)]

    monkeypatch.setattr(generator_module, "build_pockets", four_pockets)

    placements = OverlayLayoutGenerator(SD, []).generate(_ids(60))
    assert len(placements) == 60
    assert [p.id for p in placements] == _ids(60)
    for p in placements:
        assert _inside(p, SD)
        assert p.size >= SHRINK_FLOOR
        assert p.pocket in {"q-0", "q-1", "q-2", "q-3"}

    report = validate_overlay_layout(placements, SD)
    assert report["overall"] in ("PASS", "DEGRADED")
    assert report["item_count"] == 60


# ====================================================================
# Sizing, rotation, ordering
# ====================================================================

def test_more_items_never_grow_base_size():
    pockets = OverlayLayoutGenerator(HD, [CENTER_ZONE]).build_pockets()
    sizes = [compute_size_bounds(HD, pockets, n).base_size for n in (1, 5, 20, 50, 200)]
    assert sizes == sorted(sizes, reverse=True)


def test_base_size_capped_by_fill_ratio():
    pockets = OverlayLayoutGenerator(HD, [CENTER_ZONE]).build_pockets()
    free = sum(p.area for p in pockets if not p.is_edge_band)
    count = 2 * len(pockets)
    bounds = compute_size_bounds(HD, pockets, count)
    assert bounds.min_size < bounds.base_size
    assert count * bounds.base_size ** 2 <= free * DEFAULT_POLICY.max_fill_ratio + 1e-6
    # the edge bands overlap the regions and add no room
    assert compute_size_bounds(HD, [p for p in pockets if not p.is_edge_band], count) == bounds


def test_size_bounds_scale_with_canvas():
    small = compute_size_bounds(SD, [], 1)
    large = compute_size_bounds(Canvas(3840, 2160), [], 1)
    assert small.min_size == 68
    assert small.max_size == 202
    assert large.max_size == 260
    assert small.min_size <= small.base_size <= small.max_size


def test_rotation_disabled_gives_flat_items():
    placements = generate_overlay_layout(HD, _ids(15), [], rotation_enabled=False)
    assert all(p.rotation == 0.0 for p in placements)


def test_rotation_range():
    placements = generate_overlay_layout(HD, _ids(30), [])
    tilts = [abs(p.rotation) for p in placements]
    assert all(t == 0.0 or 3.0 <= t < 13.0 for t in tilts)
    assert any(t > 0 for t in tilts)


def test_z_order_follows_size():
    placements = generate_overlay_layout(HD, _ids(12), [CENTER_ZONE])
    assert sorted(p.z_index for p in placements) == list(range(Z_INDEX_BASE, Z_INDEX_BASE + 12))
    by_z = sorted(placements, key=lambda p: p.z_index)
    assert [p.size for p in by_z] == sorted(p.size for p in placements)


def test_empty_items():
    assert generate_overlay_layout(HD, [], [CENTER_ZONE]) == []


def test_ids_are_stringified():
    placements = generate_overlay_layout(HD, [1, 2, 3], [])
    assert [p.id for p in placements] == ["1", "2", "3"]


@pytest.mark.parametrize("canvas", [Canvas(0, 720), Canvas(1280, -1)])
def test_empty_canvas_rejected(canvas):
    with pytest.raises(LayoutInputError):
        OverlayLayoutGenerator(canvas, [])


def test_strict_policy_still_valid():
    strict = DEFAULT_POLICY.with_overrides(max_overlap_ratio=0.0)
    placements = OverlayLayoutGenerator(SD, [], policy=strict).generate(_ids(30))
    report = validate_overlay_layout(placements, SD, policy=strict)
    assert report["overall"] in ("PASS", "DEGRADED")
    assert all(p.size >= SHRINK_FLOOR for p in placements)
