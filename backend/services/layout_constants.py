"""
Centralized Layout Constants: Single source of truth for the overlay engine.

Exposes a frozen ``LayoutPolicy`` carrying every tunable used by:
  - Pocket building (margin, safe-zone padding, edge bands, subdivision)
  - Pocket selection (candidate pool size)
  - Placement resolution (overlap tolerance, retry/shrink budgets)
  - Sizing and rotation

Environment overrides are read once in ``config`` and folded into
``DEFAULT_POLICY``. Engine modules receive a policy explicitly instead of
reading globals, so tests can run with custom policies side by side.
"""

import logging
from dataclasses import dataclass, replace
from typing import Dict, Tuple

from config import (
    OVERLAY_DEFAULT_RESOLUTION,
    OVERLAY_DENSITY_COLS,
    OVERLAY_DENSITY_ROWS,
    OVERLAY_MAX_OVERLAP_RATIO,
    OVERLAY_SAFE_ZONE_PADDING,
)

logger = logging.getLogger(__name__)

# ===========================================================================
# RESOLUTION PRESETS
# ===========================================================================

RESOLUTION_PRESETS: Dict[str, Tuple[int, int]] = {
    "720p": (1280, 720),
    "1080p": (1920, 1080),
    "2160p": (3840, 2160),
}
CUSTOM_RESOLUTION = "custom"
FALLBACK_RESOLUTION = "720p"

# Default safe zone as fractions of the canvas (x, y, width, height)
DEFAULT_SAFE_ZONE_FRACTIONS = (0.25, 0.2, 0.5, 0.6)

# Hard floor for any item edge after degradation
SHRINK_FLOOR = 48.0

# Rendering order base for the smallest item
Z_INDEX_BASE = 200


@dataclass(frozen=True)
class LayoutPolicy:
    """All constants of one layout pass."""

    # Pocket builder
    canvas_margin: float = 28.0
    safe_zone_padding: float = 32.0
    sliver_size: float = 32.0
    edge_band_min_thickness: float = 110.0
    edge_band_fraction: float = 0.18
    edge_band_min_size: float = 48.0
    edge_band_priority: float = 1.25
    subdivide_aspect: float = 1.2
    subdivide_target: float = 260.0
    subdivide_max_slices: int = 4
    subdivide_gap: float = 22.0
    subdivide_gap_fraction: float = 0.18
    subdivide_min_slice: float = 60.0

    # Density map
    density_cols: int = 4
    density_rows: int = 3

    # Pocket selector
    candidate_pool: int = 4

    # Placement resolver
    max_overlap_ratio: float = 0.05
    overlap_rounds: int = 4
    overlap_angular_steps: int = 14
    overlap_shrink: float = 0.9
    overlap_shrink_floor: float = 56.0
    fallback_samples: int = 42
    zone_shrink: float = 0.85
    zone_fallback_shrink: float = 0.8
    min_zone_retries: int = 6
    scan_step_fraction: float = 0.25
    scan_min_step: float = 8.0
    scan_max_points: int = 4000

    # Sizing
    min_size_floor: float = 68.0
    min_size_fraction: float = 0.08
    max_size_ceiling: float = 260.0
    max_size_fraction: float = 0.28
    base_size_fraction: float = 0.16
    adaptive_size_factor: float = 0.78
    max_fill_ratio: float = 0.35
    scale_range: Tuple[float, float] = (0.88, 1.14)

    # Rotation (degrees)
    rotation_range: Tuple[float, float] = (3.0, 13.0)
    rotation_keep_chance: float = 0.9

    def with_overrides(self, **changes) -> "LayoutPolicy":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


DEFAULT_POLICY = LayoutPolicy(
    safe_zone_padding=OVERLAY_SAFE_ZONE_PADDING,
    density_cols=max(1, OVERLAY_DENSITY_COLS),
    density_rows=max(1, OVERLAY_DENSITY_ROWS),
    max_overlap_ratio=OVERLAY_MAX_OVERLAP_RATIO,
)

if OVERLAY_DEFAULT_RESOLUTION in RESOLUTION_PRESETS:
    DEFAULT_RESOLUTION = OVERLAY_DEFAULT_RESOLUTION
else:
    logger.warning(f"Unknown OVERLAY_DEFAULT_RESOLUTION={OVERLAY_DEFAULT_RESOLUTION!r}, using 1080p")
    DEFAULT_RESOLUTION = "1080p"
