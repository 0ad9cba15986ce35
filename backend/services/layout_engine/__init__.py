"""
Layout Engine for Overlay Sticker Placement.

Places approved images on a streamer's overlay canvas: pocket-based
spreading, safe-zone avoidance, bounded overlap resolution and
deterministic string-seeded jitter.
"""

from .density import DensityMap
from .generator import (
    LayoutInputError,
    OverlayLayoutGenerator,
    Placement,
    SizeBounds,
    compute_size_bounds,
    generate_overlay_layout,
)
from .geometry_utils import Canvas, Rect, Square
from .pockets import Pocket, build_pockets
from .validation import validate_overlay_layout

__all__ = [
    "Canvas",
    "Rect",
    "Square",
    "DensityMap",
    "Pocket",
    "build_pockets",
    "LayoutInputError",
    "OverlayLayoutGenerator",
    "Placement",
    "SizeBounds",
    "compute_size_bounds",
    "generate_overlay_layout",
    "validate_overlay_layout",
]
