"""Pydantic schemas for API request/response validation."""

from pydantic import BaseModel, Field
from typing import Optional


# ---------- Geometry ----------
class CanvasIn(BaseModel):
    width: float = Field(..., gt=0, le=16384, description="Canvas width in px")
    height: float = Field(..., gt=0, le=16384, description="Canvas height in px")


class SafeZoneIn(BaseModel):
    x: float
    y: float
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)


# ---------- Overlay Layout ----------
class OverlayItemIn(BaseModel):
    id: str = Field(..., min_length=1, description="Stable submission id")
    file_url: Optional[str] = None


class OverlayLayoutRequest(BaseModel):
    items: list[OverlayItemIn] = Field(default=[], description="Approved items, in display order")
    settings: Optional[dict] = Field(
        default=None,
        description="Stored streamer settings document (safeZones, preferredResolution, ...)",
    )
    # Explicit overrides (take precedence over settings)
    canvas: Optional[CanvasIn] = None
    safe_zones: Optional[list[SafeZoneIn]] = None
    safe_zones_enabled: Optional[bool] = None
    rotation_enabled: Optional[bool] = None
    validate_layout: bool = True


class PlacementOut(BaseModel):
    id: str
    x: float
    y: float
    size: float
    rotation: float
    z_index: int
    best_effort: bool = False
    file_url: Optional[str] = None


class OverlayLayoutResponse(BaseModel):
    resolution: str
    canvas: CanvasIn
    placements: list[PlacementOut] = []
    safe_zone_overlay: list[SafeZoneIn] = []
    validation: Optional[dict] = None


class ResolutionPresetOut(BaseModel):
    name: str
    width: int
    height: int


class OverlayStatusResponse(BaseModel):
    engine: str = "overlay-layout"
    version: str = "1.0.0"
    features: list[str] = [
        "pocket_partitioning",
        "edge_band_bias",
        "density_balanced_selection",
        "safe_zone_push_out",
        "bounded_overlap_resolution",
        "deterministic_seeding",
    ]
    policy: dict = {}
    status: str = "ready"
