"""
Overlay Layout API Route.

Computes absolute draw instructions for the streamer overlay page on each
poll of the approved-items feed.

Endpoints:
  POST /api/overlay/layout      - Lay out approved items on the canvas
  GET  /api/overlay/resolutions - Canvas presets
  GET  /api/overlay/status      - Engine status and active policy
"""

import logging
from dataclasses import asdict, replace
from fastapi import APIRouter, HTTPException

from schemas import (
    CanvasIn,
    OverlayLayoutRequest,
    OverlayLayoutResponse,
    OverlayStatusResponse,
    PlacementOut,
    ResolutionPresetOut,
    SafeZoneIn,
)
from services.layout_constants import CUSTOM_RESOLUTION, DEFAULT_POLICY, RESOLUTION_PRESETS
from services.layout_engine import (
    Canvas,
    LayoutInputError,
    OverlayLayoutGenerator,
    Rect,
    validate_overlay_layout,
)
from services.overlay_settings import resolve_overlay_settings, scale_safe_zones

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/overlay", tags=["overlay"])


@router.get("/status", response_model=OverlayStatusResponse)
async def overlay_status():
    """Check overlay layout engine status."""
    return OverlayStatusResponse(policy=asdict(DEFAULT_POLICY))


@router.get("/resolutions", response_model=list[ResolutionPresetOut])
async def overlay_resolutions():
    """List the canvas presets a streamer can pick from."""
    return [
        ResolutionPresetOut(name=name, width=w, height=h)
        for name, (w, h) in RESOLUTION_PRESETS.items()
    ]


@router.post("/layout", response_model=OverlayLayoutResponse)
def overlay_layout(req: OverlayLayoutRequest):
    """
    Lay out approved items for the overlay.

    Canvas and safe zones come from the stored settings document unless
    the request overrides them. Placements are returned in input order;
    ``best_effort`` marks items the engine could not place fully clear of
    safe zones or other items.
    """
    resolved = resolve_overlay_settings(req.settings)

    overrides = {}
    if req.canvas is not None:
        canvas = Canvas(req.canvas.width, req.canvas.height)
        overrides.update(
            resolution=CUSTOM_RESOLUTION,
            canvas=canvas,
            safe_zones=scale_safe_zones(resolved.safe_zones, resolved.canvas, canvas),
        )
    if req.safe_zones is not None:
        overrides["safe_zones"] = [Rect(z.x, z.y, z.width, z.height) for z in req.safe_zones]
    if req.safe_zones_enabled is not None:
        overrides["safe_zones_enabled"] = req.safe_zones_enabled
    if req.rotation_enabled is not None:
        overrides["rotation_enabled"] = req.rotation_enabled
    active = replace(resolved, **overrides)
    canvas = active.canvas

    try:
        generator = OverlayLayoutGenerator(canvas, active.active_safe_zones, rotation_enabled=active.rotation_enabled)
        placements = generator.generate([item.id for item in req.items])
    except LayoutInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    validation = None
    if req.validate_layout:
        validation = validate_overlay_layout(placements, canvas, generator.active_safe_zones())
        if validation["overall"] != "PASS":
            logger.info(f"Overlay layout validation: {validation['overall']}, "
                        f"best-effort={len(validation['best_effort'])}")

    urls = {item.id: item.file_url for item in req.items}
    overlay_zones = active.active_safe_zones if resolved.show_safe_zone_overlay else []

    return OverlayLayoutResponse(
        resolution=active.resolution,
        canvas=CanvasIn(width=canvas.width, height=canvas.height),
        placements=[
            PlacementOut(
                id=p.id,
                x=p.x,
                y=p.y,
                size=p.size,
                rotation=p.rotation,
                z_index=p.z_index,
                best_effort=p.best_effort,
                file_url=urls.get(p.id),
            )
            for p in placements
        ],
        safe_zone_overlay=[SafeZoneIn(**z.to_dict()) for z in overlay_zones],
        validation=validation,
    )
