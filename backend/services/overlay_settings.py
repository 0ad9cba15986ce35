"""
Streamer overlay settings → layout engine inputs.

The dashboard stores settings as a loosely-typed JSON document (camelCase
keys, per-resolution safe-zone records, legacy single-zone records).
This module normalizes that document and resolves, for the active
resolution:
  - the canvas size (preset or custom)
  - the safe zones, rescaled from the size they were drawn at
  - whether safe zones and rotation are enabled
  - whether the zones should be drawn on the overlay for debugging

Malformed fields are dropped or defaulted, never raised.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from services.layout_constants import (
    CUSTOM_RESOLUTION,
    DEFAULT_RESOLUTION,
    DEFAULT_SAFE_ZONE_FRACTIONS,
    FALLBACK_RESOLUTION,
    RESOLUTION_PRESETS,
)
from services.layout_engine.geometry_utils import Canvas, Rect, clamp, round_half_up

logger = logging.getLogger(__name__)

DEFAULT_ZONE_SIZE = Canvas(1920, 1080)
ALLOWED_RESOLUTIONS = set(RESOLUTION_PRESETS) | {CUSTOM_RESOLUTION}


@dataclass
class ResolutionSafeZone:
    """Safe zones stored for one resolution, in the coordinates of ``size``."""

    zones: List[Rect]
    size: Canvas
    enabled: Optional[bool] = None


@dataclass
class StreamerSettings:
    safe_zones: Dict[str, ResolutionSafeZone] = field(default_factory=dict)
    show_safe_zone_overlay: Optional[bool] = None
    rotation_enabled: bool = True
    preferred_resolution: Optional[str] = None
    custom_resolution: Optional[Canvas] = None


@dataclass
class OverlaySettings:
    """Everything the layout engine needs from the streamer's settings."""

    resolution: str
    canvas: Canvas
    safe_zones: List[Rect]
    safe_zones_enabled: bool = True
    rotation_enabled: bool = True
    show_safe_zone_overlay: bool = False

    @property
    def active_safe_zones(self) -> List[Rect]:
        return list(self.safe_zones) if self.safe_zones_enabled else []


# ---------------------------------------------------------------------------
# Field normalizers
# ---------------------------------------------------------------------------

def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def _get(payload: Dict, *keys: str) -> Any:
    """First present key; accepts the stored camelCase and snake_case."""
    for key in keys:
        if key in payload:
            return payload[key]
    return None


def normalize_zone(raw: Any) -> Optional[Rect]:
    """A zone needs finite x/y and positive width/height."""
    if not isinstance(raw, dict):
        return None
    x, y = _number(raw.get("x")), _number(raw.get("y"))
    width, height = _number(raw.get("width")), _number(raw.get("height"))
    if x is None or y is None or width is None or height is None:
        return None
    if width <= 0 or height <= 0:
        return None
    return Rect(x, y, width, height)


def normalize_size(raw: Any) -> Optional[Canvas]:
    if not isinstance(raw, dict):
        return None
    width, height = _number(raw.get("width")), _number(raw.get("height"))
    if not width or not height or width <= 0 or height <= 0:
        return None
    return Canvas(width, height)


def default_zone_for(size: Canvas) -> Rect:
    """Centred zone covering the middle of the frame (where the streamer's camera/game usually is)."""
    fx, fy, fw, fh = DEFAULT_SAFE_ZONE_FRACTIONS
    return Rect(
        float(round_half_up(size.width * fx)),
        float(round_half_up(size.height * fy)),
        float(round_half_up(size.width * fw)),
        float(round_half_up(size.height * fh)),
    )


def normalize_resolution_safe_zone(entry: Any) -> Optional[ResolutionSafeZone]:
    """
    Normalize one per-resolution record.

    ``zones`` (list) wins over the legacy single ``zone``; a record with
    no valid zone gets the default zone for its size.
    """
    if not isinstance(entry, dict):
        return None
    size = normalize_size(entry.get("size")) or DEFAULT_ZONE_SIZE

    zones: List[Rect] = []
    if isinstance(entry.get("zones"), list):
        zones = [z for z in (normalize_zone(raw) for raw in entry["zones"]) if z is not None]
    if not zones and entry.get("zone"):
        single = normalize_zone(entry["zone"])
        if single is not None:
            zones = [single]

    enabled = entry.get("enabled")
    return ResolutionSafeZone(
        zones=zones or [default_zone_for(size)],
        size=size,
        enabled=enabled if isinstance(enabled, bool) else None,
    )


def ensure_settings(payload: Union[str, Dict, None]) -> StreamerSettings:
    """Parse the stored settings document (JSON text or dict) leniently."""
    parsed: Any = payload
    if isinstance(payload, str):
        try:
            parsed = json.loads(payload)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unparseable settings document: {e}")
            parsed = None
    if not isinstance(parsed, dict):
        return StreamerSettings()

    safe_zones: Dict[str, ResolutionSafeZone] = {}
    raw_zones = _get(parsed, "safeZones", "safe_zones")
    if isinstance(raw_zones, dict):
        for key, value in raw_zones.items():
            normalized = normalize_resolution_safe_zone(value)
            if normalized is not None:
                safe_zones[key] = normalized

    show = _get(parsed, "showSafeZoneOverlay", "show_safe_zone_overlay")
    rotation = _get(parsed, "rotationEnabled", "rotation_enabled")
    preferred = _get(parsed, "preferredResolution", "preferred_resolution")

    return StreamerSettings(
        safe_zones=safe_zones,
        show_safe_zone_overlay=show if isinstance(show, bool) else None,
        rotation_enabled=rotation if isinstance(rotation, bool) else True,
        preferred_resolution=preferred if preferred in ALLOWED_RESOLUTIONS else None,
        custom_resolution=normalize_size(_get(parsed, "customResolution", "custom_resolution")),
    )


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def resolve_canvas(resolution: str, custom: Optional[Canvas] = None) -> Canvas:
    """Preset size, custom size, or the 720p fallback."""
    if resolution == CUSTOM_RESOLUTION and custom is not None:
        return custom
    if resolution in RESOLUTION_PRESETS:
        width, height = RESOLUTION_PRESETS[resolution]
        return Canvas(width, height)
    return Canvas(*RESOLUTION_PRESETS[FALLBACK_RESOLUTION])


def scale_safe_zones(zones: List[Rect], from_size: Optional[Canvas], target: Canvas) -> List[Rect]:
    """
    Rescale zones drawn on *from_size* to *target*, rounding to whole
    pixels and keeping every zone inside the target canvas.
    """
    base_w = max(1.0, from_size.width if from_size else target.width)
    base_h = max(1.0, from_size.height if from_size else target.height)
    sx = target.width / base_w
    sy = target.height / base_h

    scaled = []
    for zone in zones:
        width = clamp(round_half_up(zone.width * sx), 1, target.width)
        height = clamp(round_half_up(zone.height * sy), 1, target.height)
        x = clamp(round_half_up(zone.x * sx), 0, target.width - width)
        y = clamp(round_half_up(zone.y * sy), 0, target.height - height)
        scaled.append(Rect(float(x), float(y), float(width), float(height)))
    return scaled


def resolve_overlay_settings(payload: Union[str, Dict, StreamerSettings, None]) -> OverlaySettings:
    """
    Resolve the active resolution's canvas and safe zones.

    Without a stored record for the active resolution the default centred
    zone is used and enabled.
    """
    settings = payload if isinstance(payload, StreamerSettings) else ensure_settings(payload)
    resolution = settings.preferred_resolution or DEFAULT_RESOLUTION
    canvas = resolve_canvas(resolution, settings.custom_resolution)

    record = settings.safe_zones.get(resolution)
    if record is not None:
        zones = scale_safe_zones(record.zones, record.size, canvas)
        enabled = True if record.enabled is None else record.enabled
    else:
        zones = [default_zone_for(canvas)]
        enabled = True

    return OverlaySettings(
        resolution=resolution,
        canvas=canvas,
        safe_zones=zones,
        safe_zones_enabled=enabled,
        rotation_enabled=settings.rotation_enabled,
        show_safe_zone_overlay=bool(settings.show_safe_zone_overlay) and enabled,
    )
