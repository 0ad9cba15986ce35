"""Streamer settings document → canvas and safe zones."""
import sys, os
sys.path.insert(0, os.path.dirname(__file__) or '.')

import json

from services.layout_constants import DEFAULT_RESOLUTION
from services.layout_engine.geometry_utils import Canvas, Rect
from services.overlay_settings import (
    default_zone_for,
    ensure_settings,
    normalize_resolution_safe_zone,
    normalize_zone,
    resolve_canvas,
    resolve_overlay_settings,
    scale_safe_zones,
)

LEGACY_ZONE = {"x": 480, "y": 216, "width": 960, "height": 648}


def test_no_settings_uses_default_zone():
    resolved = resolve_overlay_settings(None)
    assert resolved.resolution == DEFAULT_RESOLUTION
    assert resolved.canvas == resolve_canvas(DEFAULT_RESOLUTION)
    assert resolved.safe_zones == [default_zone_for(resolved.canvas)]
    assert resolved.safe_zones_enabled is True
    assert resolved.rotation_enabled is True
    assert resolved.show_safe_zone_overlay is False


def test_default_zone_1080p():
    assert default_zone_for(Canvas(1920, 1080)) == Rect(480, 216, 960, 648)
    resolved = resolve_overlay_settings({"preferredResolution": "1080p"})
    assert resolved.canvas == Canvas(1920, 1080)
    assert resolved.safe_zones == [Rect(480, 216, 960, 648)]


def test_legacy_zone_scaled_to_720p():
    settings = {
        "preferredResolution": "720p",
        "safeZones": {"720p": {"zone": LEGACY_ZONE, "size": {"width": 1920, "height": 1080}}},
    }
    resolved = resolve_overlay_settings(settings)
    assert resolved.canvas == Canvas(1280, 720)
    assert resolved.safe_zones == [Rect(320, 144, 640, 432)]


def test_zone_list_wins_over_legacy_zone():
    record = normalize_resolution_safe_zone({
        "zone": LEGACY_ZONE,
        "zones": [{"x": 0, "y": 0, "width": 100, "height": 50}, {"x": 1, "y": 2, "width": -4, "height": 5}],
        "size": {"width": 1280, "height": 720},
    })
    assert record.zones == [Rect(0, 0, 100, 50)]
    assert record.size == Canvas(1280, 720)
    assert record.enabled is None


def test_record_without_zones_gets_default():
    record = normalize_resolution_safe_zone({"size": {"width": 1280, "height": 720}, "enabled": False})
    assert record.zones == [default_zone_for(Canvas(1280, 720))]
    assert record.enabled is False


def test_disabled_zones_hide_overlay():
    settings = {
        "preferredResolution": "1080p",
        "showSafeZoneOverlay": True,
        "safeZones": {"1080p": {"zones": [LEGACY_ZONE], "enabled": False}},
    }
    resolved = resolve_overlay_settings(settings)
    assert resolved.safe_zones_enabled is False
    assert resolved.active_safe_zones == []
    assert resolved.show_safe_zone_overlay is False


def test_overlay_shown_when_enabled():
    resolved = resolve_overlay_settings({"preferredResolution": "1080p", "showSafeZoneOverlay": True})
    assert resolved.show_safe_zone_overlay is True
    assert resolved.active_safe_zones == resolved.safe_zones


def test_custom_resolution():
    resolved = resolve_overlay_settings({
        "preferredResolution": "custom",
        "customResolution": {"width": 1000, "height": 500},
    })
    assert resolved.resolution == "custom"
    assert resolved.canvas == Canvas(1000, 500)
    assert resolved.safe_zones == [Rect(250, 100, 500, 300)]


def test_custom_without_size_falls_back_to_720p():
    resolved = resolve_overlay_settings({"preferredResolution": "custom"})
    assert resolved.canvas == Canvas(1280, 720)


def test_unknown_resolution_uses_default():
    resolved = resolve_overlay_settings({"preferredResolution": "8k"})
    assert resolved.resolution == DEFAULT_RESOLUTION


def test_json_text_and_snake_case():
    text = json.dumps({"preferred_resolution": "720p", "rotation_enabled": False})
    settings = ensure_settings(text)
    assert settings.preferred_resolution == "720p"
    assert settings.rotation_enabled is False
    assert resolve_overlay_settings(text).rotation_enabled is False


def test_unparseable_document_gives_defaults():
    settings = ensure_settings("{not json")
    assert settings.safe_zones == {}
    assert settings.rotation_enabled is True
    assert ensure_settings(["not", "a", "dict"]).preferred_resolution is None


def test_normalize_zone_rejects_bad_values():
    assert normalize_zone({"x": 0, "y": 0, "width": 10, "height": 10}) == Rect(0, 0, 10, 10)
    assert normalize_zone({"x": 0, "y": 0, "width": 0, "height": 10}) is None
    assert normalize_zone({"x": "0", "y": 0, "width": 10, "height": 10}) is None
    assert normalize_zone({"x": True, "y": 0, "width": 10, "height": 10}) is None
    assert normalize_zone({"x": float("nan"), "y": 0, "width": 10, "height": 10}) is None
    assert normalize_zone("zone") is None


def test_scaled_zones_stay_inside_target():
    zones = scale_safe_zones([Rect(1800, 1000, 400, 200)], Canvas(1920, 1080), Canvas(1920, 1080))
    assert zones == [Rect(1520, 880, 400, 200)]
    oversized = scale_safe_zones([Rect(0, 0, 5000, 5000)], None, Canvas(1280, 720))
    assert oversized == [Rect(0, 0, 1280, 720)]
