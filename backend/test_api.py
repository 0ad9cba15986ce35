"""Overlay API endpoint tests (in-process, via FastAPI's TestClient)."""
import sys, os
sys.path.insert(0, os.path.dirname(__file__) or '.')

from fastapi.testclient import TestClient

from main import app

client = TestClient(app)

ITEMS = [{"id": f"sub-{i}", "file_url": f"/uploads/sub-{i}.png"} for i in range(5)]


def test_health():
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "version": "1.0.0"}


def test_status_exposes_policy():
    r = client.get("/api/overlay/status")
    assert r.status_code == 200
    d = r.json()
    assert d["status"] == "ready"
    assert d["policy"]["canvas_margin"] == 28.0
    assert "safe_zone_push_out" in d["features"]


def test_resolutions():
    r = client.get("/api/overlay/resolutions")
    assert r.status_code == 200
    presets = {p["name"]: (p["width"], p["height"]) for p in r.json()}
    assert presets["720p"] == (1280, 720)
    assert presets["1080p"] == (1920, 1080)
    assert presets["2160p"] == (3840, 2160)


def test_layout_five_items():
    r = client.post("/api/overlay/layout", json={
        "items": ITEMS,
        "settings": {"preferredResolution": "1080p"},
    })
    assert r.status_code == 200
    d = r.json()
    assert d["resolution"] == "1080p"
    assert d["canvas"] == {"width": 1920, "height": 1080}
    assert [p["id"] for p in d["placements"]] == [item["id"] for item in ITEMS]
    assert [p["file_url"] for p in d["placements"]] == [item["file_url"] for item in ITEMS]
    for p in d["placements"]:
        assert 0 <= p["x"] <= 1920 - p["size"] + 1e-6
        assert 0 <= p["y"] <= 1080 - p["size"] + 1e-6
        assert p["z_index"] >= 200
    assert d["validation"]["overall"] in ("PASS", "DEGRADED")
    assert d["safe_zone_overlay"] == []


def test_layout_is_stable_between_polls():
    body = {"items": ITEMS, "settings": {"preferredResolution": "720p"}}
    first = client.post("/api/overlay/layout", json=body).json()
    second = client.post("/api/overlay/layout", json=body).json()
    assert first["placements"] == second["placements"]


def test_rotation_disabled():
    r = client.post("/api/overlay/layout", json={"items": ITEMS, "rotation_enabled": False})
    assert r.status_code == 200
    assert all(p["rotation"] == 0 for p in r.json()["placements"])


def test_rotation_disabled_in_settings():
    r = client.post("/api/overlay/layout", json={"items": ITEMS, "settings": {"rotationEnabled": False}})
    assert all(p["rotation"] == 0 for p in r.json()["placements"])


def test_safe_zone_overlay_shown():
    r = client.post("/api/overlay/layout", json={
        "items": ITEMS,
        "settings": {"preferredResolution": "1080p", "showSafeZoneOverlay": True},
    })
    d = r.json()
    assert d["safe_zone_overlay"] == [{"x": 480, "y": 216, "width": 960, "height": 648}]


def test_safe_zones_disabled_hides_overlay():
    r = client.post("/api/overlay/layout", json={
        "items": ITEMS,
        "settings": {"preferredResolution": "1080p", "showSafeZoneOverlay": True},
        "safe_zones_enabled": False,
    })
    assert r.status_code == 200
    assert r.json()["safe_zone_overlay"] == []


def test_explicit_canvas_and_zones():
    r = client.post("/api/overlay/layout", json={
        "items": ITEMS,
        "canvas": {"width": 800, "height": 600},
        "safe_zones": [{"x": 200, "y": 150, "width": 400, "height": 300}],
    })
    assert r.status_code == 200
    d = r.json()
    assert d["resolution"] == "custom"
    assert d["canvas"] == {"width": 800, "height": 600}
    assert len(d["placements"]) == 5
    assert d["validation"]["overall"] in ("PASS", "DEGRADED")


def test_explicit_canvas_rescales_stored_zones():
    r = client.post("/api/overlay/layout", json={
        "items": ITEMS,
        "canvas": {"width": 1280, "height": 720},
        "settings": {"preferredResolution": "1080p", "showSafeZoneOverlay": True},
    })
    assert r.status_code == 200
    d = r.json()
    assert d["resolution"] == "custom"
    assert d["safe_zone_overlay"] == [{"x": 320, "y": 144, "width": 640, "height": 432}]
    assert d["validation"]["safe_zone_intrusions"] == []


def test_empty_items():
    r = client.post("/api/overlay/layout", json={"items": []})
    assert r.status_code == 200
    assert r.json()["placements"] == []


def test_validation_can_be_skipped():
    r = client.post("/api/overlay/layout", json={"items": ITEMS, "validate_layout": False})
    assert r.json()["validation"] is None


def test_zero_canvas_rejected():
    r = client.post("/api/overlay/layout", json={"items": ITEMS, "canvas": {"width": 0, "height": 720}})
    assert r.status_code == 422


def test_blank_item_id_rejected():
    r = client.post("/api/overlay/layout", json={"items": [{"id": ""}]})
    assert r.status_code == 422
