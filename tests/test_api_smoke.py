import pytest
from starlette.testclient import TestClient

import hazardroute.api.routes as routes
from hazardroute.api.app import app

ROUTE_GEOJSON = {
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "properties": {},
            "geometry": {"type": "LineString", "coordinates": [[121.5654, 25.0330], [121.5654, 25.0430]]},
        }
    ],
}


@pytest.fixture(autouse=True)
def _fresh_session():
    # The API keeps one in-process session; start every test from a clean one.
    routes.reset_session()
    yield
    routes.reset_session()


def test_settings_endpoint_returns_effective_limits():
    with TestClient(app) as c:
        resp = c.get("/api/settings")
    assert resp.status_code == 200
    data = resp.json()
    assert data["monitor"]["off_route_threshold_m"] == 40
    assert data["avoidance"]["max_area_km2"] == 200


def test_session_overrides_are_validated():
    with TestClient(app) as c:
        ok = c.post("/api/session", json={"settings_overrides": {"monitor": {"off_route_threshold_m": 25}}})
        bad = c.post("/api/session", json={"settings_overrides": {"app": {"name": "x"}}})
    assert ok.status_code == 200
    assert ok.json()["monitor"]["off_route_threshold_m"] == 25
    assert bad.status_code == 400
    assert bad.json()["detail"]["code"] == "VALIDATION_ERROR"


def test_hazard_lifecycle_updates_avoidance():
    with TestClient(app) as c:
        added = c.post("/api/hazards/point", json={"center": {"lat": 25.0330, "lon": 121.5654}})
        assert added.status_code == 200
        body = added.json()
        assert body["hazard"]["kind"] == "point"
        assert body["hazard"]["radius_m"] == 150
        assert body["avoidance"]["avoid_polygons"]["type"] == "MultiPolygon"
        assert body["avoidance"]["hazard_count"] == 1

        listed = c.get("/api/hazards").json()
        assert [h["id"] for h in listed] == [body["hazard"]["id"]]

        removed = c.delete(f"/api/hazards/{body['hazard']['id']}")
        assert removed.status_code == 200
        assert removed.json()["avoidance"]["avoid_polygons"] is None

        missing = c.delete("/api/hazards/does-not-exist")
        assert missing.status_code == 404


def test_put_hazard_replaces_the_shape_under_the_same_id():
    circle = {"kind": "circle", "center": {"lat": 25.0330, "lon": 121.5654}, "radius_m": 1000}
    with TestClient(app) as c:
        hazard_id = c.post("/api/hazards/shape", json=circle).json()["hazard"]["id"]
        replaced = c.put(f"/api/hazards/{hazard_id}", json={**circle, "radius_m": 300})
        too_big = c.put(f"/api/hazards/{hazard_id}", json={**circle, "radius_m": 6000})
        missing = c.put("/api/hazards/does-not-exist", json=circle)
        listed = c.get("/api/hazards").json()

    assert replaced.status_code == 200
    assert replaced.json()["hazard"]["id"] == hazard_id
    assert replaced.json()["hazard"]["radius_m"] == 300
    assert replaced.json()["avoidance"]["hazard_count"] == 1
    assert too_big.status_code == 400
    assert missing.status_code == 404
    assert missing.json()["detail"]["code"] == "NOT_FOUND"
    assert [(h["id"], h["radius_m"]) for h in listed] == [(hazard_id, 300)]


def test_oversized_circle_is_a_validation_error():
    with TestClient(app) as c:
        resp = c.post(
            "/api/hazards/shape",
            json={"kind": "circle", "center": {"lat": 25.0330, "lon": 121.5654}, "radius_m": 6000},
        )
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "VALIDATION_ERROR"
    assert "Circle too large" in resp.json()["detail"]["message"]


def test_shape_payload_must_match_kind():
    with TestClient(app) as c:
        resp = c.post("/api/hazards/shape", json={"kind": "circle", "center": {"lat": 25.0, "lon": 121.5}})
    assert resp.status_code == 422


def test_oversized_rectangle_is_reported_as_dropped():
    with TestClient(app) as c:
        resp = c.post(
            "/api/hazards/shape",
            json={"kind": "rectangle", "corners": [{"lat": 24.0, "lon": 120.0}, {"lat": 24.5, "lon": 120.5}]},
        )
    assert resp.status_code == 200
    avoidance = resp.json()["avoidance"]
    assert avoidance["avoid_polygons"] is None
    assert len(avoidance["dropped"]) == 1
    assert avoidance["notice"].startswith("Some hazard areas are too large")


def test_route_check_refuses_long_legs_with_avoidance():
    payload = {"origin": {"lat": 0.0, "lon": 0.0}, "destination": {"lat": 0.0, "lon": 2.0}}
    with TestClient(app) as c:
        free = c.post("/api/route/check", json=payload).json()
        c.post("/api/hazards/point", json={"center": {"lat": 0.0, "lon": 1.0}})
        guarded = c.post("/api/route/check", json=payload).json()

    assert free["status"] == "ok"
    assert free["options"] == {}
    assert guarded["status"] == "too_long"
    assert guarded["has_avoidance"] is True
    assert guarded["options"] == {}


def test_route_and_simulated_positions_report_deviation():
    with TestClient(app) as c:
        installed = c.put("/api/route", json={"route": ROUTE_GEOJSON})
        assert installed.status_code == 200
        assert installed.json()["points"] == 2
        assert installed.json()["active"] is True
        assert c.get("/api/route").json()["geometry"]["type"] == "LineString"

        on = c.post(
            "/api/position",
            json={"position": {"lat": 25.0380, "lon": 121.5654}, "source": "simulated"},
        ).json()
        off = c.post(
            "/api/position",
            json={"position": {"lat": 25.0380, "lon": 121.5700}, "source": "simulated"},
        ).json()
        live = c.post("/api/position", json={"position": {"lat": 25.0380, "lon": 121.5654}}).json()

        cleared = c.delete("/api/route").json()

    assert on["status"] == "on_route"
    assert off["status"] == "off_route"
    assert off["distance_m"] > 40
    # Live fixes are debounced; the previous evaluation stands until the window passes.
    assert live["status"] == "off_route"
    assert cleared["status"] == "no_route"


def test_simulation_needs_a_route_and_can_be_stopped():
    with TestClient(app) as c:
        missing = c.post("/api/simulation/start", json={"speed_kmh": 40})
        assert missing.status_code == 400

        c.put("/api/route", json={"route": ROUTE_GEOJSON})
        started = c.post("/api/simulation/start", json={"speed_kmh": 40}).json()
        stopped = c.post("/api/simulation/stop").json()
        status = c.get("/api/simulation").json()

    assert started["running"] is True
    assert started["total_ticks"] > 0
    assert stopped["status"] == "no_route"
    assert status["running"] is False


def test_handoff_waypoints_without_route_is_empty():
    with TestClient(app) as c:
        resp = c.get("/api/route/handoff")
    assert resp.status_code == 200
    assert resp.json() == {"waypoints": []}
