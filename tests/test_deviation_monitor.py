import math

import pytest

import hazardroute.tracking.monitor as monitor_module
from hazardroute.core.geo import EARTH_RADIUS_M, GeoPoint
from hazardroute.tracking.monitor import NO_ROUTE, DeviationMonitor, PositionSample

ROUTE = (GeoPoint(lat=0.0, lon=0.0), GeoPoint(lat=0.0, lon=1.0))


def _sample(distance_north_m: float, *, lon: float = 0.5, t: float = 0.0) -> PositionSample:
    point = GeoPoint(lat=math.degrees(distance_north_m / EARTH_RADIUS_M), lon=lon)
    return PositionSample(point=point, source="live", timestamp=t)


def test_without_route_state_is_no_route_with_zero_distance():
    monitor = DeviationMonitor(40.0)
    state = monitor.evaluate(_sample(500.0))

    assert state.status == "no_route"
    assert state.distance_m == 0.0
    assert not state.off_route


def test_threshold_separates_on_and_off_route():
    monitor = DeviationMonitor(40.0)
    monitor.set_route(ROUTE)

    on = monitor.evaluate(_sample(39.5))
    assert on.status == "on_route"
    assert on.distance_m == pytest.approx(39.5, abs=0.01)

    off = monitor.evaluate(_sample(41.0, t=1.0))
    assert off.status == "off_route"
    assert off.off_route
    assert monitor.state is off


def test_distance_exactly_at_threshold_is_on_route(monkeypatch):
    monkeypatch.setattr(monitor_module, "point_to_polyline_distance_m", lambda point, route: 40.0)
    monitor = DeviationMonitor(40.0)
    monitor.set_route(ROUTE)

    assert monitor.evaluate(_sample(0.0)).status == "on_route"


def test_sample_forty_meters_from_the_route_is_on_route():
    monitor = DeviationMonitor(40.0)
    monitor.set_route(ROUTE)

    for lon in (0.1, 0.25, 0.5, 0.77, 0.9):
        state = monitor.evaluate(_sample(40.0, lon=lon))
        assert state.status == "on_route"
        assert state.distance_m == pytest.approx(40.0, abs=1e-6)


def test_route_with_fewer_than_two_points_counts_as_no_route():
    monitor = DeviationMonitor(40.0)
    monitor.set_route(ROUTE[:1])

    assert monitor.route is None
    assert monitor.evaluate(_sample(1000.0)).status == "no_route"


def test_new_route_resets_state_until_next_sample():
    monitor = DeviationMonitor(40.0)
    monitor.set_route(ROUTE)
    monitor.evaluate(_sample(1000.0))
    assert monitor.state.off_route

    monitor.set_route((GeoPoint(lat=0.009, lon=0.0), GeoPoint(lat=0.009, lon=1.0)))
    assert monitor.state == NO_ROUTE

    # ~1000 m north of the equator is ~1 m from the new route.
    assert monitor.evaluate(_sample(1000.0)).status == "on_route"


def test_clear_route_and_reset():
    monitor = DeviationMonitor(40.0)
    monitor.set_route(ROUTE)
    monitor.evaluate(_sample(100.0))

    monitor.reset()
    assert monitor.state == NO_ROUTE
    assert monitor.route == ROUTE

    monitor.clear_route()
    assert monitor.route is None
    assert monitor.state == NO_ROUTE


def test_state_as_dict_is_json_friendly():
    monitor = DeviationMonitor(40.0)
    monitor.set_route(ROUTE)
    state = monitor.evaluate(_sample(100.0, t=3.5))

    out = state.as_dict()
    assert out["status"] == "off_route"
    assert out["off_route"] is True
    assert out["source"] == "live"
    assert out["timestamp"] == 3.5
    assert set(out["position"]) == {"lat", "lon"}


def test_threshold_must_be_positive():
    with pytest.raises(ValueError):
        DeviationMonitor(0.0)
