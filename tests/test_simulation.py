import math

import pytest

from hazardroute.core.geo import GeoPoint, cumulative_lengths_m, point_to_polyline_distance_m
from hazardroute.tracking.monitor import DeviationMonitor
from hazardroute.tracking.simulator import SimulatedMotion

ROUTE = (
    GeoPoint(lat=25.0330, lon=121.5654),
    GeoPoint(lat=25.0370, lon=121.5654),
    GeoPoint(lat=25.0370, lon=121.5720),
)


def test_tick_count_follows_route_length_and_speed():
    motion = SimulatedMotion(ROUTE, 36.0, tick_seconds=0.5)

    total_km = cumulative_lengths_m(ROUTE)[-1] / 1000
    step_km = 36.0 / 3600 * 0.5
    assert motion.total_km == pytest.approx(total_km)
    assert motion.total_ticks == math.ceil(total_km / step_km)


def test_samples_stay_on_route_and_end_exactly_at_destination():
    motion = SimulatedMotion(ROUTE, 50.0, tick_seconds=0.5, start_time=100.0)
    samples = list(motion)

    assert len(samples) == motion.total_ticks
    assert samples[-1].point == ROUTE[-1]
    assert all(s.source == "simulated" for s in samples)
    assert [s.timestamp for s in samples[:3]] == [100.5, 101.0, 101.5]
    for s in samples:
        assert point_to_polyline_distance_m(s.point, ROUTE) < 1.0

    assert motion.done
    assert motion.progress == 1.0
    assert motion.step() is None


def test_progress_is_monotonic():
    motion = SimulatedMotion(ROUTE, 120.0, tick_seconds=1.0)
    last = 0.0
    while motion.step() is not None:
        assert motion.progress >= last
        last = motion.progress
    assert last == 1.0


def test_invalid_arguments_are_rejected():
    with pytest.raises(ValueError):
        SimulatedMotion(ROUTE[:1], 40.0)
    with pytest.raises(ValueError):
        SimulatedMotion(ROUTE, 0.0)
    with pytest.raises(ValueError):
        SimulatedMotion(ROUTE, 40.0, tick_seconds=0.0)


def test_zero_length_route_has_no_ticks():
    motion = SimulatedMotion((ROUTE[0], ROUTE[0]), 40.0)
    assert motion.total_ticks == 0
    assert motion.done
    assert list(motion) == []


def test_long_east_west_leg_at_high_latitude_stays_on_route():
    route = (GeoPoint(lat=45.0, lon=0.0), GeoPoint(lat=45.0, lon=1.0))
    monitor = DeviationMonitor(40.0)
    monitor.set_route(route)

    worst = 0.0
    for sample in SimulatedMotion(route, 600.0, tick_seconds=0.5):
        worst = max(worst, point_to_polyline_distance_m(sample.point, route))
        assert monitor.evaluate(sample).status == "on_route"
    assert worst < 5.0
