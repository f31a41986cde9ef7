from __future__ import annotations

# This module is the orchestrator for one planning session.
# It wires together:
# - the hazard working set (hazards.shapes) and its derived avoidance region (avoidance.validate)
# - the pre-flight route-length guard (avoidance.guard)
# - the deviation monitor fed by live fixes or the simulator (tracking.*)
#
# Every hazard mutation recomputes the avoidance region right away, so whatever binds to this
# object (CLI, HTTP adapter, tests) always reads a region that matches the current hazards.

import logging
import math
import time
from typing import Any, Callable, Sequence

from hazardroute.avoidance.guard import RouteFeasibility, check_route_feasible
from hazardroute.avoidance.validate import AvoidanceRegion, avoidance_request_options, compute_avoidance
from hazardroute.config.settings import Settings, get_settings
from hazardroute.core.geo import GeoPoint, MultiPolygon, Polyline, simplify_polyline
from hazardroute.hazards.shapes import (
    Hazard,
    HazardKind,
    HazardSet,
    buffered_point,
    drawn_circle,
    drawn_geometry,
    drawn_polygon,
    drawn_rectangle,
)
from hazardroute.tracking.feed import PositionFeed
from hazardroute.tracking.monitor import DeviationMonitor, DeviationState, PositionSample, SampleSource
from hazardroute.tracking.simulator import SimulatedMotion

logger = logging.getLogger(__name__)


def sample_waypoints(route: Sequence[GeoPoint], *, tolerance_m: float, max_points: int) -> list[GeoPoint]:
    """Simplify `route` and thin it to at most `max_points`, then drop both endpoints.

    Navigation apps take origin/destination separately and only a handful of via points.
    """
    if not route:
        return []
    simplified = simplify_polyline(route, tolerance_m)
    if len(simplified) > max_points:
        stride = math.ceil(len(simplified) / max_points)
        simplified = tuple(p for i, p in enumerate(simplified) if i % stride == 0)
    return list(simplified[1 : max(1, len(simplified) - 1)])


class PlanningSession:
    """Hazards, avoidance constraint, active route and deviation state for one user session."""

    def __init__(self, settings: Settings | None = None, *, clock: Callable[[], float] = time.monotonic):
        self.settings = settings or get_settings()
        self._clock = clock

        self.hazards = HazardSet()
        self._avoidance = AvoidanceRegion()

        self.monitor = DeviationMonitor(self.settings.monitor.off_route_threshold_m)
        self.feed = PositionFeed(self.monitor, debounce_seconds=self.settings.monitor.live_debounce_seconds)
        self._simulation: SimulatedMotion | None = None

    # ------------------------------------------------------------------ hazards

    def add_hazard(self, hazard: Hazard) -> str:
        hazard_id = self.hazards.add(hazard)
        logger.info("Added %s hazard %s (%d total)", hazard.kind, hazard_id, len(self.hazards))
        self._recompute_avoidance()
        return hazard_id

    def add_buffered_point(self, center: GeoPoint, radius_m: float | None = None) -> str:
        cfg = self.settings.hazards
        radius = cfg.default_buffer_m if radius_m is None else radius_m
        return self.add_hazard(
            buffered_point(center, radius, min_radius_m=cfg.min_buffer_m, steps=cfg.circle_steps)
        )

    def add_drawn_circle(self, center: GeoPoint, radius_m: float) -> str:
        cfg = self.settings.hazards
        return self.add_hazard(
            drawn_circle(center, radius_m, max_radius_m=cfg.max_drawn_circle_radius_m, steps=cfg.circle_steps)
        )

    def add_drawn_polygon(self, vertices: Sequence[GeoPoint]) -> str:
        return self.add_hazard(drawn_polygon(vertices))

    def add_drawn_rectangle(self, corner_a: GeoPoint, corner_b: GeoPoint) -> str:
        return self.add_hazard(drawn_rectangle(corner_a, corner_b))

    def add_drawn_geometry(self, polygons: MultiPolygon, kind: HazardKind = "polygon") -> str:
        return self.add_hazard(drawn_geometry(polygons, kind))

    def remove_hazard(self, hazard_id: str) -> bool:
        removed = self.hazards.remove(hazard_id)
        if removed:
            logger.info("Removed hazard %s (%d left)", hazard_id, len(self.hazards))
            self._recompute_avoidance()
        return removed

    def replace_hazard(self, hazard_id: str, hazard: Hazard) -> bool:
        """Swap the hazard stored under `hazard_id`; False (and nothing recomputed) if unknown."""
        replaced = self.hazards.replace(hazard_id, hazard)
        if replaced:
            logger.info("Replaced hazard %s with a %s hazard", hazard_id, hazard.kind)
            self._recompute_avoidance()
        return replaced

    def clear_hazards(self) -> None:
        self.hazards.clear()
        logger.info("Cleared all hazards")
        self._recompute_avoidance()

    def _recompute_avoidance(self) -> None:
        self._avoidance = compute_avoidance(self.hazards.snapshot(), self.settings.avoidance)

    @property
    def avoidance(self) -> AvoidanceRegion:
        return self._avoidance

    def build_avoidance_constraint(self) -> MultiPolygon | None:
        """The only artifact handed to the routing call; None means omit the option."""
        return self._avoidance.polygons

    def avoidance_request_options(self) -> dict[str, Any]:
        return avoidance_request_options(self._avoidance)

    def check_route(self, origin: GeoPoint, destination: GeoPoint) -> RouteFeasibility:
        return check_route_feasible(
            origin,
            destination,
            has_avoidance=self._avoidance.has_constraint,
            max_km_with_avoidance=self.settings.guard.max_route_km_with_avoidance,
        )

    # -------------------------------------------------------------------- route

    @property
    def route(self) -> Polyline | None:
        return self.monitor.route

    def on_new_route(self, polyline: Sequence[GeoPoint]) -> None:
        """Install a freshly computed route; any simulation on the previous one ends."""
        self._simulation = None
        self.feed.discard_pending()
        self.monitor.set_route(polyline)
        if self.monitor.route is None:
            logger.warning("Received a route with fewer than 2 points; deviation is undefined.")
        else:
            logger.info("New route with %d points", len(self.monitor.route))

    def clear_route(self) -> None:
        self._simulation = None
        self.feed.discard_pending()
        self.monitor.clear_route()

    def now(self) -> float:
        """Current time on the session clock (monotonic seconds)."""
        return self._clock()

    # ---------------------------------------------------------------- positions

    @property
    def deviation(self) -> DeviationState:
        return self.monitor.state

    def on_position_sample(
        self,
        point: GeoPoint,
        source: SampleSource = "live",
        timestamp: float | None = None,
    ) -> DeviationState:
        ts = self.now() if timestamp is None else float(timestamp)
        return self.feed.push(PositionSample(point=point, source=source, timestamp=ts))

    def flush_live(self, now: float | None = None) -> DeviationState:
        """Evaluate a debounced live sample once its window has passed (timer callback)."""
        return self.feed.poll(self.now() if now is None else now)

    def stop_tracking(self) -> DeviationState:
        return self.feed.stop()

    # --------------------------------------------------------------- simulation

    @property
    def simulation(self) -> SimulatedMotion | None:
        return self._simulation

    def start_simulation(self, speed_kmh: float | None = None) -> SimulatedMotion:
        route = self.monitor.route
        if route is None:
            raise ValueError("No active route to simulate")
        cfg = self.settings.simulation
        speed = cfg.default_speed_kmh if speed_kmh is None else speed_kmh
        motion = SimulatedMotion(route, speed, tick_seconds=cfg.tick_seconds, start_time=self.now())
        self.feed.stop()
        self._simulation = motion
        logger.info(
            "Simulation started: %.2f km at %.0f km/h (%d ticks)", motion.total_km, speed, motion.total_ticks
        )
        return motion

    def simulation_step(self) -> DeviationState | None:
        """Advance the simulation one tick; None when there is nothing (left) to simulate."""
        motion = self._simulation
        if motion is None:
            return None
        sample = motion.step()
        if sample is None:
            return None
        state = self.feed.push(sample)
        if motion.done:
            logger.info("Simulation reached the end of the route after %d ticks", motion.ticks)
        return state

    def stop_simulation(self) -> DeviationState:
        self._simulation = None
        return self.feed.stop()

    # ------------------------------------------------------------------ hand-off

    def handoff_waypoints(self, max_points: int | None = None) -> list[GeoPoint]:
        route = self.monitor.route
        if route is None:
            return []
        cfg = self.settings.handoff
        return sample_waypoints(
            route,
            tolerance_m=cfg.simplify_tolerance_m,
            max_points=cfg.max_waypoints if max_points is None else max_points,
        )
