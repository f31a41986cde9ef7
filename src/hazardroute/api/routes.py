"""
API routes.

Endpoints (one in-process planning session):
- `GET/POST /api/session`, `GET /api/settings`: session lifecycle and effective settings.
- `/api/hazards...`: add/replace/remove/clear hazards; every edit returns the recomputed avoidance region.
- `GET /api/avoidance`: the avoid-polygons constraint to put in the routing request.
- `/api/route...`: pre-flight check, install/clear the provider's route, hand-off waypoints.
- `/api/position`, `/api/deviation`, `/api/tracking/stop`: live tracking.
- `/api/simulation...`: simulated movement along the active route.

All handlers are `async def` so the session is only ever touched from the event loop thread.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException

from hazardroute.avoidance.explain import dropped_summary, feasibility_message
from hazardroute.config.overrides import apply_settings_overrides
from hazardroute.config.settings import get_settings
from hazardroute.core.geo import polyline_length_m
from hazardroute.core.geojson import (
    hazard_geometry_from_geojson,
    linestring_from_geojson,
    multipolygon_to_geojson,
    polyline_to_geojson,
)
from hazardroute.domain.models import (
    AvoidanceOut,
    DeviationOut,
    DroppedHazardOut,
    GeoPoint,
    HazardMutationOut,
    HazardOut,
    HazardPointIn,
    HazardShapeIn,
    PositionIn,
    RouteCheckIn,
    RouteCheckOut,
    RouteIn,
    RouteOut,
    SessionIn,
    SimulationOut,
    SimulationStartIn,
    WaypointsOut,
)
from hazardroute.hazards.shapes import Hazard, drawn_circle, drawn_geometry, drawn_polygon, drawn_rectangle
from hazardroute.planner.session import PlanningSession
from hazardroute.tracking.monitor import DeviationState
from hazardroute.tracking.runner import SimulationRunner, schedule_live_flush

router = APIRouter()

_state: dict[str, Any] = {}


def _session() -> PlanningSession:
    session = _state.get("session")
    if session is None:
        session = PlanningSession(get_settings())
        _state["session"] = session
        _state["runner"] = SimulationRunner(session)
    return session


def _runner() -> SimulationRunner:
    _session()
    return _state["runner"]


def reset_session(overrides: dict[str, Any] | None = None) -> PlanningSession:
    """Discard the current session (stopping any simulation) and start a fresh one."""
    runner = _state.get("runner")
    if runner is not None and runner.running:
        runner.stop()
    settings = apply_settings_overrides(get_settings(), overrides)
    session = PlanningSession(settings)
    _state["session"] = session
    _state["runner"] = SimulationRunner(session)
    return session


def _bad_request(e: ValueError) -> HTTPException:
    return HTTPException(status_code=400, detail={"code": "VALIDATION_ERROR", "message": str(e)})


def _not_found(hazard_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail={"code": "NOT_FOUND", "message": f"Unknown hazard: {hazard_id}"})


def _hazard_out(hazard_id: str, hazard: Hazard) -> HazardOut:
    return HazardOut(
        id=hazard_id,
        kind=hazard.kind,
        origin=hazard.origin,
        geometry=multipolygon_to_geojson(hazard.geometry),
        center=GeoPoint.from_core(hazard.center) if hazard.center else None,
        radius_m=hazard.radius_m,
    )


def _avoidance_out(session: PlanningSession) -> AvoidanceOut:
    region = session.avoidance
    return AvoidanceOut(
        hazard_count=len(session.hazards),
        avoid_polygons=region.to_geojson(),
        dropped=[DroppedHazardOut(**d.as_dict()) for d in region.dropped],
        notice=dropped_summary(region.dropped),
    )


def _deviation_out(state: DeviationState) -> DeviationOut:
    return DeviationOut(
        status=state.status,
        distance_m=state.distance_m,
        off_route=state.off_route,
        position=GeoPoint.from_core(state.point) if state.point else None,
        source=state.source,
        timestamp=state.timestamp,
    )


def _route_out(session: PlanningSession) -> RouteOut:
    route = session.route
    if route is None:
        return RouteOut(points=0, length_km=0.0, active=False)
    return RouteOut(
        points=len(route),
        length_km=polyline_length_m(route) / 1000,
        active=True,
        geometry=polyline_to_geojson(route),
    )


def _simulation_out(session: PlanningSession, runner: SimulationRunner) -> SimulationOut:
    motion = session.simulation
    if motion is None:
        return SimulationOut(running=False)
    return SimulationOut(
        running=runner.running and not motion.done,
        total_km=motion.total_km,
        speed_kmh=motion.speed_kmh,
        tick_seconds=motion.tick_seconds,
        total_ticks=motion.total_ticks,
        ticks=motion.ticks,
    )


@router.get("/api/settings")
async def get_session_settings() -> dict:
    """Return the effective settings of the current session."""
    return _session().settings.model_dump(mode="json")


@router.post("/api/session")
async def post_session(body: SessionIn) -> dict:
    """Start a new session, optionally with tuned limits/thresholds (`settings_overrides`)."""
    try:
        session = reset_session(body.settings_overrides)
    except ValueError as e:
        raise _bad_request(e) from e
    return session.settings.model_dump(mode="json")


@router.get("/api/hazards", response_model=list[HazardOut])
async def get_hazards() -> list[HazardOut]:
    return [_hazard_out(hid, h) for hid, h in _session().hazards.items()]


@router.post("/api/hazards/point", response_model=HazardMutationOut)
async def post_hazard_point(body: HazardPointIn) -> HazardMutationOut:
    """Add a buffered hazard point."""
    session = _session()
    try:
        hazard_id = session.add_buffered_point(body.center.to_core(), body.radius_m)
    except ValueError as e:
        raise _bad_request(e) from e
    return HazardMutationOut(
        hazard=_hazard_out(hazard_id, session.hazards.get(hazard_id)),
        avoidance=_avoidance_out(session),
    )


def _hazard_from_shape(session: PlanningSession, body: HazardShapeIn) -> Hazard:
    if body.kind == "circle":
        cfg = session.settings.hazards
        return drawn_circle(
            body.center.to_core(),
            body.radius_m,
            max_radius_m=cfg.max_drawn_circle_radius_m,
            steps=cfg.circle_steps,
        )
    if body.kind == "rectangle":
        a, b = body.corners
        return drawn_rectangle(a.to_core(), b.to_core())
    if body.geometry is not None:
        return drawn_geometry(hazard_geometry_from_geojson(body.geometry))
    return drawn_polygon([v.to_core() for v in body.vertices])


@router.post("/api/hazards/shape", response_model=HazardMutationOut)
async def post_hazard_shape(body: HazardShapeIn) -> HazardMutationOut:
    """Add a drawn polygon, rectangle or circle."""
    session = _session()
    try:
        hazard_id = session.add_hazard(_hazard_from_shape(session, body))
    except ValueError as e:
        raise _bad_request(e) from e
    return HazardMutationOut(
        hazard=_hazard_out(hazard_id, session.hazards.get(hazard_id)),
        avoidance=_avoidance_out(session),
    )


@router.put("/api/hazards/{hazard_id}", response_model=HazardMutationOut)
async def put_hazard(hazard_id: str, body: HazardShapeIn) -> HazardMutationOut:
    """Replace an existing hazard with a re-drawn shape, keeping its id."""
    session = _session()
    if session.hazards.get(hazard_id) is None:
        raise _not_found(hazard_id)
    try:
        hazard = _hazard_from_shape(session, body)
    except ValueError as e:
        raise _bad_request(e) from e
    session.replace_hazard(hazard_id, hazard)
    return HazardMutationOut(
        hazard=_hazard_out(hazard_id, session.hazards.get(hazard_id)),
        avoidance=_avoidance_out(session),
    )


@router.delete("/api/hazards/{hazard_id}", response_model=HazardMutationOut)
async def delete_hazard(hazard_id: str) -> HazardMutationOut:
    session = _session()
    if not session.remove_hazard(hazard_id):
        raise _not_found(hazard_id)
    return HazardMutationOut(avoidance=_avoidance_out(session))


@router.delete("/api/hazards", response_model=HazardMutationOut)
async def delete_hazards() -> HazardMutationOut:
    session = _session()
    session.clear_hazards()
    return HazardMutationOut(avoidance=_avoidance_out(session))


@router.get("/api/avoidance", response_model=AvoidanceOut)
async def get_avoidance() -> AvoidanceOut:
    return _avoidance_out(_session())


@router.post("/api/route/check", response_model=RouteCheckOut)
async def post_route_check(body: RouteCheckIn) -> RouteCheckOut:
    """Pre-flight a routing request; `options` is what to send along when the check passes."""
    session = _session()
    check = session.check_route(body.origin.to_core(), body.destination.to_core())
    return RouteCheckOut(
        status=check.status,
        estimated_km=check.estimated_km,
        limit_km=check.limit_km,
        has_avoidance=session.avoidance.has_constraint,
        message=feasibility_message(check),
        options=session.avoidance_request_options() if check.ok else {},
    )


@router.put("/api/route", response_model=RouteOut)
async def put_route(body: RouteIn) -> RouteOut:
    """Install the route returned by the routing provider."""
    session = _session()
    runner = _runner()
    try:
        polyline = linestring_from_geojson(body.route)
    except ValueError as e:
        raise _bad_request(e) from e
    if runner.running:
        runner.stop()
    session.on_new_route(polyline)
    return _route_out(session)


@router.get("/api/route", response_model=RouteOut)
async def get_route() -> RouteOut:
    return _route_out(_session())


@router.delete("/api/route", response_model=DeviationOut)
async def delete_route() -> DeviationOut:
    """Forget the route (also used when the routing call failed)."""
    session = _session()
    runner = _runner()
    if runner.running:
        runner.stop()
    session.clear_route()
    return _deviation_out(session.deviation)


@router.get("/api/route/handoff", response_model=WaypointsOut)
async def get_route_handoff(max_points: int | None = None) -> WaypointsOut:
    """Sparse via points along the active route for a navigation-app hand-off."""
    waypoints = _session().handoff_waypoints(max_points)
    return WaypointsOut(waypoints=[GeoPoint.from_core(p) for p in waypoints])


@router.post("/api/position", response_model=DeviationOut)
async def post_position(body: PositionIn) -> DeviationOut:
    """Feed one position fix; live fixes are debounced, so the state may lag by one window."""
    session = _session()
    state = session.on_position_sample(body.position.to_core(), body.source)
    if body.source == "live":
        schedule_live_flush(session)
    return _deviation_out(state)


@router.get("/api/deviation", response_model=DeviationOut)
async def get_deviation() -> DeviationOut:
    return _deviation_out(_session().deviation)


@router.post("/api/tracking/stop", response_model=DeviationOut)
async def post_tracking_stop() -> DeviationOut:
    return _deviation_out(_session().stop_tracking())


@router.get("/api/simulation", response_model=SimulationOut)
async def get_simulation() -> SimulationOut:
    return _simulation_out(_session(), _runner())


@router.post("/api/simulation/start", response_model=SimulationOut)
async def post_simulation_start(body: SimulationStartIn) -> SimulationOut:
    session = _session()
    runner = _runner()
    try:
        runner.start(body.speed_kmh)
    except ValueError as e:
        raise _bad_request(e) from e
    return _simulation_out(session, runner)


@router.post("/api/simulation/stop", response_model=DeviationOut)
async def post_simulation_stop() -> DeviationOut:
    runner = _runner()
    runner.stop()
    return _deviation_out(_session().deviation)
