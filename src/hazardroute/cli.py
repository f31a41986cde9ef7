"""
HazardRoute CLI entrypoint.

This CLI is intended for quick local checks of hazard files and routes without the map UI.
It delegates all logic to `hazardroute.planner.session.PlanningSession`.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

from hazardroute.avoidance.explain import dropped_line, feasibility_message
from hazardroute.avoidance.guard import check_route_feasible
from hazardroute.config.settings import get_settings
from hazardroute.core.env import load_dotenv_if_present
from hazardroute.core.geo import GeoPoint
from hazardroute.core.geojson import (
    hazard_geometry_from_geojson,
    linestring_from_geojson,
    point_from_position,
)
from hazardroute.core.logging import configure_logging
from hazardroute.planner.session import PlanningSession


def _read_geojson(path: str) -> dict[str, Any]:
    p = Path(path).expanduser()
    return json.loads(p.read_text(encoding="utf-8"))


def _load_hazards(session: PlanningSession, path: str) -> int:
    """Add every hazard in a GeoJSON file; Point features become buffered points.

    A Point feature may carry `properties.radius_m`; otherwise the configured default buffer applies.
    """
    data = _read_geojson(path)
    features = data.get("features") if data.get("type") == "FeatureCollection" else [data]
    count = 0
    for feature in features or []:
        geometry = feature.get("geometry") if feature.get("type") == "Feature" else feature
        if isinstance(geometry, dict) and geometry.get("type") == "Point":
            props = feature.get("properties") or {}
            radius = props.get("radius_m")
            session.add_buffered_point(
                point_from_position(geometry.get("coordinates") or []),
                float(radius) if radius is not None else None,
            )
        else:
            session.add_drawn_geometry(hazard_geometry_from_geojson(feature))
        count += 1
    return count


def _cmd_avoid(args: argparse.Namespace) -> int:
    """Handle the `avoid` subcommand."""
    session = PlanningSession(get_settings())
    count = _load_hazards(session, args.file)
    region = session.avoidance

    if args.json:
        out = {
            "hazard_count": count,
            "avoid_polygons": region.to_geojson(),
            "dropped": [d.as_dict() for d in region.dropped],
        }
        print(json.dumps(out, ensure_ascii=False, indent=2))
        return 0

    pieces = len(region.polygons) if region.polygons else 0
    print(f"Hazards: {count}  accepted polygons: {pieces}  dropped: {len(region.dropped)}")
    for i, d in enumerate(region.dropped, start=1):
        print(f"  - {dropped_line(i, d)} ({', '.join(d.reasons)})")
    if not region.has_constraint:
        print("No avoidance constraint; the routing request will not include avoid_polygons.")
    return 0


def _cmd_check_route(args: argparse.Namespace) -> int:
    """Handle the `check-route` subcommand; exit status 2 means the request would be refused."""
    session = PlanningSession(get_settings())
    if args.hazards:
        _load_hazards(session, args.hazards)

    origin = GeoPoint(lat=float(args.origin_lat), lon=float(args.origin_lon))
    destination = GeoPoint(lat=float(args.dest_lat), lon=float(args.dest_lon))
    check = check_route_feasible(
        origin,
        destination,
        has_avoidance=args.with_avoidance or session.avoidance.has_constraint,
        max_km_with_avoidance=session.settings.guard.max_route_km_with_avoidance,
    )

    print(feasibility_message(check))
    return 0 if check.ok else 2


def _cmd_simulate(args: argparse.Namespace) -> int:
    """Handle the `simulate` subcommand."""
    session = PlanningSession(get_settings())
    session.on_new_route(linestring_from_geojson(_read_geojson(args.route_file)))
    motion = session.start_simulation(args.speed_kmh)

    rows: list[dict[str, Any]] = []
    while (state := session.simulation_step()) is not None:
        row = {
            "tick": motion.ticks,
            "lat": state.point.lat if state.point else None,
            "lon": state.point.lon if state.point else None,
            "status": state.status,
            "distance_m": round(state.distance_m, 2),
        }
        if args.json:
            rows.append(row)
        else:
            print(
                f"{row['tick']:>5}/{motion.total_ticks}  {row['lat']:.6f},{row['lon']:.6f}"
                f"  {row['status']}  {row['distance_m']:.1f} m"
            )

    if args.json:
        out = {"total_km": motion.total_km, "total_ticks": motion.total_ticks, "samples": rows}
        print(json.dumps(out, ensure_ascii=False, indent=2))
    else:
        print(f"Route length {motion.total_km:.3f} km, {motion.total_ticks} ticks at {motion.speed_kmh:g} km/h")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the HazardRoute CLI."""
    parser = argparse.ArgumentParser(prog="hazardroute")
    sub = parser.add_subparsers(dest="command", required=True)

    avoid = sub.add_parser("avoid", help="Merge and validate hazards from a GeoJSON file.")
    avoid.add_argument("file", help="GeoJSON Feature/FeatureCollection/geometry with hazard shapes")
    avoid.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    avoid.set_defaults(func=_cmd_avoid)

    check = sub.add_parser("check-route", help="Pre-flight route length check (no routing call).")
    check.add_argument("--origin-lat", required=True, type=float)
    check.add_argument("--origin-lon", required=True, type=float)
    check.add_argument("--dest-lat", required=True, type=float)
    check.add_argument("--dest-lon", required=True, type=float)
    check.add_argument("--hazards", default=None, help="Optional GeoJSON hazard file to build avoidance from")
    check.add_argument(
        "--with-avoidance", action="store_true", help="Check as if an avoidance constraint were present"
    )
    check.set_defaults(func=_cmd_check_route)

    sim = sub.add_parser("simulate", help="Drive the deviation monitor along a GeoJSON route.")
    sim.add_argument("route_file", help="GeoJSON LineString (bare, Feature or FeatureCollection)")
    sim.add_argument("--speed-kmh", type=float, default=None, help="Defaults to simulation.default_speed_kmh")
    sim.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    sim.set_defaults(func=_cmd_simulate)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m hazardroute.cli`."""
    load_dotenv_if_present()
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
