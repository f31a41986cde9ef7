"""
GeoJSON encoding at the boundary.

The core works with `GeoPoint` / `Polygon` tuples; map and routing collaborators speak GeoJSON
(`[lon, lat]` positions). These helpers convert in both directions and raise `ValueError` on
payloads that are not Polygon/MultiPolygon/LineString shaped.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from hazardroute.core.geo import GeoPoint, MultiPolygon, Polygon, Polyline


def point_from_position(position: Sequence[float]) -> GeoPoint:
    """Parse a GeoJSON position (`[lon, lat]` or `[lon, lat, alt]`)."""
    if not isinstance(position, Sequence) or isinstance(position, str) or len(position) < 2:
        raise ValueError(f"Invalid GeoJSON position: {position!r}")
    return GeoPoint(lat=float(position[1]), lon=float(position[0]))


def _ring_from_positions(positions: Sequence[Sequence[float]]) -> tuple[GeoPoint, ...]:
    return tuple(point_from_position(p) for p in positions)


def polygon_from_coordinates(coordinates: Sequence[Sequence[Sequence[float]]]) -> Polygon:
    """Build a Polygon from GeoJSON Polygon `coordinates` (outer ring first)."""
    if not coordinates:
        raise ValueError("Polygon coordinates must contain at least an outer ring")
    outer = _ring_from_positions(coordinates[0])
    holes = tuple(_ring_from_positions(r) for r in coordinates[1:])
    return Polygon(outer=outer, holes=holes)


def _unwrap_feature(obj: Mapping[str, Any]) -> Mapping[str, Any]:
    if obj.get("type") == "Feature":
        geometry = obj.get("geometry")
        if not isinstance(geometry, Mapping):
            raise ValueError("Feature has no geometry")
        return geometry
    return obj


def hazard_geometry_from_geojson(obj: Mapping[str, Any]) -> MultiPolygon:
    """Parse a Polygon/MultiPolygon geometry (or a Feature wrapping one) into a MultiPolygon."""
    geometry = _unwrap_feature(obj)
    gtype = geometry.get("type")
    coordinates = geometry.get("coordinates")
    if gtype == "Polygon":
        return (polygon_from_coordinates(coordinates or []),)
    if gtype == "MultiPolygon":
        return tuple(polygon_from_coordinates(poly) for poly in coordinates or [])
    raise ValueError(f"Unsupported hazard geometry type: {gtype!r}")


def linestring_from_geojson(obj: Mapping[str, Any]) -> Polyline:
    """Parse a route LineString.

    Accepts a bare geometry, a Feature, or a FeatureCollection whose first feature is the route
    (the shape routing providers return from their GeoJSON endpoints).
    """
    if obj.get("type") == "FeatureCollection":
        features = obj.get("features") or []
        if not features:
            raise ValueError("FeatureCollection has no features")
        obj = features[0]
    geometry = _unwrap_feature(obj)
    if geometry.get("type") != "LineString":
        raise ValueError(f"Expected a LineString route, got {geometry.get('type')!r}")
    return _ring_from_positions(geometry.get("coordinates") or [])


def _ring_to_positions(ring: Sequence[GeoPoint]) -> list[list[float]]:
    return [[p.lon, p.lat] for p in ring]


def polygon_to_coordinates(polygon: Polygon) -> list[list[list[float]]]:
    return [_ring_to_positions(polygon.outer), *(_ring_to_positions(h) for h in polygon.holes)]


def multipolygon_to_geojson(polygons: MultiPolygon) -> dict[str, Any]:
    return {
        "type": "MultiPolygon",
        "coordinates": [polygon_to_coordinates(p) for p in polygons],
    }


def polyline_to_geojson(polyline: Sequence[GeoPoint]) -> dict[str, Any]:
    return {"type": "LineString", "coordinates": _ring_to_positions(polyline)}
