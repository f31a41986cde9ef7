"""
Geospatial primitives.

Everything here works directly on WGS84 lat/lon:
- areas, spans and point-to-point distances are ellipsoidal (pyproj `Geod`),
- point-to-route distances use spherical cross-track math (small-distance regime),
- simplification uses a local equirectangular projection.

Rings are tuples of `GeoPoint` with the first point repeated at the end.
"""

from __future__ import annotations

import math
from bisect import bisect_right
from dataclasses import dataclass
from typing import Sequence

from pyproj import Geod

EARTH_RADIUS_M = 6_371_008.8
_GEOD = Geod(ellps="WGS84")


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"latitude out of range: {self.lat}")
        if not -180.0 <= self.lon <= 180.0:
            raise ValueError(f"longitude out of range: {self.lon}")


Ring = tuple[GeoPoint, ...]


@dataclass(frozen=True)
class Polygon:
    """One outer ring plus optional holes."""

    outer: Ring
    holes: tuple[Ring, ...] = ()


MultiPolygon = tuple[Polygon, ...]
Polyline = tuple[GeoPoint, ...]


def normalize_ring(ring: Sequence[GeoPoint]) -> Ring | None:
    """Close `ring` if needed; return None when fewer than 4 points remain."""
    points = tuple(ring)
    if not points:
        return None
    if points[0] != points[-1]:
        points = points + (points[0],)
    if len(points) < 4:
        return None
    return points


def geodesic_distance_m(a: GeoPoint, b: GeoPoint) -> float:
    """Ellipsoidal (WGS84) distance in meters between two points."""
    _, _, dist = _GEOD.inv(a.lon, a.lat, b.lon, b.lat)
    return float(dist)


def _ring_area_m2(ring: Ring) -> float:
    area, _ = _GEOD.polygon_area_perimeter([p.lon for p in ring], [p.lat for p in ring])
    return abs(float(area))


def polygon_area_km2(polygon: Polygon) -> float:
    """Geodesic area of `polygon` (outer minus holes) in km²."""
    area = _ring_area_m2(polygon.outer) - sum(_ring_area_m2(h) for h in polygon.holes)
    return max(0.0, area) / 1_000_000


def bbox_span_km(polygon: Polygon) -> tuple[float, float]:
    """Return (width_km, height_km) of the outer ring's bounding box.

    Width is measured along the north edge, height along the west edge.
    """
    lats = [p.lat for p in polygon.outer]
    lons = [p.lon for p in polygon.outer]
    min_lat, max_lat = min(lats), max(lats)
    min_lon, max_lon = min(lons), max(lons)
    _, _, width = _GEOD.inv(min_lon, max_lat, max_lon, max_lat)
    _, _, height = _GEOD.inv(min_lon, min_lat, min_lon, max_lat)
    return float(width) / 1000, float(height) / 1000


def buffer_circle(center: GeoPoint, radius_m: float, steps: int = 64) -> Polygon:
    """Approximate a circle around `center` with a closed, counter-clockwise `steps`-gon."""
    if radius_m <= 0:
        raise ValueError("radius_m must be > 0")
    if steps < 3:
        raise ValueError("steps must be >= 3")
    azimuths = [-i * 360.0 / steps for i in range(steps)]
    lons, lats, _ = _GEOD.fwd(
        [center.lon] * steps, [center.lat] * steps, azimuths, [float(radius_m)] * steps
    )
    points = tuple(GeoPoint(lat=float(lat), lon=float(lon)) for lon, lat in zip(lons, lats))
    return Polygon(outer=points + (points[0],))


def _central_angle(a: GeoPoint, b: GeoPoint) -> float:
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    dlat = lat2 - lat1
    dlon = math.radians(b.lon - a.lon)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * math.asin(min(1.0, math.sqrt(h)))


def _initial_bearing(a: GeoPoint, b: GeoPoint) -> float:
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    dlon = math.radians(b.lon - a.lon)
    y = math.sin(dlon) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(dlon)
    return math.atan2(y, x)


def point_to_segment_distance_m(point: GeoPoint, start: GeoPoint, end: GeoPoint) -> float:
    """Distance from `point` to the great-circle segment `start`-`end`, in meters."""
    d13 = _central_angle(start, point)
    if d13 == 0:
        return 0.0
    d12 = _central_angle(start, end)
    if d12 == 0:
        return d13 * EARTH_RADIUS_M

    dtheta = _initial_bearing(start, point) - _initial_bearing(start, end)
    cross = math.asin(max(-1.0, min(1.0, math.sin(d13) * math.sin(dtheta))))
    # Napier's rule on the right spherical triangle: tan(along) = tan(d13) * cos(dtheta).
    along = math.atan2(math.sin(d13) * math.cos(dtheta), math.cos(d13))

    if along <= 0:
        return d13 * EARTH_RADIUS_M
    if along >= d12:
        return _central_angle(end, point) * EARTH_RADIUS_M
    return abs(cross) * EARTH_RADIUS_M


def point_to_polyline_distance_m(point: GeoPoint, polyline: Sequence[GeoPoint]) -> float:
    """Minimum distance from `point` to any segment of `polyline` (0 when undefined)."""
    if len(polyline) < 2:
        return 0.0
    return min(
        point_to_segment_distance_m(point, polyline[i - 1], polyline[i])
        for i in range(1, len(polyline))
    )


def cumulative_lengths_m(polyline: Sequence[GeoPoint]) -> list[float]:
    """Cumulative geodesic distance at each vertex (first entry is 0)."""
    out = [0.0]
    for i in range(1, len(polyline)):
        out.append(out[-1] + geodesic_distance_m(polyline[i - 1], polyline[i]))
    return out


def polyline_length_m(polyline: Sequence[GeoPoint]) -> float:
    if len(polyline) < 2:
        return 0.0
    return cumulative_lengths_m(polyline)[-1]


def point_along_polyline(
    polyline: Sequence[GeoPoint],
    distance_m: float,
    *,
    cumulative: Sequence[float] | None = None,
) -> GeoPoint:
    """Locate the point `distance_m` along `polyline` by arc length.

    Within a segment the point is placed on the geodesic between its vertices, so it lies on
    the same curve that `point_to_polyline_distance_m` measures against.
    Distances past the end return the last vertex itself (no overshoot).
    """
    if not polyline:
        raise ValueError("polyline is empty")
    if len(polyline) == 1 or distance_m <= 0:
        return polyline[0]
    cum = list(cumulative) if cumulative is not None else cumulative_lengths_m(polyline)
    if distance_m >= cum[-1]:
        return polyline[-1]

    i = bisect_right(cum, distance_m)
    a, b = polyline[i - 1], polyline[i]
    seg = cum[i] - cum[i - 1]
    if seg <= 0:
        return b
    azimuth, _, _ = _GEOD.inv(a.lon, a.lat, b.lon, b.lat)
    lon, lat, _ = _GEOD.fwd(a.lon, a.lat, azimuth, distance_m - cum[i - 1])
    return GeoPoint(lat=float(lat), lon=float(lon))


def _to_xy_m(p: GeoPoint, *, lat0_deg: float) -> tuple[float, float]:
    # Equirectangular projection around a reference latitude (good enough for route-scale tolerances).
    scale = math.pi * EARTH_RADIUS_M / 180.0
    return p.lon * scale * math.cos(math.radians(lat0_deg)), p.lat * scale


def _planar_segment_distance(p: tuple[float, float], a: tuple[float, float], b: tuple[float, float]) -> float:
    dx, dy = b[0] - a[0], b[1] - a[1]
    seg2 = dx * dx + dy * dy
    if seg2 == 0:
        return math.hypot(p[0] - a[0], p[1] - a[1])
    t = max(0.0, min(1.0, ((p[0] - a[0]) * dx + (p[1] - a[1]) * dy) / seg2))
    return math.hypot(p[0] - (a[0] + t * dx), p[1] - (a[1] + t * dy))


def simplify_polyline(polyline: Sequence[GeoPoint], tolerance_m: float) -> Polyline:
    """Douglas-Peucker simplification; endpoints are always kept.

    Only meant for hand-off sampling. Routing and deviation checks use the full polyline.
    """
    points = tuple(polyline)
    if len(points) < 3 or tolerance_m <= 0:
        return points

    lat0 = sum(p.lat for p in points) / len(points)
    xy = [_to_xy_m(p, lat0_deg=lat0) for p in points]
    keep = [False] * len(points)
    keep[0] = keep[-1] = True

    stack = [(0, len(points) - 1)]
    while stack:
        first, last = stack.pop()
        best_i, best_d = -1, -1.0
        for i in range(first + 1, last):
            d = _planar_segment_distance(xy[i], xy[first], xy[last])
            if d > best_d:
                best_i, best_d = i, d
        if best_i != -1 and best_d > tolerance_m:
            keep[best_i] = True
            stack.append((first, best_i))
            stack.append((best_i, last))

    return tuple(p for p, k in zip(points, keep) if k)
