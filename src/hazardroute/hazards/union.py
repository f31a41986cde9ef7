"""
Hazard aggregation: merge every hazard into one canonical MultiPolygon.

Overlapping and touching shapes are dissolved with GEOS (via shapely). When GEOS cannot produce
a polygonal union, the hazards are concatenated as-is; that may double-count overlapping area
but never loses any of it.
"""

from __future__ import annotations

import logging
from typing import Iterable

from shapely.errors import GEOSException
from shapely.geometry import GeometryCollection
from shapely.geometry import MultiPolygon as ShapelyMultiPolygon
from shapely.geometry import Polygon as ShapelyPolygon
from shapely.geometry.base import BaseGeometry
from shapely.geometry.polygon import orient
from shapely.ops import unary_union

from hazardroute.core.geo import GeoPoint, MultiPolygon, Polygon, normalize_ring
from hazardroute.hazards.shapes import Hazard

logger = logging.getLogger(__name__)


def _to_shapely(polygon: Polygon) -> ShapelyPolygon | None:
    outer = normalize_ring(polygon.outer)
    if outer is None:
        return None
    holes = [h for h in (normalize_ring(r) for r in polygon.holes) if h is not None]
    return ShapelyPolygon(
        [(p.lon, p.lat) for p in outer],
        [[(p.lon, p.lat) for p in h] for h in holes],
    )


def _ring_from_coords(coords: Iterable[tuple[float, ...]]) -> tuple[GeoPoint, ...]:
    return tuple(GeoPoint(lat=float(c[1]), lon=float(c[0])) for c in coords)


def _iter_polygons(geom: BaseGeometry) -> Iterable[ShapelyPolygon]:
    if geom.is_empty:
        return
    if isinstance(geom, ShapelyPolygon):
        yield geom
    elif isinstance(geom, (ShapelyMultiPolygon, GeometryCollection)):
        # Collections can carry lines/points from touching edges; only areas matter here.
        for part in geom.geoms:
            yield from _iter_polygons(part)


def _from_shapely(geom: BaseGeometry) -> MultiPolygon:
    out: list[Polygon] = []
    for poly in _iter_polygons(geom):
        poly = orient(poly, sign=1.0)
        out.append(
            Polygon(
                outer=_ring_from_coords(poly.exterior.coords),
                holes=tuple(_ring_from_coords(r.coords) for r in poly.interiors),
            )
        )
    return tuple(out)


def _dissolve(hazards: Iterable[Hazard]) -> MultiPolygon:
    parts = []
    for hazard in hazards:
        for polygon in hazard.geometry:
            shape = _to_shapely(polygon)
            if shape is not None and not shape.is_empty:
                parts.append(shape)
    if not parts:
        return ()
    return _from_shapely(unary_union(parts))


def concat_polygons(hazards: Iterable[Hazard]) -> MultiPolygon | None:
    """Collect every polygon with a usable outer ring, without merging overlaps."""
    out = tuple(
        polygon
        for hazard in hazards
        for polygon in hazard.geometry
        if len(polygon.outer) >= 4
    )
    return out or None


def union_hazards(hazards: Iterable[Hazard]) -> MultiPolygon | None:
    """Merge `hazards` into one MultiPolygon (None when there is nothing to avoid).

    A single hazard is returned unchanged. The result does not depend on input order in terms
    of covered area, though vertex order may differ.
    """
    items = list(hazards)
    if not items:
        return None
    if len(items) == 1:
        return items[0].geometry

    try:
        merged = _dissolve(items)
    except (GEOSException, ValueError) as exc:
        logger.warning("Hazard union failed (%s); using unmerged polygons.", exc)
        return concat_polygons(items)

    if not merged:
        logger.warning("Hazard union produced no area; using unmerged polygons.")
        return concat_polygons(items)
    return merged
