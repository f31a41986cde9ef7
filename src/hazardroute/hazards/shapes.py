"""
Hazard shapes and the per-session working set.

A hazard is always stored as polygon geometry: buffered points and drawn circles are realized
as 64-gons at creation time, so the aggregator only ever sees polygons.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Iterator, Literal, Sequence

from hazardroute.core.geo import GeoPoint, MultiPolygon, Polygon, buffer_circle

HazardOrigin = Literal["buffered_point", "drawn_shape"]
HazardKind = Literal["point", "polygon", "rectangle", "circle"]


@dataclass(frozen=True)
class Hazard:
    """One user-designated area to avoid."""

    geometry: MultiPolygon
    origin: HazardOrigin
    kind: HazardKind
    center: GeoPoint | None = None
    radius_m: float | None = None


def buffered_point(center: GeoPoint, radius_m: float, *, min_radius_m: float = 1.0, steps: int = 64) -> Hazard:
    """Buffer a single clicked point into a circular hazard (radius clamped to `min_radius_m`)."""
    radius = max(float(min_radius_m), float(radius_m))
    return Hazard(
        geometry=(buffer_circle(center, radius, steps),),
        origin="buffered_point",
        kind="point",
        center=center,
        radius_m=radius,
    )


def drawn_circle(center: GeoPoint, radius_m: float, *, max_radius_m: float, steps: int = 64) -> Hazard:
    """Realize a drawn circle as a polygon; circles wider than `max_radius_m` are refused."""
    radius = float(radius_m)
    if radius <= 0:
        raise ValueError("Circle radius must be > 0")
    if radius > max_radius_m:
        raise ValueError(
            f"Circle too large (>{max_radius_m / 1000:g} km radius). Please draw a smaller hazard."
        )
    return Hazard(
        geometry=(buffer_circle(center, radius, steps),),
        origin="drawn_shape",
        kind="circle",
        center=center,
        radius_m=radius,
    )


def drawn_polygon(vertices: Sequence[GeoPoint]) -> Hazard:
    """Finish a freehand polygon; needs at least 3 distinct vertices."""
    points = list(vertices)
    if points and points[0] == points[-1]:
        points = points[:-1]
    if len(set(points)) < 3:
        raise ValueError("A hazard polygon needs at least 3 distinct vertices")
    ring = tuple(points) + (points[0],)
    return Hazard(geometry=(Polygon(outer=ring),), origin="drawn_shape", kind="polygon")


def drawn_rectangle(corner_a: GeoPoint, corner_b: GeoPoint) -> Hazard:
    """Axis-aligned rectangle spanned by two opposite corners."""
    south, north = sorted((corner_a.lat, corner_b.lat))
    west, east = sorted((corner_a.lon, corner_b.lon))
    if south == north or west == east:
        raise ValueError("Rectangle corners must differ in both latitude and longitude")
    ring = (
        GeoPoint(lat=south, lon=west),
        GeoPoint(lat=south, lon=east),
        GeoPoint(lat=north, lon=east),
        GeoPoint(lat=north, lon=west),
        GeoPoint(lat=south, lon=west),
    )
    return Hazard(geometry=(Polygon(outer=ring),), origin="drawn_shape", kind="rectangle")


def drawn_geometry(polygons: MultiPolygon, kind: HazardKind = "polygon") -> Hazard:
    """Wrap already-built polygon geometry (e.g. GeoJSON from a drawing tool) as a hazard."""
    if not polygons:
        raise ValueError("Hazard geometry is empty")
    return Hazard(geometry=tuple(polygons), origin="drawn_shape", kind=kind)


class HazardSet:
    """Mutable, insertion-ordered collection of hazards keyed by opaque ids."""

    def __init__(self) -> None:
        self._items: dict[str, Hazard] = {}

    def add(self, hazard: Hazard) -> str:
        hazard_id = uuid.uuid4().hex[:12]
        self._items[hazard_id] = hazard
        return hazard_id

    def remove(self, hazard_id: str) -> bool:
        return self._items.pop(hazard_id, None) is not None

    def replace(self, hazard_id: str, hazard: Hazard) -> bool:
        """Store `hazard` under an existing id, keeping its position in the order."""
        if hazard_id not in self._items:
            return False
        self._items[hazard_id] = hazard
        return True

    def clear(self) -> None:
        self._items.clear()

    def get(self, hazard_id: str) -> Hazard | None:
        return self._items.get(hazard_id)

    def snapshot(self) -> tuple[Hazard, ...]:
        """Immutable view of the current hazards, in insertion order."""
        return tuple(self._items.values())

    def items(self) -> list[tuple[str, Hazard]]:
        return list(self._items.items())

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Hazard]:
        return iter(self.snapshot())
