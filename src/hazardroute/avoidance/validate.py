"""
Avoidance validation against the routing provider's size limits.

Providers reject avoid-polygons that are too large (area or bounding box). Instead of failing the
whole request, oversized pieces are dropped and reported, and the rest is submitted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Literal

from hazardroute.config.settings import AvoidanceSettings
from hazardroute.core.geo import MultiPolygon, Polygon, bbox_span_km, normalize_ring, polygon_area_km2
from hazardroute.core.geojson import multipolygon_to_geojson
from hazardroute.hazards.shapes import Hazard
from hazardroute.hazards.union import union_hazards

logger = logging.getLogger(__name__)

DropReason = Literal["area", "width", "height"]


@dataclass(frozen=True)
class DroppedHazard:
    """A merged polygon that exceeded the provider limits."""

    index: int
    area_km2: float
    width_km: float
    height_km: float
    reasons: tuple[DropReason, ...]

    def as_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "area_km2": self.area_km2,
            "width_km": self.width_km,
            "height_km": self.height_km,
            "reasons": list(self.reasons),
        }


@dataclass(frozen=True)
class AvoidanceRegion:
    """Validated avoidance constraint plus everything that had to be left out."""

    polygons: MultiPolygon | None = None
    dropped: tuple[DroppedHazard, ...] = field(default_factory=tuple)

    @property
    def has_constraint(self) -> bool:
        return bool(self.polygons)

    def to_geojson(self) -> dict[str, Any] | None:
        return multipolygon_to_geojson(self.polygons) if self.polygons else None


def _drop_reasons(
    area_km2: float, width_km: float, height_km: float, limits: AvoidanceSettings
) -> tuple[DropReason, ...]:
    reasons: list[DropReason] = []
    if area_km2 > limits.max_area_km2:
        reasons.append("area")
    if width_km > limits.max_bounding_side_km:
        reasons.append("width")
    if height_km > limits.max_bounding_side_km:
        reasons.append("height")
    return tuple(reasons)


def validate_avoidance(merged: MultiPolygon | None, limits: AvoidanceSettings) -> AvoidanceRegion:
    """Split `merged` into accepted polygons and dropped (oversized) ones.

    Polygons whose outer ring collapses below 4 points are skipped silently: they never
    described an area, so they are not reported as dropped either.
    """
    if not merged:
        return AvoidanceRegion()

    accepted: list[Polygon] = []
    dropped: list[DroppedHazard] = []
    for index, polygon in enumerate(merged):
        outer = normalize_ring(polygon.outer)
        if outer is None:
            continue
        candidate = Polygon(outer=outer, holes=polygon.holes)

        area = polygon_area_km2(candidate)
        width, height = bbox_span_km(candidate)
        reasons = _drop_reasons(area, width, height, limits)
        if reasons:
            dropped.append(
                DroppedHazard(index=index, area_km2=area, width_km=width, height_km=height, reasons=reasons)
            )
        else:
            accepted.append(candidate)

    if dropped:
        logger.warning(
            "Skipped %d hazard polygon(s) exceeding provider limits: %s",
            len(dropped),
            [d.as_dict() for d in dropped],
        )
    return AvoidanceRegion(polygons=tuple(accepted) or None, dropped=tuple(dropped))


def compute_avoidance(hazards: Iterable[Hazard], limits: AvoidanceSettings) -> AvoidanceRegion:
    """Union every hazard, then validate the result."""
    return validate_avoidance(union_hazards(hazards), limits)


def avoidance_request_options(region: AvoidanceRegion) -> dict[str, Any]:
    """Routing request `options` for `region`.

    `avoid_polygons` is omitted entirely when there is no constraint; an empty MultiPolygon is
    not the same thing to most providers.
    """
    options: dict[str, Any] = {}
    constraint = region.to_geojson()
    if constraint is not None:
        options["avoid_polygons"] = constraint
    return options
