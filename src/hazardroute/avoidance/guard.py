"""
Route-length pre-flight guard.

Routing with avoid-polygons over long distances tends to fail or time out on the provider side,
so such requests are refused before any external call is made.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from hazardroute.core.geo import GeoPoint, geodesic_distance_m

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteFeasibility:
    status: Literal["ok", "too_long"]
    estimated_km: float
    limit_km: float | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


def check_route_feasible(
    origin: GeoPoint,
    destination: GeoPoint,
    *,
    has_avoidance: bool,
    max_km_with_avoidance: float = 150.0,
) -> RouteFeasibility:
    """Estimate the straight-line leg and refuse it only when avoidance is active and it is too long."""
    estimated_km = geodesic_distance_m(origin, destination) / 1000
    if has_avoidance and estimated_km > max_km_with_avoidance:
        logger.info(
            "Route too long with hazards (≈ %.0f km > %.0f km); not requesting a route.",
            estimated_km,
            max_km_with_avoidance,
        )
        return RouteFeasibility(status="too_long", estimated_km=estimated_km, limit_km=max_km_with_avoidance)
    return RouteFeasibility(
        status="ok",
        estimated_km=estimated_km,
        limit_km=max_km_with_avoidance if has_avoidance else None,
    )
