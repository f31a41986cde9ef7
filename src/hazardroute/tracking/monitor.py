"""
Deviation monitor: how far is the tracked position from the active route?

States:
- `no_route`: no route (or a route with fewer than 2 points); distance is reported as 0
- `on_route`: distance <= threshold
- `off_route`: distance > threshold

Live and simulated positions both arrive as `PositionSample` and go through `evaluate()`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal, Sequence

from hazardroute.core.geo import GeoPoint, Polyline, point_to_polyline_distance_m

logger = logging.getLogger(__name__)

SampleSource = Literal["live", "simulated"]
DeviationStatus = Literal["no_route", "on_route", "off_route"]


@dataclass(frozen=True)
class PositionSample:
    """One position fix; `timestamp` is in monotonic seconds."""

    point: GeoPoint
    source: SampleSource
    timestamp: float


@dataclass(frozen=True)
class DeviationState:
    status: DeviationStatus = "no_route"
    distance_m: float = 0.0
    point: GeoPoint | None = None
    source: SampleSource | None = None
    timestamp: float | None = None

    @property
    def off_route(self) -> bool:
        return self.status == "off_route"

    def as_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "distance_m": self.distance_m,
            "off_route": self.off_route,
            "position": {"lat": self.point.lat, "lon": self.point.lon} if self.point else None,
            "source": self.source,
            "timestamp": self.timestamp,
        }


NO_ROUTE = DeviationState()


class DeviationMonitor:
    def __init__(self, threshold_m: float = 40.0):
        if float(threshold_m) <= 0:
            raise ValueError("threshold_m must be > 0")
        self.threshold_m = float(threshold_m)
        self._route: Polyline | None = None
        self._state = NO_ROUTE

    @property
    def route(self) -> Polyline | None:
        return self._route

    @property
    def state(self) -> DeviationState:
        return self._state

    def set_route(self, polyline: Sequence[GeoPoint]) -> None:
        """Replace the active route; the next sample decides on/off route."""
        route = tuple(polyline)
        self._route = route if len(route) >= 2 else None
        self._set_state(NO_ROUTE)

    def clear_route(self) -> None:
        self._route = None
        self._set_state(NO_ROUTE)

    def reset(self) -> None:
        """Forget the last evaluation but keep the route."""
        self._set_state(NO_ROUTE)

    def evaluate(self, sample: PositionSample) -> DeviationState:
        if self._route is None:
            state = DeviationState(point=sample.point, source=sample.source, timestamp=sample.timestamp)
        else:
            distance = point_to_polyline_distance_m(sample.point, self._route)
            state = DeviationState(
                status="off_route" if distance > self.threshold_m else "on_route",
                distance_m=distance,
                point=sample.point,
                source=sample.source,
                timestamp=sample.timestamp,
            )
        self._set_state(state)
        return state

    def _set_state(self, state: DeviationState) -> None:
        if state.status != self._state.status:
            logger.info(
                "Deviation %s -> %s (%.1f m, threshold %.0f m)",
                self._state.status,
                state.status,
                state.distance_m,
                self.threshold_m,
            )
        self._state = state
