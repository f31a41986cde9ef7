"""
Deterministic motion simulator.

Moves a virtual vehicle along a route at constant speed, one fixed tick at a time, and emits
`PositionSample(source="simulated")` values for the same feed live fixes use.
"""

from __future__ import annotations

import math
from typing import Iterator, Sequence

from hazardroute.core.geo import GeoPoint, cumulative_lengths_m, point_along_polyline
from hazardroute.tracking.monitor import PositionSample


class SimulatedMotion:
    """Constant-speed stepper along `route`.

    After `total_ticks = ceil(total_km / step_km)` steps the emitted point is the route's last
    vertex exactly, and the stepper is done.
    """

    def __init__(
        self,
        route: Sequence[GeoPoint],
        speed_kmh: float,
        *,
        tick_seconds: float = 0.5,
        start_time: float = 0.0,
    ):
        route = tuple(route)
        if len(route) < 2:
            raise ValueError("Simulation needs a route with at least 2 points")
        if float(speed_kmh) <= 0:
            raise ValueError("speed_kmh must be > 0")
        if float(tick_seconds) <= 0:
            raise ValueError("tick_seconds must be > 0")

        self.route = route
        self.speed_kmh = float(speed_kmh)
        self.tick_seconds = float(tick_seconds)
        self.start_time = float(start_time)

        self._cumulative_m = cumulative_lengths_m(route)
        self.total_km = self._cumulative_m[-1] / 1000
        self.step_km = self.speed_kmh / 3600 * self.tick_seconds
        self.total_ticks = math.ceil(self.total_km / self.step_km)
        self.ticks = 0
        self.traveled_km = 0.0

    @property
    def done(self) -> bool:
        return self.ticks >= self.total_ticks

    @property
    def progress(self) -> float:
        if self.total_km <= 0:
            return 1.0
        return min(1.0, self.traveled_km / self.total_km)

    def step(self) -> PositionSample | None:
        """Advance one tick; None once the end of the route has been reached."""
        if self.done:
            return None
        self.ticks += 1
        if self.ticks >= self.total_ticks:
            self.traveled_km = self.total_km
            point = self.route[-1]
        else:
            self.traveled_km = self.ticks * self.step_km
            point = point_along_polyline(
                self.route, self.traveled_km * 1000, cumulative=self._cumulative_m
            )
        return PositionSample(
            point=point,
            source="simulated",
            timestamp=self.start_time + self.ticks * self.tick_seconds,
        )

    def __iter__(self) -> Iterator[PositionSample]:
        while (sample := self.step()) is not None:
            yield sample
