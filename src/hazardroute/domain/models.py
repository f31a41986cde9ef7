"""
Domain models (Pydantic).

These types are the JSON contract between the HTTP adapter and its clients (map UI, routing glue):
- hazard creation requests (`HazardPointIn`, `HazardShapeIn`)
- route, position and simulation inputs
- avoidance / deviation / feasibility outputs

Geometry crosses this boundary as GeoJSON (`[lon, lat]` positions); conversion to the core's
`GeoPoint`/`Polygon` tuples happens in `hazardroute.core.geojson`.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from hazardroute.core.geo import GeoPoint as CoreGeoPoint


class GeoPoint(BaseModel):
    """A geographic point in decimal degrees."""

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)

    def to_core(self) -> CoreGeoPoint:
        return CoreGeoPoint(lat=self.lat, lon=self.lon)

    @classmethod
    def from_core(cls, point: CoreGeoPoint) -> "GeoPoint":
        return cls(lat=point.lat, lon=point.lon)


class HazardPointIn(BaseModel):
    """A clicked hazard point, buffered into a circle (default radius from settings)."""

    center: GeoPoint
    radius_m: float | None = Field(default=None, gt=0)


class HazardShapeIn(BaseModel):
    """A shape finished in a drawing tool.

    - `polygon`: `vertices` (>= 3) or a GeoJSON `geometry`
    - `rectangle`: two opposite `corners`
    - `circle`: `center` + `radius_m`
    """

    kind: Literal["polygon", "rectangle", "circle"]
    vertices: list[GeoPoint] | None = None
    corners: list[GeoPoint] | None = None
    center: GeoPoint | None = None
    radius_m: float | None = Field(default=None, gt=0)
    geometry: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _validate_fields_for_kind(self) -> "HazardShapeIn":
        if self.kind == "polygon" and not self.vertices and not self.geometry:
            raise ValueError("polygon hazards need `vertices` or a GeoJSON `geometry`")
        if self.kind == "rectangle" and (not self.corners or len(self.corners) != 2):
            raise ValueError("rectangle hazards need two `corners`")
        if self.kind == "circle" and (self.center is None or self.radius_m is None):
            raise ValueError("circle hazards need `center` and `radius_m`")
        return self


class HazardOut(BaseModel):
    id: str
    kind: str
    origin: str
    geometry: dict[str, Any]
    center: GeoPoint | None = None
    radius_m: float | None = None


class DroppedHazardOut(BaseModel):
    index: int
    area_km2: float
    width_km: float
    height_km: float
    reasons: list[str] = Field(default_factory=list)


class AvoidanceOut(BaseModel):
    """Validated avoidance constraint; `avoid_polygons` is null when the option must be omitted."""

    hazard_count: int
    avoid_polygons: dict[str, Any] | None = None
    dropped: list[DroppedHazardOut] = Field(default_factory=list)
    notice: str | None = None


class RouteCheckIn(BaseModel):
    origin: GeoPoint
    destination: GeoPoint


class RouteCheckOut(BaseModel):
    status: Literal["ok", "too_long"]
    estimated_km: float
    limit_km: float | None = None
    has_avoidance: bool
    message: str
    options: dict[str, Any] = Field(default_factory=dict)


class RouteIn(BaseModel):
    """The routing provider's answer: a GeoJSON LineString, Feature or FeatureCollection."""

    route: dict[str, Any]


class PositionIn(BaseModel):
    position: GeoPoint
    source: Literal["live", "simulated"] = "live"


class DeviationOut(BaseModel):
    status: Literal["no_route", "on_route", "off_route"]
    distance_m: float
    off_route: bool
    position: GeoPoint | None = None
    source: Literal["live", "simulated"] | None = None
    timestamp: float | None = None


class SimulationStartIn(BaseModel):
    speed_kmh: float | None = Field(default=None, gt=0)


class SimulationOut(BaseModel):
    running: bool
    total_km: float | None = None
    speed_kmh: float | None = None
    tick_seconds: float | None = None
    total_ticks: int | None = None
    ticks: int | None = None


class WaypointsOut(BaseModel):
    waypoints: list[GeoPoint] = Field(default_factory=list)


class HazardMutationOut(BaseModel):
    """Result of a hazard edit: the affected hazard (if any) and the recomputed avoidance region."""

    hazard: HazardOut | None = None
    avoidance: AvoidanceOut


class RouteOut(BaseModel):
    points: int
    length_km: float
    active: bool
    geometry: dict[str, Any] | None = None


class SessionIn(BaseModel):
    settings_overrides: dict[str, Any] | None = None
