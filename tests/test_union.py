import pytest
from shapely.errors import GEOSException
from shapely.geometry import LinearRing
from shapely.geometry import Point as ShapelyPoint
from shapely.geometry import Polygon as ShapelyPolygon
from shapely.ops import unary_union

import hazardroute.hazards.union as union_module
from hazardroute.core.geo import GeoPoint, polygon_area_km2
from hazardroute.hazards.shapes import buffered_point, drawn_rectangle
from hazardroute.hazards.union import concat_polygons, union_hazards

TAIPEI = GeoPoint(lat=25.0330, lon=121.5654)


def _shifted(point: GeoPoint, dlon: float) -> GeoPoint:
    return GeoPoint(lat=point.lat, lon=point.lon + dlon)


def _total_area_km2(polygons) -> float:
    return sum(polygon_area_km2(p) for p in polygons)


def _to_shapely(polygons) -> list[ShapelyPolygon]:
    return [
        ShapelyPolygon([(q.lon, q.lat) for q in p.outer], [[(q.lon, q.lat) for q in h] for h in p.holes])
        for p in polygons
    ]


def _covers(polygons, point: GeoPoint) -> bool:
    target = ShapelyPoint(point.lon, point.lat)
    return any(shape.covers(target) for shape in _to_shapely(polygons))


def test_union_of_nothing_is_none():
    assert union_hazards([]) is None


def test_single_hazard_is_returned_unchanged():
    hazard = buffered_point(TAIPEI, 150.0)
    assert union_hazards([hazard]) is hazard.geometry


def test_overlapping_circles_dissolve_into_one_polygon():
    # Three 500 m circles with centers ~300 m apart.
    hazards = [
        buffered_point(TAIPEI, 500.0),
        buffered_point(_shifted(TAIPEI, 0.003), 500.0),
        buffered_point(_shifted(TAIPEI, 0.006), 500.0),
    ]
    merged = union_hazards(hazards)

    assert merged is not None
    assert len(merged) == 1
    parts_area = sum(_total_area_km2(h.geometry) for h in hazards)
    assert _total_area_km2(merged) < parts_area
    assert _total_area_km2(merged) > _total_area_km2(hazards[0].geometry)
    for hazard in hazards:
        assert _covers(merged, hazard.center)


def test_disjoint_hazards_stay_separate_and_outer_rings_are_ccw():
    hazards = [buffered_point(TAIPEI, 200.0), buffered_point(_shifted(TAIPEI, 0.05), 200.0)]
    merged = union_hazards(hazards)

    assert merged is not None
    assert len(merged) == 2
    for polygon in merged:
        assert LinearRing([(p.lon, p.lat) for p in polygon.outer]).is_ccw


def test_touching_rectangles_share_an_edge_and_merge():
    a = drawn_rectangle(GeoPoint(lat=0.0, lon=0.0), GeoPoint(lat=0.01, lon=0.01))
    b = drawn_rectangle(GeoPoint(lat=0.0, lon=0.01), GeoPoint(lat=0.01, lon=0.02))
    merged = union_hazards([a, b])

    assert merged is not None
    assert len(merged) == 1
    assert _total_area_km2(merged) == pytest.approx(_total_area_km2(a.geometry) + _total_area_km2(b.geometry), rel=1e-6)


def test_union_area_does_not_depend_on_input_order():
    hazards = [
        buffered_point(TAIPEI, 400.0),
        drawn_rectangle(_shifted(TAIPEI, 0.002), _shifted(GeoPoint(lat=TAIPEI.lat + 0.004, lon=TAIPEI.lon), 0.008)),
        buffered_point(_shifted(TAIPEI, 0.03), 300.0),
    ]
    forward = union_hazards(hazards)
    backward = union_hazards(list(reversed(hazards)))

    assert forward is not None and backward is not None
    assert len(forward) == len(backward)
    assert _total_area_km2(forward) == pytest.approx(_total_area_km2(backward), rel=1e-6)


def test_union_membership_does_not_depend_on_input_order():
    hazards = [
        buffered_point(TAIPEI, 400.0),
        drawn_rectangle(_shifted(TAIPEI, 0.002), _shifted(GeoPoint(lat=TAIPEI.lat + 0.004, lon=TAIPEI.lon), 0.008)),
        buffered_point(_shifted(TAIPEI, 0.009), 300.0),
    ]
    forward = union_hazards(hazards)
    backward = union_hazards(list(reversed(hazards)))

    # Odd step so grid points do not sit on the rectangle edges.
    step = 0.000731
    grid = [
        GeoPoint(lat=TAIPEI.lat - 0.005 + i * step, lon=TAIPEI.lon - 0.005 + j * step)
        for i in range(15)
        for j in range(25)
    ]
    inside = 0
    for point in grid:
        in_forward = _covers(forward, point)
        assert in_forward == _covers(backward, point)
        assert in_forward == any(_covers(h.geometry, point) for h in hazards)
        inside += in_forward
    assert 0 < inside < len(grid)


def test_union_covers_every_member_completely():
    hazards = [
        buffered_point(TAIPEI, 500.0),
        buffered_point(_shifted(TAIPEI, 0.003), 500.0),
        drawn_rectangle(_shifted(TAIPEI, 0.004), GeoPoint(lat=TAIPEI.lat + 0.006, lon=TAIPEI.lon + 0.012)),
        buffered_point(_shifted(TAIPEI, 0.05), 200.0),
    ]
    merged = unary_union(_to_shapely(union_hazards(hazards)))

    for hazard in hazards:
        for member in _to_shapely(hazard.geometry):
            assert member.difference(merged).area < 1e-12


def test_union_falls_back_to_concatenation_when_geos_fails(monkeypatch):
    def _boom(parts):
        raise GEOSException("TopologyException: side location conflict")

    monkeypatch.setattr(union_module, "unary_union", _boom)

    hazards = [buffered_point(TAIPEI, 500.0), buffered_point(_shifted(TAIPEI, 0.003), 500.0)]
    merged = union_hazards(hazards)

    # Overlap is double-counted but no hazard area is lost.
    assert merged == concat_polygons(hazards)
    assert merged is not None
    assert len(merged) == 2


def test_concat_polygons_skips_degenerate_rings():
    hazard = buffered_point(TAIPEI, 100.0)
    assert concat_polygons([hazard]) == hazard.geometry
    assert concat_polygons([]) is None
