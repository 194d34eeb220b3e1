import pytest

from wayfinder.geo import (
    bearing_between,
    bearing_to_compass,
    destination_point,
    haversine_distance,
    interpolate,
    point_to_segment_distance,
    relative_direction,
)

from conftest import M_PER_DEG, SEGMENT, SPACING


def test_haversine_zero_and_symmetric():
    p = (144.9631, -37.8136)
    q = (144.9700, -37.8200)
    assert haversine_distance(p, p) == 0.0
    assert haversine_distance(p, q) == pytest.approx(haversine_distance(q, p))


def test_haversine_one_degree_on_equator():
    assert haversine_distance((0.0, 0.0), (1.0, 0.0)) == pytest.approx(M_PER_DEG)
    assert haversine_distance((0.0, 0.0), (0.0, 1.0)) == pytest.approx(M_PER_DEG)


def test_haversine_london_paris():
    london = (-0.1278, 51.5074)
    paris = (2.3522, 48.8566)
    assert haversine_distance(london, paris) == pytest.approx(343_500, abs=1500)


@pytest.mark.parametrize("target,expected", [
    ((0.0, 1.0), 0.0),
    ((1.0, 0.0), 90.0),
    ((0.0, -1.0), 180.0),
    ((-1.0, 0.0), 270.0),
])
def test_bearing_cardinal(target, expected):
    assert bearing_between((0.0, 0.0), target) == pytest.approx(expected)


def test_segment_distance_perpendicular():
    point = (SPACING / 2, 30 / M_PER_DEG)
    assert point_to_segment_distance(point, (0.0, 0.0), (SPACING, 0.0)) == pytest.approx(30.0)


def test_segment_distance_clamps_to_endpoints():
    beyond_end = (2 * SPACING, 0.0)
    before_start = (-SPACING, 0.0)
    seg = ((0.0, 0.0), (SPACING, 0.0))
    assert point_to_segment_distance(beyond_end, *seg) == pytest.approx(SEGMENT)
    assert point_to_segment_distance(before_start, *seg) == pytest.approx(SEGMENT)


def test_segment_distance_on_segment_is_zero():
    assert point_to_segment_distance((SPACING / 3, 0.0), (0.0, 0.0), (SPACING, 0.0)) == pytest.approx(0.0)


def test_degenerate_segment_is_point_distance():
    p = (0.001, 0.001)
    a = (0.0, 0.0)
    assert point_to_segment_distance(p, a, a) == pytest.approx(haversine_distance(p, a))


def test_bearing_to_compass():
    assert bearing_to_compass(0) == "north"
    assert bearing_to_compass(90) == "east"
    assert bearing_to_compass(225) == "southwest"
    assert bearing_to_compass(359) == "north"


def test_relative_direction():
    assert relative_direction(0, 90) == "right"
    assert relative_direction(90, 0) == "left"
    assert relative_direction(0, 180) == "u-turn"
    assert relative_direction(10, 15) == "straight"
    assert relative_direction(350, 40) == "slight right"


def test_destination_point_travels_requested_distance():
    origin = (151.2093, -33.8688)
    target = destination_point(origin, 45.0, 250.0)
    assert haversine_distance(origin, target) == pytest.approx(250.0, rel=1e-6)
    assert bearing_between(origin, target) == pytest.approx(45.0, abs=0.01)


def test_interpolate_midpoint():
    assert interpolate((0.0, 0.0), (2.0, 4.0), 0.5) == (1.0, 2.0)
