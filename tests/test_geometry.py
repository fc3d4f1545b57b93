import math

import pytest

from bus_tracker.api.geometry import (
    closest_point_on_segment,
    find_closest_point_on_path,
    haversine_km,
    path_length_km,
    within_segment_bounds,
)

ONE_DEGREE_KM = 6371.0 * math.pi / 180


def test_haversine_one_degree_along_equator():
    assert haversine_km((0.0, 0.0), (0.0, 1.0)) == pytest.approx(ONE_DEGREE_KM)


def test_haversine_same_point_is_zero():
    assert haversine_km((12.5, -86.3), (12.5, -86.3)) == 0.0


def test_projection_inside_segment():
    assert closest_point_on_segment((1.0, 0.5), (0.0, 0.0), (0.0, 1.0)) == (0.0, 0.5)


def test_projection_clamped_to_endpoints():
    assert closest_point_on_segment((0.0, -3.0), (0.0, 0.0), (0.0, 1.0)) == (0.0, 0.0)
    assert closest_point_on_segment((0.0, 3.0), (0.0, 0.0), (0.0, 1.0)) == (0.0, 1.0)


def test_degenerate_segment_returns_start():
    assert closest_point_on_segment((5.0, 5.0), (1.0, 1.0), (1.0, 1.0)) == (1.0, 1.0)


def test_closest_point_on_path_picks_nearest_segment():
    path = [(0.0, 0.0), (0.0, 1.0), (1.0, 1.0)]
    assert find_closest_point_on_path((0.5, 1.2), path) == pytest.approx((0.5, 1.0))


def test_closest_point_first_minimum_wins():
    # Both segments touch (0, 0); the first one is reported
    path = [(0.0, 0.0), (0.0, 0.0), (0.0, 1.0)]
    assert find_closest_point_on_path((0.0001, 0.0), path) == (0.0, 0.0)


def test_closest_point_on_empty_path_is_query():
    assert find_closest_point_on_path((3.0, 4.0), []) == (3.0, 4.0)


def test_path_length_sums_segments():
    path = [(0.0, 0.0), (0.0, 1.0), (0.0, 2.0)]
    assert path_length_km(path) == pytest.approx(2 * ONE_DEGREE_KM)
    assert path_length_km(path[:1]) == 0


def test_bounding_box_is_inclusive():
    assert within_segment_bounds((0.0, 1.0), (0.0, 0.0), (0.0, 1.0))
    assert not within_segment_bounds((0.0, 1.5), (0.0, 0.0), (0.0, 1.0))
