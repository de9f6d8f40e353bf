import math

import pytest

from app.services.geo import EARTH_RADIUS_KM, flat_distance_km


def test_same_point_is_zero():
    assert flat_distance_km(25.033, 121.5654, 25.033, 121.5654) == 0


def test_symmetric():
    a = (25.0330, 121.5654)
    b = (25.0418, 121.5500)
    assert flat_distance_km(*a, *b) == pytest.approx(flat_distance_km(*b, *a))


def test_one_degree_of_latitude():
    assert flat_distance_km(0, 0, 1, 0) == pytest.approx(math.radians(1) * EARTH_RADIUS_KM)


def test_longitude_shrinks_with_average_latitude():
    # cos(60deg) = 0.5
    d = flat_distance_km(60, 0, 60, 1)
    assert d == pytest.approx(0.5 * math.radians(1) * EARTH_RADIUS_KM)


def test_known_pair_taipei():
    # Taipei 101 -> Sun Yat-sen Memorial Hall
    d = flat_distance_km(25.0339, 121.5645, 25.0400, 121.5602)
    x = math.radians(121.5602 - 121.5645) * math.cos(math.radians((25.0339 + 25.0400) / 2))
    y = math.radians(25.0400 - 25.0339)
    assert d == pytest.approx(math.sqrt(x * x + y * y) * 6371.0088, rel=1e-12)
    assert round(d, 2) == 0.8
