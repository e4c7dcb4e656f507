from __future__ import annotations

import math

import pytest

from fleetsim.geodesy import bearing_degrees, distance_km
from fleetsim.models import Coordinate


def _c(lat: float, lon: float) -> Coordinate:
    return Coordinate(latitude=lat, longitude=lon)


@pytest.mark.parametrize(
    "point",
    [_c(0.0, 0.0), _c(4.6097, -74.0817), _c(-89.9, 179.9), _c(90.0, -180.0)],
)
def test_distance_to_itself_is_zero(point: Coordinate) -> None:
    assert distance_km(point, point) == 0.0


def test_distance_is_symmetric() -> None:
    a = _c(4.6097, -74.0817)
    b = _c(4.6240, -74.0800)
    assert math.isclose(distance_km(a, b), distance_km(b, a), abs_tol=1e-6)


def test_one_degree_of_latitude_is_about_111_km() -> None:
    d = distance_km(_c(10.0, 20.0), _c(11.0, 20.0))
    assert abs(d - 111.0) / 111.0 < 0.01


def test_antipodal_points_do_not_raise() -> None:
    d = distance_km(_c(0.0, 0.0), _c(0.0, 180.0))
    assert math.isclose(d, math.pi * 6371.0, rel_tol=1e-9)


def test_bearing_cardinal_directions() -> None:
    origin = _c(0.0, 0.0)
    assert math.isclose(bearing_degrees(origin, _c(1.0, 0.0)), 0.0, abs_tol=1e-9)
    assert math.isclose(bearing_degrees(origin, _c(0.0, 1.0)), 90.0, abs_tol=1e-9)
    assert math.isclose(bearing_degrees(origin, _c(-1.0, 0.0)), 180.0, abs_tol=1e-9)
    assert math.isclose(bearing_degrees(origin, _c(0.0, -1.0)), 270.0, abs_tol=1e-9)


def test_bearing_is_normalized_and_defined_for_identical_points() -> None:
    p = _c(4.6, -74.08)
    assert bearing_degrees(p, p) == 0.0
    for target in (_c(4.7, -74.2), _c(4.5, -74.2), _c(4.5, -74.0)):
        assert 0.0 <= bearing_degrees(p, target) < 360.0
