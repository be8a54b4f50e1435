import math

import pytest

from laundry_dispatch.services.geospatial import has_usable_coordinates, haversine_km


def test_haversine_zero_for_same_point() -> None:
    assert haversine_km(-12.05, -77.04, -12.05, -77.04) == 0.0


def test_haversine_one_degree_of_latitude() -> None:
    assert haversine_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(6371.0 * math.pi / 180.0)


def test_haversine_is_symmetric() -> None:
    forward = haversine_km(-12.0464, -77.0428, -12.1211, -77.0297)
    backward = haversine_km(-12.1211, -77.0297, -12.0464, -77.0428)
    assert forward == pytest.approx(backward)
    assert 8.0 < forward < 9.0


@pytest.mark.parametrize(
    "lat, lon, expected",
    [
        (-12.05, -77.04, True),
        (0.0, 0.0, True),
        (None, -77.04, False),
        (-12.05, None, False),
        (float("nan"), -77.04, False),
        (91.0, 0.0, False),
        (0.0, -180.5, False),
    ],
)
def test_has_usable_coordinates(lat, lon, expected) -> None:
    assert has_usable_coordinates(lat, lon) is expected
