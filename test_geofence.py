"""
Distance / containment math used by every check-in.
"""

import math

import pytest

from core.errors import InvalidCoordinate
from utils.geofence import (
    EARTH_RADIUS_METERS,
    GeoPoint,
    distance_meters,
    distance_to_geofence,
    haversine_dist,
    is_within_radius,
)

NEW_YORK = GeoPoint(latitude=40.7128, longitude=-74.006)
LOS_ANGELES = GeoPoint(latitude=34.0522, longitude=-118.2437)


def test_new_york_to_los_angeles():
    distance = distance_meters(NEW_YORK, LOS_ANGELES)
    assert 3_900_000 < distance < 4_000_000


def test_short_distance():
    # About 1.1 km due north
    distance = haversine_dist(40.7128, -74.006, 40.7228, -74.006)
    assert 1000 < distance < 1500


@pytest.mark.parametrize(
    "a, b",
    [
        (NEW_YORK, LOS_ANGELES),
        (GeoPoint(latitude=89.9, longitude=10), GeoPoint(latitude=-89.9, longitude=-170)),
        (GeoPoint(latitude=0, longitude=179.9), GeoPoint(latitude=0, longitude=-179.9)),
    ],
)
def test_distance_is_symmetric(a, b):
    assert distance_meters(a, b) == distance_meters(b, a)


@pytest.mark.parametrize(
    "point",
    [
        NEW_YORK,
        GeoPoint(latitude=90, longitude=0),
        GeoPoint(latitude=-90, longitude=0),
        GeoPoint(latitude=0, longitude=180),
        GeoPoint(latitude=0, longitude=-180),
    ],
)
def test_distance_to_self_is_zero(point):
    assert distance_meters(point, point) == 0


def test_antipodal_points_do_not_produce_nan():
    distance = distance_meters(
        GeoPoint(latitude=0, longitude=0), GeoPoint(latitude=0, longitude=180)
    )
    assert not math.isnan(distance)
    assert distance == pytest.approx(math.pi * EARTH_RADIUS_METERS)


def test_pole_to_pole():
    distance = distance_meters(
        GeoPoint(latitude=90, longitude=0), GeoPoint(latitude=-90, longitude=0)
    )
    assert distance == pytest.approx(math.pi * EARTH_RADIUS_METERS)


@pytest.mark.parametrize(
    "bad",
    [
        GeoPoint(latitude=91, longitude=0),
        GeoPoint(latitude=-91, longitude=0),
        GeoPoint(latitude=0, longitude=181),
        GeoPoint(latitude=0, longitude=-181),
        GeoPoint(latitude=float("nan"), longitude=0),
        GeoPoint(latitude=0, longitude=float("nan")),
    ],
)
def test_invalid_coordinates_raise(bad):
    with pytest.raises(InvalidCoordinate):
        distance_meters(bad, NEW_YORK)
    with pytest.raises(InvalidCoordinate):
        distance_meters(NEW_YORK, bad)


def test_within_radius_is_inclusive_at_the_boundary():
    point = GeoPoint(latitude=40.71289, longitude=-74.006)
    exact = distance_meters(point, NEW_YORK)

    assert is_within_radius(point, NEW_YORK, exact)
    assert not is_within_radius(point, NEW_YORK, exact - 1)


def test_distance_to_geofence_sign():
    inside = GeoPoint(latitude=40.71285, longitude=-74.006)
    outside = GeoPoint(latitude=40.715, longitude=-74.006)

    assert distance_to_geofence(inside, NEW_YORK, 100) < 0
    assert distance_to_geofence(outside, NEW_YORK, 100) > 0
