# utils/geofence.py

from math import asin, cos, isnan, radians, sin, sqrt

from pydantic import BaseModel, ConfigDict

from core.errors import InvalidCoordinate

EARTH_RADIUS_METERS = 6371000


# WGS-84 Coordinate; Range Checks Happen When Used, Not When Built
class GeoPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float


def validate_point(point: GeoPoint) -> GeoPoint:
    lat, lng = point.latitude, point.longitude
    if isnan(lat) or isnan(lng):
        raise InvalidCoordinate(f"Coordinate ({lat},{lng}) is not a number.")
    if not -90 <= lat <= 90:
        raise InvalidCoordinate(f"Latitude {lat} is outside [-90, 90].")
    if not -180 <= lng <= 180:
        raise InvalidCoordinate(f"Longitude {lng} is outside [-180, 180].")
    return point


def distance_meters(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points using the haversine formula."""
    validate_point(a)
    validate_point(b)

    φ1, φ2 = radians(a.latitude), radians(b.latitude)
    Δφ = radians(b.latitude - a.latitude)
    Δλ = radians(b.longitude - a.longitude)

    h = sin(Δφ / 2) ** 2 + cos(φ1) * cos(φ2) * sin(Δλ / 2) ** 2
    # Float overshoot near the poles / antipodes can push h just outside [0, 1]
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_METERS * asin(sqrt(h))


def haversine_dist(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    return distance_meters(
        GeoPoint(latitude=lat1, longitude=lng1),
        GeoPoint(latitude=lat2, longitude=lng2),
    )


def is_within_radius(point: GeoPoint, center: GeoPoint, radius_m: float) -> bool:
    # Boundary counts as inside
    return distance_meters(point, center) <= radius_m


def distance_to_geofence(point: GeoPoint, center: GeoPoint, radius_m: float) -> float:
    """Signed distance to the geofence edge: negative inside, positive outside."""
    return distance_meters(point, center) - radius_m
