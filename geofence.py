from math import atan2, cos, isnan, radians, sin, sqrt
from typing import Tuple

from schemas import Coordinate

EARTH_RADIUS_METERS = 6371000.0


def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1 = radians(lat1)
    phi2 = radians(lat2)
    d_phi = radians(lat2 - lat1)
    d_lambda = radians(lon2 - lon1)
    a = sin(d_phi / 2) ** 2 + cos(phi1) * cos(phi2) * sin(d_lambda / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    return haversine(a.lat, a.lon, b.lat, b.lon)


def within_radius(anchor: Coordinate, point: Coordinate, radius_meters: float) -> Tuple[bool, float]:
    """Return ``(inside, distance)``. A NaN distance is never inside."""
    distance = distance_meters(anchor, point)
    if isnan(distance):
        return False, distance
    return distance <= radius_meters, distance
