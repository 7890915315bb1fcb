import math

import pytest

from geofence import distance_meters, haversine, within_radius
from schemas import Coordinate

DELHI = Coordinate(lat=28.7041, lon=77.1025)
MUMBAI = Coordinate(lat=19.0760, lon=72.8777)


def test_distance_to_self_is_zero():
    assert distance_meters(DELHI, DELHI) == 0


def test_distance_is_symmetric():
    assert distance_meters(DELHI, MUMBAI) == pytest.approx(distance_meters(MUMBAI, DELHI))


def test_fifty_meters_of_latitude():
    north = Coordinate(lat=DELHI.lat + 0.00045, lon=DELHI.lon)
    assert distance_meters(DELHI, north) == pytest.approx(50, abs=1)


def test_city_scale_distance():
    # Delhi to Mumbai is roughly 1150 km great-circle
    assert distance_meters(DELHI, MUMBAI) == pytest.approx(1_150_000, rel=0.02)


def test_nan_propagates():
    assert math.isnan(haversine(float("nan"), 77.1, 28.7, 77.1))


def test_within_radius_boundary():
    north = Coordinate(lat=DELHI.lat + 0.00045, lon=DELHI.lon)
    inside, distance = within_radius(DELHI, north, radius_meters=51)
    assert inside
    inside, _ = within_radius(DELHI, north, radius_meters=distance - 0.01)
    assert not inside


def test_same_point_inside_zero_radius():
    inside, distance = within_radius(DELHI, DELHI, radius_meters=0)
    assert inside
    assert distance == 0


def test_nan_distance_is_never_inside(monkeypatch):
    monkeypatch.setattr("geofence.distance_meters", lambda a, b: float("nan"))
    inside, distance = within_radius(DELHI, MUMBAI, radius_meters=10_000_000)
    assert not inside
    assert math.isnan(distance)
