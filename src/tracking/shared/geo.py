"""Geo math: distances and points on the Earth's surface.

Pure functions over decimal degrees, plus the GeoPoint value object shared by
delivery addresses and location samples.
"""

import math
import random
from collections.abc import Iterable

from protean.fields import Float

from tracking.domain import tracking

EARTH_RADIUS_KM = 6371.0

# Length of one degree of latitude, in kilometres.
KM_PER_DEGREE = 111.32


@tracking.value_object
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    latitude = Float(required=True, min_value=-90.0, max_value=90.0)
    longitude = Float(required=True, min_value=-180.0, max_value=180.0)

    def distance_to(self, other: "GeoPoint") -> float:
        return haversine_km(self.latitude, self.longitude, other.latitude, other.longitude)

    def as_tuple(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


def deg2rad(deg: float) -> float:
    return deg * (math.pi / 180)


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points, in kilometres."""
    d_lat = deg2rad(lat2 - lat1)
    d_lon = deg2rad(lon2 - lon1)
    a = math.sin(d_lat / 2) ** 2 + math.cos(deg2rad(lat1)) * math.cos(deg2rad(lat2)) * math.sin(d_lon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def path_length_km(points: Iterable[tuple[float, float]]) -> float:
    """Sum of the legs between consecutive (latitude, longitude) points."""
    total = 0.0
    previous = None
    for point in points:
        if previous is not None:
            total += haversine_km(previous[0], previous[1], point[0], point[1])
        previous = point
    return total


def random_point_within(
    center_lat: float,
    center_lng: float,
    radius_km: float,
    rng: random.Random | None = None,
) -> tuple[float, float]:
    """Uniformly random point within ``radius_km`` of the center.

    The load test generators use it to jitter pings around a delivery
    address.
    """
    rng = rng or random
    radius_deg = radius_km / KM_PER_DEGREE

    w = radius_deg * math.sqrt(rng.random())
    t = 2 * math.pi * rng.random()
    x = w * math.cos(t)
    y = w * math.sin(t)

    # East-west distances shrink with latitude
    new_lng = x / math.cos(deg2rad(center_lat)) + center_lng
    new_lat = y + center_lat
    return new_lat, new_lng
