"""Geo helpers for nearby-alert queries."""

import math
from dataclasses import dataclass

from furlink.core.alert_policies import KM_PER_DEGREE


@dataclass(frozen=True)
class BoundingBox:
    """Lat/lng rectangle around a centre point."""

    min_latitude: float
    max_latitude: float
    min_longitude: float
    max_longitude: float

    def contains(self, latitude: float, longitude: float) -> bool:
        return (
            self.min_latitude <= latitude <= self.max_latitude
            and self.min_longitude <= longitude <= self.max_longitude
        )


def bounding_box(latitude: float, longitude: float, radius_km: float) -> BoundingBox:
    """
    Approximate search box: radius/111 degrees of latitude and
    radius/(111*cos(lat)) degrees of longitude.

    Not a great-circle test: points near the box corners lie outside the
    radius. Where cos(lat) reaches 0 (the poles) the box spans every longitude.
    The longitude window is not wrapped at +/-180, so a search near the
    antimeridian misses alerts just across it.
    """
    lat_delta = radius_km / KM_PER_DEGREE
    cos_lat = math.cos(math.radians(latitude))
    if cos_lat <= 1e-12:
        lng_delta = 180.0
    else:
        lng_delta = radius_km / (KM_PER_DEGREE * cos_lat)
    return BoundingBox(
        min_latitude=latitude - lat_delta,
        max_latitude=latitude + lat_delta,
        min_longitude=longitude - lng_delta,
        max_longitude=longitude + lng_delta,
    )


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance between two lat/lng points in kilometers."""
    R = 6371.0  # Earth radius in km
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(dlon / 2) ** 2
    )
    return R * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
