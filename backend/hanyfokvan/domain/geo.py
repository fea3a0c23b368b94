from __future__ import annotations

import math
from typing import Iterable, List, NamedTuple

from .models import NearbyStation

EARTH_RADIUS_KM = 6371.0


class BoundingBox(NamedTuple):
    lat_ne: float
    lon_ne: float
    lat_sw: float
    lon_sw: float


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def bounding_box(lat: float, lon: float, half_width_deg: float) -> BoundingBox:
    return BoundingBox(
        lat_ne=lat + half_width_deg,
        lon_ne=lon + half_width_deg,
        lat_sw=lat - half_width_deg,
        lon_sw=lon - half_width_deg,
    )


def sort_by_distance(stations: Iterable[NearbyStation]) -> List[NearbyStation]:
    # sorted() is stable; stations without a distance keep arrival order at the end
    return sorted(stations, key=lambda s: math.inf if s.distance_km is None else s.distance_km)
