"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Optional

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def has_usable_coordinates(lat: Optional[float], lon: Optional[float]) -> bool:
    """Return True if (lat, lon) is present, finite and inside the valid degree ranges."""

    if lat is None or lon is None:
        return False
    try:
        lat_value, lon_value = float(lat), float(lon)
    except (TypeError, ValueError):
        return False
    if not (math.isfinite(lat_value) and math.isfinite(lon_value)):
        return False
    return -90.0 <= lat_value <= 90.0 and -180.0 <= lon_value <= 180.0
