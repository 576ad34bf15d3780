"""Great-circle distance helpers. Coordinates are [longitude, latitude] pairs."""

import math
from typing import Sequence

# Spherical model with a fixed radius; distance scores are defined against this formula
EARTH_RADIUS_M = 6371000


def distance_meters(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Haversine distance in meters between two [lng, lat] coordinates.

    Non-finite inputs yield NaN instead of raising.
    """
    lng1, lat1 = float(a[0]), float(a[1])
    lng2, lat2 = float(b[0]), float(b[1])
    if not all(math.isfinite(v) for v in (lng1, lat1, lng2, lat2)):
        return math.nan

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlam = math.radians(lng2 - lng1)
    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlam / 2) ** 2
    # rounding can push h a hair outside [0, 1]
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(h), math.sqrt(1 - h))
