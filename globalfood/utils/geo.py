"""Great-circle distance helpers used for proximity deduplication."""

from __future__ import annotations

import math

_EARTH_RADIUS_M = 6_371_008.8  # mean Earth radius (IUGG)


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Return the distance in metres between two WGS84 points."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * _EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))


def within_tolerance(
    lat1: float, lng1: float, lat2: float, lng2: float, tolerance_m: float
) -> bool:
    return haversine_m(lat1, lng1, lat2, lng2) <= tolerance_m
