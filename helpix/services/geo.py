"""
Helpix Geo Utilities
Haversine great-circle distances (spherical Earth, no ellipsoid flattening)
"""
import math

import numpy as np

EARTH_RADIUS_KM = 6371.0


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two (lat, lon) points given in degrees."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    a = min(1.0, a)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distances_km(lat: float, lon: float, lats, lons) -> np.ndarray:
    """
    Distances from one point to many, vectorised.

    Args:
        lat, lon: Origin in degrees
        lats, lons: Sequences of destination coordinates in degrees

    Returns:
        Array of distances in kilometres, same order as the inputs
    """
    lats = np.radians(np.asarray(lats, dtype=float))
    lons = np.radians(np.asarray(lons, dtype=float))
    phi = math.radians(lat)

    d_phi = lats - phi
    d_lambda = lons - math.radians(lon)

    a = np.sin(d_phi / 2) ** 2 + math.cos(phi) * np.cos(lats) * np.sin(d_lambda / 2) ** 2
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
    return EARTH_RADIUS_KM * c
