"""
Spherical and planar geometry helpers.

Great-circle distance works on scalars and numpy arrays alike, so the same
function serves single lookups and vectorised track computations.
"""

import numpy as np
from typing import Sequence, Tuple

from . import constants


def haversine_km(lat1, lon1, lat2, lon2):
    """
    Calculate the great-circle distance between two points on Earth.

    Uses the Haversine formula on a sphere of radius EARTH_RADIUS_KM.

    Args:
        lat1, lon1: Latitude and longitude of the first point(s) in degrees.
        lat2, lon2: Latitude and longitude of the second point(s) in degrees.

    Returns:
        Distance in kilometers, as a float or an array matching the inputs.
    """
    lat1_rad, lon1_rad = np.deg2rad(lat1), np.deg2rad(lon1)
    lat2_rad, lon2_rad = np.deg2rad(lat2), np.deg2rad(lon2)

    dlat = lat2_rad - lat1_rad
    dlon = lon2_rad - lon1_rad

    a = np.sin(dlat / 2) ** 2 + np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin(dlon / 2) ** 2
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return constants.EARTH_RADIUS_KM * c


def bounding_box(coordinates: Sequence[Tuple[float, float]]) -> Tuple[float, float, float, float]:
    """
    Componentwise min/max over (lat, lon) pairs.

    Returns:
        (min_lat, min_lon, max_lat, max_lon), or (0, 0, 0, 0) when empty.
    """
    if len(coordinates) == 0:
        return (0.0, 0.0, 0.0, 0.0)
    array = np.asarray(coordinates, dtype=float).reshape(-1, 2)
    min_lat, min_lon = array.min(axis=0)
    max_lat, max_lon = array.max(axis=0)
    return (float(min_lat), float(min_lon), float(max_lat), float(max_lon))


def point_segment_distance(px, py, ax, ay, bx, by):
    """
    Planar distance from point(s) P to segment(s) AB, with the closest point.

    All arguments broadcast as numpy arrays. Zero-length segments degrade to
    point-to-point distance.

    Returns:
        Tuple (distance, closest_x, closest_y).
    """
    dx = bx - ax
    dy = by - ay
    length_sq = dx * dx + dy * dy
    with np.errstate(divide="ignore", invalid="ignore"):
        t = np.where(length_sq > 0, ((px - ax) * dx + (py - ay) * dy) / length_sq, 0.0)
    t = np.clip(t, 0.0, 1.0)
    cx = ax + t * dx
    cy = ay + t * dy
    return np.hypot(px - cx, py - cy), cx, cy
