"""
Track Metrics for GPS Track Analysis

This module computes per-track statistics (great-circle length, bounding box,
elevation gain, average speed) and the coverage area of a set of tracks.
Distances use the Haversine formula on a sphere of radius 6371 km.
"""

import logging
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from . import constants
from . import utils
from .geo import bounding_box, haversine_km
from .models import BoundingBox, Coverage, Track, TrackStatistics
from .normalize import as_track, as_tracks

logger = logging.getLogger(__name__)


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points in kilometers.

    Non-numeric input yields NaN rather than raising.
    """
    values = [utils.safe_float(v) for v in (lat1, lon1, lat2, lon2)]
    return float(haversine_km(*values))


def _finite_points(track: Track) -> np.ndarray:
    points = np.asarray(track.coordinates, dtype=float).reshape(-1, 2)
    return points[np.isfinite(points).all(axis=1)]


def _path_length_km(points: np.ndarray) -> float:
    if len(points) < 2:
        return 0.0
    segments = haversine_km(points[:-1, 0], points[:-1, 1], points[1:, 0], points[1:, 1])
    return float(np.sum(segments))


def get_bounding_box(track) -> BoundingBox:
    """
    Bounding box of a track's finite points.

    Returns:
        (min_lat, min_lon, max_lat, max_lon), (0, 0, 0, 0) for an empty track.
    """
    return bounding_box(_finite_points(as_track(track)))


def _elevation_gain(track: Track) -> Optional[float]:
    if not track.has_elevation:
        return None
    elevations = pd.Series(track.elevations, dtype=float).dropna()
    gain = elevations.diff().clip(lower=0).sum()
    return utils.round_float(gain, 3)


def _average_speed(track: Track, distance_km: float) -> Optional[float]:
    if not track.has_time:
        return None
    times = pd.Series(track.timestamps, dtype=object).dropna()
    if len(times) < 2:
        return None
    times = pd.to_datetime(times, utc=True)
    elapsed_h = (times.iloc[-1] - times.iloc[0]).total_seconds() / 3600.0
    if elapsed_h <= 0:
        return None
    return utils.round_float(distance_km / elapsed_h, 3)


def calculate_track_statistics(track) -> TrackStatistics:
    """
    Summarize a single track.

    Args:
        track: Track or sequence of (lat, lon) pairs.

    Returns:
        TrackStatistics. distance_km is 0 for tracks of 0 or 1 points.
        elevation_gain (sum of positive elevation deltas, meters) and
        average_speed (km/h from first to last timestamp) are None unless the
        track carries elevations or timestamps.
    """
    track = as_track(track)
    points = _finite_points(track)
    distance_km = _path_length_km(points)

    return TrackStatistics(
        distance_km=distance_km,
        point_count=len(track),
        bounding_box=bounding_box(points),
        elevation_gain=_elevation_gain(track),
        average_speed=_average_speed(track, distance_km),
    )


def bounding_box_area_km2(box: BoundingBox) -> float:
    """
    Surface area of a lat/lon box on a sphere.

    A = R^2 * |dlon| * |sin(lat2) - sin(lat1)|, which accounts for meridians
    converging toward the poles.
    """
    min_lat, min_lon, max_lat, max_lon = box
    d_lon = np.deg2rad(max_lon - min_lon)
    band = np.sin(np.deg2rad(max_lat)) - np.sin(np.deg2rad(min_lat))
    return float(constants.EARTH_RADIUS_KM ** 2 * abs(d_lon) * abs(band))


def calculate_coverage_area(tracks: Iterable) -> Coverage:
    """
    Coverage of a set of tracks.

    Args:
        tracks: Tracks or sequences of (lat, lon) pairs.

    Returns:
        Coverage with the union bounding box, its spherical area and the
        total point count. Empty input gives (0, 0, 0, 0), 0.0 and 0.
    """
    tracks = as_tracks(tracks)
    point_count = sum(len(t) for t in tracks)
    chunks = [_finite_points(t) for t in tracks]
    chunks = [c for c in chunks if len(c)]
    if not chunks:
        return Coverage((0.0, 0.0, 0.0, 0.0), 0.0, point_count)

    box = bounding_box(np.vstack(chunks))
    area = bounding_box_area_km2(box)
    logger.debug("Coverage over %d tracks: %.3f km2", len(tracks), area)
    return Coverage(box, area, point_count)
