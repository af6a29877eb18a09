"""
Intersection Detection for GPS Track Analysis

This module finds the places where two or more tracks cross or come within
a tolerance of each other. Geometry is planar in degrees: for each pair of
tracks, every segment of the first is tested against all segments of the
second at once with numpy.
"""

import logging
import math
from typing import Iterable, List, Tuple

import numpy as np

from .geo import point_segment_distance
from .models import Coordinate, Intersection
from .normalize import as_tracks

logger = logging.getLogger(__name__)


def _segments(points: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Segment start/end arrays; a single point becomes a zero-length segment."""
    if len(points) == 1:
        return points, points
    return points[:-1], points[1:]


def _boxes_overlap(a: np.ndarray, b: np.ndarray, pad: float) -> bool:
    a_min, a_max = a.min(axis=0) - pad, a.max(axis=0) + pad
    b_min, b_max = b.min(axis=0), b.max(axis=0)
    return bool(np.all(a_min <= b_max) and np.all(b_min <= a_max))


def _cross(ox, oy, ux, uy, vx, vy):
    return (ux - ox) * (vy - oy) - (uy - oy) * (vx - ox)


def _segment_hits(p0: np.ndarray, p1: np.ndarray, q0: np.ndarray, q1: np.ndarray,
                  tolerance: float) -> List[Tuple[float, float]]:
    """
    Test segment p0-p1 against every segment q0[k]-q1[k].

    Returns:
        (lat, lon) report points for each segment within tolerance: the
        crossing point for a proper crossing, otherwise the midpoint of the
        closest approach.
    """
    ax, ay = p0
    bx, by = p1
    cx, cy = q0[:, 0], q0[:, 1]
    dx, dy = q1[:, 0], q1[:, 1]

    d1 = _cross(cx, cy, dx, dy, ax, ay)
    d2 = _cross(cx, cy, dx, dy, bx, by)
    d3 = _cross(ax, ay, bx, by, cx, cy)
    d4 = _cross(ax, ay, bx, by, dx, dy)
    proper = (d1 * d2 < 0) & (d3 * d4 < 0)

    # Closest approach of two segments is attained at one of the four endpoints
    candidates = [
        (point_segment_distance(ax, ay, cx, cy, dx, dy), (ax, ay)),
        (point_segment_distance(bx, by, cx, cy, dx, dy), (bx, by)),
        (point_segment_distance(cx, cy, ax, ay, bx, by), (cx, cy)),
        (point_segment_distance(dx, dy, ax, ay, bx, by), (dx, dy)),
    ]
    distances = np.stack([np.broadcast_to(c[0][0], cx.shape) for c in candidates])
    closest = np.argmin(distances, axis=0)
    best = distances[closest, np.arange(len(cx))]

    hits = []
    for k in np.flatnonzero(proper | (best <= tolerance)):
        if proper[k]:
            t = d1[k] / (d1[k] - d2[k])
            hits.append((ax + t * (bx - ax), ay + t * (by - ay)))
            continue
        (_, near_x, near_y), (px, py) = candidates[closest[k]]
        px = np.broadcast_to(px, cx.shape)[k]
        py = np.broadcast_to(py, cx.shape)[k]
        near_x = np.broadcast_to(near_x, cx.shape)[k]
        near_y = np.broadcast_to(near_y, cx.shape)[k]
        hits.append(((px + near_x) / 2.0, (py + near_y) / 2.0))
    return hits


def _record(records: List[Intersection], lat: float, lon: float,
            indices: Tuple[int, int], tolerance: float) -> None:
    for record in records:
        if math.hypot(record.coordinate.lat - lat, record.coordinate.lon - lon) <= tolerance:
            record.track_indices = sorted(set(record.track_indices).union(indices))
            return
    records.append(Intersection(Coordinate(float(lat), float(lon)), sorted(indices)))


def find_intersections(tracks: Iterable, tolerance: float) -> List[Intersection]:
    """
    Find locations where tracks cross or pass within tolerance of each other.

    Args:
        tracks: Tracks or sequences of (lat, lon) pairs.
        tolerance: Closest-approach distance in degrees; also the radius
            within which nearby reports are merged into one record.

    Returns:
        Intersection records in discovery order, each with the sorted indices
        of every input track seen at that location. Empty when fewer than
        two tracks are given or tolerance is negative or non-finite.
    """
    tracks = as_tracks(tracks)
    try:
        tolerance = float(tolerance)
    except (TypeError, ValueError):
        return []
    if len(tracks) < 2 or not math.isfinite(tolerance) or tolerance < 0:
        return []

    arrays = []
    for track in tracks:
        points = np.asarray(track.coordinates, dtype=float).reshape(-1, 2)
        arrays.append(points[np.isfinite(points).all(axis=1)])

    records: List[Intersection] = []
    for i in range(len(arrays)):
        for j in range(i + 1, len(arrays)):
            a, b = arrays[i], arrays[j]
            if len(a) == 0 or len(b) == 0 or not _boxes_overlap(a, b, tolerance):
                continue
            a_start, a_end = _segments(a)
            b_start, b_end = _segments(b)
            for p0, p1 in zip(a_start, a_end):
                for lat, lon in _segment_hits(p0, p1, b_start, b_end, tolerance):
                    _record(records, lat, lon, (i, j), tolerance)

    logger.debug("Found %d intersections across %d tracks", len(records), len(tracks))
    return records
