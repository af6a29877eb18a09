"""
Track Simplification for GPS Track Analysis

This module reduces point density along a track while keeping its shape,
using Douglas-Peucker point elimination, and offers index-based resampling
to a target point count.
"""

import math
from typing import List

import numpy as np

from .geo import point_segment_distance
from .models import Track
from .normalize import as_track


def _douglas_peucker_indices(points: np.ndarray, tolerance: float) -> List[int]:
    """
    Indices of the points kept by Douglas-Peucker.

    Each span is reduced to its endpoints when no interior point lies
    farther than tolerance from the chord; otherwise the farthest point
    (earliest on ties) is kept and both halves are processed. Spans are held
    on an explicit stack so long tracks do not exhaust the recursion limit.
    """
    last = len(points) - 1
    keep = np.zeros(len(points), dtype=bool)
    keep[0] = keep[last] = True

    stack = [(0, last)]
    while stack:
        start, end = stack.pop()
        if end - start < 2:
            continue
        interior = points[start + 1:end]
        distances, _, _ = point_segment_distance(
            interior[:, 1], interior[:, 0],
            points[start, 1], points[start, 0],
            points[end, 1], points[end, 0],
        )
        offset = int(np.argmax(distances))
        if distances[offset] > tolerance:
            split = start + 1 + offset
            keep[split] = True
            stack.append((split, end))
            stack.append((start, split))

    return [int(i) for i in np.flatnonzero(keep)]


def simplify_track(track, tolerance: float) -> Track:
    """
    Simplify a track with Douglas-Peucker elimination.

    Distances are planar, in degrees, so tolerance is in degrees as well
    (0.0001 is roughly 11 m of latitude).

    Args:
        track: Track or sequence of (lat, lon) pairs.
        tolerance: Maximum allowed deviation from the simplified path.

    Returns:
        Simplified Track. The input is returned unchanged for a zero,
        negative, NaN or non-numeric tolerance and for tracks of 0-2 points.
        An infinite tolerance keeps only the endpoints.
        First and last points are always kept.
    """
    track = as_track(track)
    try:
        tolerance = float(tolerance)
    except (TypeError, ValueError):
        return track
    if math.isnan(tolerance) or tolerance <= 0 or len(track) < 3:
        return track

    points = np.asarray(track.coordinates, dtype=float)
    if not np.isfinite(points).all():
        return track

    indices = _douglas_peucker_indices(points, tolerance)
    if len(indices) == len(track):
        return track
    return track.take(indices)


def resample_track(track, target_count: int) -> Track:
    """
    Thin a track to roughly target_count points by even index striding.

    Args:
        track: Track or sequence of (lat, lon) pairs.
        target_count: Desired number of points.

    Returns:
        Track of target_count strided points plus the final point, or the
        input unchanged when it already has no more than target_count points.
    """
    track = as_track(track)
    try:
        target_count = int(target_count)
    except (TypeError, ValueError, OverflowError):
        return track
    if target_count < 1 or len(track) <= target_count:
        return track

    step = len(track) / target_count
    indices = [int(i * step) for i in range(target_count)]
    if indices[-1] != len(track) - 1:
        indices.append(len(track) - 1)
    return track.take(indices)
