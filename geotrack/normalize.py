"""
Track Normalization for GPS Track Analysis

This module converts caller-supplied coordinate data into Track values at the
engine boundary, validates coordinates, and filters parser/codec output down
to the points that are safe to aggregate.
"""

import logging
import math
from typing import Iterable, List, Optional, Sequence

from . import constants
from . import utils
from .geo import haversine_km
from .models import Coordinate, Track, ValidationResult

logger = logging.getLogger(__name__)


def is_valid_coordinate(lat: float, lon: float) -> bool:
    """Check the Coordinate validity invariant for a raw lat/lon pair."""
    return Coordinate(utils.safe_float(lat), utils.safe_float(lon)).is_valid


def _to_coordinate(value) -> Coordinate:
    if isinstance(value, Coordinate):
        return value
    try:
        lat, lon = value
    except (TypeError, ValueError):
        return Coordinate(math.nan, math.nan)
    return Coordinate(utils.safe_float(lat), utils.safe_float(lon))


def as_track(value) -> Track:
    """
    Convert caller data into a Track exactly once, at the boundary.

    Accepts a Track (returned as-is), or any iterable of (lat, lon) pairs.
    Members that are not numeric pairs become NaN coordinates so they are
    reported as invalid downstream instead of raising here.

    Args:
        value: Track, sequence of pairs, or None.

    Returns:
        A Track. None or non-iterable input yields an empty Track.
    """
    if isinstance(value, Track):
        return value
    if value is None or isinstance(value, (str, bytes)):
        return Track()
    try:
        items = list(value)
    except TypeError:
        return Track()
    return Track(tuple(_to_coordinate(item) for item in items))


def as_tracks(values) -> List[Track]:
    """Convert a collection of track-like values with as_track()."""
    if values is None or isinstance(values, Track):
        return [] if values is None else [values]
    try:
        return [as_track(v) for v in values]
    except TypeError:
        return []


def describe_issue(index: int, coordinate: Coordinate) -> Optional[str]:
    """Return a human-readable defect description, or None if valid."""
    lat, lon = coordinate
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return f"Coordinate {index}: non-finite value ({lat}, {lon})"
    if not -90.0 <= lat <= 90.0:
        return f"Coordinate {index}: latitude {lat} out of range [-90, 90]"
    if not -180.0 <= lon <= 180.0:
        return f"Coordinate {index}: longitude {lon} out of range [-180, 180]"
    if lat == 0.0 and lon == 0.0:
        return f"Coordinate {index}: (0, 0) is not a real position"
    return None


def validate_coordinates(track) -> ValidationResult:
    """
    Validate every coordinate in a track.

    Args:
        track: Track or sequence of (lat, lon) pairs.

    Returns:
        ValidationResult with one issue per invalid coordinate, in input order.
    """
    track = as_track(track)
    issues = []
    for index, coordinate in enumerate(track):
        issue = describe_issue(index, coordinate)
        if issue:
            issues.append(issue)
    return ValidationResult(
        valid_count=len(track) - len(issues),
        total_count=len(track),
        issues=issues,
    )


def normalize_track(track) -> Track:
    """
    Drop invalid coordinates while preserving the order of the rest.

    Elevations and timestamps stay aligned with the surviving points.
    """
    track = as_track(track)
    keep = [i for i, c in enumerate(track) if c.is_valid]
    if len(keep) == len(track):
        return track
    logger.debug("Dropped %d invalid coordinates", len(track) - len(keep))
    return track.take(keep)


def normalize_tracks(tracks: Iterable) -> List[Track]:
    """Normalize each track and discard the ones left without points."""
    normalized = [normalize_track(t) for t in as_tracks(tracks)]
    return [t for t in normalized if len(t) > 0]


def filter_unrealistic_jumps(track, max_jump_km: float = constants.MAX_JUMP_KM,
                             max_consecutive: int = constants.MAX_CONSECUTIVE_JUMPS) -> Track:
    """
    Remove GPS glitches that teleport the track far away.

    A point is kept when it lies within max_jump_km of the last kept point.
    After max_consecutive rejected points in a row the rest of the track is
    treated as unusable and dropped.

    Args:
        track: Track or sequence of (lat, lon) pairs.
        max_jump_km: Largest believable distance between consecutive fixes.
        max_consecutive: Consecutive rejects tolerated before stopping.

    Returns:
        Filtered Track. The first point is always kept.
    """
    track = as_track(track)
    if len(track) < 2:
        return track

    keep = [0]
    rejected = 0
    for index in range(1, len(track)):
        last = track[keep[-1]]
        point = track[index]
        if haversine_km(last.lat, last.lon, point.lat, point.lon) <= max_jump_km:
            keep.append(index)
            rejected = 0
            continue
        rejected += 1
        if rejected >= max_consecutive:
            logger.debug("Stopping at index %d after %d consecutive jumps", index, rejected)
            break

    return track.take(keep)


def filter_coordinates_by_bounds(track, bounds: Sequence[float]) -> Track:
    """
    Keep only the points inside a [min_lat, min_lon, max_lat, max_lon] box.

    Malformed bounds produce an empty Track.
    """
    track = as_track(track)
    try:
        min_lat, min_lon, max_lat, max_lon = (float(b) for b in bounds)
    except (TypeError, ValueError):
        return Track()
    keep = [
        i for i, c in enumerate(track)
        if min_lat <= c.lat <= max_lat and min_lon <= c.lon <= max_lon
    ]
    return track.take(keep)


def split_track_by_gaps(track, max_gap_km: float, time_gap_s: Optional[float] = None) -> List[Track]:
    """
    Split a track wherever consecutive points are too far apart.

    Args:
        track: Track or sequence of (lat, lon) pairs.
        max_gap_km: Distance between consecutive points that starts a new track.
            Numeric strings are accepted; a missing, NaN or non-positive
            value leaves the track whole.
        time_gap_s: Reserved. Accepted for interface compatibility and ignored.

    Returns:
        List of non-empty Tracks in traversal order.
    """
    track = as_track(track)
    if len(track) == 0:
        return []
    max_gap_km = utils.safe_float(max_gap_km)
    if not max_gap_km > 0:
        return [track]

    pieces: List[List[int]] = [[0]]
    for index in range(1, len(track)):
        a, b = track[index - 1], track[index]
        if haversine_km(a.lat, a.lon, b.lat, b.lon) > max_gap_km:
            pieces.append([])
        pieces[-1].append(index)

    return [track.take(piece) for piece in pieces]

