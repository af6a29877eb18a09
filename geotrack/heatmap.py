"""
Heatmap Aggregation for GPS Track Analysis

This module groups tracks that follow the same physical path into frequency
buckets, clusters tracks by spatial overlap, and counts how many distinct
tracks traverse each grid-snapped segment.

Route matching compares each track's signature, i.e. the track resampled to
a fixed number of points spaced evenly by distance, so two recordings of the
same route match regardless of their sampling rate or direction.
"""

import logging
from typing import Iterable, List, Sequence, Tuple

import numpy as np
import pandas as pd

from . import constants
from .geo import haversine_km
from .models import Coordinate, HeatmapResult, HeatmapTrack, SegmentDensity, Track, TrackCluster
from .normalize import as_tracks, filter_unrealistic_jumps, normalize_track

logger = logging.getLogger(__name__)

# Tracks longer than this are thinned before all-pairs overlap tests
MAX_OVERLAP_POINTS = 500


def _prepare(tracks: Iterable) -> List[Tuple[int, Track]]:
    """Normalize and jump-filter each input, keeping its input index."""
    prepared = []
    for index, track in enumerate(as_tracks(tracks)):
        cleaned = filter_unrealistic_jumps(normalize_track(track))
        if len(cleaned):
            prepared.append((index, cleaned))
    return prepared


def route_signature(track: Track, sample_count: int = constants.HEATMAP_SAMPLE_POINTS) -> np.ndarray:
    """
    Resample a track to sample_count points spaced evenly along its length.

    Args:
        track: Track with at least one finite point.
        sample_count: Number of signature points.

    Returns:
        Array of shape (sample_count, 2) holding (lat, lon) rows.
    """
    points = np.asarray(track.coordinates, dtype=float).reshape(-1, 2)
    if len(points) == 1:
        return np.repeat(points, sample_count, axis=0)

    steps = haversine_km(points[:-1, 0], points[:-1, 1], points[1:, 0], points[1:, 1])
    cumulative = np.concatenate([[0.0], np.cumsum(steps)])
    total = cumulative[-1]
    if total <= 0:
        return np.repeat(points[:1], sample_count, axis=0)

    targets = np.linspace(0.0, total, sample_count)
    lats = np.interp(targets, cumulative, points[:, 0])
    lons = np.interp(targets, cumulative, points[:, 1])
    return np.column_stack([lats, lons])


def _signatures_match(a: np.ndarray, b: np.ndarray, threshold_km: float) -> bool:
    forward = haversine_km(a[:, 0], a[:, 1], b[:, 0], b[:, 1])
    if np.max(forward) <= threshold_km:
        return True
    reverse = b[::-1]
    backward = haversine_km(a[:, 0], a[:, 1], reverse[:, 0], reverse[:, 1])
    return bool(np.max(backward) <= threshold_km)


def aggregate_tracks(tracks: Iterable,
                     match_threshold_km: float = constants.HEATMAP_MATCH_THRESHOLD_KM,
                     sample_count: int = constants.HEATMAP_SAMPLE_POINTS) -> HeatmapResult:
    """
    Group tracks that follow the same path and count them.

    A track joins the first bucket whose signature lies within
    match_threshold_km of its own at every sample point, in either
    direction. Otherwise it opens a new bucket. Buckets keep the geometry of
    the track that opened them and are returned in first-appearance order.

    Args:
        tracks: Tracks or sequences of (lat, lon) pairs.
        match_threshold_km: Largest per-sample distance between matching routes.
        sample_count: Number of points in each route signature.

    Returns:
        HeatmapResult. max_frequency is 0 when no input had a valid point.
    """
    buckets: List[HeatmapTrack] = []
    signatures: List[np.ndarray] = []

    for _, track in _prepare(tracks):
        signature = route_signature(track, sample_count)
        for bucket, existing in zip(buckets, signatures):
            if _signatures_match(existing, signature, match_threshold_km):
                bucket.frequency += 1
                break
        else:
            buckets.append(HeatmapTrack(track=track, frequency=1))
            signatures.append(signature)

    max_frequency = max((b.frequency for b in buckets), default=constants.EMPTY_HEATMAP_MAX_FREQUENCY)
    logger.debug("Aggregated tracks into %d buckets (max frequency %d)", len(buckets), max_frequency)
    return HeatmapResult(tracks=buckets, max_frequency=max_frequency)


# ============================================================================
# CLUSTERING
# ============================================================================

def _thin(points: np.ndarray, max_points: int = MAX_OVERLAP_POINTS) -> np.ndarray:
    if len(points) <= max_points:
        return points
    step = len(points) / max_points
    return points[[int(i * step) for i in range(max_points)]]


def overlap_fraction(source: Track, target: Track, threshold_km: float) -> float:
    """Fraction of source points lying within threshold_km of any target point."""
    if len(source) == 0 or len(target) == 0:
        return 0.0
    p = _thin(np.asarray(source.coordinates, dtype=float))
    q = _thin(np.asarray(target.coordinates, dtype=float))
    distances = haversine_km(p[:, None, 0], p[:, None, 1], q[None, :, 0], q[None, :, 1])
    near = distances.min(axis=1) <= threshold_km
    return float(near.mean())


def track_similarity(a: Track, b: Track, threshold_km: float = constants.HEATMAP_MATCH_THRESHOLD_KM) -> float:
    """Symmetric overlap similarity in [0, 1]: the mean of both overlap fractions."""
    return (overlap_fraction(a, b, threshold_km) + overlap_fraction(b, a, threshold_km)) / 2.0


def cluster_tracks(tracks: Iterable,
                   similarity_threshold: float = constants.CLUSTER_SIMILARITY_THRESHOLD,
                   threshold_km: float = constants.HEATMAP_MATCH_THRESHOLD_KM) -> List[TrackCluster]:
    """
    Greedy clustering of tracks by overlap similarity.

    Each track joins the existing cluster whose representative it resembles
    most, provided the similarity reaches similarity_threshold; otherwise it
    becomes the representative of a new cluster.

    Args:
        tracks: Tracks or sequences of (lat, lon) pairs.
        similarity_threshold: Minimum similarity in [0, 1] to join a cluster.
        threshold_km: Distance under which two points count as overlapping.

    Returns:
        TrackClusters in order of creation. members are input indices;
        similarity is the mean similarity of the members to the
        representative (1.0 for a single-member cluster).
    """
    clusters: List[TrackCluster] = []
    scores: List[List[float]] = []

    for index, track in _prepare(tracks):
        best = None
        best_score = -1.0
        for position, cluster in enumerate(clusters):
            score = track_similarity(cluster.representative, track, threshold_km)
            if score > best_score:
                best, best_score = position, score
        if best is not None and best_score >= similarity_threshold:
            clusters[best].members.append(index)
            scores[best].append(best_score)
        else:
            clusters.append(TrackCluster(representative=track, members=[index]))
            scores.append([1.0])

    for cluster, member_scores in zip(clusters, scores):
        cluster.similarity = round(float(np.mean(member_scores)), 4)
    return clusters


def merge_nearby_tracks(tracks: Iterable, threshold_km: float = 0.1) -> List[Track]:
    """
    Collapse tracks that lie entirely within threshold_km of each other.

    Returns:
        One representative Track per group, in first-appearance order.
    """
    clusters = cluster_tracks(tracks, similarity_threshold=1.0, threshold_km=threshold_km)
    return [cluster.representative for cluster in clusters]


# ============================================================================
# SEGMENT DENSITY
# ============================================================================

def snap_to_grid(coordinate: Sequence[float], grid_size: float = constants.SEGMENT_GRID_SIZE) -> Coordinate:
    """Round a coordinate to the nearest multiple of grid_size degrees."""
    lat, lon = coordinate
    return Coordinate(round(lat / grid_size) * grid_size, round(lon / grid_size) * grid_size)


def segment_key(start: Sequence[float], end: Sequence[float],
                grid_size: float = constants.SEGMENT_GRID_SIZE) -> Tuple[Coordinate, Coordinate]:
    """Grid-snapped segment endpoints ordered so A->B and B->A share a key."""
    a = snap_to_grid(start, grid_size)
    b = snap_to_grid(end, grid_size)
    return (a, b) if a <= b else (b, a)


def segment_density(tracks: Iterable, grid_size: float = constants.SEGMENT_GRID_SIZE,
                    min_count: int = 1) -> List[SegmentDensity]:
    """
    Count the distinct tracks that traverse each grid-snapped segment.

    Args:
        tracks: Tracks or sequences of (lat, lon) pairs.
        grid_size: Snapping grid in degrees.
        min_count: Segments used by fewer tracks are omitted.

    Returns:
        SegmentDensity records, busiest first; ties keep grid order.
    """
    rows = []
    for index, track in _prepare(tracks):
        for start, end in zip(track.coordinates, track.coordinates[1:]):
            a, b = segment_key(start, end, grid_size)
            if a != b:
                rows.append((index, a.lat, a.lon, b.lat, b.lon))

    if not rows:
        return []

    frame = pd.DataFrame(rows, columns=["track", "a_lat", "a_lon", "b_lat", "b_lon"])
    counts = (
        frame.groupby(["a_lat", "a_lon", "b_lat", "b_lon"])["track"]
        .nunique()
        .reset_index(name="track_count")
    )
    counts = counts[counts["track_count"] >= min_count]
    counts = counts.sort_values("track_count", ascending=False, kind="stable")

    return [
        SegmentDensity(
            start=Coordinate(float(row.a_lat), float(row.a_lon)),
            end=Coordinate(float(row.b_lat), float(row.b_lon)),
            count=int(row.track_count),
        )
        for row in counts.itertuples(index=False)
    ]
