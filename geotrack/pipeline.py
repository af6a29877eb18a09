"""
Ingest Pipelines for GPS Track Analysis

This module chains the ingest steps into heatmaps:
1. Decodes polylines or parses track files
2. Normalizes the resulting tracks
3. Aggregates them into frequency buckets

Malformed inputs contribute nothing; they never abort the batch.
"""

import logging
from typing import Iterable, List

from . import formats
from . import heatmap
from . import polyline_codec
from .models import HeatmapResult, Track
from .normalize import normalize_track, normalize_tracks

logger = logging.getLogger(__name__)


def _entries(values, scalar_types) -> List:
    """List the items of a batch; a lone scalar is a batch of one, a non-iterable is empty."""
    if values is None:
        return []
    if isinstance(values, scalar_types):
        return [values]
    try:
        return list(values)
    except TypeError:
        logger.warning("Ignoring batch of type %s", type(values).__name__)
        return []


def decode_polyline(encoded: str) -> Track:
    """Decode one polyline into a Track holding only its valid points."""
    coordinates = polyline_codec.decode(encoded)
    return normalize_track(Track(tuple(coordinates)))


def tracks_from_polylines(polylines: Iterable) -> List[Track]:
    """
    Decode polyline payloads (encoded strings or JSON arrays) into Tracks.

    Non-string entries and payloads without valid points are dropped.
    """
    decoded = []
    for index, payload in enumerate(_entries(polylines, str)):
        coordinates = polyline_codec.parse_polyline_payload(payload)
        if not coordinates:
            logger.debug("Polyline %d produced no coordinates", index)
        decoded.append(Track(tuple(coordinates)))
    return normalize_tracks(decoded)


def tracks_from_files(buffers: Iterable) -> List[Track]:
    """Parse every buffer with format detection and collect the valid tracks."""
    parsed = []
    for index, data in enumerate(_entries(buffers, (bytes, bytearray, memoryview))):
        tracks = formats.parse_tracks(data)
        if not tracks:
            logger.debug("File %d produced no tracks", index)
        parsed.extend(tracks)
    return normalize_tracks(parsed)


def process_polylines(polylines: Iterable) -> HeatmapResult:
    """
    Build a heatmap from encoded polylines.

    Args:
        polylines: Encoded polyline strings (JSON coordinate arrays are
            accepted too).

    Returns:
        HeatmapResult. Empty input gives no buckets and max_frequency 0.
    """
    return heatmap.aggregate_tracks(tracks_from_polylines(polylines))


def process_track_files(buffers: Iterable) -> HeatmapResult:
    """
    Build a heatmap from raw GPX, TCX or FIT file contents.

    Args:
        buffers: Byte buffers, one per file.

    Returns:
        HeatmapResult over every track found in every file.
    """
    return heatmap.aggregate_tracks(tracks_from_files(buffers))
