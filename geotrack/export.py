"""
Export Functions for GPS Track Analysis

This module serializes tracks and heatmap results to interchange formats:
GPX 1.1 documents for GPS devices and mapping tools, and GeoJSON features
for web maps.
"""

import io
import math
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional
from xml.sax.saxutils import escape, quoteattr

from . import constants
from . import utils
from .models import HeatmapResult, Track
from .normalize import as_track, as_tracks


def _iso_time(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    return str(value)


def _write_metadata(buffer: io.StringIO, metadata: Dict) -> None:
    fields = []
    for key in ("name", "desc"):
        if metadata.get(key):
            fields.append(f"    <{key}>{escape(str(metadata[key]))}</{key}>\n")
    if metadata.get("author"):
        fields.append(f"    <author><name>{escape(str(metadata['author']))}</name></author>\n")
    time_text = _iso_time(metadata.get("time"))
    if time_text:
        fields.append(f"    <time>{escape(time_text)}</time>\n")

    if fields:
        buffer.write("  <metadata>\n")
        buffer.writelines(fields)
        buffer.write("  </metadata>\n")


def _write_track(buffer: io.StringIO, track: Track, name: str) -> None:
    buffer.write("  <trk>\n")
    buffer.write(f"    <name>{escape(name)}</name>\n")
    buffer.write("    <trkseg>\n")

    for index, (lat, lon) in enumerate(track.coordinates):
        if not (math.isfinite(lat) and math.isfinite(lon)):
            continue
        attrs = f'lat="{utils.format_degrees(lat)}" lon="{utils.format_degrees(lon)}"'
        children = []
        elevation = track.elevations[index] if track.elevations is not None else None
        if elevation is not None and math.isfinite(elevation):
            children.append(f"<ele>{utils.round_float(elevation, 3)}</ele>")
        timestamp = _iso_time(track.timestamps[index]) if track.timestamps is not None else None
        if timestamp:
            children.append(f"<time>{escape(timestamp)}</time>")

        if children:
            buffer.write(f"      <trkpt {attrs}>{''.join(children)}</trkpt>\n")
        else:
            buffer.write(f"      <trkpt {attrs}></trkpt>\n")

    buffer.write("    </trkseg>\n")
    buffer.write("  </trk>\n")


def export_to_gpx(tracks: Iterable, metadata: Optional[Dict] = None) -> str:
    """
    Export tracks as a GPX 1.1 document.

    Args:
        tracks: Tracks or sequences of (lat, lon) pairs.
        metadata: Optional mapping. "name", "desc", "author" and "time" go
            into <metadata>; "track_names" is a list of per-track names and
            "creator" overrides the creator attribute.

    Returns:
        GPX text starting with the XML declaration and ending with </gpx>.
        Tracks without a supplied or parsed name are called "Track N"
        (1-indexed).
    """
    metadata = dict(metadata or {})
    track_names = list(metadata.get("track_names") or [])
    creator = str(metadata.get("creator") or constants.GPX_CREATOR)

    buffer = io.StringIO()
    buffer.write('<?xml version="1.0" encoding="UTF-8"?>\n')
    buffer.write(f'<gpx version="1.1" creator={quoteattr(creator)} xmlns="{constants.GPX_NAMESPACE}">\n')
    _write_metadata(buffer, metadata)

    for number, track in enumerate(as_tracks(tracks), start=1):
        name = track_names[number - 1] if number <= len(track_names) else track.name
        _write_track(buffer, track, str(name) if name else f"Track {number}")

    buffer.write("</gpx>")
    return buffer.getvalue()


def coordinates_to_geojson(track, properties: Optional[Dict] = None) -> Dict:
    """
    Convert a track into a GeoJSON LineString Feature.

    GeoJSON orders positions longitude first, so each (lat, lon) pair is
    written as [lon, lat].

    Args:
        track: Track or sequence of (lat, lon) pairs.
        properties: Feature properties. Copied; defaults to an empty mapping.

    Returns:
        GeoJSON Feature dictionary.
    """
    track = as_track(track)
    return {
        "type": "Feature",
        "geometry": {
            "type": "LineString",
            "coordinates": [[lon, lat] for lat, lon in track.coordinates],
        },
        "properties": dict(properties or {}),
    }


def tracks_to_geojson(tracks: Iterable, properties: Optional[List[Dict]] = None) -> Dict:
    """Wrap tracks in a FeatureCollection, one LineString Feature per track."""
    properties = list(properties or [])
    features = []
    for index, track in enumerate(as_tracks(tracks)):
        props = properties[index] if index < len(properties) else {}
        features.append(coordinates_to_geojson(track, props))
    return {"type": "FeatureCollection", "features": features}


def heatmap_to_geojson(result: HeatmapResult) -> Dict:
    """
    Convert a heatmap into a FeatureCollection for map rendering.

    Each bucket carries its frequency and an intensity in (0, 1] relative to
    the busiest bucket.
    """
    features = []
    for bucket in result.tracks:
        intensity = bucket.frequency / result.max_frequency if result.max_frequency > 0 else 0.0
        features.append(coordinates_to_geojson(bucket.track, {
            "frequency": bucket.frequency,
            "intensity": utils.round_float(intensity, 4),
        }))
    return {
        "type": "FeatureCollection",
        "features": features,
        "properties": {"max_frequency": result.max_frequency},
    }
