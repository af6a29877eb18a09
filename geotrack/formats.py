"""
Track File Detection and Parsing

This module sniffs raw file bytes to identify the track format (GPX, TCX or
FIT), parses recognized formats into Track values, and summarizes files as
FileInfo records. None of these functions raise on malformed input: defective
points are skipped and unreadable files degrade to empty results.
"""

import logging
import re
import xml.etree.ElementTree as ET
from typing import Iterable, List, Optional, Tuple

import pandas as pd

from . import constants
from . import fit
from . import utils
from .models import Coordinate, FileInfo, Track, TrackFormat

logger = logging.getLogger(__name__)

_ROOT_ELEMENT = re.compile(rb"<([A-Za-z_][\w.\-]*:)?([A-Za-z_][\w.\-]*)")
# Declarations, processing instructions and comments that may precede the root
_PROLOG_MARKUP = re.compile(rb"<\?.*?\?>|<!--.*?-->|<!DOCTYPE[^\[>]*(?:\[.*?\])?\s*>", re.DOTALL)
_XML_ROOTS = {
    "gpx": TrackFormat.GPX,
    "TrainingCenterDatabase": TrackFormat.TCX,
}


def _local(tag) -> str:
    """Strip the {namespace} prefix from an ElementTree tag."""
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _children(element: ET.Element, name: str) -> Iterable[ET.Element]:
    return (child for child in element if _local(child.tag) == name)


def _descendants(element: ET.Element, name: str) -> Iterable[ET.Element]:
    return (node for node in element.iter() if _local(node.tag) == name)


def _child_text(element: ET.Element, name: str) -> Optional[str]:
    for child in _children(element, name):
        if child.text and child.text.strip():
            return child.text.strip()
    return None


def _sniff_root(data: bytes) -> Optional[str]:
    head = bytes(data[:constants.SNIFF_BYTES]).lstrip(b"\xef\xbb\xbf \t\r\n")
    if not head.startswith(b"<"):
        return None
    match = _ROOT_ELEMENT.search(_PROLOG_MARKUP.sub(b"", head))
    return match.group(2).decode("ascii") if match else None


def detect_format(data: bytes) -> TrackFormat:
    """
    Classify a byte buffer by signature.

    FIT files are recognized by their binary header; XML formats by the
    local name of the root element.

    Args:
        data: Raw file contents.

    Returns:
        The detected TrackFormat, UNKNOWN for empty or unrecognized input.
    """
    if not data:
        return TrackFormat.UNKNOWN
    if fit.is_fit_file(data):
        return TrackFormat.FIT
    root = _sniff_root(data)
    return _XML_ROOTS.get(root, TrackFormat.UNKNOWN)


# ============================================================================
# XML FORMATS
# ============================================================================

def _parse_xml(data: bytes) -> Optional[ET.Element]:
    try:
        return ET.fromstring(bytes(data))
    except (ET.ParseError, ValueError) as exc:
        logger.debug("XML envelope is not well-formed: %s", exc)
        return None


def _build_track(rows: List[Tuple[float, float, Optional[str], Optional[str]]],
                 name: Optional[str] = None) -> Track:
    """
    Assemble a Track from (lat, lon, elevation_text, time_text) rows.

    Elevations and timestamps are attached only when at least one point
    carries them.
    """
    coordinates = tuple(Coordinate(lat, lon) for lat, lon, _, _ in rows)

    elevations = None
    if any(row[2] is not None for row in rows):
        elevations = tuple(utils.round_float(utils.safe_float(row[2]), 3) for row in rows)

    timestamps = None
    if any(row[3] is not None for row in rows):
        parsed = pd.to_datetime(pd.Series([row[3] for row in rows], dtype=object),
                                utc=True, errors="coerce", format="ISO8601")
        timestamps = tuple(None if pd.isna(ts) else ts.to_pydatetime() for ts in parsed)
        if all(ts is None for ts in timestamps):
            timestamps = None

    return Track(coordinates, elevations, timestamps, name)


def _gpx_point(element: ET.Element) -> Optional[Tuple[float, float, Optional[str], Optional[str]]]:
    lat = utils.safe_float(element.get("lat"))
    lon = utils.safe_float(element.get("lon"))
    if not Coordinate(lat, lon).is_valid:
        logger.debug("Skipping GPX point with lat=%r lon=%r", element.get("lat"), element.get("lon"))
        return None
    return lat, lon, _child_text(element, "ele"), _child_text(element, "time")


def parse_gpx(root: ET.Element) -> List[Track]:
    """One Track per <trk> (segments concatenated) and per <rte>."""
    tracks = []
    for trk in _descendants(root, "trk"):
        rows = [
            row
            for segment in _children(trk, "trkseg")
            for row in (_gpx_point(p) for p in _children(segment, "trkpt"))
            if row is not None
        ]
        tracks.append(_build_track(rows, _child_text(trk, "name")))
    for rte in _descendants(root, "rte"):
        rows = [row for row in (_gpx_point(p) for p in _children(rte, "rtept")) if row is not None]
        tracks.append(_build_track(rows, _child_text(rte, "name")))
    return tracks


def _tcx_point(element: ET.Element) -> Optional[Tuple[float, float, Optional[str], Optional[str]]]:
    position = next(_children(element, "Position"), None)
    if position is None:
        return None
    lat = utils.safe_float(_child_text(position, "LatitudeDegrees"))
    lon = utils.safe_float(_child_text(position, "LongitudeDegrees"))
    if not Coordinate(lat, lon).is_valid:
        return None
    return lat, lon, _child_text(element, "AltitudeMeters"), _child_text(element, "Time")


def parse_tcx(root: ET.Element) -> List[Track]:
    """One Track per Activity or Course, from its Trackpoints in order."""
    containers = list(_descendants(root, "Activity")) + list(_descendants(root, "Course"))
    tracks = []
    for container in containers:
        rows = [
            row for row in (_tcx_point(p) for p in _descendants(container, "Trackpoint"))
            if row is not None
        ]
        name = _child_text(container, "Id") or _child_text(container, "Name")
        tracks.append(_build_track(rows, name))
    return tracks


# ============================================================================
# FIT
# ============================================================================

def _fit_track(points: List[fit.FitPoint]) -> Track:
    coordinates = tuple(Coordinate(p.lat, p.lon) for p in points)
    elevations = None
    timestamps = None
    if any(p.altitude is not None for p in points):
        elevations = tuple(p.altitude for p in points)
    if any(p.timestamp is not None for p in points):
        timestamps = tuple(p.timestamp for p in points)
    return Track(coordinates, elevations, timestamps)


# ============================================================================
# PUBLIC ENTRY POINTS
# ============================================================================

def _as_bytes(data) -> bytes:
    if data is None:
        return b""
    if isinstance(data, str):
        return data.encode("utf-8")
    try:
        return bytes(data)
    except (TypeError, ValueError):
        logger.debug("Cannot read %s as bytes", type(data).__name__)
        return b""


def read_tracks(data: bytes) -> Tuple[TrackFormat, List[Track], bool]:
    """
    Detect and parse a buffer in one pass.

    Returns:
        (format, tracks, envelope_ok). Tracks may be empty or contain
        empty Tracks for track elements without usable points.
    """
    data = _as_bytes(data)
    if not data:
        return TrackFormat.UNKNOWN, [], False

    file_format = detect_format(data)
    if file_format is TrackFormat.FIT:
        points, envelope_ok = fit.parse_fit(data)
        tracks = [_fit_track(points)] if points else []
        return file_format, tracks, envelope_ok

    if file_format is TrackFormat.UNKNOWN:
        return file_format, [], False

    root = _parse_xml(data)
    if root is None or _XML_ROOTS.get(_local(root.tag)) is not file_format:
        return file_format, [], False
    if file_format is TrackFormat.GPX:
        return file_format, parse_gpx(root), True
    return file_format, parse_tcx(root), True


def parse_tracks(data: bytes) -> List[Track]:
    """
    Parse any supported track file into Tracks.

    Args:
        data: Raw file contents.

    Returns:
        List of Tracks (possibly empty). Never raises.
    """
    _, tracks, _ = read_tracks(data)
    return tracks


def get_file_info(data: bytes) -> FileInfo:
    """
    Summarize a track file without failing on bad input.

    Args:
        data: Raw file contents.

    Returns:
        FileInfo with format, track and point counts, validity and size.
    """
    data = _as_bytes(data)
    file_format, tracks, envelope_ok = read_tracks(data)
    return FileInfo(
        format=file_format,
        track_count=len(tracks),
        point_count=sum(len(t) for t in tracks),
        valid=envelope_ok and file_format is not TrackFormat.UNKNOWN,
        file_size=len(data),
    )
