"""
Data Models for GPS Track Analysis

This module defines the value types that cross the engine boundary:
coordinates, tracks, and the result records produced by each operation.
All of them are immutable or freshly built per call, and each exposes
to_dict() for JSON responses.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple


BoundingBox = Tuple[float, float, float, float]


class Coordinate(NamedTuple):
    """A (latitude, longitude) pair in decimal degrees."""

    lat: float
    lon: float

    @property
    def is_valid(self) -> bool:
        """True when finite, within range and not the (0, 0) sentinel."""
        lat, lon = self.lat, self.lon
        if not (math.isfinite(lat) and math.isfinite(lon)):
            return False
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
            return False
        return not (lat == 0.0 and lon == 0.0)

    def to_list(self) -> List[float]:
        return [self.lat, self.lon]


class TrackFormat(str, Enum):
    """Track file formats recognized by the detector."""

    GPX = "gpx"
    TCX = "tcx"
    FIT = "fit"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Track:
    """
    An ordered sequence of coordinates along a path.

    Attributes:
        coordinates: Points in traversal order. May be empty.
        elevations: Optional per-point elevation in meters, aligned with
            coordinates. Individual entries may be None.
        timestamps: Optional per-point timezone-aware datetimes, aligned with
            coordinates. Individual entries may be None.
        name: Optional display name taken from the source file.
    """

    coordinates: Tuple[Coordinate, ...] = ()
    elevations: Optional[Tuple[Optional[float], ...]] = None
    timestamps: Optional[Tuple[Optional[datetime], ...]] = None
    name: Optional[str] = None

    def __len__(self) -> int:
        return len(self.coordinates)

    def __iter__(self) -> Iterator[Coordinate]:
        return iter(self.coordinates)

    def __getitem__(self, index):
        return self.coordinates[index]

    @property
    def has_elevation(self) -> bool:
        return self.elevations is not None and any(e is not None for e in self.elevations)

    @property
    def has_time(self) -> bool:
        return self.timestamps is not None and any(t is not None for t in self.timestamps)

    def take(self, indices: Sequence[int]) -> "Track":
        """Return a new track holding only the points at the given indices."""
        coordinates = tuple(self.coordinates[i] for i in indices)
        elevations = None
        timestamps = None
        if self.elevations is not None:
            elevations = tuple(self.elevations[i] for i in indices)
        if self.timestamps is not None:
            timestamps = tuple(self.timestamps[i] for i in indices)
        return Track(coordinates, elevations, timestamps, self.name)

    def to_list(self) -> List[List[float]]:
        return [c.to_list() for c in self.coordinates]


@dataclass
class HeatmapTrack:
    """An aggregated route bucket and how many input tracks it represents."""

    track: Track
    frequency: int = 1

    @property
    def coordinates(self) -> Tuple[Coordinate, ...]:
        return self.track.coordinates

    def to_dict(self) -> Dict:
        return {"coordinates": self.track.to_list(), "frequency": self.frequency}


@dataclass
class HeatmapResult:
    tracks: List[HeatmapTrack] = field(default_factory=list)
    max_frequency: int = 0

    def to_dict(self) -> Dict:
        return {
            "tracks": [t.to_dict() for t in self.tracks],
            "max_frequency": self.max_frequency,
        }


@dataclass
class ValidationResult:
    valid_count: int = 0
    total_count: int = 0
    issues: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "valid_count": self.valid_count,
            "total_count": self.total_count,
            "issues": list(self.issues),
        }


@dataclass
class TrackStatistics:
    """
    Summary metrics for one track.

    elevation_gain (meters) and average_speed (km/h) are None unless the
    source track carried elevations or timestamps.
    """

    distance_km: float
    point_count: int
    bounding_box: BoundingBox
    elevation_gain: Optional[float] = None
    average_speed: Optional[float] = None

    def to_dict(self) -> Dict:
        payload = {
            "distance_km": self.distance_km,
            "point_count": self.point_count,
            "bounding_box": list(self.bounding_box),
        }
        if self.elevation_gain is not None:
            payload["elevation_gain"] = self.elevation_gain
        if self.average_speed is not None:
            payload["average_speed"] = self.average_speed
        return payload


@dataclass
class FileInfo:
    format: TrackFormat = TrackFormat.UNKNOWN
    track_count: int = 0
    point_count: int = 0
    valid: bool = False
    file_size: int = 0

    def to_dict(self) -> Dict:
        return {
            "format": self.format.value,
            "track_count": self.track_count,
            "point_count": self.point_count,
            "valid": self.valid,
            "file_size": self.file_size,
        }


@dataclass
class Intersection:
    coordinate: Coordinate
    track_indices: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {"coordinate": self.coordinate.to_list(), "track_indices": list(self.track_indices)}


@dataclass
class Coverage:
    bounding_box: BoundingBox
    area_km2: float
    point_count: int

    def to_dict(self) -> Dict:
        return {
            "bounding_box": list(self.bounding_box),
            "area_km2": self.area_km2,
            "point_count": self.point_count,
        }


@dataclass
class TrackCluster:
    """A group of similar tracks; members are indices into the input list."""

    representative: Track
    members: List[int] = field(default_factory=list)
    similarity: float = 1.0

    def to_dict(self) -> Dict:
        return {
            "representative": self.representative.to_list(),
            "members": list(self.members),
            "similarity": self.similarity,
        }


@dataclass
class SegmentDensity:
    """A grid-snapped, direction-independent segment and its track count."""

    start: Coordinate
    end: Coordinate
    count: int

    def to_dict(self) -> Dict:
        return {"start": self.start.to_list(), "end": self.end.to_list(), "count": self.count}
