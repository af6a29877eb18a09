"""
Shared fixtures for the geotrack test suite.

Provides small GPX/TCX documents and a builder for synthetic FIT files.
"""

import struct
from datetime import datetime, timezone

import pytest

from geotrack.models import Coordinate, Track


SAMPLE_GPX = b"""<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="test" xmlns="http://www.topografix.com/GPX/1/1">
  <trk>
    <name>Morning Ride</name>
    <trkseg>
      <trkpt lat="40.7128" lon="-74.0060"><ele>10.0</ele><time>2024-05-01T08:00:00Z</time></trkpt>
      <trkpt lat="40.7138" lon="-74.0050"><ele>12.5</ele><time>2024-05-01T08:01:00Z</time></trkpt>
    </trkseg>
    <trkseg>
      <trkpt lat="40.7148" lon="-74.0040"><ele>11.0</ele><time>2024-05-01T08:02:00Z</time></trkpt>
    </trkseg>
  </trk>
  <rte>
    <name>Planned</name>
    <rtept lat="40.7200" lon="-74.0100"/>
    <rtept lat="40.7210" lon="-74.0110"/>
  </rte>
</gpx>
"""

SAMPLE_TCX = b"""<?xml version="1.0" encoding="UTF-8"?>
<TrainingCenterDatabase xmlns="http://www.garmin.com/xmlschemas/TrainingCenterDatabase/v2">
  <Activities>
    <Activity Sport="Running">
      <Id>2024-05-02T07:00:00Z</Id>
      <Lap StartTime="2024-05-02T07:00:00Z">
        <Track>
          <Trackpoint>
            <Time>2024-05-02T07:00:00Z</Time>
            <Position><LatitudeDegrees>51.5074</LatitudeDegrees><LongitudeDegrees>-0.1278</LongitudeDegrees></Position>
            <AltitudeMeters>20.0</AltitudeMeters>
          </Trackpoint>
          <Trackpoint>
            <Time>2024-05-02T07:00:05Z</Time>
          </Trackpoint>
          <Trackpoint>
            <Time>2024-05-02T07:00:10Z</Time>
            <Position><LatitudeDegrees>51.5080</LatitudeDegrees><LongitudeDegrees>-0.1270</LongitudeDegrees></Position>
            <AltitudeMeters>21.5</AltitudeMeters>
          </Trackpoint>
        </Track>
      </Lap>
    </Activity>
  </Activities>
</TrainingCenterDatabase>
"""

FIT_EPOCH_OFFSET = 631065600


def _semicircles(degrees: float) -> int:
    return int(round(degrees * 2 ** 31 / 180.0))


def build_fit(points, big_endian=False, declared_size=None, header_size=14):
    """
    Build a minimal FIT activity holding one record message per point.

    Args:
        points: Iterable of (lat, lon, altitude_m, unix_seconds); altitude and
            time may be None to write the invalid sentinel.
        big_endian: Write the record definition with big-endian architecture.
        declared_size: Override the data size written into the header.
        header_size: 12 or 14.

    Returns:
        FIT file bytes.
    """
    endian = ">" if big_endian else "<"
    body = bytearray()

    # Definition message, local type 0 -> global 20 (record)
    body += bytes([0x40, 0x00, 1 if big_endian else 0])
    body += struct.pack(endian + "HB", 20, 4)
    body += bytes([253, 4, 0x86, 0, 4, 0x85, 1, 4, 0x85, 2, 2, 0x84])

    for lat, lon, altitude, timestamp in points:
        raw_time = 0xFFFFFFFF if timestamp is None else timestamp - FIT_EPOCH_OFFSET
        raw_alt = 0xFFFF if altitude is None else int(round((altitude + 500.0) * 5))
        body += bytes([0x00])
        body += struct.pack(endian + "IiiH", raw_time, _semicircles(lat), _semicircles(lon), raw_alt)

    data_size = len(body) if declared_size is None else declared_size
    header = struct.pack("<BBHI4s", header_size, 0x10, 2100, data_size, b".FIT")
    if header_size == 14:
        header += b"\x00\x00"
    return header + bytes(body) + b"\x00\x00"


@pytest.fixture
def gpx_bytes():
    return SAMPLE_GPX


@pytest.fixture
def tcx_bytes():
    return SAMPLE_TCX


@pytest.fixture
def fit_builder():
    return build_fit


@pytest.fixture
def fit_bytes():
    return build_fit([
        (37.7749, -122.4194, 15.0, 1714550400),
        (37.7759, -122.4184, 17.0, 1714550410),
        (37.7769, -122.4174, 16.0, 1714550420),
    ])


@pytest.fixture
def city_track():
    """A short walk in Manhattan, lat/lon order."""
    return [
        (40.7128, -74.0060),
        (40.7138, -74.0050),
        (40.7148, -74.0040),
        (40.7158, -74.0030),
    ]


@pytest.fixture
def timed_track():
    """Two points 1.11 km apart (0.01 deg latitude) recorded one hour apart."""
    return Track(
        coordinates=(Coordinate(10.0, 20.0), Coordinate(10.01, 20.0)),
        elevations=(100.0, 150.0),
        timestamps=(
            datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc),
            datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc),
        ),
    )
