"""
Tests for track file detection and XML parsing.
"""

from datetime import datetime, timezone

from geotrack.formats import detect_format, get_file_info, parse_tracks, read_tracks
from geotrack.models import TrackFormat


class TestDetectFormat:
    def test_gpx(self, gpx_bytes):
        assert detect_format(gpx_bytes) is TrackFormat.GPX

    def test_tcx(self, tcx_bytes):
        assert detect_format(tcx_bytes) is TrackFormat.TCX

    def test_fit(self, fit_bytes):
        assert detect_format(fit_bytes) is TrackFormat.FIT

    def test_gpx_with_bom_and_namespace_prefix(self):
        data = b'\xef\xbb\xbf  <g:gpx xmlns:g="http://www.topografix.com/GPX/1/0"></g:gpx>'
        assert detect_format(data) is TrackFormat.GPX

    def test_prolog_markup_before_root(self):
        commented = b'<?xml version="1.0"?>\n<!-- <trk> --><gpx/>'
        assert detect_format(commented) is TrackFormat.GPX
        info = get_file_info(commented)
        assert info.format is TrackFormat.GPX
        assert info.valid

        doctype = (b'<?xml version="1.0"?>\n<?xml-stylesheet href="a.xsl"?>\n'
                   b'<!DOCTYPE TrainingCenterDatabase [<!ENTITY x "<trk>">]>\n'
                   b'<!-- exported\n <Course> -->\n<TrainingCenterDatabase/>')
        assert detect_format(doctype) is TrackFormat.TCX

    def test_unknown(self):
        assert detect_format(b"") is TrackFormat.UNKNOWN
        assert detect_format(b"hello world") is TrackFormat.UNKNOWN
        assert detect_format(b"<kml></kml>") is TrackFormat.UNKNOWN
        assert detect_format(b"\x00" * 32) is TrackFormat.UNKNOWN


class TestParseGpx:
    def test_tracks_and_routes(self, gpx_bytes):
        tracks = parse_tracks(gpx_bytes)
        assert len(tracks) == 2
        ride, route = tracks
        assert ride.name == "Morning Ride"
        assert len(ride) == 3
        assert route.name == "Planned"
        assert route.to_list() == [[40.72, -74.01], [40.721, -74.011]]

    def test_segments_concatenated_in_order(self, gpx_bytes):
        ride = parse_tracks(gpx_bytes)[0]
        assert [c.lat for c in ride] == [40.7128, 40.7138, 40.7148]

    def test_elevations_and_timestamps(self, gpx_bytes):
        ride = parse_tracks(gpx_bytes)[0]
        assert ride.elevations == (10.0, 12.5, 11.0)
        assert ride.timestamps[0] == datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)
        assert ride.has_time

    def test_route_has_no_elevation(self, gpx_bytes):
        route = parse_tracks(gpx_bytes)[1]
        assert route.elevations is None
        assert route.timestamps is None

    def test_skips_malformed_points(self):
        data = b"""<gpx><trk><trkseg>
            <trkpt lat="abc" lon="1.0"/>
            <trkpt lat="95.0" lon="1.0"/>
            <trkpt lon="1.0"/>
            <trkpt lat="0" lon="0"/>
            <trkpt lat="45.0" lon="7.0"/>
        </trkseg></trk></gpx>"""
        tracks = parse_tracks(data)
        assert len(tracks) == 1
        assert tracks[0].to_list() == [[45.0, 7.0]]

    def test_gpx_1_0_namespace(self):
        data = b"""<gpx xmlns="http://www.topografix.com/GPX/1/0"><trk><trkseg>
            <trkpt lat="45.0" lon="7.0"/><trkpt lat="45.1" lon="7.1"/>
        </trkseg></trk></gpx>"""
        assert len(parse_tracks(data)[0]) == 2

    def test_bad_timestamp_becomes_none(self):
        data = b"""<gpx><trk><trkseg>
            <trkpt lat="45.0" lon="7.0"><time>yesterday</time></trkpt>
            <trkpt lat="45.1" lon="7.1"><time>2024-01-01T00:00:00Z</time></trkpt>
        </trkseg></trk></gpx>"""
        track = parse_tracks(data)[0]
        assert track.timestamps[0] is None
        assert track.timestamps[1] == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_malformed_xml(self):
        assert parse_tracks(b"<gpx><trk><trkseg><trkpt") == []

    def test_never_raises_on_garbage(self):
        for data in (None, "", "<gpx", b"\xff\xfe\x00<", 42, object()):
            assert parse_tracks(data) == []


class TestParseTcx:
    def test_activity(self, tcx_bytes):
        tracks = parse_tracks(tcx_bytes)
        assert len(tracks) == 1
        track = tracks[0]
        assert track.name == "2024-05-02T07:00:00Z"
        assert track.to_list() == [[51.5074, -0.1278], [51.508, -0.127]]
        assert track.elevations == (20.0, 21.5)

    def test_course(self):
        data = b"""<TrainingCenterDatabase><Courses><Course><Name>Loop</Name><Track>
            <Trackpoint><Position><LatitudeDegrees>10.0</LatitudeDegrees>
            <LongitudeDegrees>20.0</LongitudeDegrees></Position></Trackpoint>
        </Track></Course></Courses></TrainingCenterDatabase>"""
        tracks = parse_tracks(data)
        assert tracks[0].name == "Loop"
        assert tracks[0].to_list() == [[10.0, 20.0]]


class TestFileInfo:
    def test_gpx(self, gpx_bytes):
        info = get_file_info(gpx_bytes)
        assert info.format is TrackFormat.GPX
        assert info.track_count == 2
        assert info.point_count == 5
        assert info.valid is True
        assert info.file_size == len(gpx_bytes)

    def test_fit(self, fit_bytes):
        info = get_file_info(fit_bytes)
        assert info.format is TrackFormat.FIT
        assert info.track_count == 1
        assert info.point_count == 3
        assert info.valid is True

    def test_empty(self):
        info = get_file_info(b"")
        assert info.to_dict() == {
            "format": "unknown",
            "track_count": 0,
            "point_count": 0,
            "valid": False,
            "file_size": 0,
        }

    def test_unknown_keeps_size(self):
        info = get_file_info(b"not a track file")
        assert info.format is TrackFormat.UNKNOWN
        assert info.valid is False
        assert info.file_size == 16

    def test_empty_but_well_formed_gpx_is_valid(self):
        info = get_file_info(b"<gpx></gpx>")
        assert info.format is TrackFormat.GPX
        assert info.valid is True
        assert info.track_count == 0

    def test_broken_gpx_is_invalid(self):
        info = get_file_info(b"<gpx><trk>")
        assert info.format is TrackFormat.GPX
        assert info.valid is False

    def test_read_tracks_reports_envelope(self, tcx_bytes):
        file_format, tracks, envelope_ok = read_tracks(tcx_bytes)
        assert file_format is TrackFormat.TCX
        assert len(tracks) == 1
        assert envelope_ok
