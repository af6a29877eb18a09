"""
Tests for heatmap aggregation, clustering and segment density.
"""

import numpy as np
import pytest

from geotrack.heatmap import (
    aggregate_tracks,
    cluster_tracks,
    merge_nearby_tracks,
    route_signature,
    segment_density,
    segment_key,
    snap_to_grid,
)
from geotrack.models import Track
from geotrack.normalize import as_track
from geotrack.polyline_codec import encode
from geotrack.pipeline import process_polylines, process_track_files


SF_ROUTE = [(37.7749, -122.4194), (37.7799, -122.4144), (37.7849, -122.4094)]
NYC_ROUTE = [(40.7128, -74.0060), (40.7178, -74.0110), (40.7228, -74.0160)]


class TestAggregate:
    def test_identical_tracks_share_a_bucket(self):
        result = aggregate_tracks([SF_ROUTE, SF_ROUTE, SF_ROUTE])
        assert len(result.tracks) == 1
        assert result.tracks[0].frequency == 3
        assert result.max_frequency == 3

    def test_distinct_routes_get_their_own_buckets(self):
        result = aggregate_tracks([SF_ROUTE, NYC_ROUTE, SF_ROUTE])
        assert [b.frequency for b in result.tracks] == [2, 1]
        assert result.max_frequency == 2

    def test_reversed_route_matches(self):
        result = aggregate_tracks([SF_ROUTE, list(reversed(SF_ROUTE))])
        assert result.max_frequency == 2

    def test_resampled_route_matches(self):
        denser = [SF_ROUTE[0], (37.7774, -122.4169), SF_ROUTE[1], (37.7824, -122.4119), SF_ROUTE[2]]
        result = aggregate_tracks([SF_ROUTE, denser])
        assert result.max_frequency == 2

    def test_nearby_but_different_route_does_not_match(self):
        shifted = [(lat + 0.01, lon) for lat, lon in SF_ROUTE]
        result = aggregate_tracks([SF_ROUTE, shifted])
        assert len(result.tracks) == 2

    def test_empty_input(self):
        result = aggregate_tracks([])
        assert result.tracks == []
        assert result.max_frequency == 0

    def test_tracks_without_valid_points_are_ignored(self):
        result = aggregate_tracks([[(0.0, 0.0)], [(95.0, 10.0)], SF_ROUTE])
        assert len(result.tracks) == 1
        assert result.max_frequency == 1

    def test_stable_for_identical_input(self):
        tracks = [NYC_ROUTE, SF_ROUTE, NYC_ROUTE]
        first = aggregate_tracks(tracks).to_dict()
        second = aggregate_tracks(tracks).to_dict()
        assert first == second

    def test_signature_shape(self):
        signature = route_signature(as_track(SF_ROUTE), 16)
        assert signature.shape == (16, 2)
        assert np.allclose(signature[0], SF_ROUTE[0])
        assert np.allclose(signature[-1], SF_ROUTE[-1])

    def test_single_point_signature(self):
        signature = route_signature(as_track([(10.0, 20.0)]), 4)
        assert signature.tolist() == [[10.0, 20.0]] * 4


class TestPipelines:
    def test_identical_polylines(self):
        encoded = encode(SF_ROUTE)
        result = process_polylines([encoded, encoded, encoded])
        assert result.max_frequency > 1

    def test_polylines_skip_garbage(self):
        result = process_polylines(["", "!!!", None, encode(NYC_ROUTE)])
        assert len(result.tracks) == 1

    def test_json_payloads(self):
        result = process_polylines(["[[37.7749, -122.4194], [37.7849, -122.4094]]"] * 2)
        assert result.max_frequency == 2

    def test_files(self, gpx_bytes, tcx_bytes, fit_bytes):
        result = process_track_files([gpx_bytes, gpx_bytes, tcx_bytes, fit_bytes, b"junk"])
        frequencies = sorted(b.frequency for b in result.tracks)
        # Two GPX tracks twice each, one TCX activity, one FIT activity
        assert frequencies == [1, 1, 2, 2]

    def test_no_files(self):
        assert process_track_files([]).max_frequency == 0

    @pytest.mark.parametrize("batch", [5, 3.5, object()])
    def test_non_iterable_batches(self, batch):
        assert process_polylines(batch).max_frequency == 0
        assert process_track_files(batch).max_frequency == 0

    def test_single_payloads(self, gpx_bytes):
        assert process_polylines(encode(SF_ROUTE)).max_frequency == 1
        assert process_track_files(gpx_bytes).max_frequency == 1


class TestClustering:
    def test_groups_similar_tracks(self):
        tracks = [
            [(37.7749, -122.4194), (37.7849, -122.4094)],
            [(37.7750, -122.4195), (37.7850, -122.4095)],
            [(40.7128, -74.0060), (40.7228, -74.0160)],
        ]
        clusters = cluster_tracks(tracks, 0.8)
        assert [c.members for c in clusters] == [[0, 1], [2]]
        for cluster in clusters:
            assert len(cluster.representative) > 0
            assert 0.0 <= cluster.similarity <= 1.0

    def test_threshold_above_one_keeps_tracks_apart(self):
        clusters = cluster_tracks([SF_ROUTE, SF_ROUTE], 1.01)
        assert len(clusters) == 2

    def test_empty(self):
        assert cluster_tracks([], 0.5) == []

    def test_merge_nearby(self):
        slightly_off = [(lat + 0.0001, lon) for lat, lon in SF_ROUTE]
        merged = merge_nearby_tracks([SF_ROUTE, slightly_off, NYC_ROUTE], 0.1)
        assert len(merged) == 2
        assert isinstance(merged[0], Track)


class TestSegments:
    def test_snap_to_grid(self):
        a = snap_to_grid((37.7749, -122.4194), 0.001)
        b = snap_to_grid((37.7749001, -122.4194001), 0.001)
        assert a == b
        assert a.lat == pytest.approx(37.775)

    def test_segment_key_is_direction_independent(self):
        start = (37.7749, -122.4194)
        end = (37.7849, -122.4094)
        assert segment_key(start, end) == segment_key(end, start)
        assert segment_key((37.7749001, -122.4194001), end) == segment_key(start, end)

    def test_density_counts_distinct_tracks(self):
        forward = [(10.0, 10.0), (10.001, 10.0), (10.002, 10.0)]
        backward = list(reversed(forward))
        partial = forward[:2]
        densities = segment_density([forward, backward, partial])
        assert [d.count for d in densities] == [3, 2]

    def test_density_min_count(self):
        forward = [(10.0, 10.0), (10.001, 10.0), (10.002, 10.0)]
        densities = segment_density([forward, forward[:2]], min_count=2)
        assert len(densities) == 1
        assert densities[0].count == 2

    def test_repeated_passes_count_once(self):
        loop = [(10.0, 10.0), (10.001, 10.0), (10.0, 10.0), (10.001, 10.0)]
        densities = segment_density([loop])
        assert [d.count for d in densities] == [1]

    def test_density_empty(self):
        assert segment_density([]) == []
