"""
Tests for Douglas-Peucker simplification and resampling.
"""

import math

from geotrack.models import Coordinate, Track
from geotrack.simplify import resample_track, simplify_track


ZIGZAG = [(0.0, 0.1), (0.001, 0.2), (0.0, 0.3), (0.05, 0.4), (0.0, 0.5), (0.001, 0.6), (0.0, 0.7)]


class TestSimplify:
    def test_zero_tolerance_returns_input(self, city_track):
        track = Track(tuple(Coordinate(*c) for c in city_track))
        assert simplify_track(track, 0) is track

    def test_short_tracks_unchanged(self):
        assert len(simplify_track([], 1.0)) == 0
        assert simplify_track([(1.0, 1.0)], 1.0).to_list() == [[1.0, 1.0]]
        assert len(simplify_track([(1.0, 1.0), (2.0, 2.0)], 1.0)) == 2

    def test_collinear_points_collapse_to_endpoints(self):
        track = simplify_track([(1.0, 1.0), (1.5, 1.5), (2.0, 2.0), (2.5, 2.5)], 0.0001)
        assert track.to_list() == [[1.0, 1.0], [2.5, 2.5]]

    def test_keeps_significant_points(self):
        track = simplify_track(ZIGZAG, 0.04)
        assert track.to_list() == [[0.0, 0.1], [0.05, 0.4], [0.0, 0.7]]

    def test_endpoints_always_kept(self):
        for tolerance in (0.0001, 0.01, 1.0, 100.0):
            track = simplify_track(ZIGZAG, tolerance)
            assert track[0] == ZIGZAG[0]
            assert track[-1] == ZIGZAG[-1]
            assert len(track) <= len(ZIGZAG)

    def test_tie_broken_by_earliest_index(self):
        coords = [(0.0, 0.0), (1.0, 1.0), (1.0, 2.0), (0.0, 3.0)]
        track = simplify_track(coords, 0.5)
        assert track.to_list()[1] == [1.0, 1.0]

    def test_invalid_tolerance_returns_input(self, city_track):
        assert len(simplify_track(city_track, -1.0)) == len(city_track)
        assert len(simplify_track(city_track, math.nan)) == len(city_track)
        assert len(simplify_track(city_track, "abc")) == len(city_track)

    def test_infinite_tolerance_keeps_endpoints(self):
        track = simplify_track(ZIGZAG, math.inf)
        assert track.to_list() == [list(ZIGZAG[0]), list(ZIGZAG[-1])]
        assert simplify_track(ZIGZAG, 1e9) == track

    def test_deterministic(self):
        assert simplify_track(ZIGZAG, 0.0005) == simplify_track(ZIGZAG, 0.0005)

    def test_long_track_does_not_recurse(self):
        coords = [(math.sin(i / 10.0), i * 0.01) for i in range(5000)]
        track = simplify_track(coords, 0.001)
        assert 2 < len(track) < 5000


class TestResample:
    def test_reduces_and_keeps_last(self):
        coords = [(float(i), float(i)) for i in range(1, 101)]
        track = resample_track(coords, 10)
        assert len(track) == 11
        assert track[0] == (1.0, 1.0)
        assert track[-1] == (100.0, 100.0)

    def test_short_track_unchanged(self, city_track):
        assert len(resample_track(city_track, 10)) == len(city_track)

    def test_bad_target(self, city_track):
        assert len(resample_track(city_track, 0)) == len(city_track)
        assert len(resample_track(city_track, math.inf)) == len(city_track)
        assert len(resample_track(city_track, math.nan)) == len(city_track)
        assert len(resample_track(city_track, "ten")) == len(city_track)
