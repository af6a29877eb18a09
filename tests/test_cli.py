"""
Tests for the analyze_tracks command-line tool.
"""

import json

import pytest

import analyze_tracks
from geotrack.config import CONFIG_ENV, ENGINE_MODULES_ENV
from geotrack.polyline_codec import encode


@pytest.fixture
def ride_files(tmp_path, gpx_bytes, fit_bytes):
    gpx = tmp_path / "ride.gpx"
    gpx.write_bytes(gpx_bytes)
    fit = tmp_path / "ride.fit"
    fit.write_bytes(fit_bytes)
    return gpx, fit


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV, raising=False)
    monkeypatch.delenv(ENGINE_MODULES_ENV, raising=False)


class TestCommands:
    def test_info(self, ride_files, capsys):
        gpx, fit = ride_files
        assert analyze_tracks.main(["info", str(gpx), str(fit), "missing.gpx"]) == 0
        out = capsys.readouterr().out
        assert "ride.gpx" in out
        assert "fit" in out
        assert "missing" in out

    def test_stats(self, ride_files, capsys):
        gpx, _ = ride_files
        assert analyze_tracks.main(["stats", str(gpx)]) == 0
        out = capsys.readouterr().out
        assert "Morning Ride" in out
        assert "Distance:" in out

    def test_stats_missing_file(self, tmp_path):
        assert analyze_tracks.main(["stats", str(tmp_path / "none.gpx")]) == 1

    def test_heatmap_geojson(self, ride_files, tmp_path, capsys):
        gpx, _ = ride_files
        output = tmp_path / "heatmap.geojson"
        assert analyze_tracks.main(["heatmap", str(gpx), str(gpx), "--geojson", str(output)]) == 0
        assert "max frequency 2" in capsys.readouterr().out
        payload = json.loads(output.read_text(encoding="utf-8"))
        assert payload["type"] == "FeatureCollection"

    def test_heatmap_polylines(self, tmp_path, capsys):
        route = [(37.7749, -122.4194), (37.7849, -122.4094)]
        lines = tmp_path / "routes.txt"
        lines.write_text(f"{encode(route)}\n{encode(route)}\n", encoding="utf-8")
        assert analyze_tracks.main(["heatmap", "--polylines", str(lines)]) == 0
        assert "max frequency 2" in capsys.readouterr().out

    def test_export_gpx(self, ride_files, tmp_path):
        gpx, fit = ride_files
        output = tmp_path / "all.gpx"
        assert analyze_tracks.main(["export", str(gpx), str(fit), "--output", str(output), "--name", "All"]) == 0
        body = output.read_text(encoding="utf-8")
        assert body.count("<trk>") == 3
        assert "<name>All</name>" in body

    def test_export_geojson(self, ride_files, tmp_path):
        gpx, _ = ride_files
        output = tmp_path / "all.geojson"
        assert analyze_tracks.main(["export", str(gpx), "--output", str(output), "--format", "geojson"]) == 0
        payload = json.loads(output.read_text(encoding="utf-8"))
        assert [f["properties"]["name"] for f in payload["features"]] == ["Morning Ride", "Planned"]

    def test_export_nothing(self, tmp_path):
        assert analyze_tracks.main(["export", str(tmp_path / "none.gpx"), "--output", str(tmp_path / "o.gpx")]) == 1


def test_engine_failure_exit_code(tmp_path, capsys):
    config = tmp_path / "geotrack.yaml"
    config.write_text("engine_modules: [geotrack_missing_engine]\n")
    assert analyze_tracks.main(["--config", str(config), "info", "x.gpx"]) == 2
    assert "Could not load a track engine" in capsys.readouterr().out
