#!/usr/bin/env python3
"""
Command-line Track Analysis

Runs the track engine over GPX, TCX and FIT files on disk:
- info:    detected format, track and point counts per file
- stats:   distance, bounding box, elevation gain and speed per track
- heatmap: route frequency buckets across all files
- export:  merge every track into one GPX or GeoJSON file

Usage:
    python analyze_tracks.py info ride1.gpx ride2.fit
    python analyze_tracks.py stats ride1.gpx --simplify 0.0001
    python analyze_tracks.py heatmap rides/*.gpx --geojson heatmap.geojson
    python analyze_tracks.py export rides/*.fit --output all.gpx
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from geotrack.bootstrap import BootstrapError, EngineLoader
from geotrack.config import configure_logging, load_config


def read_files(paths: List[str]) -> List[bytes]:
    """Read each path as bytes, skipping (with a warning) files that do not exist."""
    buffers = []
    for name in paths:
        path = Path(name)
        if not path.is_file():
            print(f"Warning: File not found: {path}")
            continue
        buffers.append(path.read_bytes())
    return buffers


def cmd_info(engine, args) -> int:
    header = f"{'File':<40} {'Format':>8} {'Tracks':>7} {'Points':>8} {'Valid':>6} {'Bytes':>10}"
    print(header)
    print("-" * len(header))
    for name in args.files:
        path = Path(name)
        if not path.is_file():
            print(f"{path.name:<40} {'missing':>8}")
            continue
        info = engine.get_file_info(path.read_bytes())
        print(f"{path.name:<40} {info.format.value:>8} {info.track_count:>7} "
              f"{info.point_count:>8} {str(info.valid):>6} {info.file_size:>10}")
    return 0


def cmd_stats(engine, args) -> int:
    path = Path(args.file)
    if not path.is_file():
        print(f"Error: File not found: {path}")
        return 1

    tracks = engine.parse_track_file(path.read_bytes())
    if not tracks:
        print(f"No tracks found in {path}")
        return 1

    for number, track in enumerate(tracks, start=1):
        if args.simplify:
            track = engine.simplify_track(track, args.simplify)
        stats = engine.calculate_track_statistics(track)
        print(f"\nTrack {number}: {track.name or '(unnamed)'}")
        print(f"  Points:       {stats.point_count}")
        print(f"  Distance:     {stats.distance_km:.3f} km")
        print(f"  Bounding box: {', '.join(f'{v:.5f}' for v in stats.bounding_box)}")
        if stats.elevation_gain is not None:
            print(f"  Elevation:    +{stats.elevation_gain:.1f} m")
        if stats.average_speed is not None:
            print(f"  Avg speed:    {stats.average_speed:.2f} km/h")
    return 0


def cmd_heatmap(engine, args) -> int:
    if args.polylines:
        lines = []
        for name in args.files:
            lines.extend(Path(name).read_text(encoding="utf-8").split())
        result = engine.process_polylines(lines)
    else:
        result = engine.process_gpx_files(read_files(args.files))

    print(f"Buckets: {len(result.tracks)}  (max frequency {result.max_frequency})")
    for number, bucket in enumerate(result.tracks, start=1):
        print(f"  {number:>3}. frequency {bucket.frequency:>3}  points {len(bucket.track):>6}")

    if args.geojson:
        output = Path(args.geojson)
        output.write_text(json.dumps(engine.heatmap_to_geojson(result), indent=2), encoding="utf-8")
        print(f"Saved heatmap GeoJSON to: {output}")
    return 0


def cmd_export(engine, args) -> int:
    tracks = []
    for data in read_files(args.files):
        tracks.extend(engine.parse_track_file(data))
    if not tracks:
        print("No tracks to export!")
        return 1

    output = Path(args.output)
    if args.format == "geojson":
        collection = engine.tracks_to_geojson(tracks, [{"name": t.name} for t in tracks])
        body = json.dumps(collection, indent=2)
    else:
        body = engine.export_to_gpx(tracks, {"name": args.name} if args.name else None)
    output.write_text(body, encoding="utf-8")
    print(f"Saved {len(tracks)} tracks to: {output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Analyze GPS track files (GPX, TCX, FIT)"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a YAML configuration file (default: $GEOTRACK_CONFIG)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    info = subparsers.add_parser("info", help="Show format and counts for each file")
    info.add_argument("files", nargs="+", help="Track files to inspect")
    info.set_defaults(handler=cmd_info)

    stats = subparsers.add_parser("stats", help="Show statistics for each track in a file")
    stats.add_argument("file", help="Track file to analyze")
    stats.add_argument(
        "--simplify",
        type=float,
        default=0.0,
        help="Douglas-Peucker tolerance in degrees applied first (default: 0, off)"
    )
    stats.set_defaults(handler=cmd_stats)

    heatmap = subparsers.add_parser("heatmap", help="Aggregate tracks into route frequency buckets")
    heatmap.add_argument("files", nargs="+", help="Track files, or polyline text files with --polylines")
    heatmap.add_argument(
        "--polylines",
        action="store_true",
        help="Inputs are text files with one encoded polyline per line"
    )
    heatmap.add_argument("--geojson", type=str, default=None, help="Write the heatmap as GeoJSON here")
    heatmap.set_defaults(handler=cmd_heatmap)

    export = subparsers.add_parser("export", help="Merge all tracks into one output file")
    export.add_argument("files", nargs="+", help="Track files to merge")
    export.add_argument("--output", type=str, required=True, help="Output file path")
    export.add_argument(
        "--format",
        type=str,
        default="gpx",
        choices=["gpx", "geojson"],
        help="Output format (default: gpx)"
    )
    export.add_argument("--name", type=str, default=None, help="GPX metadata name")
    export.set_defaults(handler=cmd_export)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = load_config(args.config)
    configure_logging(config.log_level)

    try:
        engine = EngineLoader(config=config).load()
    except BootstrapError as exc:
        print(f"Error: {exc}")
        return 2

    return args.handler(engine, args)


if __name__ == "__main__":
    sys.exit(main())
