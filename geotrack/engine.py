"""
GPS Track Analysis Engine

This module is the operation surface loaded by the bootstrap. It imports and
re-exports the public functions of the modular structure under their
operation names, so a replacement engine only has to provide a module with
the same names.
"""

# Import polyline codec and ingest pipelines
from .polyline_codec import encode as encode_polyline
from .pipeline import (
    decode_polyline,
    process_polylines,
    process_track_files as process_gpx_files,
)

# Import format detection and parsing
from .formats import (
    get_file_info,
    parse_tracks as parse_track_file,
)

# Import normalization functions
from .normalize import (
    validate_coordinates,
    split_track_by_gaps,
    filter_coordinates_by_bounds,
)

# Import metrics functions
from .metrics import (
    calculate_distance,
    calculate_track_statistics,
    calculate_coverage_area,
    get_bounding_box,
)

# Import simplification functions
from .simplify import (
    simplify_track,
    resample_track,
)

# Import intersection detection
from .intersections import find_intersections as find_track_intersections

# Import heatmap functions
from .heatmap import (
    cluster_tracks,
    merge_nearby_tracks,
    segment_density,
)

# Import export functions
from .export import (
    coordinates_to_geojson,
    export_to_gpx,
    heatmap_to_geojson,
    tracks_to_geojson,
)

__all__ = [
    # Core operations
    "decode_polyline",
    "process_polylines",
    "process_gpx_files",
    "validate_coordinates",
    "calculate_track_statistics",
    "simplify_track",
    "find_track_intersections",
    "calculate_coverage_area",
    "coordinates_to_geojson",
    "export_to_gpx",
    "get_file_info",
    "calculate_distance",
    # Supplementary operations
    "encode_polyline",
    "parse_track_file",
    "resample_track",
    "split_track_by_gaps",
    "filter_coordinates_by_bounds",
    "cluster_tracks",
    "merge_nearby_tracks",
    "segment_density",
    "get_bounding_box",
    "heatmap_to_geojson",
    "tracks_to_geojson",
]
