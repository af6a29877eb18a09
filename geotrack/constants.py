"""
Constants for GPS Track Analysis

This module defines the numeric constants and default tunables shared by the
parsers, geometry routines and aggregators.
"""

# Mean Earth radius used by all great-circle math
EARTH_RADIUS_KM = 6371.0

# Polyline codec: 5 decimal places of fixed-point precision
POLYLINE_PRECISION = 5
# A 64-bit delta never needs more than 13 five-bit chunks
POLYLINE_MAX_SHIFT = 65

# Ingest filtering
MAX_JUMP_KM = 100.0
MAX_CONSECUTIVE_JUMPS = 10

# Heatmap aggregation
HEATMAP_MATCH_THRESHOLD_KM = 0.05
HEATMAP_SAMPLE_POINTS = 16
EMPTY_HEATMAP_MAX_FREQUENCY = 0
SEGMENT_GRID_SIZE = 0.0001
CLUSTER_SIMILARITY_THRESHOLD = 0.7

# GPX export
GPX_CREATOR = "geotrack"
GPX_NAMESPACE = "http://www.topografix.com/GPX/1/1"
GPX_MIN_DECIMALS = 4
GPX_MAX_DECIMALS = 6

# FIT binary format
FIT_SIGNATURE = b".FIT"
FIT_HEADER_SIZES = (12, 14)
FIT_RECORD_MESSAGE = 20
FIT_FIELD_LATITUDE = 0
FIT_FIELD_LONGITUDE = 1
FIT_FIELD_ALTITUDE = 2
FIT_FIELD_ENHANCED_ALTITUDE = 78
FIT_FIELD_TIMESTAMP = 253
FIT_INVALID_SINT32 = 0x7FFFFFFF
FIT_INVALID_UINT16 = 0xFFFF
FIT_INVALID_UINT32 = 0xFFFFFFFF
FIT_SEMICIRCLES_TO_DEGREES = 180.0 / 2 ** 31
FIT_ALTITUDE_SCALE = 5.0
FIT_ALTITUDE_OFFSET = 500.0
# Seconds between the Unix epoch and the FIT epoch (1989-12-31T00:00:00Z)
FIT_EPOCH_OFFSET = 631065600
FIT_MAX_FIELDS = 100
FIT_MAX_FIELD_SIZE = 128

# Only the first few KiB are inspected when sniffing XML root elements
SNIFF_BYTES = 4096
