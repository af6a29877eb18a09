"""
geotrack: GPS track analysis engine.

Parses GPX, TCX and FIT files and encoded polylines into tracks, and derives
statistics, simplified geometry, intersections, coverage and route heatmaps.
"""

from .bootstrap import BootstrapError, EngineLoader
from .config import ConfigError, EngineConfig, load_config
from .models import Coordinate, Track, TrackFormat
from .toolkit import GeoToolkit

__version__ = "0.1.0"

__all__ = [
    "BootstrapError",
    "ConfigError",
    "Coordinate",
    "EngineConfig",
    "EngineLoader",
    "GeoToolkit",
    "Track",
    "TrackFormat",
    "load_config",
]
