"""
Async Toolkit Facade

GeoToolkit is the entry point for visualization clients. Each method awaits
the engine bootstrap, then runs the operation to completion inline; the
operations themselves never suspend. The only error a method raises on its
own behalf is BootstrapError.
"""

from typing import Dict, List, Optional, Sequence

from .bootstrap import EngineLoader
from .config import EngineConfig
from .models import (
    Coverage,
    FileInfo,
    HeatmapResult,
    Intersection,
    SegmentDensity,
    Track,
    TrackCluster,
    TrackStatistics,
    ValidationResult,
)


class GeoToolkit:
    """
    Async operation surface backed by an EngineLoader.

    Args:
        loader: Loader to obtain the engine from. A loader built from
            config is created when omitted.
        config: EngineConfig used when no loader is given.
    """

    def __init__(self, loader: Optional[EngineLoader] = None,
                 config: Optional[EngineConfig] = None):
        self.loader = loader or EngineLoader(config=config)

    async def _call(self, operation: str, *args, **kwargs):
        engine = await self.loader.load_async()
        return getattr(engine, operation)(*args, **kwargs)

    async def ready(self) -> bool:
        """Bootstrap the engine now instead of on first use."""
        await self.loader.load_async()
        return True

    # Core operations

    async def decode_polyline(self, encoded: str) -> Track:
        return await self._call("decode_polyline", encoded)

    async def process_polylines(self, polylines: Sequence[str]) -> HeatmapResult:
        return await self._call("process_polylines", polylines)

    async def process_gpx_files(self, buffers: Sequence[bytes]) -> HeatmapResult:
        return await self._call("process_gpx_files", buffers)

    async def validate_coordinates(self, track) -> ValidationResult:
        return await self._call("validate_coordinates", track)

    async def calculate_track_statistics(self, track) -> TrackStatistics:
        return await self._call("calculate_track_statistics", track)

    async def simplify_track(self, track, tolerance: float) -> Track:
        return await self._call("simplify_track", track, tolerance)

    async def find_track_intersections(self, tracks, tolerance: float) -> List[Intersection]:
        return await self._call("find_track_intersections", tracks, tolerance)

    async def calculate_coverage_area(self, tracks) -> Coverage:
        return await self._call("calculate_coverage_area", tracks)

    async def coordinates_to_geojson(self, track, properties: Optional[Dict] = None) -> Dict:
        return await self._call("coordinates_to_geojson", track, properties)

    async def export_to_gpx(self, tracks, metadata: Optional[Dict] = None) -> str:
        return await self._call("export_to_gpx", tracks, metadata)

    async def get_file_info(self, data: bytes) -> FileInfo:
        return await self._call("get_file_info", data)

    async def calculate_distance(self, lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        return await self._call("calculate_distance", lat1, lon1, lat2, lon2)

    # Supplementary operations

    async def encode_polyline(self, track) -> str:
        return await self._call("encode_polyline", track)

    async def parse_track_file(self, data: bytes) -> List[Track]:
        return await self._call("parse_track_file", data)

    async def resample_track(self, track, target_count: int) -> Track:
        return await self._call("resample_track", track, target_count)

    async def split_track_by_gaps(self, track, max_gap_km: float,
                                  time_gap_s: Optional[float] = None) -> List[Track]:
        return await self._call("split_track_by_gaps", track, max_gap_km, time_gap_s)

    async def filter_coordinates_by_bounds(self, track, bounds: Sequence[float]) -> Track:
        return await self._call("filter_coordinates_by_bounds", track, bounds)

    async def cluster_tracks(self, tracks, similarity_threshold: float) -> List[TrackCluster]:
        return await self._call("cluster_tracks", tracks, similarity_threshold)

    async def merge_nearby_tracks(self, tracks, threshold_km: float) -> List[Track]:
        return await self._call("merge_nearby_tracks", tracks, threshold_km)

    async def segment_density(self, tracks, grid_size: Optional[float] = None) -> List[SegmentDensity]:
        if grid_size is None:
            return await self._call("segment_density", tracks)
        return await self._call("segment_density", tracks, grid_size)

    async def get_bounding_box(self, track):
        return await self._call("get_bounding_box", track)

    async def heatmap_to_geojson(self, result: HeatmapResult) -> Dict:
        return await self._call("heatmap_to_geojson", result)

    async def tracks_to_geojson(self, tracks, properties: Optional[List[Dict]] = None) -> Dict:
        return await self._call("tracks_to_geojson", tracks, properties)
