"""
FastAPI Web Application for GPS Track Analysis

This module provides a REST API over the track engine: polyline decoding,
file inspection, statistics, simplification, intersections, coverage,
heatmaps and GPX/GeoJSON export.
"""

import logging
from typing import Dict, List, Optional

from fastapi import FastAPI, File, HTTPException, Query, UploadFile
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from geotrack.bootstrap import BootstrapError
from geotrack.config import configure_logging, load_config
from geotrack.toolkit import GeoToolkit

logger = logging.getLogger(__name__)


# ============================================================================
# APPLICATION SETUP
# ============================================================================

config = load_config()
configure_logging(config.log_level)

app = FastAPI(title="geotrack")

# Shared toolkit; the engine is bootstrapped on the first request
toolkit = GeoToolkit(config=config)


async def run(operation: str, *args):
    """
    Invoke a toolkit operation, mapping bootstrap failure to HTTP 503.

    Raises:
        HTTPException: If the engine could not be loaded (status 503).
    """
    try:
        return await getattr(toolkit, operation)(*args)
    except BootstrapError as exc:
        logger.error("Engine unavailable: %s", exc)
        raise HTTPException(status_code=503, detail=str(exc)) from exc


# ============================================================================
# REQUEST MODELS
# ============================================================================

class PolylineRequest(BaseModel):
    encoded: str


class PolylineBatchRequest(BaseModel):
    polylines: List[str] = Field(default_factory=list)


class TrackRequest(BaseModel):
    coordinates: List[List[float]] = Field(default_factory=list)


class SimplifyRequest(TrackRequest):
    tolerance: float = 0.0


class ResampleRequest(TrackRequest):
    target_count: int


class SplitRequest(TrackRequest):
    max_gap_km: float
    time_gap_s: Optional[float] = None


class BoundsRequest(TrackRequest):
    bounds: List[float]


class GeojsonRequest(TrackRequest):
    properties: Dict = Field(default_factory=dict)


class TracksRequest(BaseModel):
    tracks: List[List[List[float]]] = Field(default_factory=list)


class IntersectionRequest(TracksRequest):
    tolerance: float = 0.0001


class ClusterRequest(TracksRequest):
    similarity_threshold: float = 0.7


class MergeRequest(TracksRequest):
    threshold_km: float = 0.1


class SegmentRequest(TracksRequest):
    grid_size: Optional[float] = None


class TrackCollectionRequest(TracksRequest):
    properties: List[Dict] = Field(default_factory=list)


class GpxExportRequest(TracksRequest):
    metadata: Dict = Field(default_factory=dict)


# ============================================================================
# API ROUTES - STATUS
# ============================================================================

@app.get("/api/health")
async def health():
    """
    Report whether the engine can be loaded.

    Returns:
        Dictionary with status "ok".

    Raises:
        HTTPException: If the engine fails to bootstrap (status 503).
    """
    await run("ready")
    return {"status": "ok"}


# ============================================================================
# API ROUTES - POLYLINES & FILES
# ============================================================================

@app.post("/api/polyline/decode")
async def decode_polyline(request: PolylineRequest):
    """Decode an encoded polyline into its valid [lat, lon] pairs."""
    track = await run("decode_polyline", request.encoded)
    return {"coordinates": track.to_list()}


@app.post("/api/polyline/encode")
async def encode_polyline(request: TrackRequest):
    encoded = await run("encode_polyline", request.coordinates)
    return {"encoded": encoded}


@app.post("/api/heatmap/polylines")
async def heatmap_from_polylines(request: PolylineBatchRequest,
                                 geojson: bool = Query(False, description="Return a GeoJSON FeatureCollection")):
    """
    Aggregate encoded polylines into route frequency buckets.

    Args:
        request: Body with the list of encoded polylines.
        geojson: Return GeoJSON instead of the heatmap payload.

    Returns:
        Heatmap payload with tracks and max_frequency.
    """
    result = await run("process_polylines", request.polylines)
    if geojson:
        return await run("heatmap_to_geojson", result)
    return result.to_dict()


@app.post("/api/heatmap/files")
async def heatmap_from_files(files: List[UploadFile] = File(...),
                             geojson: bool = Query(False, description="Return a GeoJSON FeatureCollection")):
    """
    Aggregate uploaded GPX, TCX or FIT files into route frequency buckets.

    Unreadable files contribute nothing to the result.
    """
    buffers = [await upload.read() for upload in files]
    result = await run("process_gpx_files", buffers)
    if geojson:
        return await run("heatmap_to_geojson", result)
    return result.to_dict()


@app.post("/api/files/info")
async def file_info(file: UploadFile = File(...)):
    """
    Inspect an uploaded track file.

    Returns:
        Dictionary with format, track_count, point_count, valid and file_size.
    """
    data = await file.read()
    info = await run("get_file_info", data)
    payload = info.to_dict()
    payload["filename"] = file.filename
    return payload


@app.post("/api/files/tracks")
async def file_tracks(file: UploadFile = File(...)):
    """Parse an uploaded track file into lists of [lat, lon] pairs."""
    data = await file.read()
    tracks = await run("parse_track_file", data)
    return {
        "tracks": [
            {"name": track.name, "coordinates": track.to_list()}
            for track in tracks
        ]
    }


# ============================================================================
# API ROUTES - SINGLE TRACK
# ============================================================================

@app.post("/api/validate")
async def validate(request: TrackRequest):
    result = await run("validate_coordinates", request.coordinates)
    return result.to_dict()


@app.post("/api/statistics")
async def statistics(request: TrackRequest):
    """
    Compute distance, point count and bounding box of a track.

    Returns:
        Dictionary with distance_km, point_count and bounding_box.
    """
    stats = await run("calculate_track_statistics", request.coordinates)
    return stats.to_dict()


@app.post("/api/simplify")
async def simplify(request: SimplifyRequest):
    track = await run("simplify_track", request.coordinates, request.tolerance)
    return {"coordinates": track.to_list(), "original_count": len(request.coordinates)}


@app.post("/api/resample")
async def resample(request: ResampleRequest):
    track = await run("resample_track", request.coordinates, request.target_count)
    return {"coordinates": track.to_list()}


@app.post("/api/split")
async def split(request: SplitRequest):
    tracks = await run("split_track_by_gaps", request.coordinates, request.max_gap_km, request.time_gap_s)
    return {"tracks": [track.to_list() for track in tracks]}


@app.post("/api/filter/bounds")
async def filter_bounds(request: BoundsRequest):
    track = await run("filter_coordinates_by_bounds", request.coordinates, request.bounds)
    return {"coordinates": track.to_list()}


@app.post("/api/geojson")
async def geojson(request: GeojsonRequest):
    """Convert a track into a GeoJSON LineString Feature ([lon, lat] order)."""
    return await run("coordinates_to_geojson", request.coordinates, request.properties)


@app.post("/api/geojson/tracks")
async def geojson_tracks(request: TrackCollectionRequest):
    """Convert tracks into a FeatureCollection; properties pair with tracks by position."""
    return await run("tracks_to_geojson", request.tracks, request.properties)

@app.get("/api/distance")
async def distance(lat1: float = Query(...), lon1: float = Query(...),
                   lat2: float = Query(...), lon2: float = Query(...)):
    """
    Great-circle distance between two points.

    Returns:
        Dictionary with distance_km.
    """
    distance_km = await run("calculate_distance", lat1, lon1, lat2, lon2)
    return {"distance_km": distance_km}


# ============================================================================
# API ROUTES - MULTIPLE TRACKS
# ============================================================================

@app.post("/api/intersections")
async def intersections(request: IntersectionRequest):
    """
    Find places where tracks cross or pass within tolerance degrees.

    Returns:
        Dictionary with a list of intersections, each holding a coordinate
        and the indices of the tracks seen there.
    """
    records = await run("find_track_intersections", request.tracks, request.tolerance)
    return {"intersections": [record.to_dict() for record in records]}


@app.post("/api/coverage")
async def coverage(request: TracksRequest):
    result = await run("calculate_coverage_area", request.tracks)
    return result.to_dict()


@app.post("/api/clusters")
async def clusters(request: ClusterRequest):
    result = await run("cluster_tracks", request.tracks, request.similarity_threshold)
    return {"clusters": [cluster.to_dict() for cluster in result]}


@app.post("/api/merge")
async def merge(request: MergeRequest):
    tracks = await run("merge_nearby_tracks", request.tracks, request.threshold_km)
    return {"tracks": [track.to_list() for track in tracks]}


@app.post("/api/segments")
async def segments(request: SegmentRequest):
    """Count distinct tracks per grid-snapped segment, busiest first."""
    result = await run("segment_density", request.tracks, request.grid_size)
    return {"segments": [segment.to_dict() for segment in result]}


# ============================================================================
# API ROUTES - EXPORT
# ============================================================================

@app.post("/api/export/gpx")
async def export_gpx(request: GpxExportRequest):
    """
    Export tracks as a downloadable GPX 1.1 document.

    Returns:
        PlainTextResponse: GPX file with Content-Disposition header
        for download. Filename: tracks.gpx
    """
    body = await run("export_to_gpx", request.tracks, request.metadata)
    headers = {"Content-Disposition": "attachment; filename=tracks.gpx"}
    return PlainTextResponse(
        body,
        media_type="application/gpx+xml",
        headers=headers
    )


# ============================================================================
# RUN INSTRUCTIONS
# ============================================================================
# Run with: uvicorn app:app --reload
