"""
Engine Bootstrap for GPS Track Analysis

This module locates and loads the engine module that implements the track
operations. Candidate sources are tried in the configured order; the first
one that imports and provides every required operation wins.

The outcome is computed once per loader behind a lock, so concurrent first
calls from threads or coroutines trigger a single bootstrap and all observe
the same handle or the same BootstrapError.
"""

import asyncio
import importlib
import importlib.util
import logging
import threading
from pathlib import Path
from types import ModuleType
from typing import Iterable, List, Optional, Tuple

from .config import EngineConfig

logger = logging.getLogger(__name__)

REQUIRED_OPERATIONS = (
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
)


class BootstrapError(RuntimeError):
    """
    No engine candidate could be loaded.

    Attributes:
        attempts: (candidate, reason) for every source that was tried.
    """

    def __init__(self, attempts: List[Tuple[str, str]]):
        self.attempts = list(attempts)
        if self.attempts:
            detail = "; ".join(f"{candidate} ({reason})" for candidate, reason in self.attempts)
            message = f"Could not load a track engine. Tried: {detail}"
        else:
            message = "Could not load a track engine: no candidates configured"
        super().__init__(message)


def _is_path(candidate: str) -> bool:
    return candidate.endswith(".py") or "/" in candidate or "\\" in candidate


def import_candidate(candidate: str) -> ModuleType:
    """
    Import a candidate given as a dotted module name or a .py file path.

    Raises:
        ImportError: If the module cannot be found.
        Exception: Whatever the module raises while executing.
    """
    if not _is_path(candidate):
        return importlib.import_module(candidate)

    path = Path(candidate).expanduser()
    if not path.is_file():
        raise ImportError(f"no such file: {path}")
    spec = importlib.util.spec_from_file_location(f"geotrack_engine_{path.stem}", path)
    if spec is None or spec.loader is None:
        raise ImportError(f"cannot load a module from {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def missing_operations(module: ModuleType) -> List[str]:
    return [name for name in REQUIRED_OPERATIONS if not callable(getattr(module, name, None))]


class EngineLoader:
    """
    Exactly-once loader for the engine module.

    Args:
        candidates: Engine sources in the order to try. Defaults to the
            configured engine_modules.
        config: EngineConfig supplying the default candidates.
    """

    def __init__(self, candidates: Optional[Iterable[str]] = None,
                 config: Optional[EngineConfig] = None):
        if candidates is None:
            candidates = (config or EngineConfig()).engine_modules
        self.candidates = tuple(candidates)
        self._lock = threading.Lock()
        self._handle: Optional[ModuleType] = None
        self._error: Optional[BootstrapError] = None

    @property
    def loaded(self) -> bool:
        return self._handle is not None

    def _bootstrap(self) -> ModuleType:
        attempts = []
        for candidate in self.candidates:
            try:
                module = import_candidate(candidate)
            except Exception as exc:
                logger.warning("Engine candidate %s failed to import: %s", candidate, exc)
                attempts.append((candidate, f"{type(exc).__name__}: {exc}"))
                continue

            missing = missing_operations(module)
            if missing:
                logger.warning("Engine candidate %s lacks %d operations", candidate, len(missing))
                attempts.append((candidate, "missing operations: " + ", ".join(missing)))
                continue

            logger.info("Loaded track engine from %s", candidate)
            return module

        raise BootstrapError(attempts)

    def load(self) -> ModuleType:
        """
        Return the engine handle, bootstrapping on first use.

        Raises:
            BootstrapError: If every candidate failed. The failure is cached
                until reset() is called.
        """
        with self._lock:
            if self._handle is None and self._error is None:
                try:
                    self._handle = self._bootstrap()
                except BootstrapError as exc:
                    self._error = exc
            if self._error is not None:
                raise self._error
            return self._handle

    async def load_async(self) -> ModuleType:
        """Awaitable load(); the first bootstrap runs in a worker thread."""
        if self._handle is None and self._error is None:
            await asyncio.to_thread(self.load)
        return self.load()

    def reset(self) -> None:
        """Forget the cached outcome so the next load() bootstraps again."""
        with self._lock:
            self._handle = None
            self._error = None
