"""
Polyline Encoding and Decoding

This module implements the encoded polyline format: coordinates are scaled
to 5-decimal fixed point, delta-encoded against the previous point, zig-zag
signed, and packed into 5-bit groups with a continuation bit, each group
offset by 63 into printable ASCII.

Decoding is forgiving. Truncated or garbled input yields the points decoded
before the defect instead of an error.
"""

import json
import logging
import math
from typing import Iterable, List, Optional, Tuple

from . import constants
from . import utils
from .models import Coordinate

logger = logging.getLogger(__name__)


def _decode_value(encoded: str, index: int) -> Tuple[Optional[int], int]:
    """
    Read one zig-zag varint starting at index.

    Returns:
        (value, next_index). value is None when the input ends mid-value or
        contains a character outside the encoding alphabet.
    """
    result = 0
    shift = 0
    length = len(encoded)

    while index < length:
        chunk = ord(encoded[index]) - 63
        index += 1
        if chunk < 0 or chunk > 63:
            return None, index
        result |= (chunk & 0x1F) << shift
        shift += 5
        if chunk < 0x20:
            value = ~(result >> 1) if result & 1 else result >> 1
            return value, index
        if shift > constants.POLYLINE_MAX_SHIFT:
            return None, index

    return None, index


def decode(encoded: str, precision: int = constants.POLYLINE_PRECISION) -> List[Coordinate]:
    """
    Decode an encoded polyline into coordinates.

    Args:
        encoded: Encoded polyline string.
        precision: Number of fixed-point decimals. Default 5.

    Returns:
        List of Coordinate in path order. Empty for empty or non-string
        input; partial when the string is truncated or garbled.
    """
    if not isinstance(encoded, str) or not encoded:
        return []

    factor = 10 ** precision
    coordinates = []
    index = 0
    lat = 0
    lon = 0

    while index < len(encoded):
        lat_delta, index = _decode_value(encoded, index)
        if lat_delta is None:
            break
        lon_delta, index = _decode_value(encoded, index)
        if lon_delta is None:
            break
        lat += lat_delta
        lon += lon_delta
        coordinates.append(Coordinate(lat / factor, lon / factor))

    if index < len(encoded):
        logger.debug("Polyline decoding stopped at offset %d of %d", index, len(encoded))

    return coordinates


def _encode_value(value: int, out: List[str]) -> None:
    value = ~(value << 1) if value < 0 else value << 1
    while value >= 0x20:
        out.append(chr((0x20 | (value & 0x1F)) + 63))
        value >>= 5
    out.append(chr(value + 63))


def _scale(value: float, factor: int) -> int:
    # Half away from zero, matching the reference encoder
    return int(math.copysign(math.floor(abs(value) * factor + 0.5), value))


def encode(coordinates: Iterable, precision: int = constants.POLYLINE_PRECISION) -> str:
    """
    Encode coordinates as a polyline string.

    Args:
        coordinates: Iterable of (lat, lon) pairs.
        precision: Number of fixed-point decimals. Default 5.

    Returns:
        Encoded string. Points with non-finite components are skipped.
    """
    factor = 10 ** precision
    out: List[str] = []
    prev_lat = 0
    prev_lon = 0

    for lat, lon in coordinates:
        lat, lon = utils.safe_float(lat), utils.safe_float(lon)
        if not (math.isfinite(lat) and math.isfinite(lon)):
            continue
        lat_i = _scale(lat, factor)
        lon_i = _scale(lon, factor)
        _encode_value(lat_i - prev_lat, out)
        _encode_value(lon_i - prev_lon, out)
        prev_lat, prev_lon = lat_i, lon_i

    return "".join(out)


def parse_polyline_payload(payload: str) -> List[Coordinate]:
    """
    Read coordinates from either an encoded polyline or a JSON array.

    Some activity services hand out routes as JSON arrays of [lat, lon]
    pairs rather than encoded strings. Text starting with "[" is parsed as
    such; anything else goes through decode().

    Args:
        payload: Encoded polyline or JSON text.

    Returns:
        List of Coordinate. Entries that are not numeric pairs are skipped.
    """
    if not isinstance(payload, str):
        return []
    text = payload.strip()
    if not text.startswith("["):
        return decode(text)

    try:
        items = json.loads(text)
    except ValueError:
        logger.debug("Payload looked like JSON but did not parse")
        return []

    coordinates = []
    for item in items if isinstance(items, list) else []:
        if not isinstance(item, (list, tuple)) or len(item) < 2:
            continue
        lat, lon = utils.safe_float(item[0]), utils.safe_float(item[1])
        if math.isfinite(lat) and math.isfinite(lon):
            coordinates.append(Coordinate(lat, lon))
    return coordinates
