"""
FIT Binary Parsing for GPS Track Analysis

This module reads Garmin FIT activity files just far enough to recover the
recorded track: the file header, definition messages, and the position,
altitude and timestamp fields of record messages. Anything the parser does
not understand is skipped; a truncated or corrupt stream stops the scan and
keeps every point read so far.
"""

import logging
import struct
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from . import constants

logger = logging.getLogger(__name__)


@dataclass
class FieldDefinition:
    number: int
    size: int
    base_type: int


@dataclass
class MessageDefinition:
    global_message_number: int
    endian: str = "<"
    fields: List[FieldDefinition] = field(default_factory=list)
    developer_size: int = 0

    @property
    def size(self) -> int:
        return sum(f.size for f in self.fields) + self.developer_size


@dataclass
class FitPoint:
    lat: float
    lon: float
    altitude: Optional[float] = None
    timestamp: Optional[datetime] = None


def is_fit_file(data: bytes) -> bool:
    """Check for a FIT header: size 12 or 14 in byte 0 and ".FIT" at bytes 8-11."""
    if len(data) < 12:
        return False
    return data[0] in constants.FIT_HEADER_SIZES and bytes(data[8:12]) == constants.FIT_SIGNATURE


def fit_timestamp(value: int) -> datetime:
    """Convert seconds since the FIT epoch into a UTC datetime."""
    return datetime.fromtimestamp(value + constants.FIT_EPOCH_OFFSET, tz=timezone.utc)


def semicircles_to_degrees(value: int) -> float:
    return value * constants.FIT_SEMICIRCLES_TO_DEGREES


class FitParser:
    """
    Sequential reader over a FIT byte buffer.

    The read helpers return None at end of data instead of raising, so each
    message parser can bail out cleanly on truncated input.
    """

    def __init__(self, data: bytes):
        self.data = bytes(data)
        self.pos = 0
        self.definitions: Dict[int, MessageDefinition] = {}
        self.last_timestamp: Optional[int] = None

    # ------------------------------------------------------------------
    # Primitive reads
    # ------------------------------------------------------------------

    def _unpack(self, fmt: str) -> Optional[int]:
        size = struct.calcsize(fmt)
        if self.pos + size > len(self.data):
            return None
        (value,) = struct.unpack_from(fmt, self.data, self.pos)
        self.pos += size
        return value

    def read_u8(self) -> Optional[int]:
        return self._unpack("B")

    def read_u16(self, endian: str = "<") -> Optional[int]:
        return self._unpack(endian + "H")

    def skip(self, count: int) -> None:
        self.pos = min(self.pos + count, len(self.data))

    # ------------------------------------------------------------------
    # Header
    # ------------------------------------------------------------------

    def read_header(self) -> Optional[Tuple[int, int]]:
        """
        Read the file header.

        Returns:
            (header_size, data_size), or None if the header is not FIT.
        """
        if not is_fit_file(self.data):
            return None
        header_size = self.data[0]
        (data_size,) = struct.unpack_from("<I", self.data, 4)
        self.pos = header_size
        return header_size, data_size

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def parse_definition_message(self, has_developer_data: bool = False) -> Optional[MessageDefinition]:
        """Parse the body of a definition message; None if malformed or truncated."""
        reserved = self.read_u8()
        architecture = self.read_u8()
        if reserved is None or architecture is None:
            return None
        endian = ">" if architecture == 1 else "<"
        global_number = self.read_u16(endian)
        field_count = self.read_u8()
        if global_number is None or field_count is None:
            return None
        if field_count > constants.FIT_MAX_FIELDS:
            logger.debug("Definition declares %d fields, giving up", field_count)
            return None

        definition = MessageDefinition(global_number, endian)
        for _ in range(field_count):
            number, size, base_type = self.read_u8(), self.read_u8(), self.read_u8()
            if base_type is None:
                return None
            if size > constants.FIT_MAX_FIELD_SIZE:
                logger.debug("Field %d has implausible size %d", number, size)
                return None
            definition.fields.append(FieldDefinition(number, size, base_type))

        if has_developer_data:
            developer_count = self.read_u8()
            if developer_count is None:
                return None
            for _ in range(developer_count):
                _, size, _ = self.read_u8(), self.read_u8(), self.read_u8()
                if size is None:
                    return None
                definition.developer_size += size

        return definition

    def _read_fields(self, definition: MessageDefinition) -> Optional[Dict[int, bytes]]:
        end = self.pos + definition.size
        if end > len(self.data):
            return None
        values = {}
        offset = self.pos
        for f in definition.fields:
            values[f.number] = self.data[offset:offset + f.size]
            offset += f.size
        self.pos = end
        return values

    def parse_record_message(self, definition: MessageDefinition,
                             timestamp: Optional[int] = None) -> Optional[FitPoint]:
        """
        Parse a record message body into a FitPoint.

        Args:
            definition: Definition of the local message type.
            timestamp: Timestamp carried by a compressed header, if any.

        Returns:
            FitPoint, or None when the record has no usable position or the
            data is truncated.
        """
        values = self._read_fields(definition)
        if values is None:
            return None
        endian = definition.endian

        raw_time = values.get(constants.FIT_FIELD_TIMESTAMP)
        if raw_time is not None and len(raw_time) == 4:
            (value,) = struct.unpack(endian + "I", raw_time)
            if value != constants.FIT_INVALID_UINT32:
                timestamp = value
                self.last_timestamp = value

        raw_lat = values.get(constants.FIT_FIELD_LATITUDE)
        raw_lon = values.get(constants.FIT_FIELD_LONGITUDE)
        if raw_lat is None or raw_lon is None or len(raw_lat) != 4 or len(raw_lon) != 4:
            return None
        (lat_raw,) = struct.unpack(endian + "i", raw_lat)
        (lon_raw,) = struct.unpack(endian + "i", raw_lon)
        if constants.FIT_INVALID_SINT32 in (lat_raw, lon_raw) or (lat_raw == 0 and lon_raw == 0):
            return None

        lat = semicircles_to_degrees(lat_raw)
        lon = semicircles_to_degrees(lon_raw)
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
            return None

        return FitPoint(
            lat=lat,
            lon=lon,
            altitude=self._altitude(values, endian),
            timestamp=fit_timestamp(timestamp) if timestamp is not None else None,
        )

    @staticmethod
    def _altitude(values: Dict[int, bytes], endian: str) -> Optional[float]:
        enhanced = values.get(constants.FIT_FIELD_ENHANCED_ALTITUDE)
        if enhanced is not None and len(enhanced) == 4:
            (raw,) = struct.unpack(endian + "I", enhanced)
            if raw != constants.FIT_INVALID_UINT32:
                return raw / constants.FIT_ALTITUDE_SCALE - constants.FIT_ALTITUDE_OFFSET
        plain = values.get(constants.FIT_FIELD_ALTITUDE)
        if plain is not None and len(plain) == 2:
            (raw,) = struct.unpack(endian + "H", plain)
            if raw != constants.FIT_INVALID_UINT16:
                return raw / constants.FIT_ALTITUDE_SCALE - constants.FIT_ALTITUDE_OFFSET
        return None

    def _compressed_timestamp(self, offset: int) -> Optional[int]:
        if self.last_timestamp is None:
            return None
        timestamp = (self.last_timestamp & ~0x1F) + offset
        if offset < (self.last_timestamp & 0x1F):
            timestamp += 0x20
        self.last_timestamp = timestamp
        return timestamp

    # ------------------------------------------------------------------
    # Whole-file scan
    # ------------------------------------------------------------------

    def parse(self) -> Tuple[List[FitPoint], bool]:
        """
        Scan the whole file.

        Returns:
            (points, envelope_ok). envelope_ok is True when the header is
            intact and the declared data size fits inside the buffer.
        """
        header = self.read_header()
        if header is None:
            return [], False
        header_size, data_size = header
        data_end = header_size + data_size
        envelope_ok = data_end <= len(self.data)
        end = min(data_end, len(self.data))

        points = []
        while self.pos < end:
            record_header = self.read_u8()
            if record_header is None:
                break

            if record_header & 0x80:
                local_type = (record_header >> 5) & 0x03
                definition = self.definitions.get(local_type)
                if definition is None:
                    logger.debug("Compressed message references undefined type %d", local_type)
                    break
                timestamp = self._compressed_timestamp(record_header & 0x1F)
                if definition.global_message_number == constants.FIT_RECORD_MESSAGE:
                    start = self.pos
                    point = self.parse_record_message(definition, timestamp)
                    if self.pos == start and definition.size:
                        break
                    if point is not None:
                        points.append(point)
                else:
                    self.skip(definition.size)
                continue

            local_type = record_header & 0x0F
            if record_header & 0x40:
                definition = self.parse_definition_message(bool(record_header & 0x20))
                if definition is None:
                    break
                self.definitions[local_type] = definition
                continue

            definition = self.definitions.get(local_type)
            if definition is None:
                logger.debug("Data message references undefined type %d", local_type)
                break
            if definition.global_message_number == constants.FIT_RECORD_MESSAGE:
                start = self.pos
                point = self.parse_record_message(definition)
                if self.pos == start and definition.size:
                    break
                if point is not None:
                    points.append(point)
            else:
                if self.pos + definition.size > end:
                    break
                self.skip(definition.size)

        return points, envelope_ok


def parse_fit(data: bytes) -> Tuple[List[FitPoint], bool]:
    """Parse FIT bytes into points. See FitParser.parse()."""
    return FitParser(data).parse()
