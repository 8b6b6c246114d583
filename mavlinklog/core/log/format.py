"""
Record format for the body of MAV-LOG files.

Each record is laid out according to the file's format flags:

    Type (1 byte)        - omitted when mavlink_only
    Timestamp (8 bytes)  - microseconds since the logger started, omitted when no_timestamp
    Size (2 bytes)       - payload length, omitted when mavlink_only
    Payload (variable)   - size bytes, or one self-delimiting MAVLink frame

All integers are little-endian.
"""

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Optional

from mavlinklog.core.errors import (
    EndOfLogError,
    FramingError,
    InvalidEntryForFlagsError,
    PayloadTooLargeError,
    TruncatedError,
)
from mavlinklog.core.log.header import FormatFlags
from mavlinklog.core.log.stream import ByteStream

MAX_PAYLOAD_SIZE = 0xFFFF

_TYPE = struct.Struct("<B")
_TIMESTAMP = struct.Struct("<Q")
_SIZE = struct.Struct("<H")

FrameLengthProbe = Callable[[bytes], int]


class EntryType(IntEnum):
    """Kind of payload carried by a record."""

    RAW = 0
    MAV = 1
    TEXT = 2


@dataclass(frozen=True)
class Record:
    """
    A decoded record.

    Attributes:
        entry_type: Kind of payload
        timestamp_us: Microseconds since the logger started, None when not stored
        payload: Record payload
    """

    entry_type: EntryType
    timestamp_us: Optional[int]
    payload: bytes


def record_size(flags: FormatFlags, payload_size: int) -> int:
    """Number of bytes a record with ``payload_size`` bytes of payload takes on disk."""
    size = payload_size
    if not flags.mavlink_only:
        size += _TYPE.size + _SIZE.size
    if not flags.no_timestamp:
        size += _TIMESTAMP.size
    return size


def pack_record(
    flags: FormatFlags,
    entry_type: EntryType,
    timestamp_us: int,
    payload: bytes,
) -> bytes:
    """
    Pack one record.

    Args:
        flags: Format flags of the file the record goes into
        entry_type: Kind of payload
        timestamp_us: Record timestamp, ignored when flags.no_timestamp is set
        payload: Record payload

    Returns:
        Packed record

    Raises:
        InvalidEntryForFlagsError: If a non-MAV entry is packed for a mavlink_only file
        PayloadTooLargeError: If the payload is longer than 65535 bytes
    """
    if flags.mavlink_only and entry_type != EntryType.MAV:
        raise InvalidEntryForFlagsError(
            f"This log accepts only MAVLink entries, got {EntryType(entry_type).name}"
        )

    if len(payload) > MAX_PAYLOAD_SIZE:
        raise PayloadTooLargeError(
            f"Payload of {len(payload)} bytes exceeds maximum of {MAX_PAYLOAD_SIZE}"
        )

    parts = []
    if not flags.mavlink_only:
        parts.append(_TYPE.pack(entry_type))
    if not flags.no_timestamp:
        parts.append(_TIMESTAMP.pack(timestamp_us))
    if not flags.mavlink_only:
        parts.append(_SIZE.pack(len(payload)))
    parts.append(bytes(payload))
    return b"".join(parts)


def read_field(stream: ByteStream, size: int) -> bytes:
    """Read a field that is not the first of its record; EOF here means truncation."""
    try:
        return stream.read_exact(size)
    except EndOfLogError:
        raise TruncatedError(
            f"Record truncated: expected {size} more bytes",
            expected=size,
            available=0,
        ) from None


def unpack_next_record(
    flags: FormatFlags,
    stream: ByteStream,
    probe: FrameLengthProbe,
    probe_size: int = 3,
) -> Record:
    """
    Read the next record from ``stream``.

    Under mavlink_only the payload length comes from ``probe`` applied to the
    first ``probe_size`` bytes of the frame.

    Args:
        flags: Format flags of the file
        stream: Stream positioned at a record start
        probe: Frame length probe supplied by the wire codec
        probe_size: Number of bytes the probe needs

    Returns:
        The decoded record

    Raises:
        EndOfLogError: If the stream is exhausted before the record starts
        TruncatedError: If the stream ends inside the record
        FramingError: If the record type is unknown or the frame cannot be sized
    """
    if stream.at_eof():
        raise EndOfLogError("No more records")

    if flags.mavlink_only:
        entry_type = EntryType.MAV
    else:
        (raw_type,) = _TYPE.unpack(read_field(stream, _TYPE.size))
        try:
            entry_type = EntryType(raw_type)
        except ValueError:
            raise FramingError(f"Unknown record type {raw_type}") from None

    timestamp_us: Optional[int] = None
    if not flags.no_timestamp:
        (timestamp_us,) = _TIMESTAMP.unpack(read_field(stream, _TIMESTAMP.size))

    if flags.mavlink_only:
        head = stream.peek(probe_size)
        if not head:
            raise TruncatedError("Record truncated before frame", expected=1, available=0)
        size = probe(head)
    else:
        (size,) = _SIZE.unpack(read_field(stream, _SIZE.size))

    payload = read_field(stream, size)
    return Record(entry_type=entry_type, timestamp_us=timestamp_us, payload=payload)
