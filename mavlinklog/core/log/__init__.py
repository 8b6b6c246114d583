"""
MAVLink log containers.

This package provides the MAV-LOG and TLOG file formats with:
- Binary file header with dialect description
- Flag-dependent record layout
- Size based rotation that preserves the file header
- Sequential reads with frame resynchronization
"""

from mavlinklog.core.log.entry import LogEntry, MavBody, RawBody, TextBody
from mavlinklog.core.log.format import (
    MAX_PAYLOAD_SIZE,
    EntryType,
    Record,
    pack_record,
    record_size,
    unpack_next_record,
)
from mavlinklog.core.log.header import (
    DefinitionPayloadType,
    FileHeader,
    FormatFlags,
    MessageDefinition,
    decode_payload_type,
)
from mavlinklog.core.log.reader import MavLogReader, MavParser
from mavlinklog.core.log.sink import RotatingFileSink
from mavlinklog.core.log.stream import ByteStream
from mavlinklog.core.log.tlog import TlogReader, TlogWriter
from mavlinklog.core.log.writer import MavLogger, RotatingMavLogger

__all__ = [
    "MAX_PAYLOAD_SIZE",
    "ByteStream",
    "DefinitionPayloadType",
    "EntryType",
    "FileHeader",
    "FormatFlags",
    "LogEntry",
    "MavBody",
    "MavLogReader",
    "MavLogger",
    "MavParser",
    "MessageDefinition",
    "RawBody",
    "Record",
    "RotatingFileSink",
    "RotatingMavLogger",
    "TextBody",
    "TlogReader",
    "TlogWriter",
    "decode_payload_type",
    "pack_record",
    "record_size",
    "unpack_next_record",
]
