"""
mavlinklog - persist and replay MAVLink telemetry streams.

This package implements two on-disk formats:
- MAV-LOG, a self-describing container with a file header, typed and
  timestamped records, and size based rotation
- TLOG, the legacy concatenation of timestamped MAVLink frames
"""

__version__ = "0.1.0"

from mavlinklog.core.errors import (
    BadCrcError,
    BadMagicError,
    DefinitionError,
    DefinitionSizeMismatchError,
    EndOfLogError,
    FieldTooLongError,
    FramingError,
    InvalidEntryForFlagsError,
    InvalidFrameError,
    LoggerClosedError,
    MavLogError,
    PayloadTooLargeError,
    TruncatedError,
    UnknownDefinitionPayloadTypeError,
    UnsupportedFormatVersionError,
)
from mavlinklog.core.log import (
    DefinitionPayloadType,
    EntryType,
    FileHeader,
    FormatFlags,
    LogEntry,
    MavLogReader,
    MessageDefinition,
    RotatingMavLogger,
    TlogReader,
    TlogWriter,
)
from mavlinklog.core.wire import MavFrame, MavHeader, WireCodec

__all__ = [
    "BadCrcError",
    "BadMagicError",
    "DefinitionError",
    "DefinitionPayloadType",
    "DefinitionSizeMismatchError",
    "EndOfLogError",
    "EntryType",
    "FieldTooLongError",
    "FileHeader",
    "FormatFlags",
    "FramingError",
    "InvalidEntryForFlagsError",
    "InvalidFrameError",
    "LogEntry",
    "LoggerClosedError",
    "MavFrame",
    "MavHeader",
    "MavLogError",
    "MavLogReader",
    "MessageDefinition",
    "PayloadTooLargeError",
    "RotatingMavLogger",
    "TlogReader",
    "TlogWriter",
    "TruncatedError",
    "UnknownDefinitionPayloadTypeError",
    "UnsupportedFormatVersionError",
    "WireCodec",
]
