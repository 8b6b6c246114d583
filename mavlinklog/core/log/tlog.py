"""
TLOG telemetry logs.

A TLOG file is a bare sequence of records, each an 8-byte big-endian Unix
timestamp in microseconds followed by one MAVLink frame. There is no file
header.
"""

import struct
from pathlib import Path
from typing import BinaryIO, Callable, Optional, Union

from mavlinklog.core.errors import LoggerClosedError, TruncatedError
from mavlinklog.core.log.entry import LogEntry, MavBody
from mavlinklog.core.log.format import read_field
from mavlinklog.core.log.reader import MavParser, Source
from mavlinklog.core.log.writer import MavLogger
from mavlinklog.core.wire.codec import PROBE_SIZE, MavFrame, WireCodec
from mavlinklog.utils import clock
from mavlinklog.utils.logging import get_logger

_TIMESTAMP = struct.Struct(">Q")


class TlogReader(MavParser):
    """
    Sequential reader for TLOG files.

    Frames are delimited by their own length byte only, so a frame whose
    checksum cannot be verified against the dialect is treated as corrupt.

    Attributes:
        codec: Wire codec used to decode frames
    """

    def __init__(
        self,
        source: Source,
        codec: Optional[WireCodec] = None,
        dialect: str = WireCodec.DEFAULT_DIALECT,
    ):
        """
        Open a TLOG file.

        Args:
            source: File path or binary file object
            codec: Wire codec to decode frames with; overrides ``dialect``
            dialect: pymavlink dialect to decode frames with
        """
        super().__init__(source)
        try:
            self.codec = codec if codec is not None else WireCodec(dialect)
        except ValueError:
            self.close()
            raise

        self._log.info(
            "Opened TLOG reader",
            dialect=self.codec.dialect,
        )

    def _parse_entry(self) -> LogEntry:
        (timestamp_us,) = _TIMESTAMP.unpack(self._stream.read_exact(_TIMESTAMP.size))

        head = self._stream.peek(PROBE_SIZE)
        if not head:
            raise TruncatedError("Record truncated before frame", expected=1, available=0)
        length = self.codec.frame_length_probe(head)
        frame = read_field(self._stream, length)

        header, message, _ = self.codec.deserialize_frame(frame, require_checksum=True)
        return LogEntry(body=MavBody(header=header, message=message, frame=frame), timestamp=timestamp_us)


class TlogWriter(MavLogger):
    """
    Append MAVLink frames to a TLOG file.

    Timestamps are Unix microseconds taken when each frame is written.
    """

    def __init__(
        self,
        path: Union[str, Path],
        codec: Optional[WireCodec] = None,
        append: bool = False,
        now_unix_us: Callable[[], int] = clock.now_unix_us,
    ):
        """
        Open the TLOG file.

        Args:
            path: Destination path, a .tlog extension is conventional
            codec: Wire codec used to serialize frames, defaults to "common"
            append: Append to an existing file instead of truncating it
            now_unix_us: Wall clock source for record timestamps
        """
        self.path = Path(path)
        self._codec = codec
        self._now_unix_us = now_unix_us
        self._file: Optional[BinaryIO] = open(self.path, "ab" if append else "wb", buffering=0)
        self._records_written = 0
        self._log = get_logger(__name__, path=str(self.path))

        self._log.info("Opened TLOG writer", append=append)

    @property
    def codec(self) -> WireCodec:
        if self._codec is None:
            self._codec = WireCodec()
        return self._codec

    @property
    def records_written(self) -> int:
        return self._records_written

    def write_mavlink(self, frame: MavFrame) -> None:
        """Serialize a MAVLink frame and append it with the current time."""
        self.write_frame_bytes(self.codec.serialize(frame))

    def write_frame_bytes(self, frame: bytes, timestamp_us: Optional[int] = None) -> None:
        """
        Append an already serialized frame.

        Args:
            frame: Complete MAVLink frame
            timestamp_us: Unix microseconds to record, defaults to now

        Raises:
            LoggerClosedError: If the writer is closed
        """
        if self._file is None:
            raise LoggerClosedError("Cannot write to a closed TLOG writer")

        if timestamp_us is None:
            timestamp_us = self._now_unix_us()

        self._file.write(_TIMESTAMP.pack(timestamp_us) + bytes(frame))
        self._records_written += 1

    def close(self) -> None:
        """Close the file. Safe to call more than once."""
        if self._file is None:
            return

        self._file.close()
        self._file = None

        self._log.info("Closed TLOG writer", records=self._records_written)

    def __enter__(self) -> "TlogWriter":
        """Context manager entry."""
        return self
