"""
Forward-only readers for MAVLink log files.

Provides sequential reads of MAV-LOG files with support for:
- Header validation
- Frame resynchronization after corrupt bytes
- Partial write detection at the end of the file
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Union

from mavlinklog.core.errors import (
    EndOfLogError,
    FramingError,
    MavLogError,
    TruncatedError,
)
from mavlinklog.core.log.entry import LogEntry, MavBody, RawBody, TextBody
from mavlinklog.core.log.format import EntryType, unpack_next_record
from mavlinklog.core.log.header import FileHeader
from mavlinklog.core.log.stream import ByteStream
from mavlinklog.core.wire.codec import PROBE_SIZE, WireCodec
from mavlinklog.utils.logging import get_logger

Source = Union[str, Path, BinaryIO]


class MavParser(ABC):
    """
    Base class for log readers.

    Subclasses parse a single entry at the stream position; this class turns
    that into a stream of entries that survives corrupt bytes by advancing one
    byte at a time until an entry parses again. An entry that runs past the end
    of the stream is handled the same way: its length may come from a corrupt
    byte, so the bytes after it are still scanned. A genuine partial entry at
    the end of the file is skipped byte by byte until the stream is exhausted.

    Attributes:
        entries_read: Number of entries returned so far
        resync_count: Number of times the reader lost and regained framing
        skipped_bytes: Bytes discarded while resynchronizing
    """

    def __init__(self, source: Source):
        if isinstance(source, (str, Path)):
            path = Path(source)
            if not path.exists():
                raise FileNotFoundError(f"Log file not found: {path}")
            self.path: Optional[Path] = path
            self._file: Optional[BinaryIO] = open(path, "rb")
            self._owns_file = True
        else:
            self.path = None
            self._file = source
            self._owns_file = False

        self._log = get_logger(
            type(self).__module__, path=str(self.path) if self.path is not None else None
        )

        self._stream = ByteStream(self._file)
        self._in_resync = False

        self.entries_read = 0
        self.resync_count = 0
        self.skipped_bytes = 0

    @abstractmethod
    def _parse_entry(self) -> LogEntry:
        """
        Parse one entry at the current stream position.

        Raises:
            EndOfLogError: If no bytes remain
            TruncatedError: If the stream ends inside the entry
            FramingError: If the bytes at the position are not a valid entry
        """

    def parse_next_entry(self) -> LogEntry:
        """
        Read the next entry.

        Returns:
            The next entry

        Raises:
            EndOfLogError: When the log has no further entries
            OSError: If reading the file fails
        """
        if self._file is None:
            raise ValueError("Cannot read from closed reader")

        while True:
            start = self._stream.position
            try:
                entry = self._parse_entry()
            except EndOfLogError:
                if self._in_resync:
                    self._in_resync = False
                    self._log.warning(
                        "Reached end of log while resynchronizing, trailing bytes discarded",
                        skipped_bytes=self.skipped_bytes,
                    )
                raise
            except (TruncatedError, FramingError) as e:
                self._skip_byte(start, e)
                continue

            self._stream.commit()
            self._finish_resync(start)
            self.entries_read += 1
            return entry

    def _skip_byte(self, start: int, error: MavLogError) -> None:
        if not self._in_resync:
            self._in_resync = True
            self.resync_count += 1
            self._stream.seek(start)
            self._log.warning(
                "Lost framing, resynchronizing",
                position=start,
                head=self._stream.peek(8),
                error=str(error),
            )

        self._stream.seek(start + 1)
        self._stream.commit()
        self.skipped_bytes += 1

    def _finish_resync(self, position: int) -> None:
        if self._in_resync:
            self._in_resync = False
            self._log.info(
                "Resynchronized",
                position=position,
                skipped_bytes=self.skipped_bytes,
            )

    def __iter__(self) -> Iterator[LogEntry]:
        """Iterate over the remaining entries until the end of the log."""
        while True:
            try:
                yield self.parse_next_entry()
            except EndOfLogError:
                return

    def close(self) -> None:
        """Close the file if the reader opened it."""
        if self._file is not None:
            if self._owns_file:
                self._file.close()
            self._file = None
            self._log.debug(
                "Closed reader",
                entries=self.entries_read,
                skipped_bytes=self.skipped_bytes,
            )

    def __enter__(self) -> "MavParser":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()


class MavLogReader(MavParser):
    """
    Sequential reader for MAV-LOG files.

    Attributes:
        header: The decoded file header
        codec: Wire codec used to decode MAVLink records
    """

    def __init__(
        self,
        source: Source,
        codec: Optional[WireCodec] = None,
        dialect: Optional[str] = None,
        strict_definitions: bool = False,
    ):
        """
        Open a MAV-LOG file and read its header.

        Args:
            source: File path or binary file object positioned at the header
            codec: Wire codec to decode frames with; overrides ``dialect``
            dialect: pymavlink dialect to decode frames with; defaults to the
                dialect named in the header
            strict_definitions: Raise instead of continuing when the header's
                message definition cannot be decoded

        Raises:
            TruncatedError: If the file is shorter than its header
            UnsupportedFormatVersionError: If the format version is unknown
            DefinitionError: If strict_definitions is set and the message
                definition cannot be decoded
        """
        super().__init__(source)
        try:
            self.header = self._read_header(strict_definitions)
            self._log = self._log.bind(uuid=str(self.header.uuid))
            self.codec = codec if codec is not None else WireCodec(self._choose_dialect(dialect))
        except Exception:
            self.close()
            raise

        self._log.info(
            "Opened MAV-LOG reader",
            src_application_id=self.header.src_application_id,
            mavlink_only=self.header.format_flags.mavlink_only,
            no_timestamp=self.header.format_flags.no_timestamp,
            dialect=self.codec.dialect,
        )

    def _read_header(self, strict_definitions: bool) -> FileHeader:
        try:
            fixed = self._stream.read_exact(FileHeader.MIN_SIZE)
        except EndOfLogError:
            raise TruncatedError(
                "File is empty, expected a MAV-LOG header",
                expected=FileHeader.MIN_SIZE,
                available=0,
            ) from None

        header = FileHeader.unpack(fixed)

        if header.definition_error is not None:
            if strict_definitions:
                raise header.definition_error
            self._log.warning(
                "Ignoring undecodable message definition",
                error=str(header.definition_error),
            )

        if header.definition_size:
            try:
                payload = self._stream.read_exact(header.definition_size)
            except EndOfLogError:
                raise TruncatedError(
                    "File ends before the message definition payload",
                    expected=header.definition_size,
                    available=0,
                ) from None
            if header.message_definition is not None:
                header.message_definition.unpack_payload(payload)

        self._stream.commit()
        return header

    def _choose_dialect(self, dialect: Optional[str]) -> str:
        if dialect is not None:
            return dialect

        definition = self.header.message_definition
        if definition is not None and WireCodec.has_dialect(definition.dialect):
            return definition.dialect

        fallback = WireCodec.DEFAULT_DIALECT
        self._log.warning(
            "Dialect from header not available, falling back",
            dialect=definition.dialect if definition is not None else None,
            fallback=fallback,
        )
        return fallback

    def _decode_frame(self, frame: bytes) -> MavBody:
        # Without a size field only the checksum confirms a frame boundary.
        try:
            header, message, consumed = self.codec.deserialize_frame(
                frame, require_checksum=self.header.format_flags.mavlink_only
            )
        except TruncatedError as e:
            raise FramingError(f"Frame longer than its record: {e}") from e

        if consumed != len(frame):
            raise FramingError(
                f"Record holds {len(frame)} bytes but frame is {consumed} bytes"
            )
        return MavBody(header=header, message=message, frame=bytes(frame))

    def _parse_entry(self) -> LogEntry:
        record = unpack_next_record(
            self.header.format_flags,
            self._stream,
            self.codec.frame_length_probe,
            PROBE_SIZE,
        )

        if record.entry_type == EntryType.MAV:
            body = self._decode_frame(record.payload)
        elif record.entry_type == EntryType.TEXT:
            body = TextBody(record.payload.decode("utf-8", errors="replace"))
        else:
            body = RawBody(record.payload)

        return LogEntry(body=body, timestamp=record.timestamp_us)
