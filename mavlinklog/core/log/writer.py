"""
Rotating MAV-LOG writer.

Writes a file header followed by MAVLink, text and raw records onto a
``RotatingFileSink``. Record timestamps are monotonic microseconds since the
writer was created; the header carries the wall clock start time.
"""

import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional, Union

from mavlinklog.core.errors import (
    BadMagicError,
    InvalidFrameError,
    LoggerClosedError,
    TruncatedError,
)
from mavlinklog.core.log.format import EntryType, pack_record
from mavlinklog.core.log.header import FileHeader, FormatFlags, MessageDefinition
from mavlinklog.core.log.sink import RotatingFileSink
from mavlinklog.core.wire.codec import PROBE_SIZE, MavFrame, WireCodec, frame_length_probe
from mavlinklog.utils import clock
from mavlinklog.utils.config import Config
from mavlinklog.utils.logging import get_logger


class MavLogger(ABC):
    """Anything that can persist MAVLink frames."""

    @abstractmethod
    def write_mavlink(self, frame: MavFrame) -> None:
        """Serialize and persist one MAVLink frame."""

    @abstractmethod
    def close(self) -> None:
        """Release the underlying file."""

    def __enter__(self) -> "MavLogger":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()


class RotatingMavLogger(MavLogger):
    """
    MAV-LOG writer with size based file rotation.

    Every rotated file starts with the same header, so each backup is a
    complete, independently readable MAV-LOG file.

    Attributes:
        header: The header written at the start of every file
    """

    def __init__(
        self,
        base_path: Union[str, Path],
        max_bytes: int,
        backup_count: int,
        format_flags: Optional[FormatFlags] = None,
        message_definition: Optional[MessageDefinition] = None,
        codec: Optional[WireCodec] = None,
        src_application_id: str = FileHeader.SRC_APPLICATION_ID,
        fsync_on_append: bool = False,
        now_unix_us: Callable[[], int] = clock.now_unix_us,
        now_monotonic_us: Callable[[], int] = clock.now_monotonic_us,
        new_uuid: Callable[[], uuid.UUID] = clock.new_uuid_v4,
    ):
        """
        Create the logger and write the file header.

        Args:
            base_path: Destination path, a .mav extension is recommended. Parent
                directories must already exist.
            max_bytes: Size of a log file before it is rotated
            backup_count: Number of rotated files to keep, 0 disables rotation
            format_flags: Record layout options, defaults to both flags clear
            message_definition: Dialect description, defaults to MAVLink 2.0 "common"
            codec: Wire codec used to serialize frames, defaults to the
                definition's dialect
            src_application_id: Application id stored in the header
            fsync_on_append: Whether to fsync after each record
            now_unix_us: Wall clock source for the header timestamp
            now_monotonic_us: Monotonic clock source for record timestamps
            new_uuid: UUID source for the header

        Raises:
            FieldTooLongError: If the dialect or application id is too long
            OSError: If the file cannot be created
        """
        self.header = FileHeader.new(
            format_flags=format_flags,
            message_definition=message_definition,
            src_application_id=src_application_id,
            now_unix_us=now_unix_us,
            new_uuid=new_uuid,
        )
        packed_header = self.header.pack()
        self._log = get_logger(__name__, path=str(base_path), uuid=str(self.header.uuid))

        self._codec = codec
        self._now_monotonic_us = now_monotonic_us
        self._t0 = now_monotonic_us()
        self._records_written = 0

        self._sink: Optional[RotatingFileSink] = RotatingFileSink(
            base_path,
            max_bytes=max_bytes,
            backup_count=backup_count,
            prefix=packed_header,
            fsync_on_append=fsync_on_append,
        )

        self._log.info(
            "Opened MAV-LOG writer",
            mavlink_only=self.header.format_flags.mavlink_only,
            no_timestamp=self.header.format_flags.no_timestamp,
            dialect=self.header.message_definition.dialect,
        )

    @classmethod
    def from_config(cls, base_path: Union[str, Path], config: Config, **kwargs) -> "RotatingMavLogger":
        """
        Build a logger from the ``logger`` and ``definition`` configuration sections.

        Keyword arguments are passed through and take precedence.
        """
        options = dict(
            max_bytes=config.get("logger.max_bytes"),
            backup_count=config.get("logger.backup_count"),
            format_flags=FormatFlags(
                mavlink_only=bool(config.get("logger.mavlink_only", False)),
                no_timestamp=bool(config.get("logger.no_timestamp", False)),
            ),
            message_definition=MessageDefinition(
                version_major=config.get("definition.version_major", 2),
                version_minor=config.get("definition.version_minor", 0),
                dialect=config.get("definition.dialect", MessageDefinition.DEFAULT_DIALECT),
            ),
            fsync_on_append=bool(config.get("logger.fsync_on_append", False)),
        )
        options.update(kwargs)
        return cls(base_path, **options)

    @property
    def codec(self) -> WireCodec:
        """Wire codec for the log's dialect, created on first use."""
        if self._codec is None:
            self._codec = WireCodec(self.header.message_definition.dialect)
        return self._codec

    @property
    def closed(self) -> bool:
        return self._sink is None

    @property
    def records_written(self) -> int:
        return self._records_written

    def write_mavlink(self, frame: MavFrame) -> None:
        """
        Serialize a MAVLink frame and write it as a MAV record.

        Raises:
            LoggerClosedError: If the logger is closed
        """
        self._check_open()
        self._write(EntryType.MAV, self.codec.serialize(frame))

    def write_frame_bytes(self, frame: bytes, timestamp_us: Optional[int] = None) -> None:
        """
        Write an already serialized MAVLink frame as a MAV record.

        Args:
            frame: One complete MAVLink frame
            timestamp_us: Record timestamp to store instead of the logger's own
                clock, e.g. when re-logging frames recorded elsewhere

        Raises:
            LoggerClosedError: If the logger is closed
            InvalidFrameError: If the log is MAVLink only and ``frame`` is not
                exactly one frame
        """
        self._check_open()
        frame = bytes(frame)
        if self.header.format_flags.mavlink_only:
            self._check_frame(frame)
        self._write(EntryType.MAV, frame, timestamp_us)

    def write_text(self, text: str) -> None:
        """
        Write a UTF-8 text record.

        Raises:
            InvalidEntryForFlagsError: If the log is MAVLink only
        """
        self._write(EntryType.TEXT, text.encode("utf-8"))

    def write_raw(self, data: bytes) -> None:
        """
        Write a raw binary record.

        Raises:
            InvalidEntryForFlagsError: If the log is MAVLink only
        """
        self._write(EntryType.RAW, bytes(data))

    def _check_open(self) -> None:
        if self._sink is None:
            raise LoggerClosedError("Cannot write to a closed logger")

    @staticmethod
    def _check_frame(frame: bytes) -> None:
        # Records of a MAVLink-only log are delimited by the frame length alone.
        try:
            length = frame_length_probe(frame[:PROBE_SIZE])
        except (BadMagicError, TruncatedError) as e:
            raise InvalidFrameError(f"Not a MAVLink frame: {e}") from e
        if length != len(frame):
            raise InvalidFrameError(
                f"Frame header declares {length} bytes but {len(frame)} were given"
            )

    def _timestamp_us(self) -> int:
        """Microseconds since the logger started; restarts at 0 if the clock went backwards."""
        now = self._now_monotonic_us()
        if now < self._t0:
            self._log.warning(
                "Monotonic clock moved backwards, resetting record time base",
                previous_origin=self._t0,
                now=now,
            )
            self._t0 = now
            return 0
        return now - self._t0

    def _write(
        self,
        entry_type: EntryType,
        payload: bytes,
        timestamp_us: Optional[int] = None,
    ) -> None:
        self._check_open()

        flags = self.header.format_flags
        if flags.no_timestamp:
            timestamp_us = 0
        elif timestamp_us is None:
            timestamp_us = self._timestamp_us()
        record = pack_record(flags, entry_type, timestamp_us, payload)

        self._sink.emit(record)
        self._records_written += 1

        self._log.debug(
            "Wrote record",
            entry_type=entry_type.name,
            size=len(record),
            timestamp_us=timestamp_us,
        )

    def close(self) -> None:
        """Flush and close the log. Safe to call more than once."""
        if self._sink is None:
            return

        self._sink.close()
        self._sink = None

        self._log.info(
            "Closed MAV-LOG writer",
            records=self._records_written,
        )

    def __enter__(self) -> "RotatingMavLogger":
        """Context manager entry."""
        return self
