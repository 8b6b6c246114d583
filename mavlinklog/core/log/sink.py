"""
Size-rotated append-only file sink.

The sink owns the active log file. When an append would push the file past
its size limit, the file is rotated into numbered backups and a fresh file
is started with the same prefix bytes (the MAV-LOG header) the sink was
created with.
"""

import os
from pathlib import Path
from typing import Optional, Union

from mavlinklog.utils.logging import get_logger


class RotatingFileSink:
    """
    Append-only byte sink with size based rotation.

    Backups are named ``<base_path>.1`` (newest) to ``<base_path>.<backup_count>``
    (oldest). A backup count of 0 disables rotation entirely.

    Attributes:
        base_path: Path of the active file
        max_bytes: Size threshold that triggers rotation
        backup_count: Number of rotated files kept
        prefix: Bytes written at the start of every file
    """

    def __init__(
        self,
        base_path: Union[str, Path],
        max_bytes: int,
        backup_count: int,
        prefix: bytes = b"",
        fsync_on_append: bool = False,
    ):
        """
        Open the sink and write the prefix as the initial file content.

        An existing non-empty file at ``base_path`` is rotated aside when
        rotation is enabled and truncated otherwise.

        Args:
            base_path: Destination file; its parent directory must exist
            max_bytes: Rotation threshold in bytes
            backup_count: Number of backups to keep, 0 disables rotation
            prefix: Bytes replayed at the start of every new file
            fsync_on_append: Whether to fsync after each append

        Raises:
            ValueError: If max_bytes or backup_count is out of range
        """
        if max_bytes <= 0:
            raise ValueError(f"max_bytes must be positive, got {max_bytes}")
        if backup_count < 0:
            raise ValueError(f"backup_count must be non-negative, got {backup_count}")

        self.base_path = Path(base_path)
        self.max_bytes = max_bytes
        self.backup_count = backup_count
        self.prefix = bytes(prefix)
        self.fsync_on_append = fsync_on_append
        self._log = get_logger(__name__, path=str(self.base_path))

        self._fd: Optional[int] = None
        self._current_size: int = 0
        self._rotations: int = 0

        if (
            self.backup_count > 0
            and self.base_path.exists()
            and self.base_path.stat().st_size > 0
        ):
            self._shift_backups()

        self._open()

        self._log.info(
            "Opened rotating sink",
            max_bytes=self.max_bytes,
            backup_count=self.backup_count,
            prefix_size=len(self.prefix),
        )

    def backup_path(self, index: int) -> Path:
        """Path of the backup with the given index (1 is the newest)."""
        return self.base_path.with_name(f"{self.base_path.name}.{index}")

    def _open(self) -> None:
        """Create a fresh active file and write the prefix."""
        flags = os.O_WRONLY | os.O_CREAT | os.O_TRUNC | os.O_APPEND
        mode = 0o644

        self._fd = os.open(self.base_path, flags, mode)
        self._current_size = 0

        if self.prefix:
            self._write(self.prefix)

    def _close(self) -> None:
        if self._fd is not None:
            if self.fsync_on_append:
                os.fsync(self._fd)
            os.close(self._fd)
            self._fd = None

    def _write(self, data: bytes) -> None:
        bytes_written = os.write(self._fd, data)

        if bytes_written != len(data):
            raise IOError(
                f"Partial write: expected {len(data)} bytes, wrote {bytes_written} bytes"
            )

        if self.fsync_on_append:
            os.fsync(self._fd)

        self._current_size += bytes_written

    def _shift_backups(self) -> None:
        """Move base_path.(i) to base_path.(i+1) and base_path to base_path.1."""
        for index in range(self.backup_count - 1, 0, -1):
            source = self.backup_path(index)
            if source.exists():
                os.replace(source, self.backup_path(index + 1))

        if self.base_path.exists():
            os.replace(self.base_path, self.backup_path(1))

    def should_rotate(self, length: int) -> bool:
        """
        Check whether appending ``length`` bytes requires a rotation first.

        A file holding nothing but the prefix is never rotated, so an oversized
        record lands in a file of its own instead of producing empty backups.
        """
        if self.backup_count == 0:
            return False
        if self._current_size <= len(self.prefix):
            return False
        return self._current_size + length > self.max_bytes

    def rotate(self) -> None:
        """Close the active file, shift the backups and start a new file."""
        self._close()
        self._shift_backups()
        self._open()
        self._rotations += 1

        self._log.info(
            "Rotated log file",
            rotations=self._rotations,
        )

    def emit(self, data: bytes) -> None:
        """
        Append one record to the active file, rotating first when needed.

        Raises:
            ValueError: If the sink is closed
            OSError: If the write fails
        """
        if self._fd is None:
            raise ValueError("Cannot emit to closed sink")

        if self.should_rotate(len(data)):
            self._log.debug(
                "Rotation triggered by size",
                size=self._current_size,
                incoming=len(data),
                max_bytes=self.max_bytes,
            )
            self.rotate()

        self._write(data)

    def flush(self) -> None:
        """Force written data to physical storage."""
        if self._fd is not None:
            os.fsync(self._fd)

    def size(self) -> int:
        """Size of the active file in bytes."""
        return self._current_size

    def rotations(self) -> int:
        """Number of rotations performed since the sink was opened."""
        return self._rotations

    @property
    def closed(self) -> bool:
        return self._fd is None

    def close(self) -> None:
        """Flush and close the active file. Safe to call more than once."""
        if self._fd is None:
            return

        self.flush()
        self._close()

        self._log.info(
            "Closed rotating sink",
            final_size=self._current_size,
            rotations=self._rotations,
        )

    def __enter__(self) -> "RotatingFileSink":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"RotatingFileSink(path={str(self.base_path)!r}, "
            f"size={self._current_size}, "
            f"rotations={self._rotations})"
        )
