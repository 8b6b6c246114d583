"""
Buffered forward-only byte stream used by the log readers.

Readers parse a record speculatively and need to fall back to the record
start when it turns out to be corrupt. ``ByteStream`` keeps every byte read
since the last ``commit()`` so that the read position can be moved back
within that window.
"""

from typing import BinaryIO

from mavlinklog.core.errors import EndOfLogError, TruncatedError


class ByteStream:
    """
    Forward reader over a binary file object with a rewindable window.

    Attributes:
        position: Absolute offset of the read position in the underlying stream
    """

    CHUNK_SIZE = 64 * 1024

    def __init__(self, source: BinaryIO, start_offset: int = 0):
        self._source = source
        self._buffer = bytearray()
        self._buffer_start = start_offset
        self._cursor = 0
        self._eof = False

    @property
    def position(self) -> int:
        return self._buffer_start + self._cursor

    def _fill(self, count: int) -> int:
        """Ensure ``count`` bytes are buffered past the cursor; return how many are."""
        while len(self._buffer) - self._cursor < count and not self._eof:
            chunk = self._source.read(max(self.CHUNK_SIZE, count))
            if not chunk:
                self._eof = True
                break
            self._buffer.extend(chunk)
        return min(count, len(self._buffer) - self._cursor)

    def at_eof(self) -> bool:
        """True when no bytes remain past the read position."""
        return self._fill(1) == 0

    def peek(self, count: int) -> bytes:
        """Return up to ``count`` bytes without moving the read position."""
        available = self._fill(count)
        return bytes(self._buffer[self._cursor : self._cursor + available])

    def read_exact(self, count: int) -> bytes:
        """
        Read exactly ``count`` bytes.

        Raises:
            EndOfLogError: If the stream is already exhausted
            TruncatedError: If the stream ends before ``count`` bytes
        """
        if count == 0:
            return b""

        available = self._fill(count)
        if available == 0:
            raise EndOfLogError("End of stream")
        if available < count:
            raise TruncatedError(
                f"Stream ended after {available} of {count} bytes",
                expected=count,
                available=available,
            )

        data = bytes(self._buffer[self._cursor : self._cursor + count])
        self._cursor += count
        return data

    def seek(self, position: int) -> None:
        """
        Move the read position within the uncommitted window.

        Raises:
            ValueError: If the position lies outside the buffered window
        """
        offset = position - self._buffer_start
        if offset < 0 or offset > len(self._buffer):
            raise ValueError(
                f"Position {position} outside buffered window "
                f"[{self._buffer_start}, {self._buffer_start + len(self._buffer)}]"
            )
        self._cursor = offset

    def commit(self) -> None:
        """Drop buffered bytes before the read position; they can no longer be revisited."""
        if self._cursor:
            del self._buffer[: self._cursor]
            self._buffer_start += self._cursor
            self._cursor = 0
