"""
Exceptions raised by the MAV-LOG and TLOG codecs, readers and writers.

Filesystem errors are never wrapped: they propagate as ``OSError``.
"""


class MavLogError(Exception):
    """Base class for all mavlinklog errors."""
    pass


class TruncatedError(MavLogError):
    """Raised when a stream ends in the middle of a field or record."""

    def __init__(self, message: str, expected: int = 0, available: int = 0):
        super().__init__(message)
        self.expected = expected
        self.available = available


class EndOfLogError(MavLogError, EOFError):
    """Raised by readers when the log has no further entries."""
    pass


class FramingError(MavLogError):
    """Raised when a wire frame or record cannot be delimited or decoded."""
    pass


class BadMagicError(FramingError):
    """Raised when a frame does not start with a known protocol marker."""
    pass


class BadCrcError(FramingError):
    """Raised when a frame checksum does not match its contents."""
    pass


class UnsupportedFormatVersionError(MavLogError):
    """Raised when a MAV-LOG header carries a format version we cannot read."""

    def __init__(self, version: int):
        super().__init__(f"Unsupported MAV-LOG format version: {version}")
        self.version = version


class DefinitionError(MavLogError):
    """
    Raised when the message definition in a header cannot be decoded.

    Attributes:
        size: Declared size of the definition payload that follows the header
    """

    def __init__(self, message: str, size: int = 0):
        super().__init__(message)
        self.size = size


class UnknownDefinitionPayloadTypeError(DefinitionError):
    """
    Raised when a message definition uses an unknown payload type.

    Attributes:
        value: The payload type found on the wire
    """

    def __init__(self, value: int, size: int = 0):
        super().__init__(f"Unknown message definition payload type: {value}", size)
        self.value = value


class DefinitionSizeMismatchError(DefinitionError):
    """
    Raised when a definition's size contradicts its payload type.

    The size must be 0 exactly when the payload type is NONE.
    """

    def __init__(self, payload_type: str, size: int):
        super().__init__(
            f"Message definition payload type {payload_type} does not allow size {size}", size
        )
        self.payload_type = payload_type


class InvalidEntryForFlagsError(MavLogError):
    """Raised when a RAW or TEXT entry is written to a MAVLink-only log."""
    pass


class InvalidFrameError(MavLogError, ValueError):
    """Raised when bytes handed to a MAVLink-only log are not exactly one frame."""
    pass


class PayloadTooLargeError(MavLogError, ValueError):
    """Raised when a record payload does not fit the 16-bit size field."""
    pass


class FieldTooLongError(MavLogError, ValueError):
    """Raised when a fixed-width string field exceeds its wire length."""
    pass


class LoggerClosedError(MavLogError):
    """Raised when writing to a logger that has been closed."""
    pass
