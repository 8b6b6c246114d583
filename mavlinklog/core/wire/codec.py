"""
MAVLink wire codec backed by pymavlink.

The log containers never interpret MAVLink frames themselves; they go through
a ``WireCodec`` for the three operations they need:
- serialize a message into a frame
- deserialize a frame into a header and message
- probe the length of a frame from its first bytes
"""

import importlib
from dataclasses import dataclass
from types import ModuleType
from typing import Any, Tuple

from mavlinklog.core.errors import (
    BadCrcError,
    BadMagicError,
    FramingError,
    TruncatedError,
)
from mavlinklog.utils.logging import get_logger

logger = get_logger(__name__)

PROTOCOL_MARKER_V1 = 0xFE
PROTOCOL_MARKER_V2 = 0xFD
PROTOCOL_MARKERS = (PROTOCOL_MARKER_V1, PROTOCOL_MARKER_V2)

V1_HEADER_SIZE = 6
V2_HEADER_SIZE = 10
CHECKSUM_SIZE = 2
SIGNATURE_SIZE = 13
IFLAG_SIGNED = 0x01

# Enough bytes to size any frame.
PROBE_SIZE = 3


def frame_length_probe(data: bytes) -> int:
    """
    Return the total length of the MAVLink frame starting at ``data[0]``.

    Args:
        data: At least the first bytes of a frame (2 for MAVLink 1, 3 for MAVLink 2)

    Raises:
        BadMagicError: If the first byte is not a protocol marker
        TruncatedError: If too few header bytes are given
    """
    if not data:
        raise TruncatedError("No bytes to probe", expected=1, available=0)

    magic = data[0]
    if magic == PROTOCOL_MARKER_V1:
        if len(data) < 2:
            raise TruncatedError("MAVLink 1 header truncated", expected=2, available=len(data))
        return V1_HEADER_SIZE + data[1] + CHECKSUM_SIZE

    if magic == PROTOCOL_MARKER_V2:
        if len(data) < 3:
            raise TruncatedError("MAVLink 2 header truncated", expected=3, available=len(data))
        length = V2_HEADER_SIZE + data[1] + CHECKSUM_SIZE
        if data[2] & IFLAG_SIGNED:
            length += SIGNATURE_SIZE
        return length

    raise BadMagicError(f"Invalid MAVLink marker 0x{magic:02x}")


@dataclass(frozen=True)
class MavHeader:
    """
    Routing header of a MAVLink frame.

    Attributes:
        system_id: Sending system id
        component_id: Sending component id
        sequence: Packet sequence number
    """

    system_id: int = 255
    component_id: int = 0
    sequence: int = 0


@dataclass
class MavFrame:
    """A MAVLink message together with its header and protocol version."""

    header: MavHeader
    message: Any
    protocol_version: int = 2


class WireCodec:
    """
    Serialize and deserialize MAVLink frames for one dialect.

    Attributes:
        dialect: Name of the pymavlink dialect module (e.g. "common")
    """

    DIALECT_PACKAGE = "pymavlink.dialects.v20"
    DEFAULT_DIALECT = "common"

    def __init__(self, dialect: str = DEFAULT_DIALECT):
        """
        Initialize the codec.

        Args:
            dialect: pymavlink dialect name

        Raises:
            ValueError: If pymavlink has no such dialect
        """
        self.dialect = dialect
        self.module = self._load_dialect(dialect)
        self._decoder = self.module.MAVLink(None)

        logger.debug("Loaded MAVLink dialect", dialect=dialect)

    @classmethod
    def _load_dialect(cls, dialect: str) -> ModuleType:
        try:
            return importlib.import_module(f"{cls.DIALECT_PACKAGE}.{dialect}")
        except ImportError as e:
            raise ValueError(f"Unknown MAVLink dialect: {dialect!r}") from e

    @classmethod
    def has_dialect(cls, dialect: str) -> bool:
        """Check whether pymavlink ships the named dialect."""
        try:
            cls._load_dialect(dialect)
        except ValueError:
            return False
        return True

    def serialize_frame(
        self,
        header: MavHeader,
        message: Any,
        protocol_version: int = 2,
    ) -> bytes:
        """
        Serialize a message into a MAVLink frame.

        Args:
            header: Routing header to stamp into the frame
            message: pymavlink message instance
            protocol_version: 1 or 2

        Returns:
            The complete frame bytes
        """
        if protocol_version not in (1, 2):
            raise ValueError(f"Unsupported MAVLink protocol version: {protocol_version}")

        mav = self.module.MAVLink(
            None,
            srcSystem=header.system_id,
            srcComponent=header.component_id,
        )
        mav.seq = header.sequence
        return bytes(message.pack(mav, force_mavlink1=protocol_version == 1))

    def serialize(self, frame: MavFrame) -> bytes:
        """Serialize a ``MavFrame``."""
        return self.serialize_frame(frame.header, frame.message, frame.protocol_version)

    def deserialize_frame(
        self,
        data: bytes,
        require_checksum: bool = False,
    ) -> Tuple[MavHeader, Any, int]:
        """
        Decode the frame at the start of ``data``.

        pymavlink cannot check the CRC of a message id the dialect does not
        define and returns it as ``MAVLink_unknown``. Such frames are accepted
        unless ``require_checksum`` is set.

        Args:
            data: Bytes starting with a frame
            require_checksum: Reject frames whose checksum could not be verified

        Returns:
            Tuple of (header, message, bytes consumed)

        Raises:
            BadMagicError: If ``data`` does not start with a protocol marker
            TruncatedError: If ``data`` is shorter than the frame
            BadCrcError: If the frame checksum is wrong, or cannot be verified
                and ``require_checksum`` is set
            FramingError: If pymavlink rejects the frame for any other reason
        """
        length = frame_length_probe(data[:PROBE_SIZE])
        if len(data) < length:
            raise TruncatedError(
                f"Frame truncated: expected {length} bytes, got {len(data)}",
                expected=length,
                available=len(data),
            )

        frame = bytearray(data[:length])
        try:
            message = self._decoder.decode(frame)
        except self.module.MAVError as e:
            reason = str(getattr(e, "message", e))
            if "CRC" in reason:
                raise BadCrcError(reason) from e
            if "prefix" in reason:
                raise BadMagicError(reason) from e
            raise FramingError(reason) from e

        if require_checksum and isinstance(message, self.module.MAVLink_unknown):
            raise BadCrcError(f"Cannot verify checksum of {message.get_type()}")

        header = MavHeader(
            system_id=message.get_srcSystem(),
            component_id=message.get_srcComponent(),
            sequence=message.get_seq(),
        )
        return header, message, length

    @staticmethod
    def frame_length_probe(data: bytes) -> int:
        """See the module level ``frame_length_probe``."""
        return frame_length_probe(data)

    @staticmethod
    def protocol_version(frame: bytes) -> int:
        """Return 1 or 2 depending on the frame's marker byte."""
        return 1 if frame[:1] == bytes([PROTOCOL_MARKER_V1]) else 2
