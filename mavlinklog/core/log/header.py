"""
MAV-LOG file header structures.

This module defines the binary layout of the header that opens every MAV-LOG
file: identity, creation time, format flags and the description of the
MAVLink dialect used by the records that follow.

Wire format (all integers little-endian):
    UUID (16 bytes) - RFC 4122 byte order
    Timestamp (8 bytes) - Unix time in microseconds when the log was created
    Source application id (32 bytes) - UTF-8, NUL padded
    Format version (4 bytes)
    Format flags (2 bytes)
    Message definition (46 bytes fixed + optional payload)
"""

import struct
import uuid
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Callable, List, Optional, Union

from mavlinklog.core.errors import (
    DefinitionError,
    DefinitionSizeMismatchError,
    FieldTooLongError,
    TruncatedError,
    UnknownDefinitionPayloadTypeError,
    UnsupportedFormatVersionError,
)
from mavlinklog.utils import clock

FIXED_STRING_SIZE = 32


def pack_fixed_string(value: str, field_name: str, width: int = FIXED_STRING_SIZE) -> bytes:
    """
    Encode a string as UTF-8 and NUL pad it to a fixed width.

    Raises:
        FieldTooLongError: If the encoded value is wider than the field
    """
    encoded = value.encode("utf-8")
    if len(encoded) > width:
        raise FieldTooLongError(
            f"{field_name} must be {width} bytes or less, got {len(encoded)} bytes"
        )
    return encoded.ljust(width, b"\x00")


def unpack_fixed_string(data: bytes) -> str:
    """Decode a NUL padded UTF-8 field, ignoring everything from the first NUL."""
    return data.split(b"\x00", 1)[0].decode("utf-8", errors="replace")


@dataclass(frozen=True)
class FormatFlags:
    """
    Optional changes to the record layout of a MAV-LOG file.

    Attributes:
        mavlink_only: Records hold only MAVLink frames; the type byte and
            payload size are omitted
        no_timestamp: Per-record timestamps are omitted
        reserved: Bits 2-15 as found on disk; never written back
    """

    mavlink_only: bool = False
    no_timestamp: bool = False
    reserved: int = field(default=0, compare=False)

    MAVLINK_ONLY_BIT = 0x01
    NO_TIMESTAMP_BIT = 0x02
    KNOWN_BITS = MAVLINK_ONLY_BIT | NO_TIMESTAMP_BIT

    @property
    def value(self) -> int:
        """The flags as a 16-bit integer with reserved bits cleared."""
        flags = 0
        if self.mavlink_only:
            flags |= self.MAVLINK_ONLY_BIT
        if self.no_timestamp:
            flags |= self.NO_TIMESTAMP_BIT
        return flags

    def pack(self) -> bytes:
        """Pack the flags into 2 little-endian bytes."""
        return struct.pack("<H", self.value)

    @classmethod
    def unpack(cls, packed: Union[int, bytes]) -> "FormatFlags":
        """
        Unpack flags from a 16-bit integer or 2 little-endian bytes.

        Unknown bits are tolerated and kept in ``reserved``.
        """
        if isinstance(packed, (bytes, bytearray)):
            (packed,) = struct.unpack("<H", bytes(packed[:2]))
        return cls(
            mavlink_only=bool(packed & cls.MAVLINK_ONLY_BIT),
            no_timestamp=bool(packed & cls.NO_TIMESTAMP_BIT),
            reserved=packed & ~cls.KNOWN_BITS & 0xFFFF,
        )


class DefinitionPayloadType(IntEnum):
    """How the message definition payload identifies the dialect XML."""

    NONE = 0
    URLS = 1
    INLINE_XML = 2


def decode_payload_type(value: int) -> DefinitionPayloadType:
    """
    Convert a wire value into a DefinitionPayloadType.

    Raises:
        UnknownDefinitionPayloadTypeError: If the value is not a known type
    """
    try:
        return DefinitionPayloadType(value)
    except ValueError:
        raise UnknownDefinitionPayloadTypeError(value) from None


@dataclass
class MessageDefinition:
    """
    Description of the MAVLink dialect used by the log records.

    Attributes:
        version_major: MAVLink protocol major version
        version_minor: MAVLink protocol minor version
        dialect: Dialect name, at most 32 bytes of UTF-8
        payload_type: Kind of payload that follows the fixed part
        size: Payload length in bytes, 0 iff payload_type is NONE
        payload: The payload bytes, if any
    """

    version_major: int = 2
    version_minor: int = 0
    dialect: str = "common"
    payload_type: DefinitionPayloadType = DefinitionPayloadType.NONE
    size: int = 0
    payload: Optional[bytes] = None

    DEFAULT_DIALECT = "common"
    FIXED_SIZE = 46
    _STRUCT = struct.Struct("<II32sHI")

    @classmethod
    def from_urls(
        cls,
        urls: List[str],
        dialect: str = DEFAULT_DIALECT,
        version_major: int = 2,
        version_minor: int = 0,
    ) -> "MessageDefinition":
        """Build a definition that points at dialect XML files by URL."""
        payload = " ".join(urls).encode("utf-8")
        return cls(
            version_major=version_major,
            version_minor=version_minor,
            dialect=dialect,
            payload_type=DefinitionPayloadType.URLS,
            size=len(payload),
            payload=payload,
        )

    @classmethod
    def from_xml(
        cls,
        xml: Union[str, bytes],
        dialect: str = DEFAULT_DIALECT,
        version_major: int = 2,
        version_minor: int = 0,
    ) -> "MessageDefinition":
        """Build a definition that embeds the dialect XML."""
        payload = xml.encode("utf-8") if isinstance(xml, str) else bytes(xml)
        return cls(
            version_major=version_major,
            version_minor=version_minor,
            dialect=dialect,
            payload_type=DefinitionPayloadType.INLINE_XML,
            size=len(payload),
            payload=payload,
        )

    def urls(self) -> List[str]:
        """Return the dialect URLs of a URLS payload, or an empty list."""
        if self.payload_type != DefinitionPayloadType.URLS or not self.payload:
            return []
        return self.payload.decode("utf-8", errors="replace").split()

    def pack(self) -> bytes:
        """
        Pack the definition, including its payload when present.

        Raises:
            FieldTooLongError: If the dialect is longer than 32 bytes
            ValueError: If size and payload type or payload disagree
        """
        dialect = pack_fixed_string(self.dialect, "dialect")

        if (self.size == 0) != (self.payload_type == DefinitionPayloadType.NONE):
            raise ValueError(
                f"Definition size must be 0 iff payload type is NONE "
                f"(size={self.size}, payload_type={self.payload_type!r})"
            )

        packed = self._STRUCT.pack(
            self.version_major,
            self.version_minor,
            dialect,
            int(self.payload_type),
            self.size,
        )

        if self.payload_type == DefinitionPayloadType.NONE:
            return packed

        payload = self.payload if self.payload is not None else b""
        if len(payload) != self.size:
            raise ValueError(
                f"Definition payload length mismatch: size={self.size}, "
                f"payload={len(payload)} bytes"
            )
        return packed + payload

    @classmethod
    def unpack(cls, data: bytes) -> "MessageDefinition":
        """
        Unpack the fixed 46-byte part of a definition.

        The payload is not read; see ``unpack_payload``.

        Raises:
            TruncatedError: If fewer than 46 bytes are given
            UnknownDefinitionPayloadTypeError: If the payload type is unknown
            DefinitionSizeMismatchError: If the size is nonzero for NONE or zero otherwise
        """
        if len(data) < cls.FIXED_SIZE:
            raise TruncatedError(
                f"Message definition too short: {len(data)} bytes",
                expected=cls.FIXED_SIZE,
                available=len(data),
            )

        major, minor, dialect, payload_type, size = cls._STRUCT.unpack(
            bytes(data[: cls.FIXED_SIZE])
        )

        try:
            decoded_type = decode_payload_type(payload_type)
        except UnknownDefinitionPayloadTypeError:
            raise UnknownDefinitionPayloadTypeError(payload_type, size) from None

        if (size == 0) != (decoded_type == DefinitionPayloadType.NONE):
            raise DefinitionSizeMismatchError(decoded_type.name, size)

        return cls(
            version_major=major,
            version_minor=minor,
            dialect=unpack_fixed_string(dialect),
            payload_type=decoded_type,
            size=size,
            payload=None,
        )

    def unpack_payload(self, data: bytes) -> None:
        """
        Attach the payload that follows the fixed part on disk.

        Raises:
            TruncatedError: If fewer than ``size`` bytes are given
        """
        if self.payload_type == DefinitionPayloadType.NONE:
            return
        if len(data) < self.size:
            raise TruncatedError(
                f"Definition payload truncated: expected {self.size} bytes, got {len(data)}",
                expected=self.size,
                available=len(data),
            )
        self.payload = bytes(data[: self.size])


@dataclass
class FileHeader:
    """
    Header at the start of every MAV-LOG file.

    Attributes:
        uuid: Unique id of the log file
        timestamp_us: Unix time in microseconds when the logger started
        src_application_id: Application that produced the file
        format_version: Container format version
        format_flags: Record layout options
        message_definition: Dialect description, None when it could not be decoded
        definition_error: Why the definition could not be decoded, if it could not
    """

    uuid: uuid.UUID
    timestamp_us: int
    src_application_id: str = "mavlink_logger"
    format_version: int = 1
    format_flags: FormatFlags = field(default_factory=FormatFlags)
    message_definition: Optional[MessageDefinition] = field(default_factory=MessageDefinition)
    definition_error: Optional[DefinitionError] = field(
        default=None, compare=False, repr=False
    )

    MIN_SIZE = 108
    FILE_FORMAT_VERSION = 1
    SUPPORTED_FORMAT_VERSIONS = (1,)
    SRC_APPLICATION_ID = "mavlink_logger"
    _STRUCT = struct.Struct("<16sQ32sIH")

    @classmethod
    def new(
        cls,
        format_flags: Optional[FormatFlags] = None,
        message_definition: Optional[MessageDefinition] = None,
        src_application_id: str = SRC_APPLICATION_ID,
        now_unix_us: Callable[[], int] = clock.now_unix_us,
        new_uuid: Callable[[], uuid.UUID] = clock.new_uuid_v4,
    ) -> "FileHeader":
        """Create a header for a new log, stamped with a fresh UUID and the wall clock."""
        return cls(
            uuid=new_uuid(),
            timestamp_us=now_unix_us(),
            src_application_id=src_application_id,
            format_version=cls.FILE_FORMAT_VERSION,
            format_flags=format_flags if format_flags is not None else FormatFlags(),
            message_definition=(
                message_definition if message_definition is not None else MessageDefinition()
            ),
        )

    @property
    def definition_size(self) -> int:
        """Number of definition payload bytes following the fixed header."""
        if self.message_definition is not None:
            return self.message_definition.size
        if self.definition_error is not None:
            return self.definition_error.size
        return 0

    @property
    def packed_size(self) -> int:
        """Total size of the header on disk, including the definition payload."""
        return self.MIN_SIZE + self.definition_size

    def pack(self) -> bytes:
        """
        Pack the header into bytes.

        Raises:
            FieldTooLongError: If the application id or dialect is too long
            ValueError: If the header has no message definition
        """
        if self.message_definition is None:
            raise ValueError("Cannot pack a header without a message definition")

        app_id = pack_fixed_string(self.src_application_id, "src_application_id")

        return (
            self._STRUCT.pack(
                self.uuid.bytes,
                self.timestamp_us,
                app_id,
                self.format_version,
                self.format_flags.value,
            )
            + self.message_definition.pack()
        )

    @classmethod
    def unpack(cls, data: bytes) -> "FileHeader":
        """
        Unpack a header from the start of ``data``.

        The definition payload is attached when ``data`` holds it. A definition
        that cannot be decoded (unknown payload type, or a size that contradicts
        it) does not fail the header: the definition is left as None and the
        error is kept in ``definition_error``.

        Raises:
            TruncatedError: If fewer than 108 bytes are given
            UnsupportedFormatVersionError: If the format version is unknown
        """
        if len(data) < cls.MIN_SIZE:
            raise TruncatedError(
                f"File header too short: {len(data)} bytes",
                expected=cls.MIN_SIZE,
                available=len(data),
            )

        raw_uuid, timestamp_us, app_id, version, flags = cls._STRUCT.unpack(
            bytes(data[: cls._STRUCT.size])
        )

        if version not in cls.SUPPORTED_FORMAT_VERSIONS:
            raise UnsupportedFormatVersionError(version)

        definition: Optional[MessageDefinition] = None
        definition_error: Optional[DefinitionError] = None
        try:
            definition = MessageDefinition.unpack(data[cls._STRUCT.size : cls.MIN_SIZE])
        except DefinitionError as e:
            definition_error = e

        if definition is not None and len(data) >= cls.MIN_SIZE + definition.size:
            definition.unpack_payload(data[cls.MIN_SIZE : cls.MIN_SIZE + definition.size])

        return cls(
            uuid=uuid.UUID(bytes=raw_uuid),
            timestamp_us=timestamp_us,
            src_application_id=unpack_fixed_string(app_id),
            format_version=version,
            format_flags=FormatFlags.unpack(flags),
            message_definition=definition,
            definition_error=definition_error,
        )
