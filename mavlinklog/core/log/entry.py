"""
Uniform log entry produced by the MAV-LOG and TLOG readers.

An entry carries exactly one body (a MAVLink message, text or raw bytes)
and an optional timestamp.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from mavlinklog.core.wire.codec import MavHeader


@dataclass(frozen=True)
class MavBody:
    """A decoded MAVLink frame and the bytes it was decoded from."""

    header: MavHeader
    message: Any
    frame: bytes = field(default=b"", compare=False, repr=False)


@dataclass(frozen=True)
class TextBody:
    text: str


@dataclass(frozen=True)
class RawBody:
    data: bytes


EntryBody = Union[MavBody, TextBody, RawBody]


@dataclass(frozen=True)
class LogEntry:
    """
    One entry read back from a log.

    Attributes:
        body: The entry payload
        timestamp: Microseconds since the logger started (MAV-LOG) or Unix
            microseconds (TLOG); None when the file does not store timestamps
    """

    body: EntryBody
    timestamp: Optional[int] = None

    @property
    def protocol_header(self) -> Optional[MavHeader]:
        return self.body.header if isinstance(self.body, MavBody) else None

    @property
    def protocol_message(self) -> Any:
        return self.body.message if isinstance(self.body, MavBody) else None

    @property
    def text(self) -> Optional[str]:
        return self.body.text if isinstance(self.body, TextBody) else None

    @property
    def raw(self) -> Optional[bytes]:
        return self.body.data if isinstance(self.body, RawBody) else None

    def describe(self) -> str:
        """One-line human readable rendering, used by the command line tools."""
        stamp = "-" if self.timestamp is None else str(self.timestamp)
        if isinstance(self.body, MavBody):
            header = self.body.header
            return (
                f"{stamp} MAV sys={header.system_id} comp={header.component_id} "
                f"seq={header.sequence} {self.body.message}"
            )
        if isinstance(self.body, TextBody):
            return f"{stamp} TEXT {self.body.text!r}"
        return f"{stamp} RAW {self.body.data.hex()}"
