"""
MAVLink wire codec.

Thin adapter over pymavlink dialect modules used by the MAV-LOG and TLOG
containers to serialize, deserialize and size frames.
"""

from mavlinklog.core.wire.codec import (
    PROTOCOL_MARKER_V1,
    PROTOCOL_MARKER_V2,
    MavFrame,
    MavHeader,
    WireCodec,
    frame_length_probe,
)

__all__ = [
    "PROTOCOL_MARKER_V1",
    "PROTOCOL_MARKER_V2",
    "MavFrame",
    "MavHeader",
    "WireCodec",
    "frame_length_probe",
]
