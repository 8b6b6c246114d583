"""Tests for the pymavlink backed wire codec."""

import pytest

from mavlinklog.core.errors import BadCrcError, BadMagicError, TruncatedError
from mavlinklog.core.wire.codec import (
    MavFrame,
    MavHeader,
    WireCodec,
    frame_length_probe,
)


class TestFrameLengthProbe:
    """Test frame_length_probe."""

    def test_mavlink2(self):
        assert frame_length_probe(bytes([0xFD, 9, 0])) == 21

    def test_mavlink2_signed(self):
        """Test that the signature block is counted for signed frames."""
        assert frame_length_probe(bytes([0xFD, 9, 0x01])) == 34

    def test_mavlink1(self):
        assert frame_length_probe(bytes([0xFE, 9])) == 17

    def test_bad_marker(self):
        with pytest.raises(BadMagicError, match="0x00"):
            frame_length_probe(b"\x00\x09\x00")

    def test_short_input(self):
        with pytest.raises(TruncatedError):
            frame_length_probe(b"")

        with pytest.raises(TruncatedError):
            frame_length_probe(bytes([0xFD, 9]))

        with pytest.raises(TruncatedError):
            frame_length_probe(bytes([0xFE]))


class TestWireCodec:
    """Test WireCodec class."""

    @pytest.fixture
    def codec(self):
        return WireCodec()

    def test_serialize_heartbeat(self, codec, heartbeat_frame, heartbeat_bytes):
        assert codec.serialize(heartbeat_frame) == heartbeat_bytes

    def test_serialize_mavlink1(self, codec, make_heartbeat):
        frame = codec.serialize_frame(MavHeader(), make_heartbeat(), protocol_version=1)

        assert len(frame) == 17
        assert frame[0] == 0xFE
        assert frame[1] == 9
        assert codec.protocol_version(frame) == 1

    def test_serialize_stamps_header(self, codec, make_heartbeat):
        header = MavHeader(system_id=1, component_id=2, sequence=7)

        frame = codec.serialize_frame(header, make_heartbeat())

        assert frame[4] == 7
        assert frame[5] == 1
        assert frame[6] == 2
        assert codec.protocol_version(frame) == 2

    def test_unsupported_protocol_version(self, codec, make_heartbeat):
        with pytest.raises(ValueError, match="protocol version"):
            codec.serialize_frame(MavHeader(), make_heartbeat(), protocol_version=3)

    def test_deserialize(self, codec, make_heartbeat):
        """Test that deserialize recovers the header and fields."""
        header = MavHeader(system_id=1, component_id=2, sequence=7)
        frame = codec.serialize_frame(header, make_heartbeat(custom_mode=4))

        decoded_header, message, consumed = codec.deserialize_frame(frame + b"trailing")

        assert decoded_header == header
        assert consumed == len(frame)
        assert message.get_type() == "HEARTBEAT"
        assert message.custom_mode == 4
        assert message.type == 12

    def test_deserialize_mavlink1(self, codec, make_heartbeat):
        frame = MavFrame(header=MavHeader(sequence=3), message=make_heartbeat(), protocol_version=1)

        decoded_header, message, consumed = codec.deserialize_frame(codec.serialize(frame))

        assert decoded_header.sequence == 3
        assert consumed == 17
        assert message.autopilot == 3

    def test_deserialize_bad_crc(self, codec, heartbeat_bytes):
        corrupt = bytearray(heartbeat_bytes)
        corrupt[-1] ^= 0xFF

        with pytest.raises(BadCrcError):
            codec.deserialize_frame(bytes(corrupt))

    def test_deserialize_bad_magic(self, codec, heartbeat_bytes):
        with pytest.raises(BadMagicError):
            codec.deserialize_frame(b"\x55" + heartbeat_bytes[1:])

    def test_deserialize_truncated(self, codec, heartbeat_bytes):
        with pytest.raises(TruncatedError) as exc_info:
            codec.deserialize_frame(heartbeat_bytes[:15])

        assert exc_info.value.expected == 21
        assert exc_info.value.available == 15

    def test_dialects(self):
        assert WireCodec.has_dialect("common")
        assert WireCodec.has_dialect("ardupilotmega")
        assert not WireCodec.has_dialect("no_such_dialect")

        with pytest.raises(ValueError, match="no_such_dialect"):
            WireCodec("no_such_dialect")

    def test_frame_length_matches_module_function(self, codec, heartbeat_bytes):
        assert codec.frame_length_probe(heartbeat_bytes[:3]) == len(heartbeat_bytes)

    def test_unknown_message_id(self, codec):
        """Test that frames the dialect cannot checksum are only accepted on request."""
        frame = bytes([0xFD, 1, 0, 0, 0, 1, 1, 0xFF, 0xFF, 0xFF, 0x42, 0x00, 0x00])

        _, message, consumed = codec.deserialize_frame(frame)

        assert message.get_type() == "UNKNOWN_16777215"
        assert consumed == len(frame)

        with pytest.raises(BadCrcError, match="UNKNOWN"):
            codec.deserialize_frame(frame, require_checksum=True)

    def test_require_checksum_accepts_known_messages(self, codec, heartbeat_bytes):
        _, message, _ = codec.deserialize_frame(heartbeat_bytes, require_checksum=True)

        assert message.get_type() == "HEARTBEAT"
