"""Tests for TLOG reading and writing."""

import struct

import pytest

from mavlinklog.core.errors import LoggerClosedError
from mavlinklog.core.log.tlog import TlogReader, TlogWriter
from mavlinklog.core.wire.codec import MavFrame, MavHeader


class TestTlogWriter:
    """Test TlogWriter class."""

    def test_record_layout(self, temp_dir, heartbeat_frame, heartbeat_bytes):
        """Test that each record is a big-endian timestamp and a frame."""
        path = temp_dir / "flight.tlog"

        with TlogWriter(path, now_unix_us=lambda: 1_700_000_000_000_000) as writer:
            writer.write_mavlink(heartbeat_frame)
            assert writer.records_written == 1

        content = path.read_bytes()
        assert len(content) == 8 + len(heartbeat_bytes)
        assert content[:8] == struct.pack(">Q", 1_700_000_000_000_000)
        assert content[8:] == heartbeat_bytes

    def test_explicit_timestamp(self, temp_dir, heartbeat_bytes):
        path = temp_dir / "flight.tlog"

        with TlogWriter(path) as writer:
            writer.write_frame_bytes(heartbeat_bytes, timestamp_us=0x0102030405060708)

        assert path.read_bytes()[:8] == bytes([1, 2, 3, 4, 5, 6, 7, 8])

    def test_append(self, temp_dir, heartbeat_bytes):
        path = temp_dir / "flight.tlog"

        with TlogWriter(path) as writer:
            writer.write_frame_bytes(heartbeat_bytes, timestamp_us=1)
        with TlogWriter(path, append=True) as writer:
            writer.write_frame_bytes(heartbeat_bytes, timestamp_us=2)

        assert path.stat().st_size == 2 * (8 + len(heartbeat_bytes))

    def test_truncates_without_append(self, temp_dir, heartbeat_bytes):
        path = temp_dir / "flight.tlog"
        path.write_bytes(b"stale")

        TlogWriter(path).close()

        assert path.read_bytes() == b""

    def test_closed_writer(self, temp_dir, heartbeat_frame):
        writer = TlogWriter(temp_dir / "flight.tlog")
        writer.close()
        writer.close()

        with pytest.raises(LoggerClosedError):
            writer.write_mavlink(heartbeat_frame)


class TestTlogReader:
    """Test TlogReader class."""

    @pytest.fixture
    def tlog_path(self, temp_dir, make_heartbeat):
        """TLOG with three heartbeats stamped 1000, 2000 and 3000."""
        path = temp_dir / "flight.tlog"
        with TlogWriter(path) as writer:
            for mode in range(3):
                frame = writer.codec.serialize(
                    MavFrame(header=MavHeader(system_id=1, sequence=mode), message=make_heartbeat(mode))
                )
                writer.write_frame_bytes(frame, timestamp_us=1000 * (mode + 1))
        return path

    def test_roundtrip(self, tlog_path):
        with TlogReader(tlog_path) as reader:
            entries = list(reader)

        assert [entry.timestamp for entry in entries] == [1000, 2000, 3000]
        assert [entry.protocol_header.sequence for entry in entries] == [0, 1, 2]
        assert all(entry.protocol_header.system_id == 1 for entry in entries)
        assert [entry.protocol_message.custom_mode for entry in entries] == [0, 1, 2]

    def test_frame_bytes_kept(self, tlog_path):
        content = tlog_path.read_bytes()

        with TlogReader(tlog_path) as reader:
            first = reader.parse_next_entry()

        assert first.body.frame == content[8:29]

    def test_resynchronize_after_garbage(self, tlog_path):
        content = bytearray(tlog_path.read_bytes())
        content[29:29] = b"\xff\xff\xff"
        tlog_path.write_bytes(bytes(content))

        with TlogReader(tlog_path) as reader:
            entries = list(reader)

            assert [entry.timestamp for entry in entries] == [1000, 2000, 3000]
            assert reader.resync_count == 1
            assert reader.skipped_bytes == 3

    def test_truncated_tail(self, tlog_path):
        content = tlog_path.read_bytes()
        tlog_path.write_bytes(content[:-3])

        with TlogReader(tlog_path) as reader:
            entries = list(reader)

            assert len(entries) == 2
            assert reader.skipped_bytes == 29 - 3
            assert reader.resync_count == 1

    def test_stray_marker_claiming_bytes_past_end(self, tlog_path):
        """Test that an overlong frame length resynchronizes instead of ending the log."""
        content = bytearray(tlog_path.read_bytes())
        content.insert(29 + 8, 0xFE)
        tlog_path.write_bytes(bytes(content))

        with TlogReader(tlog_path) as reader:
            entries = list(reader)

            assert [entry.protocol_message.custom_mode for entry in entries] == [0, 1, 2]
            # The second timestamp is read one byte late, ending in the stray byte.
            assert [entry.timestamp for entry in entries] == [1000, (2000 << 8) | 0xFE, 3000]
            assert reader.skipped_bytes == 1

    def test_unverifiable_frame_is_skipped(self, tlog_path):
        """Test that a fake record with an unknown message id cannot swallow real records."""
        fake = b"\x11" * 8 + bytes([0xFD, 46, 0, 0, 0, 1, 1, 0xFF, 0xFF, 0xFF])
        content = bytearray(tlog_path.read_bytes())
        content[29:29] = fake
        tlog_path.write_bytes(bytes(content))

        with TlogReader(tlog_path) as reader:
            entries = list(reader)

            assert [entry.timestamp for entry in entries] == [1000, 2000, 3000]
            assert reader.resync_count == 1
            assert reader.skipped_bytes == len(fake)

    def test_truncated_timestamp(self, tlog_path):
        content = tlog_path.read_bytes()
        tlog_path.write_bytes(content + b"\x00\x00\x00")

        with TlogReader(tlog_path) as reader:
            assert len(list(reader)) == 3
            assert reader.skipped_bytes == 3

    def test_empty_file(self, temp_dir):
        path = temp_dir / "empty.tlog"
        path.write_bytes(b"")

        with TlogReader(path) as reader:
            assert list(reader) == []

    def test_unknown_dialect(self, tlog_path):
        with pytest.raises(ValueError, match="Unknown MAVLink dialect"):
            TlogReader(tlog_path, dialect="no_such_dialect")
