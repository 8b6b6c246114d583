"""Tests for structured logging setup."""

import pytest
from structlog.testing import capture_logs

from mavlinklog.core.log.reader import MavLogReader
from mavlinklog.core.log.writer import RotatingMavLogger
from mavlinklog.utils.logging import add_app_context, configure_logging, render_bytes_as_hex


class TestProcessors:
    """Test the custom event processors."""

    def test_app_context(self):
        assert add_app_context(None, "info", {"event": "x"})["app"] == "mavlinklog"

    def test_bytes_rendered_as_hex(self):
        event = render_bytes_as_hex(
            None, "warning", {"event": "x", "head": b"\xfd\x09", "buffer": bytearray(b"\x00"), "n": 3}
        )

        assert event == {"event": "x", "head": "fd09", "buffer": "00", "n": 3}


class TestConfigureLogging:
    """Test configure_logging."""

    def test_unknown_output(self):
        with pytest.raises(ValueError, match="Unsupported log output"):
            configure_logging(log_output="mavlinklog.log")


class TestBoundContext:
    """Test that file readers and writers tag their events with the file."""

    def test_writer_and_reader_events_carry_path_and_uuid(self, temp_dir, heartbeat_bytes):
        path = temp_dir / "flight.mav"

        with capture_logs() as logs:
            with RotatingMavLogger(path, max_bytes=1 << 20, backup_count=0) as logger:
                logger.write_frame_bytes(heartbeat_bytes)
                log_uuid = str(logger.header.uuid)

            content = path.read_bytes()
            header_size = len(content) - (11 + len(heartbeat_bytes))
            path.write_bytes(content[:header_size] + b"\x07" + content[header_size:])

            with MavLogReader(path) as reader:
                entries = list(reader)

        assert len(entries) == 1
        opened = [event for event in logs if event["event"] == "Opened MAV-LOG writer"]
        assert opened and opened[0]["path"] == str(path)
        assert opened[0]["uuid"] == log_uuid

        lost = [event for event in logs if event["event"] == "Lost framing, resynchronizing"]
        assert len(lost) == 1
        assert lost[0]["path"] == str(path)
        assert lost[0]["uuid"] == log_uuid
        assert lost[0]["log_level"] == "warning"
