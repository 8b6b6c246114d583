"""Shared fixtures for mavlinklog tests."""

import itertools
import tempfile
from pathlib import Path

import pytest
from pymavlink.dialects.v20 import common as mavlink2

from mavlinklog.core.wire.codec import MavFrame, MavHeader

# HEARTBEAT from system 255, component 0, sequence 0 as a MAVLink 2 frame:
# submarine, ArduPilot, standby, mavlink_version 3.
HEARTBEAT_FRAME = bytes(
    [253, 9, 0, 0, 0, 255, 0, 0, 0, 0, 0, 0, 0, 0, 12, 3, 0, 3, 3, 98, 190]
)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def make_heartbeat():
    """Factory for HEARTBEAT messages; custom_mode distinguishes them."""

    def make(custom_mode: int = 0):
        return mavlink2.MAVLink_heartbeat_message(
            type=mavlink2.MAV_TYPE_SUBMARINE,
            autopilot=mavlink2.MAV_AUTOPILOT_ARDUPILOTMEGA,
            base_mode=0,
            custom_mode=custom_mode,
            system_status=mavlink2.MAV_STATE_STANDBY,
            mavlink_version=3,
        )

    return make


@pytest.fixture
def heartbeat_frame(make_heartbeat):
    """HEARTBEAT frame that serializes to HEARTBEAT_FRAME."""
    return MavFrame(header=MavHeader(), message=make_heartbeat())


@pytest.fixture
def heartbeat_bytes():
    return HEARTBEAT_FRAME


@pytest.fixture
def step_clock():
    """Factory for fake clocks that advance by a fixed step on every call."""

    def make(start: int = 1000, step: int = 10):
        values = itertools.count(start, step)
        return lambda: next(values)

    return make
