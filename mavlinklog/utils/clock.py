"""
Clock and identity sources used by the writers.

Kept as plain functions so writers can take them as injectable callables.
"""

import time
import uuid


def now_unix_us() -> int:
    """Wall clock time in microseconds since the Unix epoch."""
    return time.time_ns() // 1000


def now_monotonic_us() -> int:
    """Monotonic clock reading in microseconds (arbitrary origin)."""
    return time.monotonic_ns() // 1000


def new_uuid_v4() -> uuid.UUID:
    """Random (version 4) UUID."""
    return uuid.uuid4()
