"""Snowflake id generation compatible with the client protocol."""

from __future__ import annotations

import os
import threading
import time
from datetime import UTC, datetime

# 2015-01-01T00:00:00Z in milliseconds.
EPOCH_MS = 1420070400000

_WORKER_ID = 0
_PROCESS_ID = os.getpid() & 0b11111
_lock = threading.Lock()
_increment = 0


def generate() -> str:
    """Return a new unique snowflake as a decimal string.

    Layout: 42 bits of milliseconds since `EPOCH_MS`, 5 bits worker id,
    5 bits process id, 12 bits per-process increment.
    """
    global _increment

    with _lock:
        increment = _increment
        _increment = (_increment + 1) & 0xFFF

    timestamp = int(time.time() * 1000) - EPOCH_MS
    value = (timestamp << 22) | (_WORKER_ID << 17) | (_PROCESS_ID << 12) | increment
    return str(value)


def deconstruct(snowflake: str) -> datetime:
    """Return the creation time encoded in a snowflake."""
    timestamp_ms = (int(snowflake) >> 22) + EPOCH_MS
    return datetime.fromtimestamp(timestamp_ms / 1000, UTC)
