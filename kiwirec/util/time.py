"""Time utilities shared across kiwirec components."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], float]


def utc_stamp(ts: float) -> str:
    """Format a Unix timestamp the way capture file names expect it."""
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d_%H-%M-%S_UTC")
