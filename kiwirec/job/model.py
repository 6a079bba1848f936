"""Dataclasses for recorder settings, jobs, and their bounded log buffers."""

from __future__ import annotations

import secrets
import string
from collections import deque
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Deque, Dict, Iterable, List, Optional

DEFAULT_LOG_CAP = 1000

UID_LENGTH = 9
UID_CHARSET = string.ascii_uppercase + string.digits


class RecordingType(str, Enum):
    """Capture mode; the value is the wire representation."""

    PNG = "png"
    IQ = "iq"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class JobState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    WAITING = "waiting"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class RecorderSettings:
    rec_type: RecordingType
    frequency: int  # Hz
    duration: int  # seconds per run
    zoom: Optional[int] = None  # spectrum only
    interval: Optional[int] = None  # None or 0 == once

    @property
    def is_recurring(self) -> bool:
        return bool(self.interval and self.interval > 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rec_type": self.rec_type.value,
            "frequency": self.frequency,
            "zoom": self.zoom,
            "duration": self.duration,
            "interval": self.interval,
        }

    def __str__(self) -> str:
        zoom_part = f"Zoom: {self.zoom}, " if self.rec_type is RecordingType.PNG else ""
        repeat_part = f"Every {self.interval} sec" if self.is_recurring else "Once"
        return (
            f"Type: {self.rec_type.label}, Frequency: {self.frequency} Hz, "
            f"{zoom_part}{repeat_part}, for {self.duration} sec"
        )


@dataclass(frozen=True)
class LogEntry:
    timestamp: int  # Unix seconds
    data: str

    def to_dict(self, max_length: Optional[int] = None) -> Dict[str, Any]:
        data = self.data
        if max_length is not None and len(data) > max_length:
            data = data[:max_length] + "..."
        return {"timestamp": self.timestamp, "data": data}


class LogBuffer:
    """Append-only log that evicts its oldest entries past ``cap``."""

    def __init__(self, cap: int = DEFAULT_LOG_CAP, entries: Iterable[LogEntry] = ()) -> None:
        if cap <= 0:
            raise ValueError("log cap must be positive")
        self.cap = cap
        self._entries: Deque[LogEntry] = deque(entries, maxlen=cap)

    def append(self, timestamp: int, data: str) -> None:
        self._entries.append(LogEntry(timestamp=timestamp, data=data))

    def entries(self) -> List[LogEntry]:
        return list(self._entries)

    def tail(self, count: int) -> List[LogEntry]:
        """Return up to ``count`` most recent entries, newest first."""
        out: List[LogEntry] = []
        for entry in reversed(self._entries):
            if len(out) >= count:
                break
            out.append(entry)
        return out

    def copy(self) -> "LogBuffer":
        return LogBuffer(self.cap, self._entries)

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class Job:
    job_id: int
    job_uid: str
    settings: RecorderSettings
    running: bool = False
    state: JobState = JobState.PENDING
    started_at: Optional[int] = None
    next_run_start: Optional[int] = None
    logs: LogBuffer = field(default_factory=LogBuffer)
    removed: bool = False

    def push_log(self, timestamp: int, data: str) -> None:
        self.logs.append(timestamp, data)

    def snapshot(self) -> "Job":
        """Value copy safe to hand to readers outside the job's lock."""
        return replace(self, logs=self.logs.copy())


def generate_uid() -> str:
    """Random ``XXXX-XXXX`` identifier drawn from A-Z0-9."""
    return "".join(
        "-" if i > 0 and (i + 1) % 5 == 0 else secrets.choice(UID_CHARSET)
        for i in range(UID_LENGTH)
    )
