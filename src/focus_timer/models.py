"""Domain models for tracked time."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

UNKNOWN_APP = "Unknown"
NO_ACTIVE_WINDOW = "No active window"


class TimerState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass(frozen=True, slots=True)
class ActiveWindowSample:
    """Identity of the foreground window at one instant."""

    process_name: str
    window_title: str


@dataclass(slots=True)
class TimeEntry:
    """Represents a contiguous block of time spent in a single window.

    The entry is open while ``end_time`` is ``None``.
    """

    start_time: datetime
    app_name: str
    window_title: str
    project_tag: Optional[str] = None
    end_time: Optional[datetime] = None

    @classmethod
    def open_for(
        cls,
        sample: Optional[ActiveWindowSample],
        start_time: datetime,
        project_tag: Optional[str],
    ) -> "TimeEntry":
        if sample is None:
            return cls(start_time, UNKNOWN_APP, NO_ACTIVE_WINDOW, project_tag)
        return cls(start_time, sample.process_name, sample.window_title, project_tag)

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    @property
    def duration(self) -> Optional[timedelta]:
        if self.end_time is None:
            return None
        return self.end_time - self.start_time

    @property
    def duration_seconds(self) -> Optional[float]:
        duration = self.duration
        return None if duration is None else duration.total_seconds()

    def current_duration(self, now: datetime) -> timedelta:
        """Live duration of the entry, using ``now`` as the end of an open entry."""
        return (self.end_time or now) - self.start_time


def format_duration(seconds: float) -> str:
    total_seconds = int(round(seconds))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
