"""Exceptions raised by the tracking engine."""

from __future__ import annotations

from datetime import date
from typing import Sequence

from .models import TimeEntry


class FocusTimerError(Exception):
    """Base class for engine errors."""


class EntryWriteError(FocusTimerError):
    """Persisting a batch of entries failed."""


class PartialWriteError(EntryWriteError):
    """Some date groups of a batch could not be written."""

    def __init__(self, failed_dates: Sequence[date], written: int) -> None:
        self.failed_dates = tuple(failed_dates)
        self.written = written
        days = ", ".join(day.isoformat() for day in self.failed_dates)
        super().__init__(f"Failed to write entries for {days} ({written} rows written)")


class FlushError(FocusTimerError):
    """Flushing the session on pause or stop did not persist every entry.

    The state transition that triggered the flush has already completed.
    """

    def __init__(self, entries: Sequence[TimeEntry]) -> None:
        self.entries = tuple(entries)
        super().__init__(f"Failed to persist {len(self.entries)} time entries")
