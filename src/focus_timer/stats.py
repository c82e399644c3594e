"""Running totals of logged time for status displays."""

from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta
from typing import Callable, Iterable

from .models import TimeEntry


class TodayTotals:
    """Sums the duration of logged entries that started today.

    Connect ``add_entries`` to ``TimerEngine.entries_logged``. The totals
    reset themselves when the calendar day changes.
    """

    def __init__(self, today: Callable[[], date] = date.today) -> None:
        self._today = today
        self._day = today()
        self._total = timedelta(0)
        self._by_app: defaultdict[str, timedelta] = defaultdict(timedelta)

    def add_entries(self, entries: Iterable[TimeEntry]) -> None:
        self._roll_over()
        for entry in entries:
            duration = entry.duration
            if duration is None or entry.start_time.date() != self._day:
                continue
            self._total += duration
            self._by_app[entry.app_name] += duration

    @property
    def total(self) -> timedelta:
        self._roll_over()
        return self._total

    def top_apps(self, limit: int = 5) -> list[tuple[str, timedelta]]:
        self._roll_over()
        return sorted(self._by_app.items(), key=lambda item: item[1], reverse=True)[:limit]

    def _roll_over(self) -> None:
        today = self._today()
        if today != self._day:
            self._day = today
            self._total = timedelta(0)
            self._by_app.clear()
