"""Splits a running session into per-window time entries."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from .models import ActiveWindowSample, TimeEntry
from .probe import ActiveWindowProbe

logger = logging.getLogger(__name__)

MIN_ENTRY_DURATION = timedelta(seconds=1)


class SessionTracker:
    """Tracks active window changes and creates ``TimeEntry`` segments.

    The tracker owns the single open entry and the closed entries waiting to
    be flushed. ``collect_and_reset`` is the only way entries leave it.
    """

    def __init__(
        self,
        probe: ActiveWindowProbe,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._probe = probe
        self._clock = clock
        self._completed: list[TimeEntry] = []
        self._current: Optional[TimeEntry] = None
        self._last_sample: Optional[ActiveWindowSample] = None
        self._project_tag: Optional[str] = None
        self._tracking = False

    @property
    def is_tracking(self) -> bool:
        return self._tracking

    @property
    def current_entry(self) -> Optional[TimeEntry]:
        return self._current

    @property
    def pending_count(self) -> int:
        """Completed entries plus the open one, if any."""
        return len(self._completed) + (1 if self._current is not None else 0)

    async def start(self, project_tag: Optional[str] = None) -> None:
        if self._tracking:
            return
        self._project_tag = project_tag
        self._tracking = True

        try:
            sample = await self._probe.sample()
        except Exception:
            logger.exception("Failed to sample the active window at session start.")
            sample = None

        # stop() may have run while the probe was being awaited
        if not self._tracking or self._current is not None:
            return
        self._open_entry(sample, self._now())
        logger.debug("Session tracking started in %s", self._current.app_name)

    async def on_tick(self) -> None:
        if not self._tracking:
            return

        try:
            sample = await self._probe.sample()
        except Exception:
            logger.exception("Error during window tracking; keeping the last known window.")
            return

        if not self._tracking:
            return
        if sample == self._last_sample and self._current is not None:
            return

        now = self._now()
        self._close_current(now)
        self._open_entry(sample, now)
        logger.debug(
            "Window changed: process=%s title=%s",
            self._current.app_name,
            self._current.window_title,
        )

    def update_project_tag(self, project_tag: Optional[str]) -> None:
        """Tag the open entry and every entry opened afterwards."""
        self._project_tag = project_tag
        if self._current is not None:
            self._current.project_tag = project_tag

    def collect_and_reset(self) -> tuple[TimeEntry, ...]:
        self._tracking = False
        self._close_current(self._now())
        entries = tuple(self._completed)
        self._completed.clear()
        self._last_sample = None
        return entries

    def _now(self) -> datetime:
        now = self._clock()
        # boundaries never move backwards, even if the wall clock does
        if self._current is not None and now < self._current.start_time:
            return self._current.start_time
        return now

    def _open_entry(self, sample: Optional[ActiveWindowSample], start_time: datetime) -> None:
        self._last_sample = sample
        self._current = TimeEntry.open_for(sample, start_time, self._project_tag)

    def _close_current(self, end_time: datetime) -> None:
        entry = self._current
        if entry is None:
            return
        self._current = None
        entry.end_time = end_time
        if entry.duration >= MIN_ENTRY_DURATION:
            self._completed.append(entry)
        else:
            logger.debug("Discarding %.3fs segment in %s", entry.duration_seconds, entry.app_name)
