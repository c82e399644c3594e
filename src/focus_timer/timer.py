"""The timer state machine that drives a tracked work session."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import timedelta
from typing import Awaitable, Callable, Optional

from .config import Settings, SettingsStore
from .errors import FlushError
from .logwriter import EntryLogWriter
from .models import TimeEntry, TimerState
from .reminders import BreakReminderScheduler
from .signals import Signal
from .tracker import SessionTracker

logger = logging.getLogger(__name__)

TICK_INTERVAL_SECONDS = 1.0
SAMPLE_DRAIN_SECONDS = 1.0
SHUTDOWN_FLUSH_SECONDS = 2.0


class TimerEngine:
    """Idle/Running/Paused timer coordinating tracking, reminders and logging.

    All methods must be called from the event loop the engine runs on.
    Elapsed time is always ``accumulated + (now - run_started)`` measured on
    a monotonic clock, so late or missed ticks never skew it.
    """

    def __init__(
        self,
        tracker: SessionTracker,
        log_writer: EntryLogWriter,
        settings_store: SettingsStore,
        reminders: Optional[BreakReminderScheduler] = None,
        *,
        on_entries_logged: Optional[Callable[[tuple[TimeEntry, ...]], None]] = None,
        monotonic: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        tick_interval: float = TICK_INTERVAL_SECONDS,
    ) -> None:
        self._tracker = tracker
        self._log_writer = log_writer
        self._settings_store = settings_store
        self._reminders = reminders
        self._monotonic = monotonic
        self._sleep = sleep
        self._tick_interval = tick_interval

        self._state = TimerState.IDLE
        self._accumulated = timedelta(0)
        self._run_started: Optional[float] = None
        self._project_tag: Optional[str] = None
        self._settings: Optional[Settings] = None
        self._tick_task: Optional[asyncio.Task[None]] = None
        self._sample_task: Optional[asyncio.Task[None]] = None
        self._closed = False

        self.state_changed: Signal[TimerState] = Signal("state_changed")
        self.tick: Signal[timedelta] = Signal("tick")
        self.entries_logged: Signal[tuple[TimeEntry, ...]] = Signal("entries_logged")
        self.error: Signal[BaseException] = Signal("error")
        if on_entries_logged is not None:
            self.entries_logged.connect(on_entries_logged)

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is TimerState.RUNNING

    @property
    def project_tag(self) -> Optional[str]:
        return self._project_tag

    @property
    def elapsed(self) -> timedelta:
        if self._state is TimerState.RUNNING and self._run_started is not None:
            return self._accumulated + timedelta(seconds=self._monotonic() - self._run_started)
        return self._accumulated

    async def start(self, project_tag: Optional[str] = None) -> None:
        if self._closed:
            logger.warning("Ignoring start on a timer that has been shut down.")
            return
        if self._state is TimerState.RUNNING:
            return
        if project_tag is not None:
            self._project_tag = project_tag

        self._run_started = self._monotonic()
        self._set_state(TimerState.RUNNING)
        self._tick_task = asyncio.get_running_loop().create_task(
            self._tick_loop(), name="timer-tick"
        )

        # a resume after pause finds the tracker flushed and starts a new segment
        await self._tracker.start(self._project_tag)
        if self._state is not TimerState.RUNNING:
            return
        if self._reminders is not None:
            await self._reminders.on_timer_started()

    async def pause(self) -> None:
        if self._state is not TimerState.RUNNING:
            return
        self._accumulate()
        self._halt()
        self._set_state(TimerState.PAUSED)
        await self._flush()

    async def stop(self) -> None:
        if self._state is TimerState.IDLE:
            return
        self._accumulate()
        self._halt()
        self._accumulated = timedelta(0)
        self._set_state(TimerState.IDLE)
        await self._flush()

    async def reset(self) -> None:
        try:
            await self.stop()
        except FlushError:
            logger.warning("Reset continued after a failed flush.")
        finally:
            self._accumulated = timedelta(0)
            self.tick.emit(self._accumulated)

    async def toggle(self) -> None:
        if self._state is TimerState.RUNNING:
            await self.pause()
        else:
            await self.start()

    def update_project_tag(self, project_tag: Optional[str]) -> None:
        self._project_tag = project_tag
        self._tracker.update_project_tag(project_tag)

    async def shutdown(self, timeout: float = SHUTDOWN_FLUSH_SECONDS) -> None:
        """Stop ticking and make one bounded attempt to persist pending entries."""
        if self._closed:
            return
        self._closed = True
        self._accumulate()
        self._halt()
        if self._reminders is not None:
            self._reminders.close()

        if self._tracker.pending_count:
            try:
                await asyncio.wait_for(self._flush(), timeout)
            except asyncio.TimeoutError:
                logger.warning("Flush on shutdown did not finish within %.1fs; last segment lost.", timeout)
            except FlushError:
                logger.warning("Flush on shutdown failed; entries were not persisted.")
        self._set_state(TimerState.IDLE)

    def on_tick(self) -> None:
        """Publish elapsed time and sample the foreground window in the background."""
        if self._state is not TimerState.RUNNING:
            return
        self.tick.emit(self.elapsed)

        if self._sample_task is not None and not self._sample_task.done():
            logger.debug("Previous window sample still in flight; skipping this one.")
            return
        self._sample_task = asyncio.get_running_loop().create_task(
            self._tracker.on_tick(), name="window-sample"
        )
        self._sample_task.add_done_callback(self._on_sample_done)

    def _set_state(self, state: TimerState) -> None:
        if state is self._state:
            return
        self._state = state
        logger.info("Timer %s", state.value)
        self.state_changed.emit(state)

    def _accumulate(self) -> None:
        if self._state is TimerState.RUNNING and self._run_started is not None:
            self._accumulated += timedelta(seconds=self._monotonic() - self._run_started)
        self._run_started = None

    def _halt(self) -> None:
        tick_task, self._tick_task = self._tick_task, None
        if tick_task is not None and not tick_task.done():
            tick_task.cancel()
        if self._reminders is not None:
            self._reminders.on_timer_paused()

    async def _tick_loop(self) -> None:
        while True:
            await self._sleep(self._tick_interval)
            try:
                self.on_tick()
            except Exception as exc:
                logger.exception("Tick processing failed.")
                self.error.emit(exc)

    def _on_sample_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Error tracking window.", exc_info=exc)
            self.error.emit(exc)

    async def _drain_sampling(self) -> None:
        task = self._sample_task
        if task is None or task.done():
            return
        await asyncio.wait({task}, timeout=SAMPLE_DRAIN_SECONDS)
        if not task.done():
            logger.warning("Window sample did not finish before flush; cancelling it.")
            task.cancel()

    async def _load_settings(self) -> Settings:
        try:
            self._settings = await self._settings_store.load()
        except Exception:
            logger.exception("Failed to reload settings; using the last known settings.")
            if self._settings is None:
                self._settings = Settings()
        return self._settings

    async def _flush(self) -> None:
        await self._drain_sampling()
        entries = self._tracker.collect_and_reset()
        if not entries:
            logger.debug("No time entries to log.")
            return

        settings = await self._load_settings()
        try:
            await self._log_writer.write_entries(entries, settings)
        except Exception as exc:
            logger.exception("Failed to flush %d time entries.", len(entries))
            self.error.emit(exc)
            raise FlushError(entries) from exc

        logger.info("Logged %d time entries to %s", len(entries), settings.log_directory)
        self.entries_logged.emit(entries)
