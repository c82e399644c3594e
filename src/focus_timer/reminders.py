"""Break reminders while the timer is running."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Protocol

from .config import SettingsStore

logger = logging.getLogger(__name__)

SNOOZE_SECONDS = 10 * 60


class NotificationSink(Protocol):
    async def show_break_reminder(self, message: str) -> None: ...


class LoggingNotificationSink:
    """Sink for headless runs: reminders only go to the log."""

    async def show_break_reminder(self, message: str) -> None:
        logger.warning("Break reminder: %s", message)


def break_message(interval_minutes: int) -> str:
    return f"You've been working for {interval_minutes} minutes. Time to take a break!"


class BreakReminderScheduler:
    """Keeps at most one pending break reminder.

    The reminder is armed when the timer starts and cancelled when it pauses.
    After firing it re-arms itself every ``SNOOZE_SECONDS`` for as long as
    reminders stay enabled.
    """

    def __init__(
        self,
        notifications: NotificationSink,
        settings_store: SettingsStore,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._notifications = notifications
        self._settings_store = settings_store
        self._sleep = sleep
        self._pending: Optional[asyncio.Task[None]] = None
        # bumped on every cancel so in-flight arm requests can tell they are stale
        self._generation = 0

    @property
    def is_armed(self) -> bool:
        return self._pending is not None and not self._pending.done()

    async def on_timer_started(self) -> None:
        generation = self._generation
        try:
            settings = await self._settings_store.load()
        except Exception:
            logger.exception("Failed to load settings; break reminder not scheduled.")
            return
        if generation != self._generation:
            return
        if not settings.reminders_active:
            return
        interval = settings.break_interval_minutes
        self._arm(interval * 60, interval)
        logger.debug("Break reminder armed for %d minutes.", interval)

    def on_timer_paused(self) -> None:
        self._generation += 1
        self._cancel_pending()

    def close(self) -> None:
        self.on_timer_paused()

    def _arm(self, delay_seconds: float, interval_minutes: int) -> None:
        self._cancel_pending()
        self._pending = asyncio.get_running_loop().create_task(
            self._wait_and_fire(delay_seconds, interval_minutes, self._generation),
            name="break-reminder",
        )

    def _cancel_pending(self) -> None:
        pending, self._pending = self._pending, None
        if pending is not None and not pending.done():
            pending.cancel()

    async def _wait_and_fire(self, delay_seconds: float, interval_minutes: int, generation: int) -> None:
        await self._sleep(delay_seconds)
        if generation != self._generation:
            return
        # this task is finishing; drop it from the slot before re-arming
        self._pending = None

        try:
            await self._notifications.show_break_reminder(break_message(interval_minutes))
        except Exception:
            logger.exception("Break reminder notification failed.")

        try:
            settings = await self._settings_store.load()
        except Exception:
            logger.exception("Failed to reload settings; break reminder not snoozed.")
            return
        if generation != self._generation or self._pending is not None:
            return
        if settings.break_reminders_enabled:
            self._arm(SNOOZE_SECONDS, interval_minutes)
            logger.debug("Break reminder snoozed for %d seconds.", SNOOZE_SECONDS)
