"""End-to-end sessions through the engine, tracker, reminders and CSV writer."""

import asyncio
import csv
import logging
from datetime import timedelta

from conftest import T0, ManualSleeper, RecordingSink, ScriptedProbe, settle

from focus_timer.logwriter import EntryLogWriter, log_path_for
from focus_timer.models import ActiveWindowSample, TimerState
from focus_timer.reminders import SNOOZE_SECONDS, BreakReminderScheduler
from focus_timer.timer import TimerEngine
from focus_timer.tracker import SessionTracker


def build(probe, clock, store, sink=None):
    reminder_sleeper = ManualSleeper()
    reminders = BreakReminderScheduler(sink or RecordingSink(), store, sleep=reminder_sleeper)
    engine = TimerEngine(
        SessionTracker(probe, clock=clock),
        EntryLogWriter(),
        store,
        reminders,
        monotonic=clock.monotonic,
        sleep=ManualSleeper(),
    )
    return engine, reminder_sleeper


def logged_rows(settings):
    path = log_path_for(settings.log_directory, T0.date())
    if not path.exists():
        return []
    with path.open(encoding="utf-8", newline="") as handle:
        return list(csv.reader(handle))[1:]


async def tick(engine, clock, seconds=1):
    clock.advance(seconds)
    engine.on_tick()
    await settle()


def test_window_switch_then_pause(clock, settings, store):
    probe = ScriptedProbe(ActiveWindowSample("A", "Title1"))
    engine, _ = build(probe, clock, store)

    async def scenario():
        await engine.start()
        for _ in range(4):
            await tick(engine, clock)
        probe.show("B", "Title2")
        await tick(engine, clock)
        for _ in range(7):
            await tick(engine, clock)
        await engine.pause()

    asyncio.run(scenario())
    rows = logged_rows(settings)
    assert [row[1:6] for row in rows] == [
        ["09:00:00", "09:00:05", "5", "A", "Title1"],
        ["09:00:05", "09:00:12", "7", "B", "Title2"],
    ]
    assert engine.state is TimerState.PAUSED
    assert engine.elapsed == timedelta(seconds=12)


def test_immediate_stop_logs_nothing(probe, clock, settings, store):
    engine, _ = build(probe, clock, store)

    async def scenario():
        await engine.start()
        clock.advance(0.3)
        await engine.stop()

    asyncio.run(scenario())
    assert logged_rows(settings) == []
    assert engine.state is TimerState.IDLE
    assert engine.elapsed == timedelta(0)


def test_break_reminder_and_snooze(probe, clock, store):
    sink = RecordingSink()
    engine, reminder_sleeper = build(probe, clock, store, sink)

    async def scenario():
        await engine.start()
        await settle()
        assert reminder_sleeper.pending_delays() == [60]
        clock.advance(60)
        reminder_sleeper.release(60)
        await settle()
        assert len(sink.messages) == 1
        assert reminder_sleeper.pending_delays() == [SNOOZE_SECONDS]
        clock.advance(SNOOZE_SECONDS)
        reminder_sleeper.release(SNOOZE_SECONDS)
        await settle()
        assert len(sink.messages) == 2
        await engine.pause()
        await settle()
        return reminder_sleeper.pending_delays()

    assert asyncio.run(scenario()) == []
    assert sink.messages[0].startswith("You've been working for 1 minutes")


def test_pause_with_failing_probe_uses_last_known_window(clock, settings, store, caplog):
    probe = ScriptedProbe(ActiveWindowSample("A", "Title1"))
    engine, _ = build(probe, clock, store)

    async def scenario():
        await engine.start()
        probe.show("B", "Title2")
        await tick(engine, clock, 3)
        probe.error = OSError("window handle vanished")
        for _ in range(4):
            await tick(engine, clock)
        await engine.pause()

    with caplog.at_level(logging.ERROR, logger="focus_timer.tracker"):
        asyncio.run(scenario())

    rows = logged_rows(settings)
    assert [(row[3], row[4], row[5]) for row in rows] == [("3", "A", "Title1"), ("4", "B", "Title2")]
    assert "Error during window tracking" in caplog.text
