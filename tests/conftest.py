from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

import pytest

from focus_timer.config import Settings
from focus_timer.models import ActiveWindowSample

T0 = datetime(2025, 3, 14, 9, 0, 0)


class FakeClock:
    """Wall clock and monotonic clock that only move when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start
        self.mono = 1000.0

    def __call__(self) -> datetime:
        return self.now

    def monotonic(self) -> float:
        return self.mono

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)
        self.mono += seconds


class ScriptedProbe:
    def __init__(self, sample: Optional[ActiveWindowSample] = None) -> None:
        self.sample_value = sample
        self.error: Optional[Exception] = None
        self.calls = 0

    def show(self, process_name: str, window_title: str) -> None:
        self.sample_value = ActiveWindowSample(process_name, window_title)

    def hide(self) -> None:
        self.sample_value = None

    async def sample(self) -> Optional[ActiveWindowSample]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.sample_value


class MemorySettingsStore:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.loads = 0
        self.error: Optional[Exception] = None

    async def load(self) -> Settings:
        self.loads += 1
        if self.error is not None:
            raise self.error
        return self.settings.model_copy()

    async def save(self, settings: Settings) -> None:
        self.settings = settings.model_copy()


class RecordingSink:
    def __init__(self) -> None:
        self.messages: list[str] = []

    async def show_break_reminder(self, message: str) -> None:
        self.messages.append(message)


class ManualSleeper:
    """Replacement for ``asyncio.sleep`` that waits until the test releases it."""

    def __init__(self) -> None:
        self.waiting: list[tuple[float, asyncio.Future[None]]] = []
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self.delays.append(delay)
        self.waiting.append((delay, future))
        try:
            await future
        finally:
            self.waiting = [item for item in self.waiting if item[1] is not future]

    def pending_delays(self) -> list[float]:
        return [delay for delay, future in self.waiting if not future.done()]

    def release(self, delay: float) -> None:
        for waited, future in self.waiting:
            if waited == delay and not future.done():
                future.set_result(None)
                return
        raise AssertionError(f"nothing is sleeping for {delay}s")


async def settle(rounds: int = 10) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def probe() -> ScriptedProbe:
    return ScriptedProbe(ActiveWindowSample("editor.exe", "notes.txt"))


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(log_directory=tmp_path / "logs", break_interval_minutes=1)


@pytest.fixture
def store(settings: Settings) -> MemorySettingsStore:
    return MemorySettingsStore(settings)
