"""Command-line interface for the focus timer."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import typer

from .config import JsonSettingsStore, Settings, SettingsStore
from .errors import FlushError
from .logwriter import EntryLogWriter
from .models import TimerState, format_duration
from .paths import get_log_path, get_settings_path
from .probe import create_default_probe
from .reminders import BreakReminderScheduler
from .runner import EngineRunner
from .stats import TodayTotals
from .timer import TimerEngine
from .tracker import SessionTracker

logger = logging.getLogger(__name__)

app = typer.Typer(help="Focus timer with per-window time logs.")
config_app = typer.Typer(help="Show or change settings.")
app.add_typer(config_app, name="config")

COMMANDS_HELP = "Commands: p = pause/resume, s = stop, r = reset, t TAG = set project, q = quit, Enter = status"


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    try:
        handler = logging.FileHandler(get_log_path(), encoding="utf-8")
    except OSError:
        logger.warning("Diagnostics log file is unavailable; logging to the console only.")
        return
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    logging.getLogger().addHandler(handler)


class ConsoleNotificationSink:
    async def show_break_reminder(self, message: str) -> None:
        typer.secho(f"\a{message}", fg=typer.colors.YELLOW, bold=True)


class LogDirectoryOverride:
    """Settings store that pins the log directory chosen on the command line."""

    def __init__(self, store: SettingsStore, log_directory: Path) -> None:
        self._store = store
        self._log_directory = log_directory

    async def load(self) -> Settings:
        settings = await self._store.load()
        settings.log_directory = self._log_directory
        return settings

    async def save(self, settings: Settings) -> None:
        await self._store.save(settings)


def build_engine(store: SettingsStore) -> TimerEngine:
    tracker = SessionTracker(create_default_probe())
    reminders = BreakReminderScheduler(ConsoleNotificationSink(), store)
    return TimerEngine(tracker, EntryLogWriter(), store, reminders)


@app.command()
def run(
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project tag for new entries."),
    log_dir: Optional[Path] = typer.Option(
        None, "--log-dir", path_type=Path, help="Write work logs here instead of the configured directory."
    ),
    settings_path: Optional[Path] = typer.Option(
        None, "--settings", path_type=Path, help="Location of the settings file."
    ),
) -> None:
    """Start the timer and track windows until you quit."""
    store: SettingsStore = JsonSettingsStore(settings_path)
    if log_dir is not None:
        store = LogDirectoryOverride(store, log_dir)

    engine = build_engine(store)
    totals = TodayTotals()
    engine.entries_logged.connect(totals.add_entries)
    engine.state_changed.connect(lambda state: typer.echo(f"[{state.value}]"))
    engine.entries_logged.connect(
        lambda entries: typer.echo(f"Logged {len(entries)} entries, {format_duration(totals.total.total_seconds())} today.")
    )

    runner = EngineRunner(engine)
    runner.start()
    typer.echo(COMMANDS_HELP)
    try:
        _invoke(runner, engine.start, project)
        while True:
            command, _, argument = input().strip().partition(" ")
            command = command.lower()
            if command in ("q", "quit", "exit"):
                break
            if command in ("p", "pause", "resume"):
                _invoke(runner, engine.toggle)
            elif command in ("s", "stop"):
                _invoke(runner, engine.stop)
            elif command in ("r", "reset"):
                _invoke(runner, engine.reset)
            elif command in ("t", "tag"):
                runner.call_soon(engine.update_project_tag, argument.strip() or None)
                typer.echo(f"Project: {argument.strip() or '(none)'}")
            elif not command:
                state, elapsed = runner.call(_snapshot, engine)
                typer.echo(
                    f"{state.value} {format_duration(elapsed.total_seconds())} "
                    f"(today {format_duration(totals.total.total_seconds())})"
                )
            else:
                typer.echo(COMMANDS_HELP)
    except (KeyboardInterrupt, EOFError):
        logger.info("Input closed; stopping the timer.")
    finally:
        _invoke(runner, engine.stop)
        runner.stop()


async def _snapshot(engine: TimerEngine) -> tuple[TimerState, timedelta]:
    return engine.state, engine.elapsed


def _invoke(runner: EngineRunner, func: Callable[..., Awaitable[None]], *args: Any) -> None:
    try:
        runner.call(func, *args)
    except FlushError as exc:
        typer.secho(f"Warning: {exc}. See {get_log_path()} for details.", fg=typer.colors.RED, err=True)


@config_app.command("show")
def config_show(
    settings_path: Optional[Path] = typer.Option(None, "--settings", path_type=Path, help="Location of the settings file."),
) -> None:
    """Print the current settings."""
    settings = asyncio.run(JsonSettingsStore(settings_path).load())
    typer.echo(settings.model_dump_json(indent=2))


@config_app.command("set")
def config_set(
    break_interval: Optional[int] = typer.Option(
        None, "--break-interval", min=0, help="Minutes of work before a break reminder (0 disables)."
    ),
    reminders: Optional[bool] = typer.Option(
        None, "--reminders/--no-reminders", help="Enable or disable break reminders."
    ),
    log_dir: Optional[Path] = typer.Option(None, "--log-dir", path_type=Path, help="Directory for work logs."),
    retention_days: Optional[int] = typer.Option(None, "--retention-days", min=0, help="Retention period for log housekeeping tools."),
    settings_path: Optional[Path] = typer.Option(None, "--settings", path_type=Path, help="Location of the settings file."),
) -> None:
    """Change one or more settings."""
    store = JsonSettingsStore(settings_path)
    settings = asyncio.run(store.load())
    if break_interval is not None:
        settings.break_interval_minutes = break_interval
    if reminders is not None:
        settings.break_reminders_enabled = reminders
    if log_dir is not None:
        settings.log_directory = log_dir.expanduser()
    if retention_days is not None:
        settings.data_retention_days = retention_days
    asyncio.run(store.save(settings))
    typer.echo(f"Settings saved to {store.path}")


@app.command("paths")
def show_paths() -> None:
    """Show where settings, work logs and diagnostics are stored."""
    settings = asyncio.run(JsonSettingsStore().load())
    typer.echo(f"Settings:    {get_settings_path()}")
    typer.echo(f"Work logs:   {settings.log_directory}")
    typer.echo(f"Diagnostics: {get_log_path()}")
