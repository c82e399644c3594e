import asyncio
import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from focus_timer.config import JsonSettingsStore, Settings


def test_defaults():
    settings = Settings()
    assert settings.break_interval_minutes == 50
    assert settings.break_reminders_enabled is True
    assert settings.data_retention_days == 90
    assert settings.log_directory.name == "logs"
    assert settings.reminders_active


def test_missing_file_gives_defaults(tmp_path):
    store = JsonSettingsStore(tmp_path / "settings.json")
    settings = asyncio.run(store.load())
    assert settings.break_interval_minutes == 50


def test_corrupt_file_gives_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")
    settings = asyncio.run(JsonSettingsStore(path).load())
    assert settings.break_interval_minutes == 50


def test_undecodable_file_gives_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_bytes(b'{"log_directory": "\xff\xfe", "break_interval_minutes": 25}')
    settings = asyncio.run(JsonSettingsStore(path).load())
    assert settings.break_interval_minutes == 50


def test_save_and_load_round_trip_keeps_unknown_keys(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps({"break_interval_minutes": 25, "widget_opacity": 0.8, "log_directory": str(tmp_path / "logs")}),
        encoding="utf-8",
    )
    store = JsonSettingsStore(path)

    async def scenario():
        settings = await store.load()
        settings.break_reminders_enabled = False
        await store.save(settings)
        return await store.load()

    reloaded = asyncio.run(scenario())
    assert reloaded.break_interval_minutes == 25
    assert reloaded.break_reminders_enabled is False
    assert reloaded.log_directory == tmp_path / "logs"
    assert json.loads(path.read_text(encoding="utf-8"))["widget_opacity"] == 0.8


def test_blank_log_directory_is_unset():
    assert Settings(log_directory="").log_directory is None


def test_negative_interval_is_rejected():
    with pytest.raises(ValidationError):
        Settings(break_interval_minutes=-5)
    settings = Settings(log_directory=Path("logs"))
    with pytest.raises(ValidationError):
        settings.break_interval_minutes = -1


def test_zero_interval_disables_reminders():
    assert not Settings(break_interval_minutes=0).reminders_active
