"""Helpers for locating application directories."""

from __future__ import annotations

from pathlib import Path

from platformdirs import PlatformDirs


APP_NAME = "FocusTimer"
APP_AUTHOR = "FocusTimer"


def _dirs() -> PlatformDirs:
    return PlatformDirs(appname=APP_NAME, appauthor=APP_AUTHOR, roaming=True)


def get_data_dir() -> Path:
    """Return the base directory for persistent data."""
    path = Path(_dirs().user_data_path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    path = Path(_dirs().user_config_path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_settings_path() -> Path:
    return get_config_dir() / "settings.json"


def get_default_log_directory() -> Path:
    """Work logs live under the user's documents folder, like other user files."""
    return Path(_dirs().user_documents_path) / APP_NAME / "logs"


def get_log_path() -> Path:
    return get_data_dir() / "focus-timer.log"
