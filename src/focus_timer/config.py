"""Configuration models and the settings store."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .paths import get_default_log_directory, get_settings_path

logger = logging.getLogger(__name__)


class Settings(BaseModel):
    """User preferences consumed by the tracking engine.

    Keys written by other parts of the application (widget appearance,
    hotkeys) are kept as extra fields so a load/save cycle preserves them.
    """

    break_interval_minutes: int = Field(default=50, ge=0)
    break_reminders_enabled: bool = True
    log_directory: Optional[Path] = Field(default_factory=get_default_log_directory)
    data_retention_days: int = Field(default=90, ge=0)

    model_config = ConfigDict(extra="allow", validate_assignment=True)

    @field_validator("log_directory", mode="before")
    @classmethod
    def blank_directory_is_unset(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def reminders_active(self) -> bool:
        return self.break_reminders_enabled and self.break_interval_minutes > 0


class SettingsStore(Protocol):
    async def load(self) -> Settings: ...

    async def save(self, settings: Settings) -> None: ...


class JsonSettingsStore:
    """Stores settings as JSON in the user's config directory."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path is not None else get_settings_path()

    async def load(self) -> Settings:
        return await asyncio.to_thread(self._read)

    async def save(self, settings: Settings) -> None:
        await asyncio.to_thread(self._write, settings)

    def _read(self) -> Settings:
        if not self.path.exists():
            logger.info("Settings file not found at %s; using defaults.", self.path)
            return Settings()
        try:
            return Settings.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValidationError):
            logger.exception("Failed to read settings from %s; using defaults.", self.path)
            return Settings()

    def _write(self, settings: Settings) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".json.tmp")
        tmp_path.write_text(settings.model_dump_json(indent=2), encoding="utf-8")
        tmp_path.replace(self.path)
        logger.debug("Settings saved to %s", self.path)
