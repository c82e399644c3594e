"""Foreground window probes."""

from __future__ import annotations

import asyncio
import ctypes
import logging
import sys
from ctypes import wintypes
from typing import Optional, Protocol

import psutil

from .models import UNKNOWN_APP, ActiveWindowSample

logger = logging.getLogger(__name__)


class ActiveWindowProbe(Protocol):
    async def sample(self) -> Optional[ActiveWindowSample]:
        """Return the foreground window, or ``None`` when it cannot be detected."""
        ...


class NullActiveWindowProbe:
    """Probe for platforms without foreground window detection."""

    async def sample(self) -> Optional[ActiveWindowSample]:
        return None


class WindowsActiveWindowProbe:
    """Retrieves the foreground window title and process name."""

    def __init__(self) -> None:
        self._user32 = ctypes.windll.user32  # type: ignore[attr-defined]

    async def sample(self) -> Optional[ActiveWindowSample]:
        return await asyncio.to_thread(self.get_active_window)

    def get_active_window(self) -> Optional[ActiveWindowSample]:
        hwnd = self._user32.GetForegroundWindow()
        if not hwnd:
            return None

        length = self._user32.GetWindowTextLengthW(hwnd)
        buffer = ctypes.create_unicode_buffer(length + 1)
        self._user32.GetWindowTextW(hwnd, buffer, length + 1)
        window_title = buffer.value.strip()

        pid = wintypes.DWORD()
        self._user32.GetWindowThreadProcessId(hwnd, ctypes.byref(pid))
        process_name = UNKNOWN_APP
        try:
            if pid.value:
                process_name = psutil.Process(pid.value).name()
        except (psutil.Error, ProcessLookupError):
            logger.debug("Could not resolve process for pid %s", pid.value)

        return ActiveWindowSample(process_name=process_name, window_title=window_title)


def create_default_probe() -> ActiveWindowProbe:
    if sys.platform == "win32":
        return WindowsActiveWindowProbe()
    logger.warning(
        "Foreground window detection is not available on %s; time is tracked "
        "without window attribution.",
        sys.platform,
    )
    return NullActiveWindowProbe()
