"""Minimal observer signals used to publish engine events."""

from __future__ import annotations

import logging
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Signal(Generic[T]):
    """A list of callbacks invoked with a single payload.

    A failing subscriber is logged and never interrupts the emitter or the
    remaining subscribers.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._handlers: list[Callable[[T], None]] = []

    def connect(self, handler: Callable[[T], None]) -> Callable[[T], None]:
        self._handlers.append(handler)
        return handler

    def disconnect(self, handler: Callable[[T], None]) -> None:
        try:
            self._handlers.remove(handler)
        except ValueError:
            pass

    def emit(self, payload: T) -> None:
        for handler in list(self._handlers):
            try:
                handler(payload)
            except Exception:
                logger.exception("Subscriber of %s signal failed.", self.name)

    def __len__(self) -> int:
        return len(self._handlers)
