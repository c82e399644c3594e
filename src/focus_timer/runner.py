"""Run a timer engine on a background event loop."""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from typing import Any, Awaitable, Callable, Optional, TypeVar

from .timer import SHUTDOWN_FLUSH_SECONDS, TimerEngine

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EngineRunner:
    """Manage the engine's event loop in a background thread.

    Callers on other threads use ``submit`` or ``call`` to marshal work onto
    the loop, so the engine itself never needs locking.
    """

    def __init__(self, engine: TimerEngine, shutdown_timeout: float = SHUTDOWN_FLUSH_SECONDS) -> None:
        self.engine = engine
        self._shutdown_timeout = shutdown_timeout
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def start(self) -> None:
        with self._lock:
            if self._thread and self._thread.is_alive():
                return
            loop = asyncio.new_event_loop()
            ready = threading.Event()
            thread = threading.Thread(
                target=self._run_loop,
                args=(loop, ready),
                name="focus-timer-engine",
                daemon=True,
            )
            self._thread = thread
            self._loop = loop
            thread.start()
        ready.wait()
        logger.info("Engine loop started.")

    def stop(self) -> None:
        with self._lock:
            thread, loop = self._thread, self._loop
            self._thread = None
            self._loop = None
        if not thread or not thread.is_alive() or loop is None:
            return

        future = asyncio.run_coroutine_threadsafe(
            self.engine.shutdown(self._shutdown_timeout), loop
        )
        try:
            future.result(timeout=self._shutdown_timeout + 1.0)
        except Exception:
            logger.exception("Engine shutdown did not complete cleanly.")
        loop.call_soon_threadsafe(loop.stop)
        thread.join(timeout=10)
        logger.info("Engine loop stopped.")

    def is_running(self) -> bool:
        with self._lock:
            return bool(self._thread and self._thread.is_alive())

    def submit(
        self, func: Callable[..., Awaitable[T]], *args: Any
    ) -> concurrent.futures.Future[T]:
        """Schedule ``func(*args)`` on the engine loop from any thread."""
        with self._lock:
            loop = self._loop
        if loop is None:
            raise RuntimeError("Engine runner is not running")
        return asyncio.run_coroutine_threadsafe(func(*args), loop)

    def call(self, func: Callable[..., Awaitable[T]], *args: Any, timeout: Optional[float] = None) -> T:
        return self.submit(func, *args).result(timeout)

    def call_soon(self, func: Callable[..., Any], *args: Any) -> None:
        """Run a plain callable on the engine loop without waiting for it."""
        with self._lock:
            loop = self._loop
        if loop is None:
            raise RuntimeError("Engine runner is not running")
        loop.call_soon_threadsafe(func, *args)

    @staticmethod
    def _run_loop(loop: asyncio.AbstractEventLoop, ready: threading.Event) -> None:
        asyncio.set_event_loop(loop)
        loop.call_soon(ready.set)
        try:
            loop.run_forever()
        finally:
            pending = [task for task in asyncio.all_tasks(loop) if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()
