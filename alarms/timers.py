from __future__ import annotations

import logging
import time
from threading import Event, Thread, current_thread
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RepeatingTimer:
    """Calls `callback` every `interval` seconds on a daemon thread until cancelled."""

    def __init__(self, interval: float, callback: Callable[[], None], name: str = "alarm-checker"):
        self.interval = interval
        self.callback = callback
        self.name = name
        self._stop_event = Event()
        self._thread: Optional[Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        self._stop_event.set()
        thread = self._thread
        if thread and thread is not current_thread():
            thread.join(timeout=2)
        self._thread = None

    def _loop(self) -> None:
        next_run = time.monotonic() + self.interval
        while not self._stop_event.wait(max(0.0, next_run - time.monotonic())):
            next_run += self.interval
            try:
                self.callback()
            except Exception:  # pragma: no cover - callback safety
                logger.error("Timer callback failed", exc_info=True)
