from __future__ import annotations

import logging
from threading import Lock
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

ActiveAlarmCallback = Callable[[Optional[str]], None]


class ActiveAlarmChannel:
    """Fan-out of active-alarm slot transitions to any number of subscribers."""

    def __init__(self) -> None:
        self._subscribers: List[ActiveAlarmCallback] = []
        self._lock = Lock()

    def subscribe(self, callback: ActiveAlarmCallback) -> Callable[[], None]:
        with self._lock:
            if callback not in self._subscribers:
                self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: ActiveAlarmCallback) -> None:
        with self._lock:
            self._subscribers = [cb for cb in self._subscribers if cb is not callback]

    def emit(self, alarm_id: Optional[str]) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(alarm_id)
            except Exception:
                logger.error("Active alarm subscriber failed", exc_info=True)
