from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from threading import Lock
from typing import Any, List, Optional

from .models import Alarm, Settings

logger = logging.getLogger(__name__)

ALARMS_KEY = "alarms"
SETTINGS_KEY = "settings"
WAKE_UP_STATS_KEY = "wake_up_stats"


class KeyValueStore:
    """JSON-file backed key-value store holding alarm, settings and stats records."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            payload = self._read()
            payload[key] = value
            self._write(payload)

    def remove(self, key: str) -> None:
        with self._lock:
            payload = self._read()
            if key in payload:
                del payload[key]
                self._write(payload)

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                payload = json.load(f)
        except Exception as exc:  # pragma: no cover - corrupted file
            logger.error("Failed to load store from %s: %s", self.path, exc)
            return {}
        if not isinstance(payload, dict):
            logger.error("Store %s does not hold a JSON object, ignoring it", self.path)
            return {}
        return payload

    def _write(self, payload: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
        os.replace(tmp, self.path)


def load_alarms(store: KeyValueStore) -> List[Alarm]:
    alarms: List[Alarm] = []
    for item in store.get(ALARMS_KEY) or []:
        try:
            alarms.append(Alarm.from_dict(item))
        except Exception as exc:
            logger.warning("Skipping alarm item due to parse error: %s", exc)
    return alarms


def save_alarms(store: KeyValueStore, alarms: List[Alarm]) -> None:
    store.set(ALARMS_KEY, [a.to_dict() for a in alarms])


def load_settings(store: KeyValueStore, default_snooze_minutes: Optional[int] = None) -> Settings:
    raw = store.get(SETTINGS_KEY)
    settings = Settings.from_dict(raw)
    if default_snooze_minutes and (not raw or "snoozeMinutes" not in raw):
        settings.snooze_minutes = default_snooze_minutes
    return settings


def save_settings(store: KeyValueStore, settings: Settings) -> None:
    store.set(SETTINGS_KEY, settings.to_dict())
