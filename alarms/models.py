from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional

from time_utils import DAYS_OF_WEEK, parse_hhmm

logger = logging.getLogger(__name__)

DEFAULT_ALARM_NAME = "Alarm"


@dataclass(frozen=True)
class SnoozeState:
    """Pending temporary re-fire plus the schedule to restore afterwards."""

    original_time: str
    original_days: List[str]
    duration: int
    until_time: str
    timestamp: int


@dataclass(frozen=True)
class Alarm:
    id: str
    time: str
    name: str = DEFAULT_ALARM_NAME
    enabled: bool = True
    days: List[str] = field(default_factory=list)
    sound_uri: Optional[str] = None
    sound_name: Optional[str] = None
    created_at: int = 0
    snooze: Optional[SnoozeState] = None

    @property
    def is_snoozed(self) -> bool:
        return self.snooze is not None

    @property
    def is_one_time(self) -> bool:
        return not self.days

    def with_changes(self, **changes) -> "Alarm":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "time": self.time,
            "name": self.name,
            "enabled": self.enabled,
            "days": list(self.days),
            "createdAt": self.created_at,
            "isSnoozed": self.is_snoozed,
        }
        if self.sound_uri:
            data["soundUri"] = self.sound_uri
        if self.sound_name:
            data["soundName"] = self.sound_name
        if self.snooze:
            data.update(
                {
                    "originalTime": self.snooze.original_time,
                    "originalDays": list(self.snooze.original_days),
                    "snoozeDuration": self.snooze.duration,
                    "snoozeUntilTime": self.snooze.until_time,
                    "snoozeTimestamp": self.snooze.timestamp,
                }
            )
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Alarm":
        alarm_id = data.get("id")
        time_raw = data.get("time")
        if not alarm_id or not time_raw:
            raise ValueError("Alarm payload missing id/time fields")
        parse_hhmm(time_raw)
        days = _clean_days(data.get("days") or [])

        snooze = None
        if data.get("isSnoozed"):
            snooze = _snooze_from_dict(data)
            if snooze is None:
                logger.warning("Alarm %s is flagged snoozed without its snapshot, restoring original", alarm_id)
                time_raw = data.get("originalTime") or time_raw
                if data.get("originalDays") is not None:
                    days = _clean_days(data["originalDays"])

        return cls(
            id=str(alarm_id),
            time=str(time_raw),
            name=str(data.get("name") or DEFAULT_ALARM_NAME),
            enabled=bool(data.get("enabled", True)),
            days=days,
            sound_uri=data.get("soundUri") or None,
            sound_name=data.get("soundName") or None,
            created_at=int(data.get("createdAt") or 0),
            snooze=snooze,
        )


def _snooze_from_dict(data: dict) -> Optional[SnoozeState]:
    original_time = data.get("originalTime")
    until_time = data.get("snoozeUntilTime")
    timestamp = data.get("snoozeTimestamp")
    if not original_time or not until_time or timestamp is None:
        return None
    return SnoozeState(
        original_time=str(original_time),
        original_days=_clean_days(data.get("originalDays") or []),
        duration=int(data.get("snoozeDuration") or 0),
        until_time=str(until_time),
        timestamp=int(timestamp),
    )


def _clean_days(days: Iterable[str]) -> List[str]:
    cleaned = []
    for day in days:
        if day not in DAYS_OF_WEEK:
            logger.warning("Ignoring unknown weekday %r", day)
            continue
        if day not in cleaned:
            cleaned.append(day)
    return cleaned


def new_alarm(
    alarm_time: str,
    days: Optional[Iterable[str]] = None,
    name: Optional[str] = None,
    sound_uri: Optional[str] = None,
    sound_name: Optional[str] = None,
) -> Alarm:
    parse_hhmm(alarm_time)
    return Alarm(
        id=f"al_{uuid.uuid4().hex[:8]}",
        time=alarm_time,
        name=name or DEFAULT_ALARM_NAME,
        days=_clean_days(days or []),
        sound_uri=sound_uri,
        sound_name=sound_name,
        created_at=int(time.time() * 1000),
    )


@dataclass
class Settings:
    sound_enabled: bool = True
    vibration_enabled: bool = True
    snooze_minutes: int = 5
    quotes_required: int = 3

    def to_dict(self) -> dict:
        return {
            "soundEnabled": self.sound_enabled,
            "vibrationEnabled": self.vibration_enabled,
            "snoozeMinutes": self.snooze_minutes,
            "quotesRequired": self.quotes_required,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "Settings":
        defaults = cls()
        data = data or {}
        return cls(
            sound_enabled=bool(data.get("soundEnabled", defaults.sound_enabled)),
            vibration_enabled=bool(data.get("vibrationEnabled", defaults.vibration_enabled)),
            snooze_minutes=max(1, int(data.get("snoozeMinutes") or defaults.snooze_minutes)),
            quotes_required=max(1, int(data.get("quotesRequired") or defaults.quotes_required)),
        )


@dataclass(frozen=True)
class WakeUpRecord:
    date: str
    time: str
    timestamp: int

    def to_dict(self) -> dict:
        return {"date": self.date, "time": self.time, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: dict) -> "WakeUpRecord":
        if not data.get("date") or not data.get("time") or data.get("timestamp") is None:
            raise ValueError("Wake-up record missing date/time/timestamp fields")
        parse_hhmm(data["time"])
        return cls(date=str(data["date"]), time=str(data["time"]), timestamp=int(data["timestamp"]))
