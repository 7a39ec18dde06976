from __future__ import annotations

import logging
from datetime import datetime, timedelta, tzinfo
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

DAYS_OF_WEEK = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """Return the configured zone, or the device local zone when unset."""
    if name:
        try:
            return ZoneInfo(name)
        except Exception as exc:  # pragma: no cover - environment-dependent
            logger.warning("Failed to load timezone %s via zoneinfo (%s)", name, exc)
    local_tz = datetime.now().astimezone().tzinfo
    if name and local_tz:
        logger.warning("Using system local timezone instead: %s", getattr(local_tz, "key", local_tz))
    return local_tz


def now_in_tz(tz: Optional[tzinfo]) -> datetime:
    if tz:
        return datetime.now(tz)
    return datetime.now().astimezone()


def format_hhmm(dt: datetime) -> str:
    return f"{dt.hour:02d}:{dt.minute:02d}"


def weekday_name(dt: datetime) -> str:
    return DAYS_OF_WEEK[dt.weekday()]


def weekday_index(name: str) -> Optional[int]:
    try:
        return DAYS_OF_WEEK.index(name)
    except ValueError:
        return None


def parse_hhmm(value: str) -> Tuple[int, int]:
    parts = str(value).split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Time must be HH:MM, got {value!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise ValueError(f"Time out of range: {value!r}")
    return hours, minutes


def minutes_since_midnight(value: str) -> int:
    hours, minutes = parse_hhmm(value)
    return hours * 60 + minutes


def to_12_hour(hours: int, minutes: int) -> str:
    period = "PM" if hours >= 12 else "AM"
    display = 12 if hours == 0 else hours - 12 if hours > 12 else hours
    return f"{display}:{minutes:02d} {period}"


def epoch_millis(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def at_time_of_day(base: datetime, hours: int, minutes: int, day_offset: int = 0) -> datetime:
    """`base`'s calendar day shifted by `day_offset`, at hours:minutes:00."""
    target = base.replace(hour=hours, minute=minutes, second=0, microsecond=0)
    return target + timedelta(days=day_offset)
