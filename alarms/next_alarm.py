from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Iterator, Optional, Tuple

from time_utils import at_time_of_day, parse_hhmm, to_12_hour, weekday_index, weekday_name

from .models import Alarm

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NextAlarmInfo:
    time: str
    day_name: str
    time_remaining: str
    alarm_id: str
    fire_at: datetime


def get_next_alarm(alarms: Iterable[Alarm], now: Optional[datetime] = None) -> Optional[NextAlarmInfo]:
    """Nearest upcoming firing across one-time and recurring enabled alarms.

    Uses the nominal `time`/`days` of every alarm. Ties keep the first
    candidate scanned.
    """
    now = now or datetime.now().astimezone()
    enabled = [a for a in alarms if a.enabled]
    if not enabled:
        return None

    nearest: Optional[Tuple[Alarm, datetime, int]] = None
    for alarm, fire_at in _candidates(enabled, now):
        minutes_from_now = int((fire_at - now).total_seconds() // 60)
        if nearest is None or minutes_from_now < nearest[2]:
            nearest = (alarm, fire_at, minutes_from_now)

    if nearest is None:
        return None
    alarm, fire_at, _ = nearest
    return NextAlarmInfo(
        time=format_alarm_time(alarm.time),
        day_name=_day_label(fire_at, now),
        time_remaining=format_time_remaining(fire_at, now),
        alarm_id=alarm.id,
        fire_at=fire_at,
    )


def _candidates(alarms: Iterable[Alarm], now: datetime) -> Iterator[Tuple[Alarm, datetime]]:
    current_minutes = now.hour * 60 + now.minute
    current_day = now.weekday()
    for alarm in alarms:
        try:
            hours, minutes = parse_hhmm(alarm.time)
        except ValueError:
            logger.warning("Skipping alarm %s with malformed time %r", alarm.id, alarm.time)
            continue
        passed_today = hours * 60 + minutes <= current_minutes

        if not alarm.days:
            yield alarm, at_time_of_day(now, hours, minutes, 1 if passed_today else 0)
            continue

        for day in alarm.days:
            index = weekday_index(day)
            if index is None:
                logger.warning("Skipping unknown weekday %r on alarm %s", day, alarm.id)
                continue
            offset = (index - current_day) % 7
            if offset == 0 and passed_today:
                offset = 7
            yield alarm, at_time_of_day(now, hours, minutes, offset)


def _day_label(fire_at: datetime, now: datetime) -> str:
    offset = (fire_at.date() - now.date()).days
    if offset == 0:
        return "Today"
    if offset == 1:
        return "Tomorrow"
    return weekday_name(fire_at)


def format_alarm_time(value: str) -> str:
    hours, minutes = parse_hhmm(value)
    return to_12_hour(hours, minutes)


def format_time_remaining(target: datetime, now: datetime) -> str:
    diff_seconds = (target - now).total_seconds()
    if diff_seconds <= 0:
        return "Now"

    total_minutes = int(diff_seconds // 60)
    hours, minutes = divmod(total_minutes, 60)
    if hours == 0:
        return f"In {minutes}m"
    if hours < 24:
        return f"In {hours}h {minutes}m" if minutes else f"In {hours}h"
    days, remaining_hours = divmod(hours, 24)
    return f"In {days}d {remaining_hours}h" if remaining_hours else f"In {days}d"
