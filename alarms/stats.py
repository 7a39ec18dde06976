from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional, Tuple

from time_utils import epoch_millis, format_hhmm, minutes_since_midnight, now_in_tz, to_12_hour

from .models import WakeUpRecord
from .storage import WAKE_UP_STATS_KEY, KeyValueStore

logger = logging.getLogger(__name__)

MAX_RECORDS = 7
AVERAGE_WINDOW = timedelta(days=7)
NO_DATA = "No data yet"
NO_RECENT_DATA = "No recent data"


class WakeStatsTracker:
    """Bounded log of dismissals with streak and average wake-time queries."""

    def __init__(self, store: KeyValueStore, clock: Optional[Callable[[], datetime]] = None, timezone=None):
        self.store = store
        self.clock = clock or (lambda: now_in_tz(timezone))

    def records(self) -> List[WakeUpRecord]:
        records = []
        for item in self.store.get(WAKE_UP_STATS_KEY) or []:
            if not isinstance(item, dict):
                logger.warning("Skipping wake-up record that is not an object: %r", item)
                continue
            try:
                records.append(WakeUpRecord.from_dict(item))
            except (TypeError, ValueError) as exc:
                logger.warning("Skipping wake-up record due to parse error: %s", exc)
        return records

    def record_wake_up(self) -> WakeUpRecord:
        now = self.clock()
        record = WakeUpRecord(date=now.date().isoformat(), time=format_hhmm(now), timestamp=epoch_millis(now))
        records = self.records()
        records.append(record)
        trimmed = records[-MAX_RECORDS:]
        self.store.set(WAKE_UP_STATS_KEY, [r.to_dict() for r in trimmed])
        logger.info("Recorded wake-up at %s %s", record.date, record.time)
        return record

    def get_streak(self) -> int:
        records = self.records()
        if not records:
            return 0

        today = self.clock().date()
        dates = sorted({_parse_date(r.date) for r in records} - {None}, reverse=True)
        if not dates or not any(d in (today, today - timedelta(days=1)) for d in dates):
            return 0

        streak = 0
        newest = dates[0]
        for day in dates:
            if (newest - day).days != streak:
                break
            streak += 1
        return streak

    def get_average_wake_time(self) -> str:
        records = self.records()
        if not records:
            return NO_DATA

        cutoff = epoch_millis(self.clock() - AVERAGE_WINDOW)
        recent = [r for r in records if r.timestamp > cutoff]
        if not recent:
            return NO_RECENT_DATA

        total = sum(minutes_since_midnight(r.time) for r in recent)
        average = int(total / len(recent) + 0.5)
        hours, minutes = divmod(average, 60)
        return to_12_hour(hours % 24, minutes)

    def get_wake_up_stats(self) -> Tuple[int, str]:
        return self.get_streak(), self.get_average_wake_time()


def format_streak(streak: int) -> str:
    if streak == 0:
        return "Start your streak!"
    if streak == 1:
        return "1 day in a row"
    return f"{streak} days in a row"


def _parse_date(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value)
    except ValueError:
        logger.warning("Ignoring wake-up record with malformed date %r", value)
        return None
