"""Pure snooze/restore transformations on `Alarm` records.

A snoozed alarm keeps its nominal `time`/`days` untouched; the scheduler only
compares the snooze timestamp against the clock. Restoring puts the snapshot
back and drops every snooze field at once.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from time_utils import epoch_millis, format_hhmm

from .models import Alarm, SnoozeState


def apply_snooze(alarm: Alarm, minutes: int, now: datetime) -> Alarm:
    if minutes < 1:
        raise ValueError("Snooze duration must be at least one minute")
    snooze_until = now + timedelta(minutes=minutes)
    if alarm.snooze:
        # Repeated snooze: the snapshot already holds the true originals.
        original_time = alarm.snooze.original_time
        original_days = list(alarm.snooze.original_days)
    else:
        original_time = alarm.time
        original_days = list(alarm.days)
    return alarm.with_changes(
        snooze=SnoozeState(
            original_time=original_time,
            original_days=original_days,
            duration=minutes,
            until_time=format_hhmm(snooze_until),
            timestamp=epoch_millis(snooze_until),
        )
    )


def restore_original(alarm: Alarm) -> Optional[Alarm]:
    if not alarm.snooze:
        return None
    return alarm.with_changes(
        time=alarm.snooze.original_time,
        days=list(alarm.snooze.original_days),
        snooze=None,
    )


def toggle_alarm(alarms: Sequence[Alarm], alarm_id: str) -> List[Alarm]:
    updated = []
    for alarm in alarms:
        if alarm.id == alarm_id:
            restored = restore_original(alarm) or alarm
            alarm = restored.with_changes(enabled=not alarm.enabled)
        updated.append(alarm)
    return updated


def remove_alarm(alarms: Sequence[Alarm], alarm_id: str) -> List[Alarm]:
    return [a for a in alarms if a.id != alarm_id]


def replace_alarm(alarms: Sequence[Alarm], new_alarm: Alarm) -> List[Alarm]:
    return [new_alarm if a.id == new_alarm.id else a for a in alarms]
