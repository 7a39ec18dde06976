from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from time_utils import DAYS_OF_WEEK, minutes_since_midnight

from .models import Alarm, Settings, new_alarm
from .next_alarm import format_alarm_time, get_next_alarm
from .scheduler import AlarmScheduler
from .snooze import remove_alarm, replace_alarm, toggle_alarm
from .stats import WakeStatsTracker, format_streak
from .storage import KeyValueStore, save_alarms

logger = logging.getLogger(__name__)

DAY_GROUPS = {
    "daily": DAYS_OF_WEEK,
    "everyday": DAYS_OF_WEEK,
    "weekdays": DAYS_OF_WEEK[:5],
    "weekends": DAYS_OF_WEEK[5:],
}


@dataclass
class CommandResult:
    handled: bool
    response_text: Optional[str] = None
    action: Optional[str] = None
    alarm: Optional[Alarm] = None


class CommandRouter:
    """Text commands of the console presenter, applied to the scheduler and store."""

    def __init__(
        self,
        scheduler: AlarmScheduler,
        store: KeyValueStore,
        stats: WakeStatsTracker,
        settings: Optional[Settings] = None,
    ):
        self.scheduler = scheduler
        self.store = store
        self.stats = stats
        self.settings = settings or Settings()

    def handle_text(self, text: str, now: Optional[datetime] = None) -> Optional[CommandResult]:
        words = text.strip().split()
        if not words:
            return None
        action, args = words[0].lower(), words[1:]
        now = now or self.scheduler.clock()

        if action == "list":
            return CommandResult(handled=True, response_text=self._describe_alarms(), action=action)
        if action == "next":
            return CommandResult(handled=True, response_text=self._describe_next(now), action=action)
        if action == "stats":
            streak, average = self.stats.get_wake_up_stats()
            resp = f"Streak: {format_streak(streak)}. Average wake time: {average}."
            return CommandResult(handled=True, response_text=resp, action=action)
        if action == "stop":
            return self._stop()
        if action == "snooze":
            return self._snooze(args)
        if action == "add":
            return self._add(args)
        if action in ("toggle", "remove"):
            return self._by_index(action, args)

        return CommandResult(handled=False, response_text=f"Unknown command: {action}", action="unknown")

    def sorted_alarms(self) -> List[Alarm]:
        return sorted(self.scheduler.alarms, key=lambda a: minutes_since_midnight(a.time))

    def commit(self, alarms: List[Alarm]) -> None:
        save_alarms(self.store, alarms)
        if alarms:
            self.scheduler.start_checking(alarms, self.settings.sound_enabled, self.settings.vibration_enabled)
        else:
            self.scheduler.stop_checking()

    def _stop(self) -> CommandResult:
        active = self.scheduler.get_active_alarm_id()
        if not active or not self.scheduler.stop_alarm(active):
            return CommandResult(handled=True, response_text="Nothing is ringing.", action="stop")

        self.stats.record_wake_up()
        alarm = self.scheduler.restore_original_alarm(active) or self.scheduler.get_alarm(active)
        if alarm and alarm.is_one_time and alarm.enabled:
            alarm = alarm.with_changes(enabled=False)
        alarms = self.scheduler.alarms
        if alarm:
            alarms = replace_alarm(alarms, alarm)
        self.commit(alarms)
        return CommandResult(handled=True, response_text="Alarm stopped. Good morning!", action="stop", alarm=alarm)

    def _snooze(self, args: List[str]) -> CommandResult:
        active = self.scheduler.get_active_alarm_id()
        if not active:
            return CommandResult(handled=True, response_text="Nothing is ringing, nothing to snooze.", action="snooze")
        minutes = self.settings.snooze_minutes
        if args:
            if not args[0].isdigit() or int(args[0]) < 1:
                return CommandResult(handled=True, response_text="Snooze needs a number of minutes.", action="snooze")
            minutes = int(args[0])

        snoozed = self.scheduler.snooze_alarm(active, minutes)
        if not snoozed:
            return CommandResult(handled=True, response_text="Could not snooze the alarm.", action="snooze")
        save_alarms(self.store, self.scheduler.alarms)
        resp = f"Snoozed for {minutes} minutes, ringing again at {snoozed.snooze.until_time}."
        return CommandResult(handled=True, response_text=resp, action="snooze", alarm=snoozed)

    def _add(self, args: List[str]) -> CommandResult:
        if not args:
            return CommandResult(handled=True, response_text="Usage: add HH:MM [days]", action="add")
        try:
            days = _parse_days(args[1:])
            alarm = new_alarm(args[0], days=days)
        except ValueError as exc:
            return CommandResult(handled=True, response_text=str(exc), action="add")
        self.commit(self.scheduler.alarms + [alarm])
        logger.info("Added alarm %s at %s (days=%s)", alarm.id, alarm.time, alarm.days)
        resp = f"Alarm set for {format_alarm_time(alarm.time)} ({_describe_days(alarm.days)})."
        return CommandResult(handled=True, response_text=resp, action="add", alarm=alarm)

    def _by_index(self, action: str, args: List[str]) -> CommandResult:
        alarms = self.sorted_alarms()
        if not args or not args[0].isdigit() or not 1 <= int(args[0]) <= len(alarms):
            return CommandResult(handled=True, response_text="No alarm with that number.", action=action)
        target = alarms[int(args[0]) - 1]

        if action == "remove":
            self.commit(remove_alarm(self.scheduler.alarms, target.id))
            return CommandResult(handled=True, response_text="Alarm removed.", action=action, alarm=target)

        self.scheduler.restore_original_alarm(target.id)
        updated = toggle_alarm(self.scheduler.alarms, target.id)
        self.commit(updated)
        toggled = next(a for a in updated if a.id == target.id)
        state = "on" if toggled.enabled else "off"
        return CommandResult(handled=True, response_text=f"Alarm turned {state}.", action=action, alarm=toggled)

    def _describe_alarms(self) -> str:
        alarms = self.sorted_alarms()
        if not alarms:
            return "No alarms set."
        lines = []
        for idx, alarm in enumerate(alarms, start=1):
            line = f"{idx}) {format_alarm_time(alarm.time)} {alarm.name} ({_describe_days(alarm.days)})"
            if alarm.snooze:
                line += f" snoozed until {alarm.snooze.until_time}"
            if not alarm.enabled:
                line += " [off]"
            lines.append(line)
        return "\n".join(lines)

    def _describe_next(self, now: datetime) -> str:
        info = get_next_alarm(self.scheduler.alarms, now=now)
        if not info:
            return "No alarms enabled."
        return f"Next alarm: {info.time} {info.day_name} ({info.time_remaining})."


def _parse_days(tokens: List[str]) -> List[str]:
    days: List[str] = []
    for token in tokens:
        lower = token.lower().strip(",")
        if lower in DAY_GROUPS:
            days.extend(DAY_GROUPS[lower])
            continue
        matches = [d for d in DAYS_OF_WEEK if d.lower().startswith(lower)] if len(lower) >= 3 else []
        if len(matches) != 1:
            raise ValueError(f"Unknown day: {token}")
        days.append(matches[0])
    return [d for d in DAYS_OF_WEEK if d in days]


def _describe_days(days: List[str]) -> str:
    if not days:
        return "once"
    if len(days) == 7:
        return "every day"
    return ", ".join(d[:3] for d in days)
