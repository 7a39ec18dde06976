from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from threading import RLock
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from time_utils import epoch_millis, format_hhmm, now_in_tz, weekday_name

from .effects import SideEffectDispatcher
from .events import ActiveAlarmCallback, ActiveAlarmChannel
from .models import Alarm
from .snooze import apply_snooze, replace_alarm, restore_original
from .timers import RepeatingTimer

logger = logging.getLogger(__name__)


class AlarmScheduler:
    """Polls the clock and moves alarms between idle, active and snoozed.

    At most one alarm occupies the active slot. While it is occupied the
    polling timer is cancelled; `stop_alarm` vacates the slot and re-arms it.
    """

    def __init__(
        self,
        dispatcher: Optional[SideEffectDispatcher] = None,
        clock: Optional[Callable[[], datetime]] = None,
        timer_factory: Optional[Callable[[float, Callable[[], None]], RepeatingTimer]] = None,
        check_interval: float = 1.0,
        default_snooze_minutes: int = 5,
        timezone=None,
    ):
        self.dispatcher = dispatcher or SideEffectDispatcher()
        self.clock = clock or (lambda: now_in_tz(timezone))
        self.timer_factory = timer_factory or RepeatingTimer
        self.check_interval = check_interval
        self.default_snooze_minutes = max(1, default_snooze_minutes)

        self._lock = RLock()
        self._channel = ActiveAlarmChannel()
        self._single_callback: Optional[ActiveAlarmCallback] = None
        self._timer: Optional[RepeatingTimer] = None
        self._checking = False

        self._alarms: List[Alarm] = []
        self._sound_enabled = True
        self._vibration_enabled = True
        self._active_alarm_id: Optional[str] = None
        self._last_triggered_time = ""
        self._snoozed: Dict[str, Alarm] = {}
        self._fired_snoozes: Set[Tuple[str, int]] = set()

    # -- lifecycle --------------------------------------------------------

    def start_checking(
        self,
        alarms: Sequence[Alarm],
        sound_enabled: bool = True,
        vibration_enabled: bool = True,
    ) -> None:
        with self._lock:
            self._alarms = self._merge_snoozed(alarms)
            self._sound_enabled = sound_enabled
            self._vibration_enabled = vibration_enabled

            if self._checking:
                logger.debug("Updating alarm checker with %s alarms", len(self._alarms))
                return
            if self._active_alarm_id:
                logger.debug("Alarm %s is active, checker stays paused", self._active_alarm_id)
                return

            logger.info("Starting alarm checker with %s alarms", len(self._alarms))
            self._checking = True
            self._timer = self.timer_factory(self.check_interval, self.tick)
            timer = self._timer
        timer.start()
        self.tick()

    def stop_checking(self) -> None:
        with self._lock:
            timer = self._detach_timer()
        if timer:
            timer.cancel()
            logger.info("Stopped alarm checker")

    def shutdown(self) -> None:
        self.stop_checking()
        with self._lock:
            active = self._active_alarm_id
        if active:
            self.dispatcher.alarm_stopped(active)

    # -- observers --------------------------------------------------------

    def get_active_alarm_id(self) -> Optional[str]:
        with self._lock:
            return self._active_alarm_id

    def is_checking_active(self) -> bool:
        with self._lock:
            return self._checking

    @property
    def alarms(self) -> List[Alarm]:
        with self._lock:
            return list(self._alarms)

    def get_alarm(self, alarm_id: str) -> Optional[Alarm]:
        with self._lock:
            return self._find(alarm_id)

    def subscribe(self, callback: ActiveAlarmCallback) -> Callable[[], None]:
        return self._channel.subscribe(callback)

    def unsubscribe(self, callback: ActiveAlarmCallback) -> None:
        self._channel.unsubscribe(callback)

    def set_on_active_alarm_change(self, callback: Optional[ActiveAlarmCallback]) -> None:
        if self._single_callback:
            self._channel.unsubscribe(self._single_callback)
        self._single_callback = callback
        if callback:
            self._channel.subscribe(callback)

    # -- transitions ------------------------------------------------------

    def tick(self) -> None:
        with self._lock:
            alarm = self._find_due_alarm()
            if alarm is None:
                return
            self._active_alarm_id = alarm.id
            timer = self._detach_timer()
            sound_enabled = self._sound_enabled
            vibration_enabled = self._vibration_enabled
        logger.info("Alarm %s triggered (time=%s, snoozed=%s)", alarm.id, alarm.time, alarm.is_snoozed)
        if timer:
            timer.cancel()
        self._channel.emit(alarm.id)
        self.dispatcher.alarm_started(alarm, sound_enabled, vibration_enabled)

    def stop_alarm(self, alarm_id: str, resume: bool = True) -> bool:
        with self._lock:
            if not self._active_alarm_id or self._active_alarm_id != alarm_id:
                logger.warning("Attempted to stop non-active alarm %s (active=%s)", alarm_id, self._active_alarm_id)
                return False
            self._active_alarm_id = None
            alarms = list(self._alarms)
            sound_enabled = self._sound_enabled
            vibration_enabled = self._vibration_enabled
        logger.info("Stopping alarm %s", alarm_id)
        self.dispatcher.alarm_stopped(alarm_id)
        self._channel.emit(None)
        if resume:
            self.start_checking(alarms, sound_enabled, vibration_enabled)
        return True

    def snooze_alarm(self, alarm_id: str, minutes: Optional[int] = None) -> Optional[Alarm]:
        if minutes is None:
            minutes = self.default_snooze_minutes
        with self._lock:
            if minutes < 1:
                logger.warning("Rejected snooze of alarm %s for %s minutes", alarm_id, minutes)
                return None
            if not self._active_alarm_id or self._active_alarm_id != alarm_id:
                logger.warning("Attempted to snooze non-active alarm %s (active=%s)", alarm_id, self._active_alarm_id)
                return None
            alarm = self._find(alarm_id)
            if alarm is None:
                logger.warning("Active alarm %s is no longer in the alarm list, stopping it", alarm_id)
                snoozed = None
            else:
                snoozed = apply_snooze(alarm, minutes, self.clock())
                self._snoozed[alarm_id] = snoozed
                self._alarms = replace_alarm(self._alarms, snoozed)
            sound_enabled = self._sound_enabled
            vibration_enabled = self._vibration_enabled

        self.stop_alarm(alarm_id, resume=False)
        if snoozed:
            logger.info("Snoozed alarm %s for %s minutes (until %s)", alarm_id, minutes, snoozed.snooze.until_time)
        self.start_checking(self.alarms, sound_enabled, vibration_enabled)
        return snoozed

    def restore_original_alarm(self, alarm_id: str) -> Optional[Alarm]:
        with self._lock:
            alarm = self._find(alarm_id)
            if alarm is None:
                return None
            restored = restore_original(alarm)
            if restored is None:
                return None
            self._forget_snooze(alarm_id)
            self._alarms = replace_alarm(self._alarms, restored)
        logger.info("Restored alarm %s to %s", alarm_id, restored.time)
        return restored

    # -- internals --------------------------------------------------------

    def _find(self, alarm_id: str) -> Optional[Alarm]:
        for alarm in self._alarms:
            if alarm.id == alarm_id:
                return alarm
        return None

    def _detach_timer(self) -> Optional[RepeatingTimer]:
        timer = self._timer
        self._timer = None
        self._checking = False
        return timer

    def _forget_snooze(self, alarm_id: str) -> None:
        self._snoozed.pop(alarm_id, None)
        self._fired_snoozes = {key for key in self._fired_snoozes if key[0] != alarm_id}

    def _merge_snoozed(self, incoming: Sequence[Alarm]) -> List[Alarm]:
        """Keep snoozes applied here that the caller has not restored yet."""
        merged = []
        seen = set()
        for alarm in incoming:
            seen.add(alarm.id)
            pending = self._snoozed.get(alarm.id)
            if alarm.snooze:
                self._snoozed[alarm.id] = alarm
            elif pending and alarm.enabled:
                snooze = pending.snooze
                if alarm.time != pending.time or alarm.days != pending.days:
                    # edited while snoozed: restoring must land on the new schedule
                    snooze = replace(snooze, original_time=alarm.time, original_days=list(alarm.days))
                    self._snoozed[alarm.id] = alarm.with_changes(snooze=snooze)
                alarm = alarm.with_changes(snooze=snooze)
            elif pending:
                self._forget_snooze(alarm.id)
            merged.append(alarm)
        for alarm_id in [a for a in self._snoozed if a not in seen]:
            self._forget_snooze(alarm_id)
        return merged

    def _snooze_window_end(self, alarm: Alarm) -> int:
        return alarm.snooze.timestamp + int(self.check_interval * 1000)

    def _snooze_due(self, alarm: Alarm, now_ms: int) -> bool:
        return alarm.snooze.timestamp <= now_ms <= self._snooze_window_end(alarm)

    def _expire_missed_snoozes(self, now_ms: int) -> None:
        for alarm in list(self._alarms):
            if not alarm.snooze or now_ms <= self._snooze_window_end(alarm):
                continue
            logger.warning("Snooze window for alarm %s passed without firing, restoring its schedule", alarm.id)
            self._forget_snooze(alarm.id)
            self._alarms = replace_alarm(self._alarms, restore_original(alarm))

    def _find_due_alarm(self) -> Optional[Alarm]:
        if not self._checking or self._active_alarm_id:
            return None
        if not self._alarms:
            return None

        now = self.clock()
        now_ms = epoch_millis(now)
        current_time = format_hhmm(now)
        current_day = weekday_name(now)
        if self._last_triggered_time and self._last_triggered_time != current_time:
            self._last_triggered_time = ""

        self._expire_missed_snoozes(now_ms)
        for alarm in self._alarms:
            if alarm.enabled and alarm.snooze and self._snooze_due(alarm, now_ms):
                key = (alarm.id, alarm.snooze.timestamp)
                if key in self._fired_snoozes:
                    continue
                self._fired_snoozes.add(key)
                return alarm

        if current_time == self._last_triggered_time:
            return None

        for alarm in self._alarms:
            if not alarm.enabled or alarm.snooze or alarm.time != current_time:
                continue
            if alarm.days and current_day not in alarm.days:
                continue
            self._last_triggered_time = current_time
            return alarm
        return None
