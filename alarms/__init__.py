"""Alarm scheduling and triggering engine."""

from .models import Alarm, Settings, SnoozeState, WakeUpRecord, new_alarm
from .next_alarm import NextAlarmInfo, get_next_alarm
from .scheduler import AlarmScheduler
from .stats import WakeStatsTracker
