from datetime import datetime, timedelta, timezone

import pytest

from alarms.effects import SideEffectDispatcher
from alarms.scheduler import AlarmScheduler


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class ManualTimer:
    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.running = False
        self.cancelled = False

    def start(self):
        self.running = True

    def cancel(self):
        self.running = False
        self.cancelled = True

    def fire(self):
        if self.running:
            self.callback()


class TimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, interval, callback):
        timer = ManualTimer(interval, callback)
        self.timers.append(timer)
        return timer

    @property
    def current(self):
        running = [t for t in self.timers if t.running]
        return running[-1] if running else None

    def fire(self):
        if self.current:
            self.current.fire()


class RecordingSound:
    def __init__(self):
        self.started = []
        self.stopped = 0

    def start_loop(self, sound_uri=None):
        self.started.append(sound_uri)

    def stop_loop(self):
        self.stopped += 1


class RecordingHaptics:
    def __init__(self):
        self.pulses = 0

    def pulse(self):
        self.pulses += 1


def monday(hour: int = 7, minute: int = 0, second: int = 0) -> datetime:
    # 2025-01-06 is a Monday
    return datetime(2025, 1, 6, hour, minute, second, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return FakeClock(monday())


@pytest.fixture
def timers():
    return TimerFactory()


@pytest.fixture
def sound():
    return RecordingSound()


@pytest.fixture
def haptics():
    return RecordingHaptics()


@pytest.fixture
def navigated():
    return []


@pytest.fixture
def scheduler(clock, timers, sound, haptics, navigated):
    dispatcher = SideEffectDispatcher(sound_player=sound, haptics=haptics, navigate=navigated.append)
    return AlarmScheduler(dispatcher=dispatcher, clock=clock, timer_factory=timers, check_interval=1.0)
