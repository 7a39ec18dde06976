from datetime import timedelta

from alarms.effects import SideEffectDispatcher
from alarms.models import Alarm
from alarms.scheduler import AlarmScheduler
from conftest import monday
from time_utils import epoch_millis


def _alarm(alarm_id="a1", time="07:00", days=None, enabled=True, **kwargs) -> Alarm:
    return Alarm(id=alarm_id, time=time, days=days or [], enabled=enabled, **kwargs)


def test_one_time_alarm_triggers_once_per_minute(scheduler, clock, timers, sound, haptics, navigated):
    scheduler.start_checking([_alarm()], True, True)

    assert scheduler.get_active_alarm_id() == "a1"
    assert navigated == ["a1"]
    assert sound.started == [None]
    assert haptics.pulses == 1
    assert not scheduler.is_checking_active()

    assert scheduler.stop_alarm("a1")
    assert scheduler.get_active_alarm_id() is None
    assert scheduler.is_checking_active()
    assert sound.stopped == 1

    clock.advance(seconds=1)
    timers.fire()
    assert scheduler.get_active_alarm_id() is None
    assert navigated == ["a1"]


def test_recurring_alarm_respects_weekday(scheduler, clock, timers):
    clock.set(monday() + timedelta(days=1))  # Tuesday 07:00
    scheduler.start_checking([_alarm(days=["Monday"])])
    assert scheduler.get_active_alarm_id() is None

    clock.set(monday() + timedelta(days=7))  # next Monday 07:00
    timers.fire()
    assert scheduler.get_active_alarm_id() == "a1"


def test_disabled_and_wrong_time_alarms_do_not_trigger(scheduler, clock, timers):
    scheduler.start_checking([_alarm("off", enabled=False), _alarm("later", time="07:01")])
    assert scheduler.get_active_alarm_id() is None

    clock.advance(minutes=1)
    timers.fire()
    assert scheduler.get_active_alarm_id() == "later"


def test_start_checking_is_idempotent(scheduler, timers):
    scheduler.start_checking([_alarm(time="08:00")])
    scheduler.start_checking([_alarm(time="09:00")])
    assert len(timers.timers) == 1
    assert scheduler.alarms[0].time == "09:00"


def test_stop_checking_is_safe_when_stopped(scheduler, timers):
    scheduler.stop_checking()
    scheduler.start_checking([_alarm(time="08:00")])
    scheduler.stop_checking()
    scheduler.stop_checking()
    assert not scheduler.is_checking_active()
    assert timers.current is None


def test_only_one_alarm_active_at_a_time(scheduler, clock, timers, navigated):
    scheduler.start_checking([_alarm("a1"), _alarm("a2")])
    assert scheduler.get_active_alarm_id() == "a1"

    clock.advance(seconds=1)
    timers.fire()
    scheduler.tick()
    assert scheduler.get_active_alarm_id() == "a1"
    assert navigated == ["a1"]


def test_stop_and_snooze_reject_non_active_ids(scheduler):
    events = []
    scheduler.subscribe(events.append)
    scheduler.start_checking([_alarm()])

    assert scheduler.stop_alarm("other") is False
    assert scheduler.snooze_alarm("other", 5) is None
    assert scheduler.get_active_alarm_id() == "a1"
    assert events == ["a1"]


def test_snoozed_alarm_refires_at_timestamp(scheduler, clock, timers, navigated):
    scheduler.start_checking([_alarm(days=["Monday"])])
    clock.advance(seconds=30)

    snoozed = scheduler.snooze_alarm("a1", 5)

    assert snoozed.is_snoozed
    assert snoozed.time == "07:00"
    assert snoozed.snooze.original_time == "07:00"
    assert snoozed.snooze.original_days == ["Monday"]
    assert snoozed.snooze.until_time == "07:05"
    assert snoozed.snooze.timestamp == epoch_millis(monday(7, 5, 30))
    assert scheduler.get_active_alarm_id() is None
    assert scheduler.is_checking_active()

    clock.set(monday(7, 5, 29))
    timers.fire()
    assert scheduler.get_active_alarm_id() is None

    clock.set(monday(7, 5, 31))
    timers.fire()
    assert scheduler.get_active_alarm_id() == "a1"
    assert navigated == ["a1", "a1"]


def test_snooze_refire_ignores_minute_suppression(scheduler, clock, timers):
    scheduler.start_checking([_alarm("a1", time="07:00"), _alarm("a2", time="07:05")])
    clock.advance(seconds=30)
    scheduler.snooze_alarm("a1", 5)

    clock.set(monday(7, 5, 0))
    timers.fire()
    assert scheduler.get_active_alarm_id() == "a2"
    scheduler.stop_alarm("a2")
    assert scheduler.get_active_alarm_id() is None

    # 07:05 is suppressed for nominal times, but a1's re-fire is due at 07:05:30
    clock.set(monday(7, 5, 30))
    timers.fire()
    assert scheduler.get_active_alarm_id() == "a1"


def test_snoozed_alarm_fires_once_per_snooze(scheduler, clock, timers):
    scheduler.start_checking([_alarm()])
    scheduler.snooze_alarm("a1", 5)
    clock.set(monday(7, 5, 0))
    timers.fire()
    assert scheduler.get_active_alarm_id() == "a1"

    scheduler.stop_alarm("a1")
    clock.set(monday(7, 5, 1))
    timers.fire()
    assert scheduler.get_active_alarm_id() is None


def test_repeated_snooze_keeps_true_originals(scheduler, clock):
    scheduler.start_checking([_alarm(days=["Monday", "Friday"])])
    first = scheduler.snooze_alarm("a1", 5)

    clock.set(monday(7, 5, 0))
    scheduler.tick()
    second = scheduler.snooze_alarm("a1", 10)

    assert second.snooze.original_time == first.snooze.original_time == "07:00"
    assert second.snooze.original_days == ["Monday", "Friday"]
    assert second.snooze.until_time == "07:15"

    restored = scheduler.restore_original_alarm("a1")
    assert restored.time == "07:00"
    assert restored.days == ["Monday", "Friday"]
    assert not restored.is_snoozed
    assert restored.snooze is None


def test_restore_returns_none_for_normal_alarm(scheduler):
    scheduler.start_checking([_alarm(time="08:00")])
    assert scheduler.restore_original_alarm("a1") is None
    assert scheduler.restore_original_alarm("missing") is None


def test_refresh_preserves_unrestored_snooze(scheduler, clock, timers):
    scheduler.start_checking([_alarm()])
    scheduler.snooze_alarm("a1", 5)

    scheduler.start_checking([_alarm(name="Renamed")])
    held = scheduler.get_alarm("a1")
    assert held.is_snoozed
    assert held.name == "Renamed"

    clock.set(monday(7, 5, 0))
    timers.fire()
    assert scheduler.get_active_alarm_id() == "a1"


def test_refresh_drops_snooze_for_disabled_alarm(scheduler, clock, timers):
    scheduler.start_checking([_alarm()])
    scheduler.snooze_alarm("a1", 5)

    scheduler.start_checking([_alarm(enabled=False)])
    assert not scheduler.get_alarm("a1").is_snoozed

    clock.set(monday(7, 5, 0))
    timers.fire()
    assert scheduler.get_active_alarm_id() is None


def test_active_alarm_change_notifies_all_subscribers(scheduler):
    first, second, single = [], [], []
    scheduler.subscribe(first.append)
    unsubscribe = scheduler.subscribe(second.append)
    scheduler.set_on_active_alarm_change(single.append)

    scheduler.start_checking([_alarm()])
    unsubscribe()
    scheduler.stop_alarm("a1")

    assert first == ["a1", None]
    assert second == ["a1"]
    assert single == ["a1", None]


def test_failing_side_effects_still_activate_alarm(clock, timers, navigated):
    class BrokenSound:
        def start_loop(self, sound_uri=None):
            raise RuntimeError("audio engine unavailable")

        def stop_loop(self):
            raise RuntimeError("audio engine unavailable")

    class BrokenHaptics:
        def pulse(self):
            raise OSError("haptics unsupported")

    dispatcher = SideEffectDispatcher(sound_player=BrokenSound(), haptics=BrokenHaptics(), navigate=navigated.append)
    scheduler = AlarmScheduler(dispatcher=dispatcher, clock=clock, timer_factory=timers)
    scheduler.start_checking([_alarm()])

    assert scheduler.get_active_alarm_id() == "a1"
    assert navigated == ["a1"]
    assert scheduler.stop_alarm("a1")


def test_sound_and_haptics_follow_settings(scheduler, sound, haptics, navigated):
    scheduler.start_checking([_alarm(sound_uri="/tmp/custom.wav")], sound_enabled=False, vibration_enabled=False)
    assert scheduler.get_active_alarm_id() == "a1"
    assert sound.started == []
    assert haptics.pulses == 0
    assert navigated == ["a1"]


def test_data_push_while_active_keeps_checker_paused(scheduler, timers):
    scheduler.start_checking([_alarm()])
    scheduler.start_checking([_alarm(), _alarm("a2", time="09:00")])
    assert not scheduler.is_checking_active()
    assert len(timers.timers) == 1

    scheduler.stop_alarm("a1")
    assert scheduler.is_checking_active()
    assert [a.id for a in scheduler.alarms] == ["a1", "a2"]


def test_edit_while_snoozed_restores_to_new_schedule(scheduler, clock, timers):
    scheduler.start_checking([_alarm(days=["Monday"])])
    scheduler.snooze_alarm("a1", 5)

    scheduler.start_checking([_alarm(time="08:00", days=["Tuesday"])])
    held = scheduler.get_alarm("a1")
    assert held.is_snoozed
    assert held.snooze.original_time == "08:00"
    assert held.snooze.original_days == ["Tuesday"]

    clock.set(monday(7, 5, 0))
    timers.fire()
    assert scheduler.get_active_alarm_id() == "a1"

    restored = scheduler.restore_original_alarm("a1")
    assert restored.time == "08:00"
    assert restored.days == ["Tuesday"]


def test_snooze_missed_by_more_than_one_period_does_not_fire(scheduler, clock, timers, navigated):
    scheduler.start_checking([_alarm()])
    clock.advance(seconds=30)
    scheduler.snooze_alarm("a1", 5)

    clock.set(monday(7, 5, 32))
    timers.fire()
    assert scheduler.get_active_alarm_id() is None
    assert navigated == ["a1"]

    held = scheduler.get_alarm("a1")
    assert not held.is_snoozed
    assert held.time == "07:00"


def test_snooze_blocked_by_other_alarm_restores_regular_schedule(scheduler, clock, timers):
    scheduler.start_checking([_alarm("a1"), _alarm("b", time="07:05")])
    clock.advance(seconds=30)
    scheduler.snooze_alarm("a1", 5)

    clock.set(monday(7, 5, 0))
    timers.fire()
    assert scheduler.get_active_alarm_id() == "b"

    clock.set(monday(7, 7, 0))
    scheduler.stop_alarm("b")
    assert scheduler.get_active_alarm_id() is None
    assert not scheduler.get_alarm("a1").is_snoozed

    clock.set(monday() + timedelta(days=1))
    timers.fire()
    assert scheduler.get_active_alarm_id() == "a1"


def test_snooze_with_invalid_minutes_is_a_no_op(scheduler, sound):
    scheduler.start_checking([_alarm()])

    assert scheduler.snooze_alarm("a1", -5) is None
    assert scheduler.snooze_alarm("a1", 0) is None
    assert scheduler.get_active_alarm_id() == "a1"
    assert not scheduler.get_alarm("a1").is_snoozed
    assert sound.stopped == 0
