import pytest

from alarms.models import Alarm, Settings, SnoozeState, WakeUpRecord, new_alarm


def test_snoozed_alarm_serializes_like_stored_records():
    alarm = Alarm(
        id="a1",
        time="07:00",
        name="Gym",
        days=["Monday"],
        sound_uri="sounds/birds.mp3",
        created_at=1700000000000,
        snooze=SnoozeState("07:00", ["Monday"], 5, "07:05", 1700000300000),
    )
    data = alarm.to_dict()

    assert data["isSnoozed"] is True
    assert data["originalTime"] == "07:00"
    assert data["snoozeUntilTime"] == "07:05"
    assert data["snoozeTimestamp"] == 1700000300000
    assert data["soundUri"] == "sounds/birds.mp3"
    assert Alarm.from_dict(data) == alarm


def test_normal_alarm_has_no_snooze_keys():
    data = Alarm(id="a1", time="06:30").to_dict()
    assert data["isSnoozed"] is False
    for key in ("originalTime", "originalDays", "snoozeDuration", "snoozeUntilTime", "snoozeTimestamp"):
        assert key not in data


def test_partial_snooze_record_is_read_back_as_original():
    alarm = Alarm.from_dict(
        {"id": "a1", "time": "07:05", "days": [], "isSnoozed": True, "originalTime": "07:00", "originalDays": ["Friday"]}
    )
    assert not alarm.is_snoozed
    assert alarm.time == "07:00"
    assert alarm.days == ["Friday"]


def test_invalid_alarm_payloads_are_rejected():
    with pytest.raises(ValueError):
        Alarm.from_dict({"id": "a1"})
    with pytest.raises(ValueError):
        Alarm.from_dict({"id": "a1", "time": "25:00"})


def test_unknown_weekdays_are_dropped():
    alarm = Alarm.from_dict({"id": "a1", "time": "07:00", "days": ["Monday", "Funday", "Monday"]})
    assert alarm.days == ["Monday"]


def test_new_alarm_assigns_identity():
    alarm = new_alarm("08:15", days=["Sunday"], name="Lazy")
    assert alarm.id.startswith("al_")
    assert alarm.created_at > 0
    assert alarm.enabled
    assert not alarm.is_snoozed
    with pytest.raises(ValueError):
        new_alarm("8am")


def test_settings_defaults_and_round_trip():
    settings = Settings.from_dict(None)
    assert settings == Settings(sound_enabled=True, vibration_enabled=True, snooze_minutes=5, quotes_required=3)
    custom = Settings(sound_enabled=False, snooze_minutes=9)
    assert Settings.from_dict(custom.to_dict()) == custom


def test_wake_up_record_requires_fields():
    record = WakeUpRecord.from_dict({"date": "2025-01-06", "time": "07:00", "timestamp": 1})
    assert record.to_dict() == {"date": "2025-01-06", "time": "07:00", "timestamp": 1}
    with pytest.raises(ValueError):
        WakeUpRecord.from_dict({"date": "2025-01-06"})
