from pathlib import Path

from alarm_app import AlarmAppRuntime
from alarms.models import Alarm
from alarms.storage import save_alarms
from config import Config


def _config(tmp_path: Path) -> Config:
    return Config(
        store_path=tmp_path / "store.json",
        alarm_sound_path=tmp_path / "alarm.wav",
        check_interval_ms=1000,
        default_snooze_min=6,
        timezone_name=None,
        debug=False,
        log_level="INFO",
        log_dir=tmp_path / "logs",
    )


def test_runtime_loads_store_and_routes_commands(tmp_path):
    runtime = AlarmAppRuntime(_config(tmp_path))
    save_alarms(runtime.store, [Alarm(id="a1", time="00:00", days=["Sunday"], enabled=False)])
    runtime.start()
    try:
        assert runtime.settings.snooze_minutes == 6
        assert runtime.scheduler.is_checking_active()
        assert runtime.handle_line("list") == "1) 12:00 AM Alarm (Sun) [off]"
        assert runtime.handle_line("") is None
    finally:
        runtime.shutdown()
    assert not runtime.scheduler.is_checking_active()


def test_presenting_alarm_prints_prompt(tmp_path, capsys):
    runtime = AlarmAppRuntime(_config(tmp_path))
    runtime._present_alarm("missing")
    assert "missing is ringing" in capsys.readouterr().out
