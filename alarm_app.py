import logging
import signal
from typing import Optional

from config import Config, load_config, setup_logging
from alarms.commands import CommandRouter
from alarms.effects import AlarmSoundPlayer, LoggingHaptics, SideEffectDispatcher
from alarms.scheduler import AlarmScheduler
from alarms.stats import WakeStatsTracker
from alarms.storage import KeyValueStore, load_alarms, load_settings
from time_utils import now_in_tz, resolve_timezone

logger = logging.getLogger("alarm_app")

HELP_TEXT = "Commands: list, next, stats, add HH:MM [days], toggle N, remove N, stop, snooze [min], quit"


def graceful_exit(signum, frame) -> None:  # pragma: no cover - signal handler
    logger.info("Shutting down (signal %s)", signum)
    raise KeyboardInterrupt()


class AlarmAppRuntime:
    def __init__(self, config: Config):
        self.config = config
        self.tzinfo = resolve_timezone(config.timezone_name)
        self.store = KeyValueStore(config.store_path)
        self.settings = load_settings(self.store, default_snooze_minutes=config.default_snooze_min)

        self.sound_player = AlarmSoundPlayer(config.alarm_sound_path)
        self.dispatcher = SideEffectDispatcher(
            sound_player=self.sound_player,
            haptics=LoggingHaptics(),
            navigate=self._present_alarm,
        )
        self.scheduler = AlarmScheduler(
            dispatcher=self.dispatcher,
            clock=lambda: now_in_tz(self.tzinfo),
            check_interval=config.check_interval,
            default_snooze_minutes=self.settings.snooze_minutes,
        )
        self.stats = WakeStatsTracker(self.store, clock=self.scheduler.clock)
        self.router = CommandRouter(self.scheduler, self.store, self.stats, self.settings)
        self.scheduler.subscribe(self._on_active_alarm_change)

    def start(self) -> None:
        alarms = load_alarms(self.store)
        logger.info("Loaded %s alarms from %s", len(alarms), self.config.store_path)
        if alarms:
            self.scheduler.start_checking(alarms, self.settings.sound_enabled, self.settings.vibration_enabled)

    def shutdown(self) -> None:
        self.scheduler.shutdown()

    def handle_line(self, line: str) -> Optional[str]:
        result = self.router.handle_text(line)
        if result is None:
            return None
        return result.response_text

    def _present_alarm(self, alarm_id: str) -> None:
        alarm = self.scheduler.get_alarm(alarm_id)
        label = alarm.name if alarm else alarm_id
        print(f"\n*** {label} is ringing! Type 'stop' to dismiss or 'snooze' to snooze. ***")

    def _on_active_alarm_change(self, alarm_id: Optional[str]) -> None:
        logger.info("Active alarm -> %s", alarm_id or "none")


def main() -> None:
    config = load_config()
    setup_logging(config.log_level, config.log_dir)
    signal.signal(signal.SIGINT, graceful_exit)
    logger.info("Starting alarm app (store=%s, interval=%sms)", config.store_path, config.check_interval_ms)

    runtime = AlarmAppRuntime(config)
    runtime.start()
    print(HELP_TEXT)
    try:
        while True:
            line = input("> ").strip()
            if line.lower() in ("quit", "exit"):
                break
            if line.lower() == "help":
                print(HELP_TEXT)
                continue
            response = runtime.handle_line(line)
            if response:
                print(response)
    except (KeyboardInterrupt, EOFError):
        logger.info("Interrupted by user")
    finally:
        runtime.shutdown()


if __name__ == "__main__":
    main()
