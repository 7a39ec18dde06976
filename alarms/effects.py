from __future__ import annotations

import logging
import wave
from pathlib import Path
from threading import Event, Thread
from typing import Callable, Optional

import numpy as np

from .models import Alarm

try:
    import winsound
except ImportError:  # pragma: no cover - non-Windows fallback
    winsound = None  # type: ignore

logger = logging.getLogger(__name__)


def ensure_alarm_sound(path: Path, duration_seconds: float = 1.5) -> None:
    if path.exists():
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    sample_rate = 24000
    freq = 880.0
    amplitude = 0.4
    t = np.arange(int(duration_seconds * sample_rate)) / sample_rate
    samples = (32767 * amplitude * np.sin(2 * np.pi * freq * t)).astype("<i2")
    with wave.open(str(path), "w") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(samples.tobytes())
    logger.info("Generated default alarm sound at %s", path)


class AlarmSoundPlayer:
    """Looped playback of an alarm asset, falling back to the generated default tone."""

    def __init__(self, default_sound_path: Path, beep_frequency: int = 880, beep_pause: float = 0.75):
        self.default_sound_path = Path(default_sound_path)
        self.beep_frequency = beep_frequency
        self.beep_pause = beep_pause
        self._stop_event = Event()
        self._beep_thread: Optional[Thread] = None

    def resolve(self, sound_uri: Optional[str]) -> Path:
        if sound_uri:
            custom = Path(sound_uri)
            if custom.exists():
                return custom
            logger.warning("Alarm sound %s is missing, using default tone", sound_uri)
        ensure_alarm_sound(self.default_sound_path)
        return self.default_sound_path

    def start_loop(self, sound_uri: Optional[str] = None) -> None:
        path = self.resolve(sound_uri)
        self._stop_event.clear()
        if not self._play_looped(path):
            self._start_beeping()

    def stop_loop(self) -> None:
        self._stop_event.set()
        if winsound is None:
            return
        try:
            winsound.PlaySound(None, winsound.SND_PURGE)
        except RuntimeError:
            logger.debug("Could not purge looped alarm sound")

    @property
    def is_beeping(self) -> bool:
        return bool(self._beep_thread and self._beep_thread.is_alive())

    def _play_looped(self, path: Path) -> bool:
        if winsound is None:
            return False
        flags = winsound.SND_FILENAME | winsound.SND_LOOP | winsound.SND_ASYNC
        try:
            winsound.PlaySound(str(path), flags)
        except RuntimeError:
            logger.warning("Looped playback of %s failed, beeping instead", path)
            return False
        return True

    def _start_beeping(self) -> None:
        if self.is_beeping:
            return
        self._beep_thread = Thread(target=self._beep_until_stopped, name="alarm-beep", daemon=True)
        self._beep_thread.start()

    def _beep_until_stopped(self) -> None:  # pragma: no cover - timing loop
        while not self._stop_event.is_set():
            if winsound is None:
                logger.info("Alarm is ringing")
            else:
                try:
                    winsound.Beep(self.beep_frequency, 250)
                except RuntimeError:
                    logger.debug("Beep failed, retrying on next cycle")
            self._stop_event.wait(self.beep_pause)


class LoggingHaptics:
    """Haptic port for hosts without a vibration motor."""

    def pulse(self) -> None:
        logger.info("Haptic pulse (heavy)")


class SideEffectDispatcher:
    """Sound, haptics and navigation for a triggered alarm.

    Every call is fire-and-forget: a failing port is logged and the remaining
    effects still run, so the alarm is presented even when it rings silently.
    """

    def __init__(
        self,
        sound_player=None,
        haptics=None,
        navigate: Optional[Callable[[str], None]] = None,
    ):
        self.sound_player = sound_player
        self.haptics = haptics
        self.navigate = navigate

    def alarm_started(self, alarm: Alarm, sound_enabled: bool, vibration_enabled: bool) -> None:
        if sound_enabled and self.sound_player:
            try:
                self.sound_player.start_loop(alarm.sound_uri)
            except Exception:
                logger.error("Failed to start alarm sound for %s", alarm.id, exc_info=True)
        if vibration_enabled and self.haptics:
            try:
                self.haptics.pulse()
            except Exception:
                logger.warning("Haptics not available", exc_info=True)
        if self.navigate:
            try:
                self.navigate(alarm.id)
            except Exception:
                logger.error("Navigation to alarm %s failed", alarm.id, exc_info=True)

    def alarm_stopped(self, alarm_id: str) -> None:
        if not self.sound_player:
            return
        try:
            self.sound_player.stop_loop()
        except Exception:
            logger.warning("Error stopping sound for %s", alarm_id, exc_info=True)
