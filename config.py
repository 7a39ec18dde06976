import logging
import logging.handlers
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _get_env_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip() in {"1", "true", "True", "yes", "YES", "y"}


def _get_env_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    try:
        return int(val)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer") from exc


@dataclass
class Config:
    store_path: Path
    alarm_sound_path: Path
    check_interval_ms: int
    default_snooze_min: int
    timezone_name: Optional[str]
    debug: bool
    log_level: str
    log_dir: Path

    @property
    def check_interval(self) -> float:
        return self.check_interval_ms / 1000.0


def load_config(env_path: Optional[Path] = None) -> Config:
    if env_path is None:
        env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    store_path = Path(os.getenv("ALARM_STORE_PATH", "data/store.json"))
    alarm_sound_path = Path(os.getenv("ALARM_SOUND_PATH", "data/alarm.wav"))
    check_interval_ms = max(200, _get_env_int("ALARM_CHECK_INTERVAL_MS", 1000))
    default_snooze_min = _get_env_int("ALARM_DEFAULT_SNOOZE_MIN", 5)
    if default_snooze_min < 1:
        raise ValueError("ALARM_DEFAULT_SNOOZE_MIN must be at least 1")
    timezone_name = os.getenv("ALARM_TIMEZONE") or None
    debug = _get_env_bool("DEBUG", False)
    log_level = os.getenv("LOG_LEVEL", "DEBUG" if debug else "INFO").upper()
    log_dir = Path(os.getenv("LOG_DIR", "logs"))

    return Config(
        store_path=store_path,
        alarm_sound_path=alarm_sound_path,
        check_interval_ms=check_interval_ms,
        default_snooze_min=default_snooze_min,
        timezone_name=timezone_name,
        debug=debug,
        log_level=log_level,
        log_dir=log_dir,
    )


def setup_logging(log_level: str = "INFO", logs_dir: Path = Path("logs")) -> None:
    logs_dir.mkdir(parents=True, exist_ok=True)

    log_path = logs_dir / "alarm.log"
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        handlers=[file_handler, console_handler],
    )
