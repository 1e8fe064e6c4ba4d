from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_LEDGER_NAME_ENV = "LEDGER_TABLE_NAME"
_LEDGER_PATH_ENV = "LEDGER_PERSISTENCE_PATH"
_STORE_NAME_ENV = "READING_STORE_NAME"
_STORE_PATH_ENV = "READING_STORE_PATH"
_HISTORY_CAPACITY_ENV = "HISTORY_CAPACITY"
_MAX_PWM_ENV = "MOTOR_MAX_PWM"
_MIN_DUTY_ENV = "MOTOR_MIN_EFFECTIVE_DUTY"
_MAX_POWER_ENV = "MOTOR_MAX_POWER_WATTS"
_TARIFF_ENV = "TARIFF_PER_KWH"
_WINDOW_ENV = "ELIGIBILITY_WINDOW_HOURS"
_OVERRIDE_ENV = "ROLLOVER_OVERRIDE"
_QUEUE_SIZE_ENV = "INGRESS_QUEUE_SIZE"
_RETRY_ATTEMPTS_ENV = "LEDGER_RETRY_ATTEMPTS"
_RETRY_BACKOFF_ENV = "LEDGER_RETRY_BACKOFF_SECONDS"
_TIMEZONE_ENV = "LEDGER_TIMEZONE"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    ledger_table_name: str
    ledger_persistence_path: Optional[str]
    reading_store_name: str
    reading_store_path: Optional[str]
    history_capacity: int
    max_pwm: float
    min_effective_duty_fraction: float
    max_power_watts: float
    tariff_per_kwh: float
    eligibility_window_hours: float
    rollover_override: bool
    ingress_queue_size: int
    ledger_retry_attempts: int
    ledger_retry_backoff_seconds: float
    timezone: Optional[str]
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_float(name: str, default: float, minimum: float = 0.0) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    if parsed != parsed or parsed < minimum:
        return default
    return parsed


def _read_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in _TRUE_VALUES:
        return True
    if candidate in _FALSE_VALUES:
        return False
    return default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        ledger_table_name=_read_str_env(_LEDGER_NAME_ENV, "daily_stats"),
        ledger_persistence_path=_read_optional_env(_LEDGER_PATH_ENV, "./tmp/daily_ledger.json"),
        reading_store_name=_read_str_env(_STORE_NAME_ENV, "sensors"),
        reading_store_path=_read_optional_env(_STORE_PATH_ENV, "./tmp/latest_reading.json"),
        history_capacity=_read_positive_int(_HISTORY_CAPACITY_ENV, 20),
        max_pwm=_read_float(_MAX_PWM_ENV, 255.0, minimum=1.0),
        min_effective_duty_fraction=_read_float(_MIN_DUTY_ENV, 0.1),
        max_power_watts=_read_float(_MAX_POWER_ENV, 100.0),
        tariff_per_kwh=_read_float(_TARIFF_ENV, 1500.0),
        eligibility_window_hours=_read_float(_WINDOW_ENV, 1.0),
        rollover_override=_read_bool(_OVERRIDE_ENV, True),
        ingress_queue_size=_read_positive_int(_QUEUE_SIZE_ENV, 256),
        ledger_retry_attempts=_read_positive_int(_RETRY_ATTEMPTS_ENV, 3),
        ledger_retry_backoff_seconds=_read_float(_RETRY_BACKOFF_ENV, 0.05),
        timezone=_read_optional_env(_TIMEZONE_ENV, None),
        log_level=_read_log_level("INFO"),
    )
