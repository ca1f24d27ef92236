from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_SLOT_COUNT_ENV = "PARKING_SLOT_COUNT"
_POLL_INTERVAL_ENV = "POLL_INTERVAL_MS"
_POLL_TIMEOUT_ENV = "POLL_TIMEOUT_SECONDS"
_GRACE_PERIOD_ENV = "DISCONNECT_GRACE_MS"
_DANGER_ZONE_ENV = "DANGER_ZONE_ENABLED"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    slot_count: int
    poll_interval_ms: int
    poll_timeout: float
    disconnect_grace_ms: int
    danger_zone_enabled: bool
    log_level: str


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


def _read_positive_float(name: str, default: float) -> float:
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
    return parsed if parsed > 0 else default


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
        slot_count=_read_positive_int(_SLOT_COUNT_ENV, 6),
        poll_interval_ms=_read_positive_int(_POLL_INTERVAL_ENV, 2000),
        poll_timeout=_read_positive_float(_POLL_TIMEOUT_ENV, 5.0),
        disconnect_grace_ms=_read_positive_int(_GRACE_PERIOD_ENV, 1000),
        danger_zone_enabled=_read_bool(_DANGER_ZONE_ENV, True),
        log_level=_read_log_level("INFO"),
    )
