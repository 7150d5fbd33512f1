from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_BASE_URL_ENV = "TELEMETRY_BASE_URL"
_CHANNEL_ID_ENV = "TELEMETRY_CHANNEL_ID"
_API_KEY_ENV = "TELEMETRY_API_KEY"
_RESULTS_ENV = "TELEMETRY_RESULTS"
_TIMEOUT_ENV = "TELEMETRY_TIMEOUT_SECONDS"
_POLL_INTERVAL_ENV = "POLL_INTERVAL_SECONDS"
_HISTORY_LIMIT_ENV = "HISTORY_LIMIT"
_RECOVERY_CYCLES_ENV = "FALLBACK_RECOVERY_CYCLES"
_MAPPING_ENV = "CHANNEL_MAPPING"
_MAPPING_VERSION_ENV = "CHANNEL_MAPPING_VERSION"
_STORE_NAME_ENV = "READING_STORE_NAME"
_STORE_PATH_ENV = "READING_STORE_PATH"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    telemetry_base_url: str
    telemetry_channel_id: Optional[str]
    telemetry_api_key: Optional[str]
    telemetry_results: int
    telemetry_timeout: float
    poll_interval: float
    history_limit: int
    fallback_recovery_cycles: int
    channel_mapping: Optional[str]
    channel_mapping_version: Optional[str]
    store_name: str
    store_path: Optional[str]
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
        telemetry_base_url=_read_str_env(_BASE_URL_ENV, "https://api.thingspeak.com").rstrip("/"),
        telemetry_channel_id=_read_optional_env(_CHANNEL_ID_ENV, None),
        telemetry_api_key=_read_optional_env(_API_KEY_ENV, None),
        telemetry_results=_read_positive_int(_RESULTS_ENV, 10),
        telemetry_timeout=_read_positive_float(_TIMEOUT_ENV, 10.0),
        poll_interval=_read_positive_float(_POLL_INTERVAL_ENV, 2.0),
        history_limit=_read_positive_int(_HISTORY_LIMIT_ENV, 100),
        fallback_recovery_cycles=_read_positive_int(_RECOVERY_CYCLES_ENV, 1),
        channel_mapping=_read_optional_env(_MAPPING_ENV, None),
        channel_mapping_version=_read_optional_env(_MAPPING_VERSION_ENV, None),
        store_name=_read_str_env(_STORE_NAME_ENV, "sensor_readings"),
        store_path=_read_optional_env(_STORE_PATH_ENV, "./tmp/readings.json"),
        log_level=_read_log_level("INFO"),
    )
