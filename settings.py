from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date
from functools import lru_cache
from typing import Optional, Tuple

from services.parser import DEFAULT_AS_OF, parse_date
from services.registry import DEFAULT_CAPACITY_HINT
from services.retention import DEFAULT_WINDOW_SIZE


_WINDOW_SIZE_ENV = "AGGREGATOR_WINDOW_SIZE"
_AS_OF_ENV = "AGGREGATOR_AS_OF_DATE"
_MEAN_INSTRUMENT_ENV = "AGGREGATOR_MEAN_INSTRUMENT"
_MONTHLY_MEAN_INSTRUMENT_ENV = "AGGREGATOR_MONTHLY_MEAN_INSTRUMENT"
_MONTHLY_MEAN_PERIOD_ENV = "AGGREGATOR_MONTHLY_MEAN_PERIOD"
_VARIANCE_INSTRUMENT_ENV = "AGGREGATOR_VARIANCE_INSTRUMENT"
_CAPACITY_HINT_ENV = "AGGREGATOR_CAPACITY_HINT"
_LOG_LEVEL_ENV = "LOG_LEVEL"
_ENGINE_LOG_LEVEL_ENV = "ENGINE_LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    window_size: int
    as_of: date
    mean_instrument: str
    monthly_mean_instrument: str
    monthly_mean_period: Tuple[int, int]
    variance_instrument: str
    capacity_hint: int
    log_level: str
    engine_log_level: Optional[str]


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


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


def _read_date(name: str, default: date) -> date:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        return parse_date(candidate)
    except ValueError:
        pass
    try:
        return date.fromisoformat(candidate)
    except ValueError:
        return default


def _read_period(name: str, default: Tuple[int, int]) -> Tuple[int, int]:
    value = os.getenv(name)
    if value is None:
        return default
    year_raw, _, month_raw = value.strip().partition("-")
    try:
        year, month = int(year_raw), int(month_raw)
    except ValueError:
        return default
    if not 1 <= month <= 12:
        return default
    return year, month


def _read_log_level(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        window_size=_read_positive_int(_WINDOW_SIZE_ENV, DEFAULT_WINDOW_SIZE),
        as_of=_read_date(_AS_OF_ENV, DEFAULT_AS_OF),
        mean_instrument=_read_str_env(_MEAN_INSTRUMENT_ENV, "INSTRUMENT1"),
        monthly_mean_instrument=_read_str_env(_MONTHLY_MEAN_INSTRUMENT_ENV, "INSTRUMENT2"),
        monthly_mean_period=_read_period(_MONTHLY_MEAN_PERIOD_ENV, (2014, 11)),
        variance_instrument=_read_str_env(_VARIANCE_INSTRUMENT_ENV, "INSTRUMENT3"),
        capacity_hint=_read_positive_int(_CAPACITY_HINT_ENV, DEFAULT_CAPACITY_HINT),
        log_level=_read_log_level(_LOG_LEVEL_ENV, "INFO") or "INFO",
        engine_log_level=_read_log_level(_ENGINE_LOG_LEVEL_ENV, None),
    )
