"""Business day calendar rules."""

from __future__ import annotations

from datetime import date

_SATURDAY = 5


def is_business_day(value: date) -> bool:
    """Return True for Monday through Friday."""
    return value.weekday() < _SATURDAY
