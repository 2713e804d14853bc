"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True, slots=True)
class Observation:
    """A single instrument observation parsed from one input line."""

    name: str
    date: date
    value: float


def newest_first(observations: list[Observation]) -> None:
    """Sort observations in place by date, descending.

    The sort is stable, so observations sharing a date keep arrival order.
    """
    observations.sort(key=_observation_date, reverse=True)


def _observation_date(observation: Observation) -> date:
    return observation.date
