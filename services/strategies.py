"""Aggregation strategies evaluated against retained observations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Union

from services.retention import RetentionBucket, RetentionKind


class StrategyKind(str, Enum):
    """Tag identifying each aggregation variant in reports."""

    simple_mean = "simple_mean"
    month_filtered_mean = "month_filtered_mean"
    population_variance = "population_variance"
    bounded_window_sum = "bounded_window_sum"


class NoDataError(LookupError):
    """Raised when a strategy has no observations to aggregate."""


def _require_observations(bucket: RetentionBucket | None) -> RetentionBucket:
    if bucket is None or len(bucket) == 0:
        raise NoDataError("No observations recorded for instrument.")
    return bucket


@dataclass(frozen=True)
class SimpleMean:
    """Arithmetic mean of every retained value."""

    kind: ClassVar[StrategyKind] = StrategyKind.simple_mean
    retention: ClassVar[RetentionKind] = RetentionKind.full_history

    def calculate(self, bucket: RetentionBucket | None) -> float:
        values = _require_observations(bucket).values()
        return sum(values) / len(values)


@dataclass(frozen=True)
class MonthFilteredMean:
    """Arithmetic mean of values dated within one calendar month."""

    year: int
    month: int

    kind: ClassVar[StrategyKind] = StrategyKind.month_filtered_mean
    retention: ClassVar[RetentionKind] = RetentionKind.full_history

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month must be within 1..12, got {self.month}.")

    def calculate(self, bucket: RetentionBucket | None) -> float:
        matching = [
            observation.value
            for observation in _require_observations(bucket)
            if observation.date.year == self.year and observation.date.month == self.month
        ]
        if not matching:
            raise NoDataError(
                f"No observations dated {self.year:04d}-{self.month:02d}."
            )
        return sum(matching) / len(matching)


@dataclass(frozen=True)
class IncrementalVariance:
    """Population variance computed in one pass with Welford's update."""

    kind: ClassVar[StrategyKind] = StrategyKind.population_variance
    retention: ClassVar[RetentionKind] = RetentionKind.full_history

    def calculate(self, bucket: RetentionBucket | None) -> float:
        count = 0
        mean = 0.0
        squared_deviations = 0.0
        for observation in _require_observations(bucket):
            count += 1
            delta = observation.value - mean
            mean += delta / count
            squared_deviations += delta * (observation.value - mean)
        return squared_deviations / count


@dataclass(frozen=True)
class BoundedWindowSum:
    """Sum of the values kept by a bounded window bucket."""

    kind: ClassVar[StrategyKind] = StrategyKind.bounded_window_sum
    retention: ClassVar[RetentionKind] = RetentionKind.bounded_window

    def calculate(self, bucket: RetentionBucket | None) -> float:
        return sum(_require_observations(bucket).values())


AggregationStrategy = Union[SimpleMean, MonthFilteredMean, IncrementalVariance, BoundedWindowSum]

DEFAULT_STRATEGY: AggregationStrategy = BoundedWindowSum()
