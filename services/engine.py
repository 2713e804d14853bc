"""Streaming aggregation engine for instrument observations."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, Dict, Iterable, Mapping, Optional

from models.records import Observation
from services.business_days import is_business_day
from services.parser import DEFAULT_AS_OF, ParseError, ParseErrorKind, RecordParser
from services.registry import DEFAULT_CAPACITY_HINT, InstrumentRegistry
from services.retention import DEFAULT_WINDOW_SIZE, RetentionBucket, RetentionPolicy
from services.strategies import (
    DEFAULT_STRATEGY,
    AggregationStrategy,
    IncrementalVariance,
    MonthFilteredMean,
    NoDataError,
    SimpleMean,
    StrategyKind,
)

if TYPE_CHECKING:
    from settings import Settings

logger = logging.getLogger(__name__)


class EngineState(str, Enum):
    idle = "idle"
    streaming = "streaming"
    finalized = "finalized"


class EngineStateError(RuntimeError):
    """Raised when an operation is not allowed in the engine's current state."""


@dataclass(frozen=True)
class EngineConfig:
    """Everything the engine needs from its caller."""

    window_size: int = DEFAULT_WINDOW_SIZE
    as_of: date = DEFAULT_AS_OF
    mean_instrument: str = "INSTRUMENT1"
    monthly_mean_instrument: str = "INSTRUMENT2"
    monthly_mean_year: int = 2014
    monthly_mean_month: int = 11
    variance_instrument: str = "INSTRUMENT3"
    capacity_hint: int = DEFAULT_CAPACITY_HINT

    def __post_init__(self) -> None:
        bound = (self.mean_instrument, self.monthly_mean_instrument, self.variance_instrument)
        if len(set(bound)) != len(bound):
            raise ValueError(
                "Mean, monthly mean and variance instruments must be distinct names, "
                f"got {bound!r}."
            )

    @classmethod
    def from_settings(cls, settings: "Settings") -> "EngineConfig":
        return cls(
            window_size=settings.window_size,
            as_of=settings.as_of,
            mean_instrument=settings.mean_instrument,
            monthly_mean_instrument=settings.monthly_mean_instrument,
            monthly_mean_year=settings.monthly_mean_period[0],
            monthly_mean_month=settings.monthly_mean_period[1],
            variance_instrument=settings.variance_instrument,
            capacity_hint=settings.capacity_hint,
        )

    def strategy_table(self) -> Dict[str, AggregationStrategy]:
        return {
            self.mean_instrument: SimpleMean(),
            self.monthly_mean_instrument: MonthFilteredMean(
                year=self.monthly_mean_year, month=self.monthly_mean_month
            ),
            self.variance_instrument: IncrementalVariance(),
        }


@dataclass
class IngestStats:
    """Counters describing how input lines were handled."""

    lines_read: int = 0
    blank_lines: int = 0
    accepted: int = 0
    malformed_line: int = 0
    invalid_date: int = 0
    invalid_value: int = 0
    future_date: int = 0
    weekend_rejected: int = 0

    @property
    def parse_failures(self) -> int:
        return self.malformed_line + self.invalid_date + self.invalid_value + self.future_date

    @property
    def rejected(self) -> int:
        return self.parse_failures + self.weekend_rejected

    def record_parse_error(self, kind: ParseErrorKind) -> None:
        if kind is ParseErrorKind.malformed_line:
            self.malformed_line += 1
        elif kind is ParseErrorKind.invalid_date:
            self.invalid_date += 1
        elif kind is ParseErrorKind.invalid_value:
            self.invalid_value += 1
        else:
            self.future_date += 1


@dataclass(frozen=True)
class InstrumentResult:
    """Outcome of one strategy for one instrument."""

    name: str
    strategy: StrategyKind
    value: Optional[float] = None
    observation_count: int = 0

    @property
    def has_data(self) -> bool:
        return self.value is not None


@dataclass
class EngineReport:
    results: Dict[str, InstrumentResult] = field(default_factory=dict)
    stats: IngestStats = field(default_factory=IngestStats)

    def values(self) -> Dict[str, Optional[float]]:
        return {name: result.value for name, result in self.results.items()}


class Engine:
    """Routes parsed observations into per-instrument buckets and aggregates them.

    The engine moves from ``idle`` to ``streaming`` on the first consumed line
    or routed observation and to ``finalized`` once :meth:`finalize` runs.
    A finalized engine cannot accept more input.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        strategies: Mapping[str, AggregationStrategy] | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.parser = RecordParser(as_of=self.config.as_of)
        self.policy = RetentionPolicy(window_size=self.config.window_size)
        self.registry = InstrumentRegistry(capacity_hint=self.config.capacity_hint)
        self.stats = IngestStats()
        self.state = EngineState.idle
        table = self.config.strategy_table() if strategies is None else strategies
        self._strategies: Dict[str, AggregationStrategy] = dict(table)

    def register(self, name: str, strategy: AggregationStrategy) -> None:
        if self.state is not EngineState.idle:
            raise EngineStateError("Strategies can only be registered before streaming starts.")
        self._strategies[name] = strategy

    def strategy_for(self, name: str) -> AggregationStrategy:
        return self._strategies.get(name, DEFAULT_STRATEGY)

    def consume(self, lines: Iterable[str]) -> IngestStats:
        """Parse, validate and route every line of ``lines``."""
        self._begin_streaming()
        line_number = self.stats.lines_read
        for line in lines:
            line_number += 1
            self.stats.lines_read = line_number
            if not line.strip():
                self.stats.blank_lines += 1
                continue

            try:
                observation = self.parser.parse(line)
            except ParseError as exc:
                self.stats.record_parse_error(exc.kind)
                logger.debug(
                    "Skipping line",
                    extra={"line_number": line_number, "reason": exc.kind.value},
                )
                continue

            if not is_business_day(observation.date):
                self.stats.weekend_rejected += 1
                logger.debug(
                    "Skipping non-business day",
                    extra={"line_number": line_number, "reason": "weekend"},
                )
                continue

            self.route(observation)

        logger.info(
            "Consumed input",
            extra={
                "lines_read": self.stats.lines_read,
                "accepted": self.stats.accepted,
                "rejected": self.stats.rejected,
                "instrument_count": len(self.registry),
            },
        )
        return self.stats

    def route(self, observation: Observation) -> bool:
        """Store an accepted observation in its instrument's bucket."""
        self._begin_streaming()
        was_known = observation.name in self.registry
        retention = self.strategy_for(observation.name).retention
        bucket = self.registry.bucket_for(
            observation.name, lambda: self.policy.new_bucket(retention)
        )
        if not was_known and len(self.registry) == self.registry.capacity_hint + 1:
            logger.warning(
                "Instrument count exceeded capacity hint",
                extra={"instrument_count": len(self.registry)},
            )
        self.stats.accepted += 1
        return bucket.store(observation)

    def finalize(self) -> EngineReport:
        """Evaluate every strategy and return the per-instrument results."""
        if self.state is EngineState.finalized:
            raise EngineStateError("Engine has already been finalized.")
        self.state = EngineState.finalized

        report = EngineReport(stats=self.stats)
        names = list(self._strategies)
        names.extend(name for name in self.registry if name not in self._strategies)
        for name in names:
            report.results[name] = self._evaluate(name)
        logger.info(
            "Finalized aggregation",
            extra={"instrument_count": len(report.results)},
        )
        return report

    def _evaluate(self, name: str) -> InstrumentResult:
        strategy = self.strategy_for(name)
        bucket: RetentionBucket | None = self.registry.get(name)
        count = len(bucket) if bucket is not None else 0
        try:
            value = strategy.calculate(bucket)
        except NoDataError as exc:
            logger.info(
                "No data for instrument",
                extra={"instrument": name, "strategy": strategy.kind.value, "reason": str(exc)},
            )
            return InstrumentResult(name=name, strategy=strategy.kind, observation_count=count)
        return InstrumentResult(
            name=name, strategy=strategy.kind, value=value, observation_count=count
        )

    def _begin_streaming(self) -> None:
        if self.state is EngineState.finalized:
            raise EngineStateError("Engine has been finalized; create a new engine to stream again.")
        self.state = EngineState.streaming


def run_engine(lines: Iterable[str], config: EngineConfig | None = None) -> EngineReport:
    """Aggregate ``lines`` with a fresh engine."""
    engine = Engine(config)
    engine.consume(lines)
    return engine.finalize()
