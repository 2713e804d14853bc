from __future__ import annotations

from datetime import date, timedelta
from typing import Iterator, List

import pytest

from models.records import Observation
from services.engine import (
    Engine,
    EngineConfig,
    EngineState,
    EngineStateError,
    run_engine,
)
from services.retention import BoundedWindowBucket, FullHistoryBucket
from services.strategies import BoundedWindowSum, MonthFilteredMean, StrategyKind


def _weekdays(start: date) -> Iterator[date]:
    day = start
    while True:
        if day.weekday() < 5:
            yield day
        day += timedelta(days=1)


_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def _line(name: str, day: date, value: float) -> str:
    return f"{name},{day.day:02d}-{_MONTHS[day.month - 1]}-{day.year},{value}"


def _z_lines(count: int) -> List[str]:
    days = _weekdays(date(2014, 12, 1))
    return [_line("Z", next(days), float(value)) for value in range(1, count + 1)]


def test_default_window_sum_uses_latest_ten() -> None:
    report = run_engine(_z_lines(12))

    result = report.results["Z"]
    assert result.strategy is StrategyKind.bounded_window_sum
    assert result.value == 75.0
    assert result.observation_count == 10


def test_default_window_sum_with_fewer_observations_than_window() -> None:
    report = run_engine(_z_lines(3))

    assert report.results["Z"].value == 6.0


def test_window_size_is_configurable() -> None:
    report = run_engine(_z_lines(12), EngineConfig(window_size=2))

    assert report.results["Z"].value == 23.0


def test_window_holds_latest_dates_for_shuffled_input() -> None:
    lines = _z_lines(12)
    shuffled = lines[6:] + lines[:6][::-1]

    assert run_engine(shuffled).results["Z"].value == 75.0


def test_month_filtered_mean_through_engine() -> None:
    lines = [
        "INSTRUMENT2,03-Nov-2014,10.0",
        "INSTRUMENT2,04-Nov-2014,20.0",
        "INSTRUMENT2,03-Oct-2014,5.0",
    ]

    report = run_engine(lines)

    assert report.results["INSTRUMENT2"].value == 15.0


def test_registered_names_without_data_report_no_data() -> None:
    report = run_engine(["INSTRUMENT2,03-Oct-2014,5.0"])

    for name in ("INSTRUMENT1", "INSTRUMENT2", "INSTRUMENT3"):
        assert name in report.results
        assert report.results[name].has_data is False
        assert report.results[name].value is None
    assert report.results["INSTRUMENT2"].observation_count == 1


def test_rejected_lines_are_counted_and_skipped() -> None:
    lines = [
        "X,32-Foo-2014,1.0",
        "X,12-Dec-2014,not-a-number",
        "X,12-Dec-2014",
        "X,13-Dec-2014,1.0",
        "X,19-Dec-2014,2.0",
        "X,20-Dec-2014,3.0",
        "",
        "X,18-Dec-2014,4.0",
    ]

    report = run_engine(lines)

    stats = report.stats
    assert stats.lines_read == 8
    assert stats.blank_lines == 1
    assert stats.invalid_date == 1
    assert stats.invalid_value == 1
    assert stats.malformed_line == 1
    assert stats.weekend_rejected == 1
    assert stats.future_date == 1
    assert stats.accepted == 2
    assert stats.parse_failures == 4
    assert stats.rejected == 5
    assert report.results["X"].value == 6.0


def test_invalid_date_line_never_reaches_a_bucket() -> None:
    engine = Engine()
    engine.consume(["X,32-Foo-2014,1.0"])

    assert "X" not in engine.registry
    assert engine.stats.invalid_date == 1
    assert engine.stats.malformed_line == 0
    assert engine.stats.parse_failures == 1


def test_retention_follows_bound_strategy() -> None:
    engine = Engine(EngineConfig(mean_instrument="M"))
    engine.consume(["M,01-Dec-2014,1.0", "Other,01-Dec-2014,1.0"])

    assert isinstance(engine.registry.get("M"), FullHistoryBucket)
    assert isinstance(engine.registry.get("Other"), BoundedWindowBucket)


def test_full_history_names_keep_every_observation() -> None:
    lines = [line.replace("Z,", "INSTRUMENT1,") for line in _z_lines(12)]

    report = run_engine(lines)

    assert report.results["INSTRUMENT1"].observation_count == 12
    assert report.results["INSTRUMENT1"].value == 6.5


def test_register_extra_strategy_before_streaming() -> None:
    engine = Engine()
    engine.register("NOV", MonthFilteredMean(year=2014, month=11))
    engine.consume(["NOV,03-Nov-2014,2.0", "NOV,01-Dec-2014,50.0"])

    assert engine.finalize().results["NOV"].value == 2.0


def test_state_transitions() -> None:
    engine = Engine()
    assert engine.state is EngineState.idle

    engine.consume(["A,01-Dec-2014,1.0"])
    assert engine.state is EngineState.streaming
    with pytest.raises(EngineStateError):
        engine.register("B", BoundedWindowSum())

    engine.finalize()
    assert engine.state is EngineState.finalized
    with pytest.raises(EngineStateError):
        engine.consume(["A,02-Dec-2014,1.0"])
    with pytest.raises(EngineStateError):
        engine.route(Observation(name="A", date=date(2014, 12, 2), value=1.0))
    with pytest.raises(EngineStateError):
        engine.finalize()


def test_consume_can_be_called_for_several_sources() -> None:
    engine = Engine()
    engine.consume(_z_lines(6))
    engine.consume(_z_lines(12)[6:])

    report = engine.finalize()
    assert report.stats.lines_read == 12
    assert report.results["Z"].value == 75.0


def test_fresh_engines_produce_identical_reports() -> None:
    lines = _z_lines(12) + [
        "INSTRUMENT1,01-Dec-2014,1.5",
        "INSTRUMENT3,01-Dec-2014,2.5",
        "INSTRUMENT3,02-Dec-2014,4.5",
    ]

    assert run_engine(lines) == run_engine(lines)


def test_capacity_hint_does_not_limit_instruments() -> None:
    lines = [f"N{i},01-Dec-2014,{i}.0" for i in range(5)]

    report = run_engine(lines, EngineConfig(capacity_hint=2))

    assert {f"N{i}" for i in range(5)} <= set(report.results)


@pytest.mark.parametrize(
    "overrides",
    [
        {"mean_instrument": "A", "variance_instrument": "A"},
        {"mean_instrument": "A", "monthly_mean_instrument": "A"},
        {"monthly_mean_instrument": "B", "variance_instrument": "B"},
    ],
)
def test_config_rejects_one_name_bound_to_two_strategies(overrides) -> None:
    with pytest.raises(ValueError, match="distinct"):
        EngineConfig(**overrides)
