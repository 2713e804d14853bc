"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from services.engine import EngineReport, IngestStats, InstrumentResult
from services.processor import ProcessedReport
from services.strategies import StrategyKind


class ResultStatus(str, Enum):
    """Whether a strategy produced a value for its instrument."""

    ok = "ok"
    no_data = "no_data"


class InstrumentResultModel(BaseModel):
    """Computed statistic for a single instrument."""

    name: str
    strategy: StrategyKind
    status: ResultStatus
    value: Optional[float] = None
    observation_count: int = Field(0, ge=0, description="Observations retained for the instrument.")

    @classmethod
    def from_result(cls, result: InstrumentResult) -> "InstrumentResultModel":
        return cls(
            name=result.name,
            strategy=result.strategy,
            status=ResultStatus.ok if result.has_data else ResultStatus.no_data,
            value=result.value,
            observation_count=result.observation_count,
        )


class IngestStatsModel(BaseModel):
    """Line counters gathered while streaming the input."""

    lines_read: int = Field(..., ge=0)
    blank_lines: int = Field(0, ge=0)
    accepted: int = Field(..., ge=0)
    rejected: int = Field(..., ge=0)
    parse_failures: int = Field(0, ge=0, description="Lines rejected by the parser for any reason.")
    malformed_line: int = Field(0, ge=0)
    invalid_date: int = Field(0, ge=0)
    invalid_value: int = Field(0, ge=0)
    future_date: int = Field(0, ge=0)
    weekend_rejected: int = Field(0, ge=0)

    @classmethod
    def from_stats(cls, stats: IngestStats) -> "IngestStatsModel":
        return cls(
            lines_read=stats.lines_read,
            blank_lines=stats.blank_lines,
            accepted=stats.accepted,
            rejected=stats.rejected,
            parse_failures=stats.parse_failures,
            malformed_line=stats.malformed_line,
            invalid_date=stats.invalid_date,
            invalid_value=stats.invalid_value,
            future_date=stats.future_date,
            weekend_rejected=stats.weekend_rejected,
        )


class ReportResponse(BaseModel):
    """Full aggregation report for one record stream."""

    source: str
    processing_ms: Optional[int] = Field(
        default=None, description="Duration in milliseconds from first line to final result."
    )
    results: List[InstrumentResultModel] = Field(default_factory=list)
    stats: IngestStatsModel

    @classmethod
    def from_report(cls, source: str, report: EngineReport, processing_ms: int | None = None) -> "ReportResponse":
        return cls(
            source=source,
            processing_ms=processing_ms,
            results=[InstrumentResultModel.from_result(result) for result in report.results.values()],
            stats=IngestStatsModel.from_stats(report.stats),
        )

    @classmethod
    def from_processed(cls, processed: ProcessedReport) -> "ReportResponse":
        return cls.from_report(processed.source, processed.report, processed.processing_ms)
