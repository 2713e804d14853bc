"""Runs record streams through the aggregation engine and times the result."""

from __future__ import annotations

import codecs
import logging
import time
from dataclasses import dataclass
from functools import lru_cache
from itertools import islice
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator, Optional

from services.engine import EngineConfig, EngineReport, run_engine
from settings import get_settings

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


@dataclass
class ProcessedReport:
    """Engine output plus how long the run took."""

    source: str
    report: EngineReport
    processing_ms: int


def iter_text_lines(stream: BinaryIO, encoding: str = "utf-8") -> Iterator[str]:
    """Decode a binary stream incrementally and yield one line at a time.

    Universal newlines end a line, including a bare carriage return, and the
    terminator is not part of the yielded text. Raises ``UnicodeDecodeError``
    when the bytes are not valid ``encoding``.
    """
    decoder = codecs.getincrementaldecoder(encoding)()
    pending = ""
    while True:
        chunk = stream.read(_CHUNK_SIZE)
        if not chunk:
            break
        pending += decoder.decode(chunk)
        parts = pending.splitlines(keepends=True)
        # the last part may be unterminated or a "\r" whose "\n" is in the next chunk
        pending = parts.pop() if parts else ""
        for part in parts:
            yield _strip_terminator(part)
    pending += decoder.decode(b"", final=True)
    for part in pending.splitlines(keepends=True):
        yield _strip_terminator(part)


def _strip_terminator(part: str) -> str:
    return part.splitlines()[0]


class ReportService:
    """Entry point shared by the HTTP API and the CLI."""

    def __init__(self, config: EngineConfig) -> None:
        self.config = config

    def process_lines(
        self,
        lines: Iterable[str],
        source: str = "<stream>",
        max_lines: Optional[int] = None,
    ) -> ProcessedReport:
        start_time = time.perf_counter()
        if max_lines is not None:
            lines = islice(lines, max_lines)
        report = run_engine(lines, self.config)
        processing_ms = int((time.perf_counter() - start_time) * 1000)
        logger.info(
            "Processed record stream",
            extra={
                "source": source,
                "accepted": report.stats.accepted,
                "rejected": report.stats.rejected,
                "processing_ms": processing_ms,
            },
        )
        return ProcessedReport(source=source, report=report, processing_ms=processing_ms)

    def process_stream(self, stream: BinaryIO, source: str = "<stream>") -> ProcessedReport:
        return self.process_lines(iter_text_lines(stream), source=source)

    def process_path(self, path: Path, max_lines: Optional[int] = None) -> ProcessedReport:
        with path.open("r", encoding="utf-8") as handle:
            return self.process_lines(handle, source=str(path), max_lines=max_lines)


@lru_cache
def build_default_service() -> ReportService:
    """Factory that wires the service from environment settings."""
    return ReportService(EngineConfig.from_settings(get_settings()))
