from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any, Dict, Iterable, Sequence

from settings import get_settings

_DEFAULT_EXTRA_KEYS = (
    "source",
    "instrument",
    "strategy",
    "line_number",
    "reason",
    "lines_read",
    "accepted",
    "rejected",
    "instrument_count",
    "processing_ms",
)

# Per-line skip messages come from this logger; it can be tuned apart from the root.
ENGINE_LOGGER = "services.engine"

_configured = False


class ContextualFormatter(logging.Formatter):
    """Appends known ``extra`` fields as ``key=value`` pairs after the message."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._extra_keys: Sequence[str] = tuple(extra_keys or _DEFAULT_EXTRA_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context_parts: list[str] = []
        for key in self._extra_keys:
            value = getattr(record, key, None)
            if value is None:
                continue
            context_parts.append(f"{key}={value}")
        if context_parts:
            return f"{message} | {' '.join(context_parts)}"
        return message


def build_logging_config(
    level: str | int,
    engine_level: str | int | None = None,
) -> Dict[str, Any]:
    """Return the ``dictConfig`` mapping for the given root and engine levels.

    ``engine_level`` lets per-line skip diagnostics (DEBUG) be switched on for
    the engine alone without flooding the output with every other module.
    """
    loggers: Dict[str, Any] = {}
    if engine_level is not None:
        loggers[ENGINE_LOGGER] = {"level": engine_level}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "contextual": {
                "()": "logging_config.ContextualFormatter",
                "fmt": "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S",
                "style": "%",
                "extra_keys": list(_DEFAULT_EXTRA_KEYS),
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
                "formatter": "contextual",
            }
        },
        "loggers": loggers,
        "root": {"handlers": ["default"], "level": level},
    }


def configure_logging(
    level: str | int | None = None,
    engine_level: str | int | None = None,
) -> None:
    """Configure application-wide logging with contextual formatting."""
    global _configured
    if _configured:
        return

    settings = get_settings()
    dictConfig(
        build_logging_config(
            level if level is not None else settings.log_level,
            engine_level if engine_level is not None else settings.engine_log_level,
        )
    )

    _configured = True
