"""Parsing and validation of raw ``NAME,DATE,VALUE`` record lines."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date
from enum import Enum

from models.records import Observation

_DATE_PATTERN = re.compile(r"^(\d{1,2})-([A-Za-z]{3})-(\d{4})$")
_MONTHS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}
_FIELD_COUNT = 3

DEFAULT_AS_OF = date(2014, 12, 19)


class ParseErrorKind(str, Enum):
    """Reasons a record line is rejected by the parser."""

    malformed_line = "malformed line"
    invalid_date = "invalid date"
    invalid_value = "invalid value"
    future_date = "future date"


class ParseError(ValueError):
    """Raised when a record line cannot be turned into an observation."""

    def __init__(self, kind: ParseErrorKind, line: str) -> None:
        super().__init__(f"{kind.value}: {line!r}")
        self.kind = kind
        self.line = line


def parse_date(text: str) -> date:
    """Parse a ``dd-MMM-yyyy`` date such as ``12-Mar-2015``.

    Month abbreviations are English and matched case-insensitively, regardless
    of the process locale.
    """
    match = _DATE_PATTERN.match(text.strip())
    if match is None:
        raise ValueError(f"Date {text!r} does not match dd-MMM-yyyy.")
    day, month_name, year = match.groups()
    month = _MONTHS.get(month_name.lower())
    if month is None:
        raise ValueError(f"Unknown month abbreviation {month_name!r}.")
    return date(int(year), month, int(day))


@dataclass(frozen=True)
class RecordParser:
    """Turns raw lines into observations dated no later than ``as_of``."""

    as_of: date = DEFAULT_AS_OF

    def parse(self, line: str) -> Observation:
        fields = line.strip().split(",")
        if len(fields) != _FIELD_COUNT:
            raise ParseError(ParseErrorKind.malformed_line, line)

        name_raw, date_raw, value_raw = (field.strip() for field in fields)
        if not name_raw:
            raise ParseError(ParseErrorKind.malformed_line, line)

        try:
            observed_on = parse_date(date_raw)
        except ValueError as exc:
            raise ParseError(ParseErrorKind.invalid_date, line) from exc

        if "_" in value_raw:
            raise ParseError(ParseErrorKind.invalid_value, line)
        try:
            value = float(value_raw)
        except ValueError as exc:
            raise ParseError(ParseErrorKind.invalid_value, line) from exc
        if not math.isfinite(value):
            raise ParseError(ParseErrorKind.invalid_value, line)

        if observed_on > self.as_of:
            raise ParseError(ParseErrorKind.future_date, line)

        return Observation(name=name_raw, date=observed_on, value=value)
