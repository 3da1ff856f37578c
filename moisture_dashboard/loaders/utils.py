"""
Shared utilities for data ingestion: cell coercion, date parsing,
header detection.

Cell coercion never raises. Every helper returns None for a value it
cannot interpret so that a single bad cell only costs its own reading.
"""

import logging
import math
import re
from datetime import date
from typing import Any, Callable

import pandas as pd

from ..config import EXCEL_EPOCH

logger = logging.getLogger(__name__)

_UNIX_EPOCH = pd.Timestamp("1970-01-01")
_ONE_MS = pd.Timedelta(milliseconds=1)

# Spreadsheet engine serialization, zero-based month: Date(2024,0,15,10,30,0)
_DATE_LITERAL_RE = re.compile(
    r"^\s*Date\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)"
    r"(?:\s*,\s*(\d+))?(?:\s*,\s*(\d+))?(?:\s*,\s*(\d+))?(?:\s*,\s*(\d+))?\s*\)\s*$"
)

# Field export format: 15.01.2024 10:30[:15]
_DOTTED_RE = re.compile(
    r"^\s*(\d{1,2})\.(\d{1,2})\.(\d{4})"
    r"(?:\s+(\d{1,2}):(\d{1,2})(?::(\d{1,2}))?)?\s*$"
)

# Any day.month. prefix, including variants the strict pattern rejects
_DAY_FIRST_RE = re.compile(r"^\d{1,2}\.\d{1,2}\.")

# Relative keywords pandas would resolve against the wall clock
_RELATIVE_KEYWORDS = {"now", "today"}


def to_epoch_ms(ts: pd.Timestamp | None) -> int | None:
    """Convert a Timestamp to epoch milliseconds.

    Naive timestamps are read as UTC wall-clock time; aware ones are
    converted to UTC first.
    """
    if ts is None or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return int((ts - _UNIX_EPOCH) // _ONE_MS)


def _is_native_date(val: Any) -> bool:
    return isinstance(val, date)


def _from_native(val: date) -> int | None:
    try:
        return to_epoch_ms(pd.Timestamp(val))
    except (ValueError, TypeError, OverflowError):
        return None


def _is_date_literal(val: Any) -> bool:
    return isinstance(val, str) and "Date(" in val


def _from_date_literal(val: str) -> int | None:
    match = _DATE_LITERAL_RE.match(val)
    if match is None:
        return None
    year, month, day, hour, minute, second, millis = (
        int(g) if g is not None else 0 for g in match.groups()
    )
    try:
        ts = pd.Timestamp(
            year=year,
            month=month + 1,
            day=day,
            hour=hour,
            minute=minute,
            second=second,
            microsecond=millis * 1000,
        )
    except (ValueError, OverflowError):
        return None
    return to_epoch_ms(ts)


def _is_dotted(val: Any) -> bool:
    return isinstance(val, str) and "." in val


def _from_dotted(val: str) -> int | None:
    match = _DOTTED_RE.match(val)
    if match is None:
        return None
    day, month, year, hour, minute, second = (
        int(g) if g is not None else 0 for g in match.groups()
    )
    try:
        ts = pd.Timestamp(
            year=year, month=month, day=day, hour=hour, minute=minute, second=second
        )
    except (ValueError, OverflowError):
        return None
    return to_epoch_ms(ts)


def _is_serial(val: Any) -> bool:
    return isinstance(val, (int, float)) and not isinstance(val, bool)


def _from_serial(val: float) -> int | None:
    """Spreadsheet serial day number; the fraction is the time of day."""
    if not math.isfinite(val):
        return None
    try:
        return to_epoch_ms(pd.Timestamp(EXCEL_EPOCH) + pd.Timedelta(days=float(val)))
    except (ValueError, OverflowError):
        return None


def _is_text(val: Any) -> bool:
    return isinstance(val, str)


def _from_text(val: str) -> int | None:
    text = val.strip()
    if not text or text.lower() in _RELATIVE_KEYWORDS:
        return None
    try:
        if _DAY_FIRST_RE.match(text):
            return to_epoch_ms(pd.to_datetime(text, dayfirst=True))
        return to_epoch_ms(pd.Timestamp(text))
    except (ValueError, TypeError, OverflowError):
        return None


# Tried in order; the first extractor returning a value wins.
DATE_PARSERS: list[tuple[str, Callable[[Any], bool], Callable[[Any], int | None]]] = [
    ("native", _is_native_date, _from_native),
    ("date_literal", _is_date_literal, _from_date_literal),
    ("dotted", _is_dotted, _from_dotted),
    ("serial", _is_serial, _from_serial),
    ("fallback", _is_text, _from_text),
]


def try_parse_date(val: Any) -> int | None:
    """Parse a date cell to epoch milliseconds, or None if no parser accepts it."""
    if val is None:
        return None
    for _, matches, extract in DATE_PARSERS:
        if not matches(val):
            continue
        parsed = extract(val)
        if parsed is not None:
            return parsed
    return None


def try_parse_number(val: Any) -> float | None:
    """Coerce a cell to float, returning None for non-numeric values.

    Accepts decimal commas ("12,5") and percentage strings ("78%").
    """
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, str):
        val = val.strip()
        # Skip formula strings and blanks
        if val.startswith("=") or not val:
            return None
        if val.endswith("%"):
            val = val[:-1].strip()
        if "," in val and "." not in val:
            val = val.replace(",", ".")
        try:
            number = float(val)
        except ValueError:
            return None
    else:
        try:
            number = float(val)
        except (ValueError, TypeError):
            return None
    if not math.isfinite(number):
        return None
    return number


def format_short_label(ts_ms: int) -> str:
    """Render epoch milliseconds as 'dd.mm HH:MM' for axis ticks."""
    return pd.Timestamp(ts_ms, unit="ms").strftime("%d.%m %H:%M")


def find_header_row(
    sheet,
    signature: set[str],
    max_rows: int = 20,
    min_matches: int = 2,
) -> int | None:
    """Scan an openpyxl sheet for the row containing signature strings.

    Returns the 1-based row index where at least `min_matches` cells match
    values in `signature`, or None if not found within `max_rows`.
    """
    needed = min(min_matches, len(signature))
    for row_idx in range(1, max_rows + 1):
        matches = 0
        for cell in sheet[row_idx]:
            if cell.value is not None and str(cell.value).strip() in signature:
                matches += 1
        if needed and matches >= needed:
            return row_idx
    return None
