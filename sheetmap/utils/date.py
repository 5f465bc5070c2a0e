"""
Date parsing utilities for spreadsheet date handling.

This module turns the many shapes a date takes in an uploaded sheet (native
datetimes, spreadsheet serial numbers, free-form strings, DD.MM.YYYY) into
ISO 8601 strings for the import payload.
"""

import pandas as pd
from typing import Any, Dict, List, Optional
import math
import numbers
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
import logging

from sheetmap.core.config import settings

logger = logging.getLogger(__name__)

WARN_SAMPLES_PER_CONTEXT = 5
SUMMARY_EVERY = 100

# Serial day 25569 is 1970-01-01 in the 1900 date system (day 0 = 1899-12-30)
SPREADSHEET_UNIX_EPOCH_SERIAL = 25569
MS_PER_DAY = 86400 * 1000

_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_DOTTED_DATE_RE = re.compile(r'^(\d{2})\.(\d{2})\.(\d{4})')
_NUMERIC_DATE_RE = re.compile(r'^(\d{1,2})([./-])(\d{1,2})[./-]\d{2,4}')
# pandas resolves these against the current clock
_RELATIVE_DATE_WORDS = frozenset({"now", "today", "tomorrow", "yesterday"})


@dataclass
class _FailureLog:
    count: int = 0
    samples: List[Any] = field(default_factory=list)


_failures: Dict[str, _FailureLog] = {}


def _record_parse_failure(value: Any, context: Optional[str], error: Exception) -> None:
    """
    Warn about the first few unparsable values per context, then only log a
    summary with the collected samples every ``SUMMARY_EVERY`` failures.
    """
    label = f" ({context})" if context else ""
    entry = _failures.setdefault(context or "", _FailureLog())
    entry.count += 1

    if len(entry.samples) < WARN_SAMPLES_PER_CONTEXT:
        entry.samples.append(value)
        logger.warning("Unparsable date%s '%s': %s", label, value, error)
    elif entry.count == WARN_SAMPLES_PER_CONTEXT + 1 or entry.count % SUMMARY_EVERY == 0:
        logger.info(
            "%d unparsable date values%s so far, further warnings suppressed; samples=%s",
            entry.count,
            label,
            entry.samples,
        )


def to_iso_string(value: Any) -> Optional[str]:
    """
    Format a date-like value as ISO 8601 with millisecond precision in UTC,
    e.g. ``2024-03-05T00:00:00.000Z``. Naive values are taken as UTC.
    """
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        if pd.isna(value):
            return None
        value = value.to_pydatetime()
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        return None

    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)

    return (
        f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"
        f"T{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}.{dt.microsecond // 1000:03d}Z"
    )


def from_spreadsheet_serial(serial: float) -> Optional[datetime]:
    """
    Convert a spreadsheet date serial number into a UTC datetime.

    Uses ``timestamp_ms = (serial - 25569) * 86400 * 1000``, so serial 1 is
    1899-12-31 and 45292 is 2024-01-01. Fractional days carry the time of day.
    """
    timestamp_ms = round((serial - SPREADSHEET_UNIX_EPOCH_SERIAL) * MS_PER_DAY)
    try:
        return _UNIX_EPOCH + timedelta(milliseconds=timestamp_ms)
    except OverflowError:
        logger.debug("Spreadsheet serial %s is outside the supported date range", serial)
        return None


def parse_dotted_date(value: str) -> Optional[datetime]:
    """Strict DD.MM.YYYY parser; trailing text after the year is ignored."""
    match = _DOTTED_DATE_RE.match(value.strip())
    if not match:
        return None
    day, month, year = (int(part) for part in match.groups())
    try:
        return datetime(year, month, day, tzinfo=timezone.utc)
    except ValueError:
        return None


def _dayfirst_order(text: str) -> List[Optional[bool]]:
    """
    ``dayfirst`` values to try, in order, for a numeric date string.
    ``None`` means let pandas infer the format.
    """
    match = _NUMERIC_DATE_RE.match(text)
    if not match:
        return [None]

    first, separator, second = int(match.group(1)), match.group(2), int(match.group(3))
    if separator == ".":
        preferred = True  # dotted dates are always day-first
    elif first > 12:
        preferred = True
    elif second > 12:
        preferred = False
    else:
        preferred = settings.date_default_dayfirst
    return [preferred, not preferred, None]


def parse_flexible_datetime(
    value: Any,
    *,
    log_context: Optional[str] = None,
    log_failures: bool = True,
) -> Optional[pd.Timestamp]:
    """
    Parse a date string from various formats into a UTC timestamp.

    Supports formats:
    - ISO 8601: "2024-09-04T23:09:18Z"
    - DD.MM.YYYY: "05.03.2024" (always read day-first)
    - DD/MM/YYYY or MM/DD/YYYY: "20/10/2025", "10/20/2025"
    - Anything else pandas can infer

    Returns:
        Timezone-aware pandas Timestamp, or None if parsing fails
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        if value.lower() in _RELATIVE_DATE_WORDS:
            if log_failures:
                _record_parse_failure(value, log_context, ValueError("relative date words are not dates"))
            return None

    order = _dayfirst_order(value) if isinstance(value, str) else [None]

    error: Optional[Exception] = None
    for dayfirst in order:
        kwargs = {} if dayfirst is None else {"dayfirst": dayfirst}
        try:
            parsed = pd.to_datetime(value, utc=True, errors="raise", **kwargs)
        except (ValueError, TypeError, OverflowError) as exc:
            error = exc
            continue
        if parsed is not None and not pd.isna(parsed):
            return parsed
        error = ValueError("parser produced no timestamp")

    if log_failures:
        _record_parse_failure(value, log_context, error or ValueError("Unable to determine format"))
    return None


def parse_date_value(value: Any, *, log_context: Optional[str] = None) -> Optional[str]:
    """
    Coerce a raw spreadsheet cell into an ISO 8601 string.

    Cascade: native date objects, spreadsheet serial numbers (>= 1), generic
    string parsing, then strict DD.MM.YYYY. Anything else yields None.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (pd.Timestamp, datetime, date)):
        return to_iso_string(value)

    if isinstance(value, numbers.Real):
        if not math.isfinite(value) or value < 1:  # NaN or before the serial epoch
            return None
        return to_iso_string(from_spreadsheet_serial(value))

    text = str(value).strip()
    if not text:
        return None

    parsed = parse_flexible_datetime(text, log_context=log_context, log_failures=False)
    if parsed is not None:
        return to_iso_string(parsed)

    dotted = parse_dotted_date(text)
    if dotted is not None:
        return to_iso_string(dotted)

    _record_parse_failure(text, log_context, ValueError("No supported date format matched"))
    return None
