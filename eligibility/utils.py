"""Utility functions shared across the eligibility engine.

Provides strict date-only parsing and calendar arithmetic, plus the small
value coercions used at the compile and normalize boundaries. All dates are
calendar dates (no time of day, no timezone) so day differences are exact.
"""

from __future__ import annotations

import calendar
import math
import re
from datetime import date, timedelta
from typing import Any, Optional, Tuple, Union

Number = Union[int, float]

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


def string_or_empty(value: Any) -> str:
    """Safely convert value to a stripped string, returning "" for None.

    Parameters
    ----------
    value : Any
        Value to convert (may be None, empty string, or any type)

    Returns
    -------
    str
        Stringified value or empty string for None values
    """
    if value is None:
        return ""
    return str(value).strip()


def parse_iso_date(value: Any) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` string into a calendar date.

    The string must round-trip exactly through calendar-day construction:
    "2025-02-30" or "2025-2-3" are rejected rather than rolled over or padded.
    Surrounding whitespace is ignored.

    Parameters
    ----------
    value : Any
        Candidate date string.

    Returns
    -------
    date | None
        Parsed date, or None when the value is not a valid date-only string.

    Examples
    --------
    >>> parse_iso_date("2024-02-29")
    datetime.date(2024, 2, 29)
    >>> parse_iso_date("2025-02-29") is None
    True
    """
    if not isinstance(value, str):
        return None
    match = _ISO_DATE_RE.match(value.strip())
    if not match:
        return None
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def format_iso_date(value: Optional[date]) -> Optional[str]:
    """Format a date as ``YYYY-MM-DD``; None passes through."""
    if value is None:
        return None
    return value.isoformat()


def days_between(start: date, end: date) -> int:
    """Return the whole-day difference ``end - start`` (may be negative)."""
    return (end - start).days


def add_days(value: date, days: int) -> date:
    """Return the date ``days`` calendar days after ``value``."""
    return value + timedelta(days=days)


def add_months_clamped(value: date, months: int) -> date:
    """Add calendar months, clamping the day to the target month's last day.

    Parameters
    ----------
    value : date
        Starting date.
    months : int
        Number of months to add (may be negative).

    Returns
    -------
    date
        Shifted date. Jan 31 + 1 month is Feb 28 (or Feb 29 in leap years).
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(value.day, last_day))


def age_in_years(date_of_birth: date, as_of: date) -> int:
    """Compute whole years of age, adjusting when the birthday is not yet reached."""
    years = as_of.year - date_of_birth.year
    if (as_of.month, as_of.day) < (date_of_birth.month, date_of_birth.day):
        years -= 1
    return years


def age_in_months(date_of_birth: date, as_of: date) -> int:
    """Compute whole months of age, adjusting when the day of month is not yet reached."""
    months = (as_of.year - date_of_birth.year) * 12 + (as_of.month - date_of_birth.month)
    if as_of.day < date_of_birth.day:
        months -= 1
    return months


def age_in_weeks(date_of_birth: date, as_of: date) -> int:
    """Compute whole weeks of age (floor of day difference / 7)."""
    return days_between(date_of_birth, as_of) // 7


def finite_number(value: Any) -> Optional[Number]:
    """Return value if it is a finite int or float, else None.

    Booleans are rejected even though ``bool`` subclasses ``int``; a YAML
    ``true`` in a numeric field is a configuration mistake, not the number 1.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return value
    return None


def optional_int(value: Any) -> Optional[int]:
    """Return a finite number truncated to int, or None."""
    number = finite_number(value)
    if number is None:
        return None
    return int(number)


def string_tuple(value: Any) -> Optional[Tuple[str, ...]]:
    """Coerce a list/tuple into a tuple of strings; anything else becomes None."""
    if not isinstance(value, (list, tuple)):
        return None
    return tuple(str(item) for item in value)
