"""
dates.py
---------
Calendar-date helpers shared by the reconciliation engine and the
customer classifier.

All dates cross module boundaries as zero-padded "YYYY-MM-DD" strings.
Range filters compare those strings lexicographically, which matches
chronological order only because the format is fixed-width.

Month arithmetic:
    - shift_date_forward_one_month clamps day-of-month to the target
      month's last day (Jan 31 -> Feb 28/29). This is lossy: shifting
      forward then back does not always return the original date.
    - shift_date_backward_one_month uses pandas DateOffset semantics,
      which also clamp to month end.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Any, Optional, Tuple

import pandas as pd

from core.models import DateRange
from config.config_loader import get_date_preset_days

DATE_FORMAT = "%Y-%m-%d"


# =============================================================================
# PARSING
# =============================================================================

def extract_date_only(timestamp: Any) -> str:
    """
    Strip the time-of-day from a timestamp.

    Accepts "YYYY-MM-DD HH:MM:SS.sss" (space separated) and ISO-8601
    ("YYYY-MM-DDTHH:MM:SS"). Only splits on the separator; no validation.
    Returns "" for missing input.
    """
    if timestamp is None:
        return ""
    if isinstance(timestamp, (datetime, date)):
        return timestamp.strftime(DATE_FORMAT)
    if not isinstance(timestamp, str):
        if pd.isna(timestamp):
            return ""
        timestamp = str(timestamp)
    if not timestamp:
        return ""
    if " " in timestamp:
        return timestamp.split(" ")[0]
    return timestamp.split("T")[0]


def coerce_date(value: Any) -> Optional[date]:
    """Best-effort conversion of str/date/datetime/Timestamp to a date. None if unusable."""
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = pd.to_datetime(value, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date()


def parse_date_str(date_str: str) -> Optional[date]:
    """Parses a strict YYYY-MM-DD string. None when invalid."""
    if not date_str:
        return None
    try:
        return datetime.strptime(date_str, DATE_FORMAT).date()
    except (TypeError, ValueError):
        return None


# =============================================================================
# MONTH ARITHMETIC
# =============================================================================

def last_day_of_month(year: int, month: int) -> int:
    """Number of days in the given month (1-12)."""
    return calendar.monthrange(year, month)[1]


def shift_into_month(date_str: str, year: int, month: int) -> str:
    """
    Moves a date's day-of-month into (year, month), clamping to that month's
    last day when the day does not exist there.
    """
    source = parse_date_str(date_str)
    if source is None:
        return ""
    day = min(source.day, last_day_of_month(year, month))
    return date(year, month, day).strftime(DATE_FORMAT)


def shift_date_forward_one_month(date_str: str) -> str:
    """
    Day D of month M -> day D of month M+1, clamped to the last day of M+1.

    Examples:
        2024-01-15 -> 2024-02-15
        2024-01-31 -> 2024-02-29 (leap year)
        2023-01-31 -> 2023-02-28
        2024-12-31 -> 2025-01-31
    """
    source = parse_date_str(date_str)
    if source is None:
        return ""
    target_year = source.year + 1 if source.month == 12 else source.year
    target_month = source.month % 12 + 1
    return shift_into_month(date_str, target_year, target_month)


def shift_date_backward_one_month(date_str: str) -> str:
    """Subtracts one calendar month (pandas DateOffset; clamps to month end)."""
    source = parse_date_str(date_str)
    if source is None:
        return ""
    shifted = pd.Timestamp(source) - pd.DateOffset(months=1)
    return shifted.strftime(DATE_FORMAT)


def extra_days_for_month(day: date) -> int:
    """
    How many days longer the previous month is than the month containing
    `day`. Zero when the previous month is not longer.
    """
    prev_year = day.year - 1 if day.month == 1 else day.year
    prev_month = 12 if day.month == 1 else day.month - 1
    return max(0, last_day_of_month(prev_year, prev_month) - last_day_of_month(day.year, day.month))


def prior_period_window(date_range: DateRange) -> Optional[Tuple[str, str]]:
    """
    Computes the one-month-earlier window that stands in for "last period".

    Both endpoints move back one month. The end is then extended by the
    day-count difference when the prior month is longer, so that e.g. an
    April 1-30 selection compares against all of March 1-31.

    Returns:
        (start, end) YYYY-MM-DD strings, inclusive, or None for an
        incomplete range.
    """
    if not date_range.is_complete:
        return None

    start = pd.Timestamp(date_range.start_date) - pd.DateOffset(months=1)
    end = (
        pd.Timestamp(date_range.end_date)
        - pd.DateOffset(months=1)
        + pd.Timedelta(days=extra_days_for_month(date_range.end_date))
    )
    return start.strftime(DATE_FORMAT), end.strftime(DATE_FORMAT)


# =============================================================================
# ORDERING & PRESETS
# =============================================================================

def compare_dates_descending(date_a: Optional[str], date_b: Optional[str]) -> int:
    """
    Comparator for newest-first ordering. Missing or invalid dates sort last.
    Use with functools.cmp_to_key.
    """
    if not date_a and not date_b:
        return 0
    if not date_a:
        return 1
    if not date_b:
        return -1

    parsed_a = parse_date_str(date_a)
    parsed_b = parse_date_str(date_b)

    if parsed_a is None and parsed_b is None:
        return 0
    if parsed_a is None:
        return 1
    if parsed_b is None:
        return -1

    return (parsed_b - parsed_a).days


def preset_date_range(preset: str, today: date | None = None) -> DateRange:
    """
    Builds a DateRange ending today for a configured preset
    ("today", "week", "month").

    Raises:
        KeyError: If the preset is not configured.
    """
    days_back = get_date_preset_days(preset)
    end = today or date.today()
    return DateRange(start_date=end - timedelta(days=days_back), end_date=end)


def normalize_date_range(date_range: DateRange | None) -> DateRange:
    """Coerces both endpoints to date objects; unusable endpoints become None."""
    if date_range is None:
        return DateRange()
    return DateRange(
        start_date=coerce_date(date_range.start_date),
        end_date=coerce_date(date_range.end_date),
    )
