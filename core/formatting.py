"""
formatting.py
--------------
Presentation helpers. The engine keeps full-precision floats and ISO date
strings; rounding and human-readable dates happen only here.
"""

from datetime import datetime
from typing import Dict

from core.dates import coerce_date
from core.models import DateRange
from config.config_loader import get_display_config


def format_currency(value: float) -> str:
    """1234.5 -> "$1,234.50" """
    display = get_display_config()
    decimals = display["currency_decimals"]
    amount = float(value or 0)
    sign = "-" if amount < 0 else ""
    return f"{sign}{display['currency_symbol']}{abs(amount):,.{decimals}f}"


def format_date(value) -> str:
    """"2024-02-10" -> "Feb 10". Empty string when unparsable."""
    day = coerce_date(value)
    return f"{day:%b} {day.day}" if day else ""


def format_full_date(value) -> str:
    """"2024-02-10" -> "February 10, 2024"."""
    day = coerce_date(value)
    return f"{day:%B} {day.day}, {day.year}" if day else ""


def format_list_date(value) -> str:
    """"2024-02-10" -> "Feb 10, 2024". Used in customer lists."""
    day = coerce_date(value)
    return f"{day:%b} {day.day}, {day.year}" if day else ""


def format_timestamp(value: datetime) -> str:
    """Last-updated stamp: "Feb 10, 2024 3:05 PM"."""
    hour = value.hour % 12 or 12
    return f"{format_list_date(value)} {hour}:{value:%M %p}"


def display_date_range(date_range: DateRange) -> Dict[str, str]:
    """{"start", "end"} labels for a header. "N/A" for an incomplete range."""
    if date_range.start_date and date_range.end_date:
        return {
            "start": format_list_date(date_range.start_date),
            "end": format_list_date(date_range.end_date),
        }
    missing = get_display_config()["missing_date_label"]
    return {"start": missing, "end": missing}
