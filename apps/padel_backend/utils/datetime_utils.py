"""
Datetime utility functions.
Provides a timezone-aware clock and strict parsers for calendar dates and times.
"""

from datetime import date, datetime, timedelta
from typing import Optional, Union
import pytz

from padel_backend.utils.exceptions import ValidationError


def utcnow() -> datetime:
    """
    Get current UTC datetime using pytz.UTC.

    Returns:
        Current UTC datetime with pytz timezone information
    """
    return datetime.now(pytz.UTC)


def parse_iso_date(value: Union[str, date, None], field: str = "date") -> date:
    """
    Parse a calendar date in ISO ``YYYY-MM-DD`` form.

    Args:
        value: Date string or date object
        field: Field name used in the error message

    Returns:
        The parsed date

    Raises:
        ValidationError: If the value is missing or not a valid date

    Examples:
        >>> parse_iso_date("2024-01-08")
        datetime.date(2024, 1, 8)
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required and must be a YYYY-MM-DD string")

    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Invalid {field} '{value}': expected YYYY-MM-DD")


def parse_match_time(value: Optional[str], field: str = "match_time") -> str:
    """
    Parse a kick-off time and normalize it to ``HH:MM:SS``.

    Accepts ``HH:MM`` and ``HH:MM:SS``.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required and must be an HH:MM or HH:MM:SS string")

    text = value.strip()
    for fmt in ("%H:%M:%S", "%H:%M"):
        try:
            return datetime.strptime(text, fmt).strftime("%H:%M:%S")
        except ValueError:
            continue
    raise ValidationError(f"Invalid {field} '{value}': expected HH:MM or HH:MM:SS")


def week_start(start: date, week_number: int, days_between_weeks: int = 7) -> date:
    """Date of a 1-based week counted from ``start``."""
    return start + timedelta(days=(week_number - 1) * days_between_weeks)


def isoformat_or_none(value) -> Optional[str]:
    """Serialize a date/datetime, passing ``None`` through."""
    return value.isoformat() if value is not None else None
