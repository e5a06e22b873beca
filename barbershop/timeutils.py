"""Date and time-of-day helpers for the wire formats (YYYY-MM-DD, HH:MM).

Times of day are handled as minutes since midnight so that interval
arithmetic stays in plain integers.
"""
from datetime import date, datetime
from typing import Optional

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"


def parse_date(value: str) -> date:
    """Parse YYYY-MM-DD. Raises ValueError on malformed input."""
    return datetime.strptime(value, DATE_FORMAT).date()


def try_parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return parse_date(value)
    except (TypeError, ValueError):
        return None


def parse_minutes(value: str) -> int:
    """Parse HH:MM into minutes since midnight. Raises ValueError."""
    parsed = datetime.strptime(value, TIME_FORMAT)
    return parsed.hour * 60 + parsed.minute


def try_parse_minutes(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        return parse_minutes(value)
    except (TypeError, ValueError):
        return None


def format_minutes(minutes: int) -> str:
    """Format minutes since midnight as HH:MM."""
    hour, minute = divmod(minutes, 60)
    return f"{hour:02d}:{minute:02d}"


def weekday_sunday_first(day: date) -> int:
    """Weekday number with 0=Sunday .. 6=Saturday."""
    return (day.weekday() + 1) % 7


def is_valid_time(value: str) -> bool:
    return try_parse_minutes(value) is not None


def is_valid_date(value: str) -> bool:
    return try_parse_date(value) is not None
