"""Calendar helpers. Dates are local calendar days with no timezone conversion."""

from datetime import date, datetime, timedelta
from typing import Iterator

from .errors import ValidationError


DAY_ORDER = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def resolve_date(value: date | str | None, default: date | None = None) -> date:
    """Resolve a date or a YYYY-MM-DD string to a calendar date.

    Args:
        value: Date, ISO date string, or None
        default: Returned when value is None or empty (defaults to date.today())

    Returns:
        The resolved date

    Raises:
        ValidationError: If the string is not a valid calendar date
    """
    if value is None or value == "":
        return default if default is not None else date.today()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"Invalid date: {value!r}")
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise ValidationError(f"Invalid date '{value}'. Use YYYY-MM-DD.") from e


def week_start_for(d: date) -> date:
    """Monday of the ISO week containing d."""
    return d - timedelta(days=d.weekday())


def day_name(d: date) -> str:
    """Lowercase weekday name, e.g. 'monday'."""
    return DAY_ORDER[d.weekday()]


def date_range(start: date, end: date) -> Iterator[date]:
    """Yield every date from start to end, inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
