"""Time Utilities for UTC management"""

import calendar
from datetime import date, datetime, timezone


def get_utc_now() -> datetime:
    """
    Returns a naive UTC datetime.
    Matches the DB schema (TIMESTAMP WITHOUT TIME ZONE).
    Avoids 'datetime.utcnow()' deprecation warnings.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_utc_today() -> date:
    """Current UTC calendar date; bill due dates are compared date-only."""
    return get_utc_now().date()


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """Return [start, end) naive datetimes covering one calendar month."""
    start = datetime(year, month, 1)
    if month == 12:
        end = datetime(year + 1, 1, 1)
    else:
        end = datetime(year, month + 1, 1)
    return start, end


def month_name(month: int) -> str:
    """English month name, e.g. 3 -> 'March'."""
    return calendar.month_name[month]
