"""Recurring due-date generation for bills.

Occurrences are always computed from the anchor date (occurrence ``i`` is
anchor + i periods), so a month-end clamp in February does not drag every
later occurrence to the 28th.
"""

import calendar
from datetime import date, timedelta
from typing import Optional, Union

from app.core.exceptions import InvalidFrequency
from app.models.enums import BillFrequency

DEFAULT_MAX_OCCURRENCES = 12

_FREQUENCY_TEXT = {
    BillFrequency.ONCE: "",
    BillFrequency.WEEKLY: "Every week",
    BillFrequency.BIWEEKLY: "Every 2 weeks",
    BillFrequency.MONTHLY: "Monthly",
    BillFrequency.QUARTERLY: "Every 3 months",
    BillFrequency.YEARLY: "Annually",
}


def parse_frequency(frequency: Union[BillFrequency, str]) -> BillFrequency:
    """Coerce a raw value to BillFrequency, raising InvalidFrequency when unknown."""
    if isinstance(frequency, BillFrequency):
        return frequency
    try:
        return BillFrequency(str(frequency).upper())
    except ValueError:
        raise InvalidFrequency(f"Unsupported bill frequency: {frequency!r}") from None


def add_months(anchor: date, months: int) -> date:
    """Shift ``anchor`` by whole months, clamping to the target month's last day."""
    month_index = anchor.month - 1 + months
    year = anchor.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(anchor.day, last_day))


def add_years(anchor: date, years: int) -> date:
    """Shift ``anchor`` by whole years; Feb 29 becomes Feb 28 in non-leap years."""
    year = anchor.year + years
    if anchor.month == 2 and anchor.day == 29 and not calendar.isleap(year):
        return date(year, 2, 28)
    return anchor.replace(year=year)


def _occurrence(anchor: date, frequency: BillFrequency, i: int) -> date:
    if frequency == BillFrequency.WEEKLY:
        return anchor + timedelta(days=7 * i)
    if frequency == BillFrequency.BIWEEKLY:
        return anchor + timedelta(days=14 * i)
    if frequency == BillFrequency.MONTHLY:
        return add_months(anchor, i)
    if frequency == BillFrequency.QUARTERLY:
        return add_months(anchor, 3 * i)
    if frequency == BillFrequency.YEARLY:
        return add_years(anchor, i)
    raise InvalidFrequency(f"Unsupported bill frequency: {frequency!r}")


def generate_recurring_dates(
    due_date: date,
    frequency: Union[BillFrequency, str],
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
) -> list[date]:
    """
    Return the bill's due dates: the anchor due date followed by up to
    ``max_occurrences`` future occurrences.

    ONCE yields only the due date. Every other frequency yields
    ``max_occurrences + 1`` strictly increasing dates.

    Raises:
        InvalidFrequency: if ``frequency`` is not a known BillFrequency
    """
    frequency = parse_frequency(frequency)
    dates = [due_date]
    if frequency == BillFrequency.ONCE:
        return dates

    for i in range(1, max_occurrences + 1):
        dates.append(_occurrence(due_date, frequency, i))
    return dates


def next_due_date(
    due_date: date,
    frequency: Union[BillFrequency, str],
    today: date,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
) -> Optional[date]:
    """First occurrence on or after ``today``, or None once the series is exhausted."""
    for occurrence in generate_recurring_dates(due_date, frequency, max_occurrences):
        if occurrence >= today:
            return occurrence
    return None


def frequency_display_text(frequency: Union[BillFrequency, str]) -> str:
    """User-facing cadence label, empty for one-time bills."""
    return _FREQUENCY_TEXT[parse_frequency(frequency)]
