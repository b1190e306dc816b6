"""Unit tests for recurring due-date generation (pure logic, no DB)."""

from datetime import date, timedelta

import pytest

from app.core.exceptions import InvalidFrequency
from app.models.enums import BillFrequency
from app.utils.recurrence import (
    add_months,
    add_years,
    frequency_display_text,
    generate_recurring_dates,
    next_due_date,
    parse_frequency,
)

RECURRING = [f for f in BillFrequency if f != BillFrequency.ONCE]


def test_once_returns_only_due_date():
    assert generate_recurring_dates(date(2025, 3, 15), BillFrequency.ONCE) == [date(2025, 3, 15)]


@pytest.mark.parametrize("frequency", RECURRING)
@pytest.mark.parametrize("n", [0, 1, 5, 12])
def test_recurring_returns_n_plus_one_increasing_dates(frequency, n):
    anchor = date(2024, 1, 31)
    dates = generate_recurring_dates(anchor, frequency, n)
    assert len(dates) == n + 1
    assert dates[0] == anchor
    assert all(a < b for a, b in zip(dates, dates[1:]))


def test_default_occurrences_is_twelve():
    assert len(generate_recurring_dates(date(2025, 1, 1), BillFrequency.WEEKLY)) == 13


def test_weekly_and_biweekly_spacing():
    anchor = date(2025, 1, 1)
    weekly = generate_recurring_dates(anchor, BillFrequency.WEEKLY, 3)
    biweekly = generate_recurring_dates(anchor, BillFrequency.BIWEEKLY, 3)
    assert weekly == [anchor + timedelta(days=7 * i) for i in range(4)]
    assert biweekly == [anchor + timedelta(days=14 * i) for i in range(4)]


def test_monthly_clamps_31st_to_month_end():
    dates = generate_recurring_dates(date(2025, 1, 31), BillFrequency.MONTHLY, 4)
    assert dates == [
        date(2025, 1, 31),
        date(2025, 2, 28),
        date(2025, 3, 31),
        date(2025, 4, 30),
        date(2025, 5, 31),
    ]


def test_monthly_clamp_does_not_drift_after_february():
    dates = generate_recurring_dates(date(2024, 1, 30), BillFrequency.MONTHLY, 2)
    assert dates == [date(2024, 1, 30), date(2024, 2, 29), date(2024, 3, 30)]


def test_quarterly_clamps_to_thirty_day_month():
    dates = generate_recurring_dates(date(2025, 1, 31), BillFrequency.QUARTERLY, 2)
    assert dates == [date(2025, 1, 31), date(2025, 4, 30), date(2025, 7, 31)]


def test_monthly_crosses_year_boundary():
    dates = generate_recurring_dates(date(2025, 11, 15), BillFrequency.MONTHLY, 2)
    assert dates[-1] == date(2026, 1, 15)


def test_yearly_leap_day_falls_back_to_feb_28():
    dates = generate_recurring_dates(date(2024, 2, 29), BillFrequency.YEARLY, 4)
    assert dates == [
        date(2024, 2, 29),
        date(2025, 2, 28),
        date(2026, 2, 28),
        date(2027, 2, 28),
        date(2028, 2, 29),
    ]


def test_accepts_string_frequency():
    assert generate_recurring_dates(date(2025, 1, 1), "weekly", 1) == [date(2025, 1, 1), date(2025, 1, 8)]


def test_unknown_frequency_raises():
    with pytest.raises(InvalidFrequency) as exc_info:
        generate_recurring_dates(date(2025, 1, 1), "FORTNIGHTLY")
    assert exc_info.value.status_code == 400
    assert exc_info.value.code == "INVALID_FREQUENCY"


def test_parse_frequency_passthrough():
    assert parse_frequency(BillFrequency.MONTHLY) is BillFrequency.MONTHLY


def test_add_months_and_years_helpers():
    assert add_months(date(2025, 8, 31), 1) == date(2025, 9, 30)
    assert add_months(date(2025, 1, 15), -1) == date(2024, 12, 15)
    assert add_years(date(2025, 6, 1), 2) == date(2027, 6, 1)


def test_next_due_date():
    anchor = date(2025, 1, 1)
    assert next_due_date(anchor, BillFrequency.WEEKLY, date(2025, 1, 9)) == date(2025, 1, 15)
    assert next_due_date(anchor, BillFrequency.WEEKLY, anchor) == anchor
    assert next_due_date(anchor, BillFrequency.ONCE, date(2025, 1, 2)) is None


@pytest.mark.parametrize(
    "frequency,text",
    [
        (BillFrequency.ONCE, ""),
        (BillFrequency.WEEKLY, "Every week"),
        (BillFrequency.BIWEEKLY, "Every 2 weeks"),
        (BillFrequency.MONTHLY, "Monthly"),
        (BillFrequency.QUARTERLY, "Every 3 months"),
        (BillFrequency.YEARLY, "Annually"),
    ],
)
def test_frequency_display_text(frequency, text):
    assert frequency_display_text(frequency) == text
