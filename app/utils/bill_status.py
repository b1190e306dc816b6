"""Bill status classification."""

from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional

from app.models.enums import BillStatus
from app.utils.time import get_utc_today

_STATUS_COLORS = {
    BillStatus.PAID: "green",
    BillStatus.PARTIAL: "yellow",
    BillStatus.LATE: "red",
    BillStatus.DUE: "orange",
    BillStatus.ACTIVE: "blue",
    BillStatus.CANCELLED: "gray",
}


def _has_payment(student_bill: Any) -> bool:
    return bool(student_bill.is_paid) or Decimal(student_bill.paid_amount or 0) > 0


def classify_bill_status(
    due_date: date,
    cancelled: bool,
    student_bills: Iterable[Any],
    today: Optional[date] = None,
) -> BillStatus:
    """
    Derive a bill's display status. First match wins:

    CANCELLED if cancelled. With no student records: LATE if the due date has
    passed, else ACTIVE. Otherwise PAID if every record is paid, LATE if the
    due date has passed, PARTIAL if any payment was made, DUE if due today,
    and ACTIVE for anything else.

    ``student_bills`` items need ``is_paid`` and ``paid_amount`` attributes.
    Pass ``today`` to make the result independent of the wall clock.
    """
    if cancelled:
        return BillStatus.CANCELLED

    today = today or get_utc_today()
    records = list(student_bills)

    if not records:
        return BillStatus.LATE if due_date < today else BillStatus.ACTIVE
    if all(sb.is_paid for sb in records):
        return BillStatus.PAID
    if due_date < today:
        return BillStatus.LATE
    if any(_has_payment(sb) for sb in records):
        return BillStatus.PARTIAL
    if due_date == today:
        return BillStatus.DUE
    return BillStatus.ACTIVE


def status_color(status: BillStatus) -> str:
    return _STATUS_COLORS.get(status, "blue")
