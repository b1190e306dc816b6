"""Domain 2: Bills and per-student bill payments"""

from decimal import Decimal

from sqlalchemy import (
    Boolean, Column, Date, DateTime, Enum, ForeignKey, Numeric, String, Table, Text,
    UniqueConstraint, Uuid,
)

from app.models.base import BaseModel, CreatorMixin
from app.models.enums import BillFrequency, BillStatus


class Bill(BaseModel, CreatorMixin):
    """
    A one-time or recurring charge a teacher assigns to one or more classes.
    Never hard-deleted; cancellation moves it to CANCELLED.
    """
    __tablename__ = "bills"

    title = Column(String(255), nullable=False)
    emoji = Column(String(16), nullable=True, default="💰")
    amount = Column(Numeric(10, 2), nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    frequency = Column(Enum(BillFrequency, name="bill_frequency"), default=BillFrequency.ONCE, nullable=False)
    status = Column(Enum(BillStatus, name="bill_status"), default=BillStatus.ACTIVE, nullable=False, index=True)
    description = Column(Text, nullable=True)

    # Cancellation
    cancellation_reason = Column(Text, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    @property
    def is_cancelled(self) -> bool:
        return self.status == BillStatus.CANCELLED

    def __repr__(self) -> str:
        return f"<Bill {self.title} {self.amount} - {self.status}>"


class StudentBill(BaseModel):
    """
    Per-(bill, student) payment record.
    amount is a snapshot of bill.amount, brought up to date on each payment.
    Payments set is_paid once paid_amount reaches the bill amount; a teacher
    can also set or clear is_paid directly, regardless of paid_amount.
    """
    __tablename__ = "student_bills"
    __table_args__ = (
        UniqueConstraint("bill_id", "student_id", name="uq_student_bills_bill_student"),
    )

    bill_id = Column(Uuid(as_uuid=True), ForeignKey("bills.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    paid_amount = Column(Numeric(10, 2), default=Decimal("0.00"), nullable=False)
    is_paid = Column(Boolean, default=False, nullable=False)
    paid_at = Column(DateTime, nullable=True)
    due_date = Column(Date, nullable=False)

    @property
    def remaining(self) -> Decimal:
        return Decimal(self.amount) - Decimal(self.paid_amount or 0)

    def __repr__(self) -> str:
        return f"<StudentBill {self.bill_id}/{self.student_id} {self.paid_amount}/{self.amount}>"


# Association table for Bill <-> Class
bill_classes = Table(
    "bill_classes",
    BaseModel.metadata,
    Column("bill_id", Uuid(as_uuid=True), ForeignKey("bills.id", ondelete="CASCADE"), primary_key=True),
    Column("class_id", Uuid(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True),
)

# Students a teacher has explicitly exempted from a bill
bill_excluded_students = Table(
    "bill_excluded_students",
    BaseModel.metadata,
    Column("bill_id", Uuid(as_uuid=True), ForeignKey("bills.id", ondelete="CASCADE"), primary_key=True),
    Column("student_id", Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)
