from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field
from uuid import UUID
from datetime import datetime, date
from decimal import Decimal

from app.models.enums import BillFrequency, BillStatus


class BillBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    emoji: Optional[str] = Field("💰", max_length=16)
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    due_date: date
    frequency: BillFrequency = BillFrequency.ONCE
    description: Optional[str] = None


class BillCreate(BillBase):
    class_ids: List[UUID] = Field(default_factory=list)


class BillUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    emoji: Optional[str] = Field(None, max_length=16)
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    due_date: Optional[date] = None
    frequency: Optional[BillFrequency] = None
    description: Optional[str] = None


class BillCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class BillClassesRequest(BaseModel):
    """Class ids to assign or unassign. An empty list on removal means all classes."""
    class_ids: List[UUID] = Field(default_factory=list)


class BillStudentsRequest(BaseModel):
    student_ids: List[UUID] = Field(..., min_length=1)


class PaymentStatusUpdate(BaseModel):
    student_id: UUID
    is_paid: bool


class StudentBillResponse(BaseModel):
    id: UUID
    bill_id: UUID
    student_id: UUID
    amount: Decimal
    paid_amount: Decimal
    is_paid: bool
    paid_at: Optional[datetime] = None
    due_date: date

    model_config = ConfigDict(from_attributes=True)


class BillResponse(BaseModel):
    id: UUID
    title: str
    emoji: Optional[str] = None
    amount: Decimal
    due_date: date
    frequency: BillFrequency
    status: BillStatus
    description: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    creator_id: UUID
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BillDetailResponse(BillResponse):
    frequency_text: str = ""
    status_color: str = "blue"
    class_ids: List[UUID] = Field(default_factory=list)
    excluded_student_ids: List[UUID] = Field(default_factory=list)
    student_bills: List[StudentBillResponse] = Field(default_factory=list)
    upcoming_dates: List[date] = Field(default_factory=list)
