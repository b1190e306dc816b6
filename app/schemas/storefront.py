from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import PurchaseStatus
from app.schemas.banking import BankAccountResponse


class StoreItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    emoji: Optional[str] = Field(None, max_length=16)
    description: Optional[str] = None
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    quantity: int = Field(0, ge=0)
    is_available: bool = True
    class_ids: List[UUID] = Field(default_factory=list)


class StoreItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    emoji: Optional[str] = Field(None, max_length=16)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    quantity: Optional[int] = Field(None, ge=0)
    is_available: Optional[bool] = None


class StoreItemResponse(BaseModel):
    id: UUID
    name: str
    emoji: Optional[str] = None
    description: Optional[str] = None
    price: Decimal
    quantity: int
    is_available: bool
    creator_id: UUID
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PurchaseRequest(BaseModel):
    item_id: UUID
    account_id: UUID
    quantity: int = Field(1, ge=1)


class StudentPurchaseResponse(BaseModel):
    id: UUID
    item_id: UUID
    student_id: UUID
    quantity: int
    total_price: Decimal
    status: PurchaseStatus

    model_config = ConfigDict(from_attributes=True)


class PurchaseResult(BaseModel):
    purchase: StudentPurchaseResponse
    account: BankAccountResponse
