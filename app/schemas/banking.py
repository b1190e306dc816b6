from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.models.enums import AccountType, TransactionType
from app.schemas.billing import StudentBillResponse


class PayBillRequest(BaseModel):
    bill_id: UUID
    account_id: UUID
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)


class TransferRequest(BaseModel):
    from_account_id: UUID
    to_account_id: UUID
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)

    @model_validator(mode="after")
    def accounts_differ(self) -> "TransferRequest":
        if self.from_account_id == self.to_account_id:
            raise ValueError("Cannot transfer to the same account")
        return self


class FundsRequest(BaseModel):
    """Teacher deposit or withdrawal applied to each listed student's account."""
    student_ids: List[UUID] = Field(..., min_length=1)
    account_type: AccountType
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    description: Optional[str] = Field(None, max_length=500)


class BankAccountResponse(BaseModel):
    id: UUID
    student_id: UUID
    account_number: str
    display_account_number: str
    account_type: AccountType
    balance: Decimal

    model_config = ConfigDict(from_attributes=True)


class TransactionResponse(BaseModel):
    id: UUID
    account_id: UUID
    receiving_account_id: Optional[UUID] = None
    amount: Decimal
    description: str
    transaction_type: TransactionType
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BankStatementResponse(BaseModel):
    id: UUID
    account_id: UUID
    year: int
    month: int
    url: str
    generated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FundsResult(BaseModel):
    student_id: UUID
    success: bool
    error: Optional[str] = None


class PaymentResult(BaseModel):
    account: BankAccountResponse
    student_bill: StudentBillResponse
    transaction: TransactionResponse


class TransferResult(BaseModel):
    from_account: BankAccountResponse
    to_account: BankAccountResponse
    transactions: List[TransactionResponse]


class StudentBankingResponse(BaseModel):
    """Teacher view of one student's accounts and newest ledger rows."""
    accounts: List[BankAccountResponse]
    transactions: List[TransactionResponse]
    total: int
