"""Domain 3: Bank accounts, ledger rows and monthly statements"""

from decimal import Decimal

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, Numeric, String, UniqueConstraint, Uuid

from app.models.base import BaseModel
from app.models.enums import AccountType, TransactionType
from app.utils.time import get_utc_now


class BankAccount(BaseModel):
    """
    A student's checking or savings account.
    The balance is kept non-negative by conditional updates in the service
    layer, not by a database constraint.
    """
    __tablename__ = "bank_accounts"
    __table_args__ = (
        UniqueConstraint("student_id", "account_type", name="uq_bank_accounts_student_type"),
    )

    student_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    account_number = Column(String(20), unique=True, nullable=False)
    account_type = Column(Enum(AccountType, name="account_type"), nullable=False)
    balance = Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)

    @property
    def display_account_number(self) -> str:
        prefix = "CH" if self.account_type == AccountType.CHECKING else "SV"
        return f"{prefix}{self.account_number}"

    @property
    def type_label(self) -> str:
        return "Checking" if self.account_type == AccountType.CHECKING else "Savings"

    def __repr__(self) -> str:
        return f"<BankAccount {self.display_account_number} {self.balance}>"


class Transaction(BaseModel):
    """
    Immutable ledger row. Every balance change writes exactly one row per
    affected account; transfers write one on each side.
    """
    __tablename__ = "transactions"

    account_id = Column(Uuid(as_uuid=True), ForeignKey("bank_accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    receiving_account_id = Column(
        Uuid(as_uuid=True), ForeignKey("bank_accounts.id", ondelete="SET NULL"), nullable=True, index=True
    )
    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(String(500), nullable=False)
    transaction_type = Column(Enum(TransactionType, name="transaction_type"), nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Transaction {self.transaction_type} {self.amount}>"


class BankStatement(BaseModel):
    """Generated monthly statement workbook for one account."""
    __tablename__ = "bank_statements"
    __table_args__ = (
        UniqueConstraint("account_id", "year", "month", name="uq_bank_statements_account_period"),
    )

    account_id = Column(Uuid(as_uuid=True), ForeignKey("bank_accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    url = Column(String(1000), nullable=False)
    generated_at = Column(DateTime, default=get_utc_now, nullable=False)

    def __repr__(self) -> str:
        return f"<BankStatement {self.account_id} {self.year}-{self.month:02d}>"
