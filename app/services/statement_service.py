"""Monthly bank statement generation (openpyxl workbooks stored in R2)"""

import io
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from openpyxl import Workbook
from openpyxl.styles import Font
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.banking import BankAccount, BankStatement, Transaction
from app.models.enums import TransactionType
from app.models.user import User
from app.services import storage_service
from app.utils.time import get_utc_now, month_bounds, month_name

logger = logging.getLogger(__name__)

STATEMENT_SHEET_NAME = "Bank Statement"
STATEMENT_COLUMNS = [
    ("Date", 12),
    ("Time", 10),
    ("Description", 36),
    ("Type", 14),
    ("Amount", 12),
    ("Balance", 12),
]

_CREDIT_TYPES = (TransactionType.DEPOSIT, TransactionType.TRANSFER_IN)


def signed_amount(transaction: Transaction) -> Decimal:
    """Ledger effect of one row on its own account."""
    amount = Decimal(transaction.amount)
    return amount if transaction.transaction_type in _CREDIT_TYPES else -amount


def statement_key(student_id, account_id, year: int, month: int) -> str:
    name = month_name(month)
    return f"statements/{student_id}/{account_id}/{year}/{name}_{year}_statement.xlsx"


def build_statement_workbook(
    student: User,
    account: BankAccount,
    transactions: List[Transaction],
    opening_balance: Decimal,
    year: int,
    month: int,
) -> bytes:
    """Render one account's month as an .xlsx file with a running balance column."""
    wb = Workbook()
    ws = wb.active
    ws.title = STATEMENT_SHEET_NAME

    ws.append([f"{student.full_name}: {account.type_label} account {account.display_account_number}"])
    ws.append([f"Statement period: {month_name(month)} {year}"])
    ws.append([f"Opening balance: {opening_balance:.2f}"])
    ws.append([])
    ws.append([name for name, _ in STATEMENT_COLUMNS])
    for cell in ws[ws.max_row]:
        cell.font = Font(bold=True)
    for idx, (_, width) in enumerate(STATEMENT_COLUMNS):
        ws.column_dimensions[chr(ord("A") + idx)].width = width

    balance = opening_balance
    for txn in transactions:
        balance += signed_amount(txn)
        ws.append([
            txn.created_at.strftime("%m/%d/%Y"),
            txn.created_at.strftime("%H:%M:%S"),
            txn.description,
            txn.transaction_type.value,
            float(Decimal(txn.amount)),
            float(balance),
        ])
    ws.append([])
    ws.append(["Closing balance", None, None, None, None, float(balance)])

    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()


class StatementService:
    @staticmethod
    async def _opening_balance(db: AsyncSession, account_id, start) -> Decimal:
        result = await db.execute(
            select(Transaction).where(
                Transaction.account_id == account_id,
                Transaction.created_at < start,
            )
        )
        return sum((signed_amount(t) for t in result.scalars().all()), Decimal("0.00"))

    @staticmethod
    async def _month_transactions(db: AsyncSession, account_id, start, end) -> List[Transaction]:
        result = await db.execute(
            select(Transaction)
            .where(
                Transaction.account_id == account_id,
                Transaction.created_at >= start,
                Transaction.created_at < end,
            )
            .order_by(Transaction.created_at, Transaction.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def _upsert_statement(db: AsyncSession, account: BankAccount, year: int, month: int, url: str) -> BankStatement:
        result = await db.execute(
            select(BankStatement).where(
                BankStatement.account_id == account.id,
                BankStatement.year == year,
                BankStatement.month == month,
            )
        )
        statement = result.scalar_one_or_none()
        if statement:
            statement.url = url
            statement.generated_at = get_utc_now()
        else:
            statement = BankStatement(
                account_id=account.id,
                student_id=account.student_id,
                year=year,
                month=month,
                url=url,
                generated_at=get_utc_now(),
            )
            db.add(statement)
        await db.commit()
        return statement

    @staticmethod
    async def generate_monthly_statements(db: AsyncSession, year: int, month: int) -> Dict[str, Any]:
        """
        Build and store a statement for every account with activity in the month.

        Accounts without transactions are skipped. A failure on one account is
        recorded in the result and the run continues with the next.
        """
        start, end = month_bounds(year, month)
        result = await db.execute(
            select(BankAccount, User)
            .join(User, User.id == BankAccount.student_id)
            .order_by(BankAccount.student_id, BankAccount.account_type)
        )
        pairs = result.all()
        # Detached so a rollback after one failed account leaves the rest readable
        db.expunge_all()

        results: Dict[str, Any] = {"total": 0, "success": 0, "failed": 0, "no_transactions": 0, "details": []}
        for account, student in pairs:
            results["total"] += 1
            detail = {"student_id": str(student.id), "account_id": str(account.id)}
            try:
                transactions = await StatementService._month_transactions(db, account.id, start, end)
                if not transactions:
                    results["no_transactions"] += 1
                    results["details"].append({**detail, "status": "skipped"})
                    continue

                opening = await StatementService._opening_balance(db, account.id, start)
                content = build_statement_workbook(student, account, transactions, opening, year, month)
                url = await storage_service.upload(
                    statement_key(student.id, account.id, year, month),
                    content,
                    storage_service.XLSX_CONTENT_TYPE,
                )
                await StatementService._upsert_statement(db, account, year, month, url)
            except Exception as e:
                await db.rollback()
                logger.exception(
                    "Statement generation failed", extra={"account_id": str(account.id), "user_id": str(student.id)}
                )
                results["failed"] += 1
                results["details"].append({**detail, "status": "failed", "error": str(e)})
                continue

            results["success"] += 1
            results["details"].append({**detail, "status": "success", "url": url})

        logger.info(
            "Statements for %s %d: %d generated, %d skipped, %d failed",
            month_name(month), year, results["success"], results["no_transactions"], results["failed"],
        )
        return {
            "period": {"year": year, "month": month, "month_name": month_name(month)},
            "results": results,
        }

    @staticmethod
    async def list_statements(
        db: AsyncSession,
        account_id,
        year: Optional[int] = None,
    ) -> List[BankStatement]:
        stmt = select(BankStatement).where(BankStatement.account_id == account_id)
        if year is not None:
            stmt = stmt.where(BankStatement.year == year)
        result = await db.execute(stmt.order_by(BankStatement.year.desc(), BankStatement.month.desc()))
        return list(result.scalars().all())
