"""Banking Service - student accounts, bill payments, transfers and teacher funds.

Every balance change is a conditional UPDATE (``WHERE balance >= :amount``)
whose affected-row count is checked, so two concurrent debits can never take
an account below zero. Each operation commits once or rolls back entirely.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import Conflict, InsufficientFunds, InvalidAmount, NotFound
from app.core.security import generate_account_number
from app.models.academic import class_enrollments
from app.models.banking import BankAccount, Transaction
from app.models.billing import Bill, StudentBill, bill_classes, bill_excluded_students
from app.models.enums import AccountType, TransactionType
from app.schemas.banking import FundsRequest, PayBillRequest, TransferRequest
from app.services.academic_service import AcademicService
from app.services.bill_service import BillService
from app.utils.time import get_utc_now

logger = logging.getLogger(__name__)

_ACCOUNT_NUMBER_ATTEMPTS = 5


async def _debit(db: AsyncSession, account_id: UUID, amount: Decimal) -> bool:
    """Subtract ``amount`` only if the balance covers it. Returns False otherwise."""
    result = await db.execute(
        update(BankAccount)
        .where(BankAccount.id == account_id, BankAccount.balance >= amount)
        .values(balance=BankAccount.balance - amount, updated_at=get_utc_now())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def _credit(db: AsyncSession, account_id: UUID, amount: Decimal) -> None:
    await db.execute(
        update(BankAccount)
        .where(BankAccount.id == account_id)
        .values(balance=BankAccount.balance + amount, updated_at=get_utc_now())
        .execution_options(synchronize_session=False)
    )


class BankingService:
    """Service layer for student bank accounts and money movement"""

    @staticmethod
    async def get_account(db: AsyncSession, account_id: UUID) -> Optional[BankAccount]:
        result = await db.execute(select(BankAccount).where(BankAccount.id == account_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_owned_account(db: AsyncSession, account_id: UUID, student_id: UUID) -> BankAccount:
        """
        Raises:
            NotFound: if the account does not exist or belongs to someone else
        """
        result = await db.execute(
            select(BankAccount).where(
                BankAccount.id == account_id,
                BankAccount.student_id == student_id,
            )
        )
        account = result.scalar_one_or_none()
        if not account:
            raise NotFound("Account not found")
        return account

    @staticmethod
    async def get_account_by_type(
        db: AsyncSession, student_id: UUID, account_type: AccountType
    ) -> Optional[BankAccount]:
        result = await db.execute(
            select(BankAccount).where(
                BankAccount.student_id == student_id,
                BankAccount.account_type == account_type,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def list_accounts(db: AsyncSession, student_id: UUID) -> List[BankAccount]:
        result = await db.execute(
            select(BankAccount)
            .where(BankAccount.student_id == student_id)
            .order_by(BankAccount.account_type)
        )
        return list(result.scalars().all())

    @staticmethod
    async def setup_accounts(db: AsyncSession, student_id: UUID) -> List[BankAccount]:
        """
        Open the student's checking and savings accounts if they are missing.
        Safe to call repeatedly; existing accounts are returned untouched.
        """
        existing = {a.account_type for a in await BankingService.list_accounts(db, student_id)}
        missing = [t for t in (AccountType.CHECKING, AccountType.SAVINGS) if t not in existing]
        if not missing:
            return await BankingService.list_accounts(db, student_id)

        for account_type in missing:
            for _ in range(_ACCOUNT_NUMBER_ATTEMPTS):
                number = generate_account_number()
                taken = await db.execute(select(BankAccount.id).where(BankAccount.account_number == number))
                if taken.first() is None:
                    break
            else:
                raise Conflict("Could not allocate an account number, please retry")
            db.add(
                BankAccount(
                    student_id=student_id,
                    account_number=number,
                    account_type=account_type,
                    balance=Decimal("0.00"),
                )
            )

        try:
            await db.commit()
        except IntegrityError:
            # A concurrent setup for the same student won the race
            await db.rollback()
            return await BankingService.list_accounts(db, student_id)

        logger.info("Bank accounts opened: %s", ", ".join(t.value for t in missing), extra={"user_id": str(student_id)})
        return await BankingService.list_accounts(db, student_id)

    @staticmethod
    async def list_transactions(
        db: AsyncSession,
        student_id: UUID,
        account_id: Optional[UUID] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Transaction], int]:
        """
        Newest-first ledger rows for the student's accounts (or one of them).
        Transfers appear once per side since each side writes its own row.
        """
        if account_id is not None:
            await BankingService.get_owned_account(db, account_id, student_id)
            scope = Transaction.account_id == account_id
        else:
            owned = select(BankAccount.id).where(BankAccount.student_id == student_id)
            scope = Transaction.account_id.in_(owned)

        total = (await db.execute(select(func.count(Transaction.id)).where(scope))).scalar_one()
        result = await db.execute(
            select(Transaction)
            .where(scope)
            .order_by(Transaction.created_at.desc(), Transaction.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def _can_pay(db: AsyncSession, bill: Bill, student_id: UUID) -> bool:
        """A student without a bill record may pay only if a class they attend is assigned it."""
        excluded = await db.execute(
            select(bill_excluded_students).where(
                bill_excluded_students.c.bill_id == bill.id,
                bill_excluded_students.c.student_id == student_id,
            )
        )
        if excluded.first() is not None:
            return False
        assigned = await db.execute(
            select(bill_classes.c.class_id)
            .join(class_enrollments, class_enrollments.c.class_id == bill_classes.c.class_id)
            .where(
                bill_classes.c.bill_id == bill.id,
                class_enrollments.c.student_id == student_id,
            )
        )
        return assigned.first() is not None

    @staticmethod
    async def pay_bill(db: AsyncSession, student_id: UUID, data: PayBillRequest) -> Dict[str, Any]:
        """
        Pay all or part of a bill from one of the student's accounts.

        Checks, in order: the account is the student's, it covers the amount,
        the bill exists and is not cancelled, and the amount does not exceed
        what is still owed against the bill's current amount. Then, atomically:
        debit the account, add the amount to the student's bill record
        (creating it if needed, and bringing its amount up to date) and write
        one WITHDRAWAL row.

        Returns:
            {"account", "student_bill", "transaction", "bill_title"}

        Raises:
            NotFound: unknown account or bill
            InsufficientFunds: balance below the amount
            InvalidAmount: cancelled bill, or amount above the remaining owed
            Conflict: a concurrent payment created the bill record first
        """
        amount = Decimal(data.amount)
        if amount <= 0:
            raise InvalidAmount()

        account = await BankingService.get_owned_account(db, data.account_id, student_id)
        if Decimal(account.balance) < amount:
            raise InsufficientFunds()

        bill = await BillService.get_bill(db, data.bill_id)
        if not bill:
            raise NotFound("Bill not found")
        if bill.is_cancelled:
            raise InvalidAmount("Cannot pay a cancelled bill")

        result = await db.execute(
            select(StudentBill)
            .where(StudentBill.bill_id == bill.id, StudentBill.student_id == student_id)
            .with_for_update()
        )
        student_bill = result.scalar_one_or_none()
        if student_bill is None and not await BankingService._can_pay(db, bill, student_id):
            raise NotFound("Bill not found")

        bill_amount = Decimal(bill.amount)
        paid_so_far = Decimal(student_bill.paid_amount or 0) if student_bill else Decimal("0.00")
        remaining = bill_amount - paid_so_far
        if amount > remaining:
            raise InvalidAmount(f"Payment amount exceeds remaining bill amount of {remaining:.2f}")

        log_extra = {"user_id": str(student_id), "account_id": str(account.id), "bill_id": str(bill.id)}
        try:
            if not await _debit(db, account.id, amount):
                raise InsufficientFunds()

            now = get_utc_now()
            if student_bill is not None:
                result = await db.execute(
                    update(StudentBill)
                    .where(
                        StudentBill.id == student_bill.id,
                        StudentBill.paid_amount + amount <= bill_amount,
                    )
                    .values(amount=bill_amount, paid_amount=StudentBill.paid_amount + amount, updated_at=now)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    raise Conflict("The bill was paid concurrently, please retry")
                await db.refresh(student_bill)
                if Decimal(student_bill.paid_amount) >= bill_amount and not student_bill.is_paid:
                    student_bill.is_paid = True
                    student_bill.paid_at = now
            else:
                is_paid = amount >= bill_amount
                student_bill = StudentBill(
                    bill_id=bill.id,
                    student_id=student_id,
                    amount=bill.amount,
                    paid_amount=amount,
                    is_paid=is_paid,
                    paid_at=now if is_paid else None,
                    due_date=bill.due_date,
                )
                db.add(student_bill)

            transaction = Transaction(
                account_id=account.id,
                amount=amount,
                description=f"Payment for {bill.title}",
                transaction_type=TransactionType.WITHDRAWAL,
            )
            db.add(transaction)
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.warning("Bill payment lost a race on record creation", extra=log_extra)
            raise Conflict() from None
        except Exception:
            await db.rollback()
            raise

        logger.info("Bill payment of %s recorded", amount, extra=log_extra)
        bill_title = bill.title

        # Status bookkeeping runs after the money has moved and never undoes it
        try:
            await BillService.refresh_bill_status(db, bill)
            await db.commit()
        except Exception:
            await db.rollback()
            logger.exception("Bill status refresh failed after payment", extra=log_extra)

        await db.refresh(account)
        await db.refresh(student_bill)
        await db.refresh(transaction)
        return {
            "account": account,
            "student_bill": student_bill,
            "transaction": transaction,
            "bill_title": bill_title,
        }

    @staticmethod
    async def transfer(db: AsyncSession, student_id: UUID, data: TransferRequest) -> Dict[str, Any]:
        """
        Move money between two of the student's own accounts.

        Writes a TRANSFER_OUT row on the source and a TRANSFER_IN row on the
        destination, each pointing at the other account.

        Returns:
            {"from_account", "to_account", "transactions"}

        Raises:
            InvalidAmount: same source and destination, or non-positive amount
            NotFound: either account is missing or not the student's
            InsufficientFunds: the source does not cover the amount
        """
        amount = Decimal(data.amount)
        if amount <= 0:
            raise InvalidAmount()
        if data.from_account_id == data.to_account_id:
            raise InvalidAmount("Cannot transfer to the same account")

        source = await BankingService.get_owned_account(db, data.from_account_id, student_id)
        destination = await BankingService.get_owned_account(db, data.to_account_id, student_id)
        if Decimal(source.balance) < amount:
            raise InsufficientFunds()

        description = f"Transfer from {source.type_label} to {destination.type_label}"
        try:
            if not await _debit(db, source.id, amount):
                raise InsufficientFunds()
            await _credit(db, destination.id, amount)

            outgoing = Transaction(
                account_id=source.id,
                receiving_account_id=destination.id,
                amount=amount,
                description=description,
                transaction_type=TransactionType.TRANSFER_OUT,
            )
            incoming = Transaction(
                account_id=destination.id,
                receiving_account_id=source.id,
                amount=amount,
                description=description,
                transaction_type=TransactionType.TRANSFER_IN,
            )
            db.add_all([outgoing, incoming])
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        for obj in (source, destination, outgoing, incoming):
            await db.refresh(obj)
        logger.info(
            "Transfer of %s completed", amount,
            extra={"user_id": str(student_id), "account_id": str(source.id)},
        )
        return {
            "from_account": source,
            "to_account": destination,
            "transactions": [outgoing, incoming],
        }

    @staticmethod
    async def adjust_funds(
        db: AsyncSession,
        teacher_id: UUID,
        data: FundsRequest,
        deposit: bool,
    ) -> List[Dict[str, Any]]:
        """
        Teacher deposit (``deposit=True``) or withdrawal for each listed student.

        Students are processed independently: each one commits or rolls back
        on its own, and the result lists a success flag and error per student.

        Raises:
            Forbidden: if any student is not enrolled in the teacher's classes
        """
        student_ids = list(dict.fromkeys(data.student_ids))
        await AcademicService.ensure_teacher_of_students(db, teacher_id, student_ids)

        amount = Decimal(data.amount)
        if deposit:
            description = data.description or "Funds added by teacher"
            transaction_type = TransactionType.DEPOSIT
        else:
            description = data.description or "Funds removed by teacher"
            transaction_type = TransactionType.WITHDRAWAL

        results = []
        for student_id in student_ids:
            account = await BankingService.get_account_by_type(db, student_id, data.account_type)
            if not account:
                results.append({"student_id": student_id, "success": False, "error": "Account not found"})
                continue
            try:
                if deposit:
                    await _credit(db, account.id, amount)
                elif not await _debit(db, account.id, amount):
                    raise InsufficientFunds()
                db.add(
                    Transaction(
                        account_id=account.id,
                        amount=amount,
                        description=description,
                        transaction_type=transaction_type,
                    )
                )
                await db.commit()
            except InsufficientFunds as e:
                await db.rollback()
                results.append({"student_id": student_id, "success": False, "error": e.message})
                continue
            except Exception:
                await db.rollback()
                raise
            results.append({"student_id": student_id, "success": True, "error": None})

        succeeded = sum(1 for r in results if r["success"])
        logger.info(
            "Teacher %s: %d of %d student(s) succeeded",
            "deposit" if deposit else "withdrawal", succeeded, len(results),
            extra={"user_id": str(teacher_id)},
        )
        return results

    @staticmethod
    async def get_student_banking(
        db: AsyncSession,
        teacher_id: UUID,
        student_id: UUID,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict[str, Any]:
        """Teacher view of one enrolled student's accounts and recent ledger."""
        await AcademicService.ensure_teacher_of_students(db, teacher_id, [student_id])
        accounts = await BankingService.list_accounts(db, student_id)
        transactions, total = await BankingService.list_transactions(
            db, student_id, page=page, page_size=page_size
        )
        return {"accounts": accounts, "transactions": transactions, "total": total}
