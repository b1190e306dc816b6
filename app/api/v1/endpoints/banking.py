import math
from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.models.user import User
from app.schemas.banking import (
    BankAccountResponse,
    BankStatementResponse,
    PayBillRequest,
    PaymentResult,
    TransactionResponse,
    TransferRequest,
    TransferResult,
)
from app.schemas.billing import StudentBillResponse
from app.schemas.responses import PaginatedResponse, PaginationMeta, SuccessResponse
from app.services import email_service
from app.services.banking_service import BankingService
from app.services.statement_service import StatementService

router = APIRouter()


@router.post("/setup", response_model=SuccessResponse[List[BankAccountResponse]])
async def setup_accounts(
    current_user: User = Depends(deps.require_student),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Open the student's checking and savings accounts (idempotent).
    """
    accounts = await BankingService.setup_accounts(db, current_user.id)
    return SuccessResponse(data=accounts, message="Bank accounts ready")


@router.get("/accounts", response_model=SuccessResponse[List[BankAccountResponse]])
async def list_accounts(
    current_user: User = Depends(deps.require_student),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    accounts = await BankingService.list_accounts(db, current_user.id)
    return SuccessResponse(data=accounts)


@router.get("/transactions", response_model=PaginatedResponse[TransactionResponse])
async def list_transactions(
    account_id: Optional[UUID] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(deps.require_student),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Newest-first transactions across the student's accounts, or one account.
    """
    items, total = await BankingService.list_transactions(
        db, current_user.id, account_id=account_id, page=page, page_size=page_size
    )
    return PaginatedResponse(
        data=items,
        meta=PaginationMeta(
            page=page,
            page_size=page_size,
            total=total,
            total_pages=math.ceil(total / page_size) if total else 0,
        ),
    )


@router.post("/pay-bill", response_model=SuccessResponse[PaymentResult])
async def pay_bill(
    payment_in: PayBillRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(deps.require_student),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Pay all or part of a bill from one of the student's accounts.
    """
    result = await BankingService.pay_bill(db, current_user.id, payment_in)
    student_bill = result["student_bill"]
    background_tasks.add_task(
        email_service.send_payment_receipt,
        current_user.email,
        current_user.first_name,
        result["bill_title"],
        payment_in.amount,
        student_bill.remaining,
    )
    return SuccessResponse(
        data=PaymentResult(
            account=BankAccountResponse.model_validate(result["account"]),
            student_bill=StudentBillResponse.model_validate(student_bill),
            transaction=TransactionResponse.model_validate(result["transaction"]),
        ),
        message="Payment processed successfully",
    )


@router.post("/transfer", response_model=SuccessResponse[TransferResult])
async def transfer(
    transfer_in: TransferRequest,
    current_user: User = Depends(deps.require_student),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Move money between the student's checking and savings accounts.
    """
    result = await BankingService.transfer(db, current_user.id, transfer_in)
    return SuccessResponse(
        data=TransferResult(
            from_account=BankAccountResponse.model_validate(result["from_account"]),
            to_account=BankAccountResponse.model_validate(result["to_account"]),
            transactions=[TransactionResponse.model_validate(t) for t in result["transactions"]],
        ),
        message="Transfer completed successfully",
    )


@router.get("/accounts/{account_id}/statements", response_model=SuccessResponse[List[BankStatementResponse]])
async def list_statements(
    account_id: UUID,
    year: Optional[int] = Query(None, ge=2000, le=9999),
    current_user: User = Depends(deps.require_student),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Generated monthly statements for one of the student's accounts.
    """
    await BankingService.get_owned_account(db, account_id, current_user.id)
    statements = await StatementService.list_statements(db, account_id, year)
    return SuccessResponse(data=statements)
