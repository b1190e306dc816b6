from typing import Any, List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.models.user import User
from app.schemas.banking import FundsRequest, FundsResult, StudentBankingResponse
from app.schemas.responses import SuccessResponse
from app.services.banking_service import BankingService

router = APIRouter()


def _funds_response(response: Response, results: List[dict], verb: str) -> SuccessResponse:
    failed = [r for r in results if not r["success"]]
    if failed:
        response.status_code = status.HTTP_207_MULTI_STATUS
        message = f"Funds {verb} for {len(results) - len(failed)} of {len(results)} student(s)"
    else:
        message = f"Funds {verb} successfully"
    return SuccessResponse(data=[FundsResult(**r) for r in results], message=message)


@router.post("/add-funds", response_model=SuccessResponse[List[FundsResult]])
async def add_funds(
    funds_in: FundsRequest,
    response: Response,
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Deposit into each listed student's account of the given type.
    Returns 207 when some students could not be credited.
    """
    results = await BankingService.adjust_funds(db, current_user.id, funds_in, deposit=True)
    return _funds_response(response, results, "added")


@router.post("/remove-funds", response_model=SuccessResponse[List[FundsResult]])
async def remove_funds(
    funds_in: FundsRequest,
    response: Response,
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Withdraw from each listed student's account of the given type.
    Returns 207 when some students could not be debited.
    """
    results = await BankingService.adjust_funds(db, current_user.id, funds_in, deposit=False)
    return _funds_response(response, results, "removed")


@router.get("/students/{student_id}", response_model=SuccessResponse[StudentBankingResponse])
async def get_student_banking(
    student_id: UUID,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Accounts and transactions of a student enrolled in one of the teacher's classes.
    """
    data = await BankingService.get_student_banking(db, current_user.id, student_id, page, page_size)
    return SuccessResponse(data=data)
