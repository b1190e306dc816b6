from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.config import settings
from app.schemas.responses import SuccessResponse
from app.services.bill_service import BillService
from app.services.statement_service import StatementService
from app.utils.time import get_utc_today

router = APIRouter(dependencies=[Depends(deps.require_task_secret)])


@router.post("/update-bill-statuses", response_model=SuccessResponse)
async def update_bill_statuses(db: AsyncSession = Depends(deps.get_db)) -> Any:
    """
    Recompute the stored status of every non-cancelled bill.
    Called by the scheduler with ``Authorization: Bearer <TASK_SECRET>``.
    """
    counts = await BillService.refresh_statuses(db)
    return SuccessResponse(data=counts, message="Bill statuses updated")


@router.post("/generate-statements", response_model=SuccessResponse)
async def generate_statements(
    year: Optional[int] = Query(None, ge=2000, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Build monthly statements. Without an explicit period this only runs on
    STATEMENT_DAY (any day in development) and covers the current month.
    """
    today = get_utc_today()
    explicit = year is not None or month is not None
    if not explicit and today.day != settings.STATEMENT_DAY and not settings.is_development:
        return SuccessResponse(
            data={"skipped": True},
            message=f"Statement generation only runs on day {settings.STATEMENT_DAY} of each month",
        )

    result = await StatementService.generate_monthly_statements(
        db, year or today.year, month or today.month
    )
    return SuccessResponse(data=result, message="Statement generation complete")
