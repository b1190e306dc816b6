from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.exceptions import NotFound
from app.models.billing import Bill
from app.models.enums import BillStatus
from app.models.user import User
from app.schemas.billing import (
    BillCancel,
    BillClassesRequest,
    BillCreate,
    BillDetailResponse,
    BillResponse,
    BillStudentsRequest,
    BillUpdate,
    PaymentStatusUpdate,
    StudentBillResponse,
)
from app.schemas.responses import SuccessResponse
from app.services import email_service
from app.services.bill_service import BillService
from app.services.user_service import UserService

router = APIRouter()


async def _notify_assigned(
    db: AsyncSession,
    background_tasks: BackgroundTasks,
    bill: Bill,
    student_ids: List[UUID],
) -> None:
    """Queue a 'new bill' email per newly assigned student; sent after the response."""
    for student in await UserService.get_users_by_ids(db, student_ids):
        background_tasks.add_task(
            email_service.send_bill_assigned,
            student.email,
            student.first_name,
            bill.title,
            bill.amount,
            bill.due_date,
        )


@router.post("", response_model=SuccessResponse[BillResponse], status_code=status.HTTP_201_CREATED)
async def create_bill(
    bill_in: BillCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Create a bill and assign it to the selected classes.
    """
    bill, assigned = await BillService.create_bill(db, current_user.id, bill_in)
    await _notify_assigned(db, background_tasks, bill, assigned)
    return SuccessResponse(data=bill, message="Bill created successfully")


@router.get("", response_model=SuccessResponse[List[BillResponse]])
async def list_bills(
    status_filter: Optional[BillStatus] = Query(None, alias="status"),
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Bills the teacher created or that are assigned to their classes.
    """
    bills = await BillService.list_teacher_bills(db, current_user.id, status_filter)
    return SuccessResponse(data=bills)


@router.get("/mine", response_model=SuccessResponse[List[BillDetailResponse]])
async def list_my_bills(
    current_user: User = Depends(deps.require_student),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    The current student's bills, each with only their own payment record.
    """
    rows = await BillService.list_student_bills(db, current_user.id)
    data = [await BillService.build_detail(db, bill, student_id=current_user.id) for bill, _ in rows]
    return SuccessResponse(data=data)


@router.get("/{bill_id}", response_model=SuccessResponse[BillDetailResponse])
async def get_bill(
    bill_id: UUID,
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Bill detail. Teachers see every student's record; a student sees only
    bills assigned to them and only their own record.
    """
    if current_user.is_student:
        if not await BillService.get_student_bill(db, bill_id, current_user.id):
            raise NotFound("Bill not found")
        bill = await BillService.get_bill(db, bill_id)
        detail = await BillService.build_detail(db, bill, student_id=current_user.id)
    else:
        bill = await BillService.get_teacher_bill(db, bill_id, current_user.id)
        detail = await BillService.build_detail(db, bill)
    return SuccessResponse(data=detail)


@router.patch("/{bill_id}", response_model=SuccessResponse[BillResponse])
async def update_bill(
    bill_id: UUID,
    bill_in: BillUpdate,
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Partial update of a bill's fields.
    """
    bill = await BillService.update_bill(db, bill_id, current_user.id, bill_in)
    return SuccessResponse(data=bill, message="Bill updated successfully")


@router.post("/{bill_id}/classes", response_model=SuccessResponse[BillResponse])
async def copy_bill_to_classes(
    bill_id: UUID,
    classes_in: BillClassesRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Assign the bill to additional classes.
    """
    bill, assigned = await BillService.copy_to_classes(db, bill_id, current_user.id, classes_in.class_ids)
    await _notify_assigned(db, background_tasks, bill, assigned)
    return SuccessResponse(data=bill, message="Bill assigned to additional classes")


@router.post("/{bill_id}/classes/remove", response_model=SuccessResponse)
async def remove_bill_from_classes(
    bill_id: UUID,
    classes_in: BillClassesRequest,
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Unassign the bill from the given classes, or from all classes when the list is empty.
    """
    removed = await BillService.remove_from_classes(db, bill_id, current_user.id, classes_in.class_ids)
    return SuccessResponse(data={"removed": removed}, message=f"Bill unassigned from {removed} class(es)")


@router.post("/{bill_id}/exclude", response_model=SuccessResponse)
async def exclude_students(
    bill_id: UUID,
    students_in: BillStudentsRequest,
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Exempt students from the bill.
    """
    count = await BillService.exclude_students(db, bill_id, current_user.id, students_in.student_ids)
    return SuccessResponse(data={"excluded": count}, message=f"Excluded {count} student(s) from the bill")


@router.post("/{bill_id}/include", response_model=SuccessResponse)
async def include_students(
    bill_id: UUID,
    students_in: BillStudentsRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Reverse an exclusion and assign the bill to the students again.
    """
    bill, assigned = await BillService.include_students(db, bill_id, current_user.id, students_in.student_ids)
    await _notify_assigned(db, background_tasks, bill, assigned)
    return SuccessResponse(
        data={"included": len(assigned)},
        message=f"Successfully included {len(assigned)} student(s) in the bill",
    )


@router.post("/{bill_id}/cancel", response_model=SuccessResponse[BillResponse])
async def cancel_bill(
    bill_id: UUID,
    cancel_in: BillCancel,
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Cancel a bill. Bills are never deleted.
    """
    bill = await BillService.cancel_bill(db, bill_id, current_user.id, cancel_in.reason)
    return SuccessResponse(data=bill, message="Bill cancelled")


@router.patch("/{bill_id}/payment-status", response_model=SuccessResponse[StudentBillResponse])
async def update_payment_status(
    bill_id: UUID,
    status_in: PaymentStatusUpdate,
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Manually mark one student's bill as paid or unpaid.
    """
    student_bill = await BillService.set_payment_status(
        db, bill_id, current_user.id, status_in.student_id, status_in.is_paid
    )
    return SuccessResponse(data=student_bill, message="Payment status updated")
