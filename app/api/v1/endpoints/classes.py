from typing import Any, List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.models.user import User
from app.schemas.academic import ClassCreate, ClassResponse, EnrollStudent, JoinClassRequest
from app.schemas.responses import SuccessResponse
from app.services.academic_service import AcademicService

router = APIRouter()


def _class_response(cls, student_count: int = 0) -> ClassResponse:
    return ClassResponse(
        id=cls.id,
        name=cls.name,
        emoji=cls.emoji,
        code=cls.code,
        teacher_id=cls.teacher_id,
        student_count=student_count,
    )


@router.get("", response_model=SuccessResponse[List[ClassResponse]])
async def get_my_classes(
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    List the teacher's classes with student counts.
    """
    classes = await AcademicService.get_teacher_classes(db, current_user.id)
    return SuccessResponse(data=[_class_response(cls, count) for cls, count in classes])


@router.post("", response_model=SuccessResponse[ClassResponse])
async def create_class(
    class_in: ClassCreate,
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Create new class with a generated join code.
    """
    new_class = await AcademicService.create_class(db, current_user.id, class_in)
    return SuccessResponse(data=_class_response(new_class), message="Class created successfully")


@router.post("/{class_id}/students", response_model=SuccessResponse)
async def enroll_student(
    class_id: UUID,
    enroll_in: EnrollStudent,
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Add a registered student to one of the teacher's classes.
    """
    await AcademicService.get_owned_class(db, class_id, current_user.id)
    added = await AcademicService.enroll_student(db, class_id, enroll_in.student_id)
    return SuccessResponse(
        data={"enrolled": added},
        message="Student enrolled" if added else "Student already enrolled",
    )


@router.post("/join", response_model=SuccessResponse[ClassResponse])
async def join_class(
    join_in: JoinClassRequest,
    current_user: User = Depends(deps.require_student),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Student joins a class by its code.
    """
    cls = await AcademicService.join_by_code(db, join_in.code, current_user.id)
    counts = await AcademicService.class_student_counts(db, [cls.id])
    return SuccessResponse(data=_class_response(cls, counts.get(cls.id, 0)), message="Joined class")


@router.get("/enrolled", response_model=SuccessResponse[List[ClassResponse]])
async def get_enrolled_classes(
    current_user: User = Depends(deps.require_student),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Classes the current student is enrolled in.
    """
    classes = await AcademicService.get_student_classes(db, current_user.id)
    counts = await AcademicService.class_student_counts(db, [c.id for c in classes])
    return SuccessResponse(data=[_class_response(c, counts.get(c.id, 0)) for c in classes])
