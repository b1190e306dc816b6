from typing import Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.responses import SuccessResponse
from app.schemas.user import StudentCreate, UserCreate, UserResponse
from app.services.academic_service import AcademicService
from app.services.user_service import UserService

router = APIRouter()


@router.post("/teachers", response_model=SuccessResponse[UserResponse], status_code=status.HTTP_201_CREATED)
async def create_teacher(
    user_in: UserCreate,
    current_user: User = Depends(deps.require_super_admin),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Create a teacher account (super-admin only).
    """
    teacher = await UserService.create_user(
        db,
        email=user_in.email,
        password=user_in.password,
        first_name=user_in.first_name,
        last_name=user_in.last_name,
        role=UserRole.TEACHER,
    )
    return SuccessResponse(data=teacher, message="Teacher account created successfully")


@router.post("/students", response_model=SuccessResponse[UserResponse], status_code=status.HTTP_201_CREATED)
async def create_student(
    student_in: StudentCreate,
    current_user: User = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Register a student with their school email, optionally enrolling them
    in one of the teacher's classes in the same transaction.
    """
    if student_in.class_id:
        await AcademicService.get_owned_class(db, student_in.class_id, current_user.id)

    student = await UserService.create_user(
        db,
        email=student_in.email,
        password=student_in.password,
        first_name=student_in.first_name,
        last_name=student_in.last_name,
        role=UserRole.STUDENT,
        auto_commit=False,
    )
    if student_in.class_id:
        await AcademicService.enroll_student(db, student_in.class_id, student.id, auto_commit=False)
    await db.commit()
    return SuccessResponse(data=student, message="Student account created successfully")
