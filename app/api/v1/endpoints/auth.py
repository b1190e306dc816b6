from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.config import settings
from app.core import security
from app.core.rate_limit import limiter
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.auth import LoginRequest, StudentLoginRequest, Token
from app.schemas.responses import SuccessResponse
from app.schemas.user import UserResponse
from app.services.user_service import STAFF_ROLES, UserService

router = APIRouter()


def _token_for(user: User) -> Token:
    access_token = security.create_access_token(
        data={"sub": str(user.id), "role": user.role.value}
    )
    return Token(
        access_token=access_token,
        token_type="bearer",
        role=user.role,
        user_id=str(user.id),
    )


@router.post("/login", response_model=SuccessResponse[Token])
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    login_data: LoginRequest,
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Teacher and super-admin login.
    Students are rejected here and must use /auth/student/login.
    """
    user = await UserService.authenticate_user(
        db, email=login_data.email, password=login_data.password, roles=STAFF_ROLES
    )
    return SuccessResponse(data=_token_for(user), message="Login successful")


@router.post("/student/login", response_model=SuccessResponse[Token])
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def student_login(
    request: Request,
    login_data: StudentLoginRequest,
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Student login with the school email their teacher registered.
    """
    user = await UserService.authenticate_user(
        db, email=login_data.school_email, password=login_data.password, roles=(UserRole.STUDENT,)
    )
    return SuccessResponse(data=_token_for(user), message="Login successful")


@router.get("/me", response_model=SuccessResponse[UserResponse])
async def read_me(current_user: User = Depends(deps.get_current_user)) -> Any:
    """
    Current authenticated user.
    """
    return SuccessResponse(data=current_user)
