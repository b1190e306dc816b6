"""API Dependencies"""

import secrets
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import Forbidden, Unauthorized
from app.core.security import decode_token
from app.database import get_db
from app.models.enums import UserRole
from app.models.user import User
from app.services.user_service import UserService

__all__ = [
    "get_db",
    "get_current_user",
    "require_teacher",
    "require_student",
    "require_super_admin",
    "require_task_secret",
]

# Missing credentials are reported through the service error envelope
security = HTTPBearer(auto_error=False)


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> User:
    """
    Get current authenticated user from JWT token.

    Raises:
        Unauthorized: missing, invalid or expired token, or unknown/inactive user
    """
    if credentials is None:
        raise Unauthorized("Not authenticated")

    payload = decode_token(credentials.credentials)
    if not payload or payload.get("type") != "access":
        raise Unauthorized("Could not validate credentials")

    user_id_str: Optional[str] = payload.get("sub")
    try:
        user_id = UUID(user_id_str or "")
    except ValueError:
        raise Unauthorized("Could not validate credentials") from None

    user = await UserService.get_user_by_id(db, user_id)
    if not user or not user.is_active:
        raise Unauthorized("Could not validate credentials")
    return user


def _require_role(*roles: UserRole):
    async def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise Forbidden("Not enough permissions")
        return current_user

    return dependency


require_teacher = _require_role(UserRole.TEACHER)
require_student = _require_role(UserRole.STUDENT)
require_super_admin = _require_role(UserRole.SUPER_ADMIN)


async def require_task_secret(authorization: Optional[str] = Header(None)) -> None:
    """
    Guard for scheduler-invoked endpoints: expects ``Authorization: Bearer <TASK_SECRET>``.
    With no TASK_SECRET configured the endpoints are closed.
    """
    expected = settings.TASK_SECRET
    if not expected or not authorization:
        raise Unauthorized()
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not secrets.compare_digest(token, expected):
        raise Unauthorized()
