"""User Service - Business Logic Layer"""

import logging
from typing import Optional, List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import Conflict, Unauthorized
from app.core.security import get_password_hash, verify_password
from app.models.enums import UserRole
from app.models.user import User

logger = logging.getLogger(__name__)

# Roles that sign in through the staff endpoint; students use their own
STAFF_ROLES = (UserRole.TEACHER, UserRole.SUPER_ADMIN)


class UserService:
    """Service layer for user-related operations"""

    @staticmethod
    async def create_user(
        db: AsyncSession,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: UserRole = UserRole.STUDENT,
        is_active: bool = True,
        auto_commit: bool = True,
    ) -> User:
        """
        Create a new user.
        When auto_commit=False, uses flush instead of commit so the caller can
        add more rows (e.g. a class enrollment) in the same transaction.

        Raises:
            Conflict: if the email is already registered
        """
        email = email.lower()
        if await UserService.get_user_by_email(db, email):
            raise Conflict("Email already registered")

        db_user = User(
            email=email,
            first_name=first_name,
            last_name=last_name,
            hashed_password=get_password_hash(password),
            role=role,
            is_active=is_active,
        )
        db.add(db_user)
        try:
            if auto_commit:
                await db.commit()
            else:
                await db.flush()
        except IntegrityError:
            await db.rollback()
            raise Conflict("Email already registered") from None
        await db.refresh(db_user)
        logger.info("User created", extra={"user_id": str(db_user.id)})
        return db_user

    @staticmethod
    async def get_user_by_id(db: AsyncSession, user_id: UUID) -> Optional[User]:
        """
        Get user by ID.

        Args:
            db: Database session
            user_id: User ID

        Returns:
            User or None if not found
        """
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
        """
        Get user by email (case-insensitive; emails are stored lowercased).

        Args:
            db: Database session
            email: User email

        Returns:
            User or None if not found
        """
        result = await db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_users_by_ids(db: AsyncSession, user_ids: List[UUID]) -> List[User]:
        if not user_ids:
            return []
        result = await db.execute(select(User).where(User.id.in_(user_ids)))
        return list(result.scalars().all())

    @staticmethod
    async def authenticate_user(
        db: AsyncSession,
        email: str,
        password: str,
        roles: tuple = STAFF_ROLES,
    ) -> User:
        """
        Authenticate a user of the given role population.

        Students and staff sign in through different endpoints; a valid
        credential for the wrong population is rejected like a bad password.

        Raises:
            Unauthorized: on unknown email, wrong password, wrong role or inactive account
        """
        user = await UserService.get_user_by_email(db, email)
        if not user or not verify_password(password, user.hashed_password):
            raise Unauthorized("Incorrect email or password")
        if user.role not in roles:
            raise Unauthorized("Incorrect email or password")
        if not user.is_active:
            raise Unauthorized("Account is inactive")
        return user
