"""Test data builders shared by the integration tests."""

import uuid
from decimal import Decimal

from sqlalchemy import insert, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import create_access_token
from app.models import BankAccount, Class, class_enrollments
from app.models.enums import UserRole
from app.services.banking_service import BankingService
from app.services.user_service import UserService

TEST_PASSWORD = "Password123!"


def auth_headers(user) -> dict:
    token = create_access_token({"sub": str(user.id), "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


async def make_user(db: AsyncSession, role: UserRole, email: str = None, first_name: str = "Test"):
    return await UserService.create_user(
        db,
        email=email or f"{role.value.lower()}_{uuid.uuid4().hex[:8]}@school.example.com",
        password=TEST_PASSWORD,
        first_name=first_name,
        last_name=role.value.title(),
        role=role,
    )


async def make_class(db: AsyncSession, teacher, students=(), name: str = "Period 1"):
    cls = Class(teacher_id=teacher.id, name=name, emoji="📘", code=uuid.uuid4().hex[:6].upper())
    db.add(cls)
    await db.flush()
    for student in students:
        await db.execute(insert(class_enrollments).values(class_id=cls.id, student_id=student.id))
    await db.commit()
    return cls


async def open_accounts(db: AsyncSession, student, checking: str = "0.00", savings: str = "0.00"):
    """Open both accounts and set their balances directly. Returns (checking, savings)."""
    await BankingService.setup_accounts(db, student.id)
    accounts = {a.account_type.value: a for a in await BankingService.list_accounts(db, student.id)}
    for key, balance in (("CHECKING", checking), ("SAVINGS", savings)):
        await db.execute(
            update(BankAccount).where(BankAccount.id == accounts[key].id).values(balance=Decimal(balance))
        )
    await db.commit()
    for account in accounts.values():
        await db.refresh(account)
    return accounts["CHECKING"], accounts["SAVINGS"]
