"""Integration tests for the class storefront."""

from decimal import Decimal

import pytest
from sqlalchemy import select

from app.core.exceptions import Forbidden, InsufficientFunds, NotFound, ValidationFailed
from app.models import BankAccount, StoreItem, Transaction
from app.models.enums import TransactionType, UserRole
from app.schemas.storefront import PurchaseRequest, StoreItemCreate, StoreItemUpdate
from app.services.storefront_service import StorefrontService
from tests.factories import make_class, make_user, open_accounts


@pytest.fixture
async def item(db_session, teacher, classroom):
    return await StorefrontService.create_item(
        db_session,
        teacher.id,
        StoreItemCreate(name="Homework pass", price=Decimal("15.00"), quantity=3, class_ids=[classroom.id]),
    )


async def test_purchase_debits_and_accumulates(db_session, student, item):
    student_id, item_id = student.id, item.id
    checking, _ = await open_accounts(db_session, student, checking="100.00")

    first = await StorefrontService.purchase(
        db_session, student_id, PurchaseRequest(item_id=item_id, account_id=checking.id, quantity=2)
    )
    second = await StorefrontService.purchase(
        db_session, student_id, PurchaseRequest(item_id=item_id, account_id=checking.id)
    )

    assert first["purchase"].id == second["purchase"].id
    assert second["purchase"].quantity == 3
    assert second["purchase"].total_price == Decimal("45.00")
    assert second["account"].balance == Decimal("55.00")

    stock = await db_session.execute(select(StoreItem.quantity).where(StoreItem.id == item_id))
    assert stock.scalar_one() == 0
    rows = await db_session.execute(select(Transaction).where(Transaction.account_id == checking.id))
    rows = list(rows.scalars().all())
    assert {r.transaction_type for r in rows} == {TransactionType.WITHDRAWAL}
    assert sorted(r.description for r in rows) == ["Purchased 1x Homework pass", "Purchased 2x Homework pass"]


async def test_purchase_rejections(db_session, teacher, student, item):
    student_id, item_id = student.id, item.id
    checking, _ = await open_accounts(db_session, student, checking="20.00")

    with pytest.raises(ValidationFailed, match="Not enough items in stock"):
        await StorefrontService.purchase(
            db_session, student_id, PurchaseRequest(item_id=item_id, account_id=checking.id, quantity=4)
        )
    with pytest.raises(InsufficientFunds, match="Insufficient balance"):
        await StorefrontService.purchase(
            db_session, student_id, PurchaseRequest(item_id=item_id, account_id=checking.id, quantity=2)
        )

    await StorefrontService.update_item(db_session, item_id, teacher.id, StoreItemUpdate(is_available=False))
    with pytest.raises(ValidationFailed, match="not available"):
        await StorefrontService.purchase(
            db_session, student_id, PurchaseRequest(item_id=item_id, account_id=checking.id)
        )

    balance = await db_session.execute(select(BankAccount.balance).where(BankAccount.id == checking.id))
    assert balance.scalar_one() == Decimal("20.00")


async def test_items_of_other_classes_are_hidden(db_session, teacher, item):
    outsider = await make_user(db_session, UserRole.STUDENT)
    await make_class(db_session, teacher, [outsider], name="Period 2")
    checking, _ = await open_accounts(db_session, outsider, checking="100.00")

    with pytest.raises(NotFound, match="Store item not found"):
        await StorefrontService.purchase(
            db_session, outsider.id, PurchaseRequest(item_id=item.id, account_id=checking.id)
        )


async def test_class_listing(db_session, teacher, student, classroom, item):
    hidden = await StorefrontService.create_item(
        db_session,
        teacher.id,
        StoreItemCreate(name="Sold out", price=Decimal("1.00"), is_available=False, class_ids=[classroom.id]),
    )

    student_view = await StorefrontService.list_student_class_items(db_session, classroom.id, student.id)
    teacher_view = await StorefrontService.list_class_items(db_session, classroom.id)

    assert [i.id for i in student_view] == [item.id]
    assert {i.id for i in teacher_view} == {item.id, hidden.id}

    stranger = await make_user(db_session, UserRole.STUDENT)
    with pytest.raises(NotFound, match="Class not found"):
        await StorefrontService.list_student_class_items(db_session, classroom.id, stranger.id)


async def test_only_creator_can_edit_or_delete(db_session, teacher, item):
    other_teacher = await make_user(db_session, UserRole.TEACHER)
    with pytest.raises(Forbidden):
        await StorefrontService.update_item(db_session, item.id, other_teacher.id, StoreItemUpdate(price=Decimal("1")))

    item_id = item.id
    await StorefrontService.delete_item(db_session, item_id, teacher.id)
    assert await StorefrontService.get_item(db_session, item_id) is None
