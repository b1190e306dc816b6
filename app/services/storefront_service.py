"""Storefront Service - teacher store items and student purchases"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import Conflict, Forbidden, InsufficientFunds, NotFound, ValidationFailed
from app.models.academic import class_enrollments
from app.models.banking import BankAccount, Transaction
from app.models.enums import PurchaseStatus, TransactionType
from app.models.storefront import StoreItem, StudentPurchase, store_item_classes
from app.schemas.storefront import PurchaseRequest, StoreItemCreate, StoreItemUpdate
from app.services.academic_service import AcademicService
from app.services.banking_service import BankingService
from app.utils.time import get_utc_now

logger = logging.getLogger(__name__)


class StorefrontService:
    @staticmethod
    async def get_item(db: AsyncSession, item_id: UUID) -> Optional[StoreItem]:
        result = await db.execute(select(StoreItem).where(StoreItem.id == item_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_owned_item(db: AsyncSession, item_id: UUID, teacher_id: UUID) -> StoreItem:
        item = await StorefrontService.get_item(db, item_id)
        if not item:
            raise NotFound("Store item not found")
        if item.creator_id != teacher_id:
            raise Forbidden("Only the teacher who created this item can change it")
        return item

    @staticmethod
    async def create_item(db: AsyncSession, teacher_id: UUID, data: StoreItemCreate) -> StoreItem:
        class_ids = list(dict.fromkeys(data.class_ids))
        await AcademicService.ensure_owned_classes(db, class_ids, teacher_id)

        item = StoreItem(
            creator_id=teacher_id,
            name=data.name,
            emoji=data.emoji,
            description=data.description,
            price=data.price,
            quantity=data.quantity,
            is_available=data.is_available,
        )
        db.add(item)
        await db.flush()
        for class_id in class_ids:
            await db.execute(insert(store_item_classes).values(item_id=item.id, class_id=class_id))
        await db.commit()
        await db.refresh(item)
        logger.info("Store item created: %s", item.name, extra={"user_id": str(teacher_id)})
        return item

    @staticmethod
    async def update_item(db: AsyncSession, item_id: UUID, teacher_id: UUID, data: StoreItemUpdate) -> StoreItem:
        item = await StorefrontService.get_owned_item(db, item_id, teacher_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field in ("name", "price", "quantity", "is_available"):
                continue
            setattr(item, field, value)
        await db.commit()
        await db.refresh(item)
        return item

    @staticmethod
    async def delete_item(db: AsyncSession, item_id: UUID, teacher_id: UUID) -> None:
        item = await StorefrontService.get_owned_item(db, item_id, teacher_id)
        await db.execute(delete(store_item_classes).where(store_item_classes.c.item_id == item.id))
        await db.delete(item)
        await db.commit()
        logger.info("Store item deleted", extra={"user_id": str(teacher_id)})

    @staticmethod
    async def list_class_items(db: AsyncSession, class_id: UUID, available_only: bool = False) -> List[StoreItem]:
        stmt = (
            select(StoreItem)
            .join(store_item_classes, store_item_classes.c.item_id == StoreItem.id)
            .where(store_item_classes.c.class_id == class_id)
        )
        if available_only:
            stmt = stmt.where(StoreItem.is_available.is_(True))
        result = await db.execute(stmt.order_by(StoreItem.name))
        return list(result.scalars().all())

    @staticmethod
    async def list_student_class_items(db: AsyncSession, class_id: UUID, student_id: UUID) -> List[StoreItem]:
        """Raises NotFound unless the student is enrolled in the class."""
        if not await AcademicService.is_enrolled(db, class_id, student_id):
            raise NotFound("Class not found")
        return await StorefrontService.list_class_items(db, class_id, available_only=True)

    @staticmethod
    async def _visible_to_student(db: AsyncSession, item_id: UUID, student_id: UUID) -> bool:
        result = await db.execute(
            select(store_item_classes.c.class_id)
            .join(class_enrollments, class_enrollments.c.class_id == store_item_classes.c.class_id)
            .where(
                store_item_classes.c.item_id == item_id,
                class_enrollments.c.student_id == student_id,
            )
        )
        return result.first() is not None

    @staticmethod
    async def purchase(db: AsyncSession, student_id: UUID, data: PurchaseRequest) -> Dict[str, Any]:
        """
        Buy ``quantity`` units of an item with one of the student's accounts.

        Atomically decrements stock, debits the account, accumulates the
        student's purchase record and writes one WITHDRAWAL row.

        Raises:
            NotFound: unknown account or item
            ValidationFailed: item unavailable or not enough stock
            InsufficientFunds: balance below the total price
        """
        account = await BankingService.get_owned_account(db, data.account_id, student_id)
        item = await StorefrontService.get_item(db, data.item_id)
        if not item or not await StorefrontService._visible_to_student(db, item.id, student_id):
            raise NotFound("Store item not found")
        if not item.is_available:
            raise ValidationFailed("This item is not available for purchase")
        if item.quantity < data.quantity:
            raise ValidationFailed("Not enough items in stock")

        total = Decimal(item.price) * data.quantity
        if Decimal(account.balance) < total:
            raise InsufficientFunds("Insufficient balance to purchase this item")

        try:
            stock = await db.execute(
                update(StoreItem)
                .where(StoreItem.id == item.id, StoreItem.quantity >= data.quantity)
                .values(quantity=StoreItem.quantity - data.quantity, updated_at=get_utc_now())
                .execution_options(synchronize_session=False)
            )
            if stock.rowcount != 1:
                raise ValidationFailed("Not enough items in stock")

            debit = await db.execute(
                update(BankAccount)
                .where(BankAccount.id == account.id, BankAccount.balance >= total)
                .values(balance=BankAccount.balance - total, updated_at=get_utc_now())
                .execution_options(synchronize_session=False)
            )
            if debit.rowcount != 1:
                raise InsufficientFunds("Insufficient balance to purchase this item")

            result = await db.execute(
                select(StudentPurchase)
                .where(StudentPurchase.item_id == item.id, StudentPurchase.student_id == student_id)
                .with_for_update()
            )
            purchase = result.scalar_one_or_none()
            if purchase:
                purchase.quantity = purchase.quantity + data.quantity
                purchase.total_price = Decimal(purchase.total_price) + total
            else:
                purchase = StudentPurchase(
                    item_id=item.id,
                    student_id=student_id,
                    quantity=data.quantity,
                    total_price=total,
                    status=PurchaseStatus.PAID,
                )
                db.add(purchase)

            db.add(
                Transaction(
                    account_id=account.id,
                    amount=total,
                    description=f"Purchased {data.quantity}x {item.name}",
                    transaction_type=TransactionType.WITHDRAWAL,
                )
            )
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise Conflict() from None
        except Exception:
            await db.rollback()
            raise

        await db.refresh(account)
        await db.refresh(purchase)
        logger.info(
            "Purchased %dx %s", data.quantity, item.name,
            extra={"user_id": str(student_id), "account_id": str(account.id)},
        )
        return {"purchase": purchase, "account": account}
