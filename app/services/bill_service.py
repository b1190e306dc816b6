"""Bill Service - teacher bill management and status upkeep"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, insert, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import Forbidden, NotFound, ValidationFailed
from app.models.academic import Class
from app.models.billing import Bill, StudentBill, bill_classes, bill_excluded_students
from app.models.enums import BillStatus, UserRole
from app.models.user import User
from app.schemas.billing import BillCreate, BillUpdate
from app.services.academic_service import AcademicService
from app.utils.bill_status import classify_bill_status, status_color
from app.utils.recurrence import frequency_display_text, generate_recurring_dates
from app.utils.time import get_utc_now, get_utc_today

logger = logging.getLogger(__name__)


class BillService:
    """Service layer for bills and per-student bill records"""

    # --- lookups ---

    @staticmethod
    async def get_bill(db: AsyncSession, bill_id: UUID) -> Optional[Bill]:
        result = await db.execute(select(Bill).where(Bill.id == bill_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_bill_class_ids(db: AsyncSession, bill_id: UUID) -> List[UUID]:
        result = await db.execute(select(bill_classes.c.class_id).where(bill_classes.c.bill_id == bill_id))
        return [row[0] for row in result.all()]

    @staticmethod
    async def get_excluded_student_ids(db: AsyncSession, bill_id: UUID) -> List[UUID]:
        result = await db.execute(
            select(bill_excluded_students.c.student_id).where(bill_excluded_students.c.bill_id == bill_id)
        )
        return [row[0] for row in result.all()]

    @staticmethod
    async def get_student_bills(db: AsyncSession, bill_id: UUID) -> List[StudentBill]:
        result = await db.execute(
            select(StudentBill).where(StudentBill.bill_id == bill_id).order_by(StudentBill.created_at)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_student_bill(db: AsyncSession, bill_id: UUID, student_id: UUID) -> Optional[StudentBill]:
        result = await db.execute(
            select(StudentBill).where(
                StudentBill.bill_id == bill_id,
                StudentBill.student_id == student_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _teacher_visible(teacher_id: UUID):
        """Bills the teacher created or that are assigned to one of their classes."""
        assigned = (
            select(bill_classes.c.bill_id)
            .join(Class, Class.id == bill_classes.c.class_id)
            .where(Class.teacher_id == teacher_id)
        )
        return or_(Bill.creator_id == teacher_id, Bill.id.in_(assigned))

    @staticmethod
    async def get_teacher_bill(db: AsyncSession, bill_id: UUID, teacher_id: UUID) -> Bill:
        """
        Raises:
            NotFound: if the bill is missing or not visible to this teacher
        """
        result = await db.execute(
            select(Bill).where(Bill.id == bill_id, BillService._teacher_visible(teacher_id))
        )
        bill = result.scalar_one_or_none()
        if not bill:
            raise NotFound("Bill not found")
        return bill

    @staticmethod
    async def get_creator_bill(db: AsyncSession, bill_id: UUID, teacher_id: UUID) -> Bill:
        """
        Raises:
            NotFound: if the bill does not exist
            Forbidden: if the teacher did not create it
        """
        bill = await BillService.get_bill(db, bill_id)
        if not bill:
            raise NotFound("Bill not found")
        if bill.creator_id != teacher_id:
            raise Forbidden("Only the teacher who created this bill can do that")
        return bill

    @staticmethod
    async def list_teacher_bills(
        db: AsyncSession,
        teacher_id: UUID,
        status: Optional[BillStatus] = None,
    ) -> List[Bill]:
        stmt = select(Bill).where(BillService._teacher_visible(teacher_id))
        if status is not None:
            stmt = stmt.where(Bill.status == status)
        result = await db.execute(stmt.order_by(Bill.due_date, Bill.created_at))
        return list(result.scalars().all())

    @staticmethod
    async def list_student_bills(db: AsyncSession, student_id: UUID) -> List[Tuple[Bill, StudentBill]]:
        """A student's bills, each paired with that student's payment record."""
        result = await db.execute(
            select(Bill, StudentBill)
            .join(StudentBill, StudentBill.bill_id == Bill.id)
            .where(StudentBill.student_id == student_id)
            .order_by(Bill.due_date)
        )
        return [(bill, sb) for bill, sb in result.all()]

    @staticmethod
    async def build_detail(db: AsyncSession, bill: Bill, student_id: Optional[UUID] = None) -> Dict[str, Any]:
        """
        Detail view: the stored bill plus per-student rows, a freshly computed
        status and the upcoming occurrence dates. When ``student_id`` is given
        only that student's row is included.
        """
        student_bills = await BillService.get_student_bills(db, bill.id)
        today = get_utc_today()
        status = classify_bill_status(bill.due_date, bill.is_cancelled, student_bills, today)
        visible = [sb for sb in student_bills if student_id is None or sb.student_id == student_id]
        upcoming = [d for d in generate_recurring_dates(bill.due_date, bill.frequency) if d >= today]

        return {
            "id": bill.id,
            "title": bill.title,
            "emoji": bill.emoji,
            "amount": bill.amount,
            "due_date": bill.due_date,
            "frequency": bill.frequency,
            "status": status,
            "description": bill.description,
            "cancellation_reason": bill.cancellation_reason,
            "cancelled_at": bill.cancelled_at,
            "creator_id": bill.creator_id,
            "created_at": bill.created_at,
            "frequency_text": frequency_display_text(bill.frequency),
            "status_color": status_color(status),
            "class_ids": await BillService.get_bill_class_ids(db, bill.id),
            "excluded_student_ids": await BillService.get_excluded_student_ids(db, bill.id),
            "student_bills": visible,
            "upcoming_dates": upcoming,
        }

    # --- assignment helpers ---

    @staticmethod
    async def _assign_students(db: AsyncSession, bill: Bill, student_ids: List[UUID]) -> List[UUID]:
        """
        Insert zero-paid StudentBill rows for students that have none yet and
        are not excluded. Returns the ids that received a new row. Does not commit.
        """
        if not student_ids:
            return []
        excluded = set(await BillService.get_excluded_student_ids(db, bill.id))
        result = await db.execute(
            select(StudentBill.student_id).where(
                StudentBill.bill_id == bill.id,
                StudentBill.student_id.in_(student_ids),
            )
        )
        existing = {row[0] for row in result.all()}

        created = []
        for student_id in dict.fromkeys(student_ids):
            if student_id in excluded or student_id in existing:
                continue
            db.add(
                StudentBill(
                    bill_id=bill.id,
                    student_id=student_id,
                    amount=bill.amount,
                    paid_amount=Decimal("0.00"),
                    is_paid=False,
                    due_date=bill.due_date,
                )
            )
            created.append(student_id)
        await db.flush()
        return created

    @staticmethod
    async def refresh_bill_status(db: AsyncSession, bill: Bill, today=None) -> BillStatus:
        """Recompute and store one bill's status. Does not commit."""
        student_bills = await BillService.get_student_bills(db, bill.id)
        status = classify_bill_status(bill.due_date, bill.is_cancelled, student_bills, today)
        if bill.status != status:
            bill.status = status
            await db.flush()
        return status

    # --- teacher operations ---

    @staticmethod
    async def create_bill(db: AsyncSession, teacher_id: UUID, data: BillCreate) -> Tuple[Bill, List[UUID]]:
        """
        Create a bill, assign it to the given classes and open a zero-paid
        record for every enrolled student.

        Returns:
            (bill, ids of students who were assigned the bill)

        Raises:
            Forbidden: if any class does not belong to the teacher
        """
        class_ids = list(dict.fromkeys(data.class_ids))
        await AcademicService.ensure_owned_classes(db, class_ids, teacher_id)

        try:
            bill = Bill(
                creator_id=teacher_id,
                title=data.title,
                emoji=data.emoji,
                amount=data.amount,
                due_date=data.due_date,
                frequency=data.frequency,
                description=data.description,
                status=classify_bill_status(data.due_date, False, []),
            )
            db.add(bill)
            await db.flush()

            for class_id in class_ids:
                await db.execute(insert(bill_classes).values(bill_id=bill.id, class_id=class_id))

            student_ids = await AcademicService.student_ids_for_classes(db, class_ids)
            assigned = await BillService._assign_students(db, bill, student_ids)
            await BillService.refresh_bill_status(db, bill)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        await db.refresh(bill)
        logger.info(
            "Bill created for %d student(s)", len(assigned),
            extra={"bill_id": str(bill.id), "user_id": str(teacher_id)},
        )
        return bill, assigned

    @staticmethod
    async def update_bill(db: AsyncSession, bill_id: UUID, teacher_id: UUID, data: BillUpdate) -> Bill:
        """
        Partial update. A new amount applies to students assigned afterwards;
        existing StudentBill snapshots keep the amount they were created with.

        Raises:
            ValidationFailed: if the bill is cancelled
        """
        bill = await BillService.get_teacher_bill(db, bill_id, teacher_id)
        if bill.is_cancelled:
            raise ValidationFailed("Cannot update a cancelled bill")

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field in ("title", "amount", "due_date", "frequency"):
                continue
            setattr(bill, field, value)

        await BillService.refresh_bill_status(db, bill)
        await db.commit()
        await db.refresh(bill)
        return bill

    @staticmethod
    async def copy_to_classes(
        db: AsyncSession,
        bill_id: UUID,
        teacher_id: UUID,
        class_ids: List[UUID],
    ) -> Tuple[Bill, List[UUID]]:
        """
        Assign the bill to additional classes.

        Raises:
            ValidationFailed: if no classes are given or all are already assigned
            Forbidden: if any class does not belong to the teacher
        """
        if not class_ids:
            raise ValidationFailed("Select at least one class")
        bill = await BillService.get_teacher_bill(db, bill_id, teacher_id)
        if bill.is_cancelled:
            raise ValidationFailed("Cannot assign a cancelled bill")
        await AcademicService.ensure_owned_classes(db, class_ids, teacher_id)

        current = set(await BillService.get_bill_class_ids(db, bill.id))
        new_ids = [cid for cid in dict.fromkeys(class_ids) if cid not in current]
        if not new_ids:
            raise ValidationFailed("Bill is already assigned to all selected classes")

        try:
            for class_id in new_ids:
                await db.execute(insert(bill_classes).values(bill_id=bill.id, class_id=class_id))
            student_ids = await AcademicService.student_ids_for_classes(db, new_ids)
            assigned = await BillService._assign_students(db, bill, student_ids)
            await BillService.refresh_bill_status(db, bill)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Bill copied to %d class(es)", len(new_ids),
            extra={"bill_id": str(bill.id), "user_id": str(teacher_id)},
        )
        return bill, assigned

    @staticmethod
    async def remove_from_classes(
        db: AsyncSession,
        bill_id: UUID,
        teacher_id: UUID,
        class_ids: List[UUID],
    ) -> int:
        """
        Unassign the bill from classes (all classes when ``class_ids`` is empty).

        Unpaid records of students who lose every assigned class are deleted;
        records with any payment are kept. Returns the number of classes removed.

        Raises:
            Forbidden: if the teacher did not create the bill
            ValidationFailed: if a class is not assigned this bill
        """
        bill = await BillService.get_creator_bill(db, bill_id, teacher_id)
        current = await BillService.get_bill_class_ids(db, bill.id)

        if class_ids:
            targets = list(dict.fromkeys(class_ids))
            if not set(targets) <= set(current):
                raise ValidationFailed("One or more classes are not assigned this bill")
        else:
            targets = current
        if not targets:
            return 0

        try:
            await db.execute(
                delete(bill_classes).where(
                    bill_classes.c.bill_id == bill.id,
                    bill_classes.c.class_id.in_(targets),
                )
            )
            remaining_classes = [cid for cid in current if cid not in targets]
            still_assigned = set(await AcademicService.student_ids_for_classes(db, remaining_classes))
            affected = [
                sid for sid in await AcademicService.student_ids_for_classes(db, targets)
                if sid not in still_assigned
            ]
            if affected:
                await db.execute(
                    delete(StudentBill).where(
                        StudentBill.bill_id == bill.id,
                        StudentBill.student_id.in_(affected),
                        StudentBill.is_paid.is_(False),
                        StudentBill.paid_amount == 0,
                    )
                )
            await BillService.refresh_bill_status(db, bill)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Bill removed from %d class(es)", len(targets),
            extra={"bill_id": str(bill.id), "user_id": str(teacher_id)},
        )
        return len(targets)

    @staticmethod
    async def exclude_students(db: AsyncSession, bill_id: UUID, teacher_id: UUID, student_ids: List[UUID]) -> int:
        """
        Exempt students from a bill: their records are deleted and they are
        skipped by future class assignments.

        Raises:
            ValidationFailed: if any of them has already paid the bill in full
        """
        bill = await BillService.get_teacher_bill(db, bill_id, teacher_id)
        student_ids = list(dict.fromkeys(student_ids))

        result = await db.execute(
            select(StudentBill.id).where(
                StudentBill.bill_id == bill.id,
                StudentBill.student_id.in_(student_ids),
                StudentBill.is_paid.is_(True),
            )
        )
        if result.first():
            raise ValidationFailed("Cannot exclude students who have already paid this bill")

        try:
            await db.execute(
                delete(StudentBill).where(
                    StudentBill.bill_id == bill.id,
                    StudentBill.student_id.in_(student_ids),
                )
            )
            already = set(await BillService.get_excluded_student_ids(db, bill.id))
            for student_id in student_ids:
                if student_id not in already:
                    await db.execute(
                        insert(bill_excluded_students).values(bill_id=bill.id, student_id=student_id)
                    )
            await BillService.refresh_bill_status(db, bill)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Excluded %d student(s) from bill", len(student_ids), extra={"bill_id": str(bill.id)})
        return len(student_ids)

    @staticmethod
    async def include_students(
        db: AsyncSession,
        bill_id: UUID,
        teacher_id: UUID,
        student_ids: List[UUID],
    ) -> Tuple[Bill, List[UUID]]:
        """
        Reverse an exclusion and open fresh records for the students.

        Raises:
            ValidationFailed: if none of the ids is a known student
        """
        bill = await BillService.get_teacher_bill(db, bill_id, teacher_id)
        if bill.is_cancelled:
            raise ValidationFailed("Cannot assign a cancelled bill")
        result = await db.execute(select(User.id).where(User.id.in_(student_ids), User.role == UserRole.STUDENT))
        valid_ids = [row[0] for row in result.all()]
        if not valid_ids:
            raise ValidationFailed("No valid students found")

        try:
            await db.execute(
                delete(bill_excluded_students).where(
                    bill_excluded_students.c.bill_id == bill.id,
                    bill_excluded_students.c.student_id.in_(valid_ids),
                )
            )
            assigned = await BillService._assign_students(db, bill, valid_ids)
            await BillService.refresh_bill_status(db, bill)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return bill, assigned

    @staticmethod
    async def cancel_bill(db: AsyncSession, bill_id: UUID, teacher_id: UUID, reason: Optional[str] = None) -> Bill:
        """
        Raises:
            Forbidden: if the teacher did not create the bill
            ValidationFailed: if it is already cancelled
        """
        bill = await BillService.get_creator_bill(db, bill_id, teacher_id)
        if bill.is_cancelled:
            raise ValidationFailed("Bill is already cancelled")

        bill.status = BillStatus.CANCELLED
        bill.cancellation_reason = reason
        bill.cancelled_at = get_utc_now()
        await db.commit()
        await db.refresh(bill)
        logger.info("Bill cancelled", extra={"bill_id": str(bill.id), "user_id": str(teacher_id)})
        return bill

    @staticmethod
    async def set_payment_status(
        db: AsyncSession,
        bill_id: UUID,
        teacher_id: UUID,
        student_id: UUID,
        is_paid: bool,
    ) -> StudentBill:
        """
        Teacher override of one student's paid flag. Moves no money; the
        paid amount is left as recorded.

        Raises:
            NotFound: if the student has no record for this bill
        """
        bill = await BillService.get_teacher_bill(db, bill_id, teacher_id)
        student_bill = await BillService.get_student_bill(db, bill.id, student_id)
        if not student_bill:
            raise NotFound("Student is not assigned this bill")

        student_bill.is_paid = is_paid
        student_bill.paid_at = get_utc_now() if is_paid else None
        await BillService.refresh_bill_status(db, bill)
        await db.commit()
        await db.refresh(student_bill)
        return student_bill

    # --- scheduled ---

    @staticmethod
    async def refresh_statuses(db: AsyncSession, today=None) -> Dict[str, int]:
        """
        Recompute the stored status of every non-cancelled bill.

        Returns:
            {"checked": n, "updated": m}
        """
        today = today or get_utc_today()
        result = await db.execute(select(Bill).where(Bill.status != BillStatus.CANCELLED))
        bills = list(result.scalars().all())

        updated = 0
        for bill in bills:
            previous = bill.status
            if await BillService.refresh_bill_status(db, bill, today) != previous:
                updated += 1
        await db.commit()

        logger.info("Bill statuses refreshed: %d checked, %d updated", len(bills), updated)
        return {"checked": len(bills), "updated": updated}

