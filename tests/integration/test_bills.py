"""Integration tests for BillService: assignment, exclusion, cancellation and status refresh."""

from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from app.core.exceptions import Forbidden, NotFound, ValidationFailed
from app.models import Bill, StudentBill
from app.models.enums import BillFrequency, BillStatus, UserRole
from app.schemas.billing import BillCreate, BillUpdate
from app.services.bill_service import BillService
from app.utils.time import get_utc_today
from tests.factories import make_class, make_user


def _bill(class_ids, due_date, **overrides) -> BillCreate:
    data = {"title": "Rent", "amount": Decimal("100.00"), "due_date": due_date, "class_ids": class_ids}
    data.update(overrides)
    return BillCreate(**data)


async def _student_ids(db, bill_id):
    result = await db.execute(select(StudentBill.student_id).where(StudentBill.bill_id == bill_id))
    return {row[0] for row in result.all()}


class TestCreateBill:
    async def test_assigns_every_enrolled_student(self, db_session, teacher, student, classroom, future_due):
        second = await make_user(db_session, UserRole.STUDENT)
        other_class = await make_class(db_session, teacher, [second, student], name="Period 2")

        bill, assigned = await BillService.create_bill(
            db_session, teacher.id, _bill([classroom.id, other_class.id], future_due)
        )

        assert set(assigned) == {student.id, second.id}
        assert await _student_ids(db_session, bill.id) == {student.id, second.id}
        assert bill.status == BillStatus.ACTIVE
        rows = await BillService.get_student_bills(db_session, bill.id)
        assert all(r.amount == Decimal("100.00") and r.paid_amount == 0 for r in rows)

    async def test_rejects_classes_of_another_teacher(self, db_session, teacher, future_due):
        other_teacher = await make_user(db_session, UserRole.TEACHER)
        foreign = await make_class(db_session, other_teacher)

        with pytest.raises(Forbidden):
            await BillService.create_bill(db_session, teacher.id, _bill([foreign.id], future_due))

    async def test_detail_lists_upcoming_dates(self, db_session, teacher, student, classroom, future_due):
        bill, _ = await BillService.create_bill(
            db_session, teacher.id, _bill([classroom.id], future_due, frequency=BillFrequency.WEEKLY)
        )

        detail = await BillService.build_detail(db_session, bill, student_id=student.id)

        assert detail["frequency_text"] == "Every week"
        assert detail["upcoming_dates"][0] == future_due
        assert len(detail["upcoming_dates"]) == 13
        assert detail["class_ids"] == [classroom.id]
        assert [sb.student_id for sb in detail["student_bills"]] == [student.id]


class TestUpdateBill:
    async def test_amount_change_keeps_existing_snapshots(self, db_session, teacher, student, classroom, future_due):
        bill, _ = await BillService.create_bill(db_session, teacher.id, _bill([classroom.id], future_due))

        updated = await BillService.update_bill(
            db_session, bill.id, teacher.id, BillUpdate(amount=Decimal("150.00"), title="New rent")
        )

        assert updated.amount == Decimal("150.00")
        assert updated.title == "New rent"
        snapshot = await BillService.get_student_bill(db_session, bill.id, student.id)
        assert snapshot.amount == Decimal("100.00")

    async def test_cancelled_bill_cannot_be_updated(self, db_session, teacher, classroom, future_due):
        bill, _ = await BillService.create_bill(db_session, teacher.id, _bill([classroom.id], future_due))
        await BillService.cancel_bill(db_session, bill.id, teacher.id)

        with pytest.raises(ValidationFailed, match="Cannot update a cancelled bill"):
            await BillService.update_bill(db_session, bill.id, teacher.id, BillUpdate(title="x"))


class TestClassAssignment:
    async def test_copy_then_remove(self, db_session, teacher, student, classroom, future_due):
        newcomer = await make_user(db_session, UserRole.STUDENT)
        period_two = await make_class(db_session, teacher, [newcomer, student], name="Period 2")
        bill, _ = await BillService.create_bill(db_session, teacher.id, _bill([classroom.id], future_due))

        _, assigned = await BillService.copy_to_classes(db_session, bill.id, teacher.id, [period_two.id])
        assert assigned == [newcomer.id]

        with pytest.raises(ValidationFailed, match="already assigned to all selected classes"):
            await BillService.copy_to_classes(db_session, bill.id, teacher.id, [period_two.id])

        removed = await BillService.remove_from_classes(db_session, bill.id, teacher.id, [period_two.id])
        assert removed == 1
        # ``student`` is still in the first class and keeps the bill
        assert await _student_ids(db_session, bill.id) == {student.id}

    async def test_copy_requires_classes(self, db_session, teacher, classroom, future_due):
        bill, _ = await BillService.create_bill(db_session, teacher.id, _bill([classroom.id], future_due))
        with pytest.raises(ValidationFailed, match="Select at least one class"):
            await BillService.copy_to_classes(db_session, bill.id, teacher.id, [])

    async def test_remove_all_keeps_records_with_payments(self, db_session, teacher, student, classroom, future_due):
        unpaid = await make_user(db_session, UserRole.STUDENT)
        period_two = await make_class(db_session, teacher, [unpaid], name="Period 2")
        bill, _ = await BillService.create_bill(db_session, teacher.id, _bill([classroom.id], future_due))
        await BillService.copy_to_classes(db_session, bill.id, teacher.id, [period_two.id])
        await BillService.set_payment_status(db_session, bill.id, teacher.id, student.id, True)

        await BillService.remove_from_classes(db_session, bill.id, teacher.id, [])

        assert await BillService.get_bill_class_ids(db_session, bill.id) == []
        assert await _student_ids(db_session, bill.id) == {student.id}

    async def test_remove_unknown_class_rejected(self, db_session, teacher, classroom, future_due):
        other = await make_class(db_session, teacher, name="Period 9")
        bill, _ = await BillService.create_bill(db_session, teacher.id, _bill([classroom.id], future_due))
        with pytest.raises(ValidationFailed, match="not assigned this bill"):
            await BillService.remove_from_classes(db_session, bill.id, teacher.id, [other.id])

    async def test_only_creator_can_remove(self, db_session, teacher, classroom, future_due):
        bill, _ = await BillService.create_bill(db_session, teacher.id, _bill([classroom.id], future_due))
        other_teacher = await make_user(db_session, UserRole.TEACHER)
        with pytest.raises(Forbidden, match="Only the teacher who created this bill"):
            await BillService.remove_from_classes(db_session, bill.id, other_teacher.id, [])


class TestExclusion:
    async def test_exclude_then_include(self, db_session, teacher, student, classroom, future_due):
        bill, _ = await BillService.create_bill(db_session, teacher.id, _bill([classroom.id], future_due))

        assert await BillService.exclude_students(db_session, bill.id, teacher.id, [student.id]) == 1
        assert await _student_ids(db_session, bill.id) == set()
        assert await BillService.get_excluded_student_ids(db_session, bill.id) == [student.id]

        # Excluded students are skipped when the bill reaches a class again
        period_two = await make_class(db_session, teacher, [student], name="Period 2")
        await BillService.copy_to_classes(db_session, bill.id, teacher.id, [period_two.id])
        assert await _student_ids(db_session, bill.id) == set()

        _, assigned = await BillService.include_students(db_session, bill.id, teacher.id, [student.id])
        assert assigned == [student.id]
        assert await BillService.get_excluded_student_ids(db_session, bill.id) == []

    async def test_paid_students_cannot_be_excluded(self, db_session, teacher, student, classroom, future_due):
        bill, _ = await BillService.create_bill(db_session, teacher.id, _bill([classroom.id], future_due))
        await BillService.set_payment_status(db_session, bill.id, teacher.id, student.id, True)

        with pytest.raises(ValidationFailed, match="already paid"):
            await BillService.exclude_students(db_session, bill.id, teacher.id, [student.id])

    async def test_include_rejects_non_students(self, db_session, teacher, classroom, future_due):
        bill, _ = await BillService.create_bill(db_session, teacher.id, _bill([classroom.id], future_due))
        with pytest.raises(ValidationFailed, match="No valid students found"):
            await BillService.include_students(db_session, bill.id, teacher.id, [teacher.id])


class TestCancelAndStatus:
    async def test_cancel_records_reason(self, db_session, teacher, classroom, future_due):
        bill, _ = await BillService.create_bill(db_session, teacher.id, _bill([classroom.id], future_due))

        cancelled = await BillService.cancel_bill(db_session, bill.id, teacher.id, "Duplicate")

        assert cancelled.status == BillStatus.CANCELLED
        assert cancelled.cancellation_reason == "Duplicate"
        assert cancelled.cancelled_at is not None
        with pytest.raises(ValidationFailed, match="already cancelled"):
            await BillService.cancel_bill(db_session, bill.id, teacher.id)

    async def test_manual_payment_status_updates_bill(self, db_session, teacher, student, classroom, future_due):
        bill, _ = await BillService.create_bill(db_session, teacher.id, _bill([classroom.id], future_due))

        record = await BillService.set_payment_status(db_session, bill.id, teacher.id, student.id, True)

        assert record.is_paid is True
        assert record.paid_amount == Decimal("0.00")
        stored = await db_session.execute(select(Bill.status).where(Bill.id == bill.id))
        assert stored.scalar_one() == BillStatus.PAID

    async def test_payment_status_for_unassigned_student(self, db_session, teacher, classroom, future_due):
        outsider = await make_user(db_session, UserRole.STUDENT)
        bill, _ = await BillService.create_bill(db_session, teacher.id, _bill([classroom.id], future_due))
        with pytest.raises(NotFound, match="Student is not assigned this bill"):
            await BillService.set_payment_status(db_session, bill.id, teacher.id, outsider.id, True)

    async def test_refresh_statuses_marks_overdue_bills_late(self, db_session, teacher, classroom, future_due):
        bill, _ = await BillService.create_bill(db_session, teacher.id, _bill([classroom.id], future_due))
        cancelled, _ = await BillService.create_bill(db_session, teacher.id, _bill([classroom.id], future_due))
        await BillService.cancel_bill(db_session, cancelled.id, teacher.id)

        summary = await BillService.refresh_statuses(db_session, today=future_due + timedelta(days=1))

        assert summary == {"checked": 1, "updated": 1}
        stored = await db_session.execute(select(Bill.status).where(Bill.id == bill.id))
        assert stored.scalar_one() == BillStatus.LATE

    async def test_due_today(self, db_session, teacher, classroom):
        bill, _ = await BillService.create_bill(db_session, teacher.id, _bill([classroom.id], get_utc_today()))
        assert bill.status == BillStatus.DUE

    async def test_due_today_without_students_is_active(self, db_session, teacher):
        empty = await make_class(db_session, teacher, name="Empty")
        bill, assigned = await BillService.create_bill(db_session, teacher.id, _bill([empty.id], get_utc_today()))
        assert assigned == []
        assert bill.status == BillStatus.ACTIVE


class TestVisibility:
    async def test_student_list_and_teacher_scope(self, db_session, teacher, student, classroom, future_due):
        bill, _ = await BillService.create_bill(db_session, teacher.id, _bill([classroom.id], future_due))

        pairs = await BillService.list_student_bills(db_session, student.id)
        assert [(b.id, sb.student_id) for b, sb in pairs] == [(bill.id, student.id)]

        assert [b.id for b in await BillService.list_teacher_bills(db_session, teacher.id)] == [bill.id]
        stranger = await make_user(db_session, UserRole.TEACHER)
        assert await BillService.list_teacher_bills(db_session, stranger.id) == []
        with pytest.raises(NotFound):
            await BillService.get_teacher_bill(db_session, bill.id, stranger.id)
