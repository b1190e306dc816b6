import logging
from typing import Optional, List, Dict, Tuple
from uuid import UUID

from sqlalchemy import select, func, insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import Conflict, Forbidden, NotFound, ValidationFailed
from app.core.security import generate_class_code
from app.models.academic import Class, class_enrollments
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.academic import ClassCreate

logger = logging.getLogger(__name__)

_CODE_ATTEMPTS = 5


class AcademicService:
    @staticmethod
    async def get_class_by_id(db: AsyncSession, class_id: UUID) -> Optional[Class]:
        result = await db.execute(select(Class).where(Class.id == class_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_class_by_code(db: AsyncSession, code: str) -> Optional[Class]:
        result = await db.execute(select(Class).where(Class.code == code.strip().upper()))
        return result.scalar_one_or_none()

    @staticmethod
    async def create_class(db: AsyncSession, teacher_id: UUID, class_data: ClassCreate) -> Class:
        """Create a class with a fresh join code, retrying on the rare code collision."""
        for _ in range(_CODE_ATTEMPTS):
            code = generate_class_code()
            if await AcademicService.get_class_by_code(db, code):
                continue
            new_class = Class(
                teacher_id=teacher_id,
                name=class_data.name,
                emoji=class_data.emoji,
                code=code,
            )
            db.add(new_class)
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                continue
            await db.refresh(new_class)
            logger.info("Class created", extra={"user_id": str(teacher_id)})
            return new_class
        raise Conflict("Could not allocate a class code, please retry")

    @staticmethod
    async def get_owned_class(db: AsyncSession, class_id: UUID, teacher_id: UUID) -> Class:
        """Fetch a class the teacher owns; other teachers' classes look missing."""
        cls = await AcademicService.get_class_by_id(db, class_id)
        if not cls or cls.teacher_id != teacher_id:
            raise NotFound("Class not found")
        return cls

    @staticmethod
    async def ensure_owned_classes(db: AsyncSession, class_ids: List[UUID], teacher_id: UUID) -> None:
        """
        Raises:
            Forbidden: if any class is missing or belongs to another teacher
        """
        unique_ids = set(class_ids)
        if not unique_ids:
            return
        result = await db.execute(
            select(func.count(Class.id)).where(
                Class.id.in_(unique_ids),
                Class.teacher_id == teacher_id,
            )
        )
        if result.scalar_one() != len(unique_ids):
            raise Forbidden("You can only assign classes you teach")

    @staticmethod
    async def get_teacher_classes(db: AsyncSession, teacher_id: UUID) -> List[Tuple[Class, int]]:
        """Teacher's classes paired with their enrolled student counts."""
        stmt = (
            select(Class, func.count(class_enrollments.c.student_id))
            .outerjoin(class_enrollments, class_enrollments.c.class_id == Class.id)
            .where(Class.teacher_id == teacher_id)
            .group_by(Class.id)
            .order_by(Class.created_at)
        )
        result = await db.execute(stmt)
        return [(cls, count) for cls, count in result.all()]

    @staticmethod
    async def get_student_classes(db: AsyncSession, student_id: UUID) -> List[Class]:
        stmt = (
            select(Class)
            .join(class_enrollments, class_enrollments.c.class_id == Class.id)
            .where(class_enrollments.c.student_id == student_id)
            .order_by(Class.name)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def is_enrolled(db: AsyncSession, class_id: UUID, student_id: UUID) -> bool:
        result = await db.execute(
            select(class_enrollments).where(
                class_enrollments.c.class_id == class_id,
                class_enrollments.c.student_id == student_id,
            )
        )
        return result.first() is not None

    @staticmethod
    async def enroll_student(
        db: AsyncSession,
        class_id: UUID,
        student_id: UUID,
        auto_commit: bool = True,
    ) -> bool:
        """
        Enroll a student. Returns False if they were already enrolled.

        Raises:
            ValidationFailed: if the user is not a student
        """
        student = await db.get(User, student_id)
        if not student or student.role != UserRole.STUDENT:
            raise ValidationFailed("User is not a student")
        if await AcademicService.is_enrolled(db, class_id, student_id):
            return False

        await db.execute(insert(class_enrollments).values(class_id=class_id, student_id=student_id))
        if auto_commit:
            await db.commit()
        else:
            await db.flush()
        return True

    @staticmethod
    async def join_by_code(db: AsyncSession, code: str, student_id: UUID) -> Class:
        cls = await AcademicService.get_class_by_code(db, code)
        if not cls:
            raise NotFound("Invalid class code")
        await AcademicService.enroll_student(db, cls.id, student_id)
        return cls

    @staticmethod
    async def student_ids_for_classes(db: AsyncSession, class_ids: List[UUID]) -> List[UUID]:
        """Distinct students enrolled in any of the classes."""
        if not class_ids:
            return []
        result = await db.execute(
            select(class_enrollments.c.student_id)
            .where(class_enrollments.c.class_id.in_(class_ids))
            .distinct()
        )
        return [row[0] for row in result.all()]

    @staticmethod
    async def teacher_student_ids(db: AsyncSession, teacher_id: UUID) -> set:
        """Every student enrolled in at least one of the teacher's classes."""
        result = await db.execute(
            select(class_enrollments.c.student_id)
            .join(Class, Class.id == class_enrollments.c.class_id)
            .where(Class.teacher_id == teacher_id)
            .distinct()
        )
        return {row[0] for row in result.all()}

    @staticmethod
    async def ensure_teacher_of_students(db: AsyncSession, teacher_id: UUID, student_ids: List[UUID]) -> None:
        """
        Raises:
            Forbidden: if any student is not enrolled in the teacher's classes
        """
        allowed = await AcademicService.teacher_student_ids(db, teacher_id)
        if not set(student_ids) <= allowed:
            raise Forbidden("You can only manage students enrolled in your classes")

    @staticmethod
    async def class_student_counts(db: AsyncSession, class_ids: List[UUID]) -> Dict[UUID, int]:
        if not class_ids:
            return {}
        result = await db.execute(
            select(class_enrollments.c.class_id, func.count(class_enrollments.c.student_id))
            .where(class_enrollments.c.class_id.in_(class_ids))
            .group_by(class_enrollments.c.class_id)
        )
        return {class_id: count for class_id, count in result.all()}
