"""Domain 1b: Classes and enrollment"""

from sqlalchemy import Column, String, Table, ForeignKey, DateTime, Uuid

from app.models.base import BaseModel
from app.utils.time import get_utc_now


class Class(BaseModel):
    """
    Teacher-owned class. Students join with the class code; bills and store
    items are assigned per class.
    """
    __tablename__ = "classes"

    teacher_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    emoji = Column(String(16), nullable=True)
    code = Column(String(12), unique=True, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Class {self.name} ({self.code})>"


# Association table for Class <-> Student
class_enrollments = Table(
    "class_enrollments",
    BaseModel.metadata,
    Column("class_id", Uuid(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True),
    Column("student_id", Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("joined_at", DateTime, default=get_utc_now, nullable=False),
)
