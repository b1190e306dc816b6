"""Domain 1: User & Authentication Model"""

from sqlalchemy import Column, String, Enum

from app.models.base import BaseModel, StatusMixin
from app.models.enums import UserRole


class User(BaseModel, StatusMixin):
    """
    Unified user model for all roles (Super Admin, Teacher, Student).
    Students sign in with their school email; staff with their own email.
    """
    __tablename__ = "users"

    # Authentication
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)

    # Personal Information
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)

    # Role & Permissions (RBAC)
    role = Column(Enum(UserRole, name="user_role"), nullable=False, index=True)

    @property
    def full_name(self) -> str:
        """Get user's full name"""
        return f"{self.first_name} {self.last_name}"

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN

    @property
    def is_teacher(self) -> bool:
        return self.role == UserRole.TEACHER

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.STUDENT

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
