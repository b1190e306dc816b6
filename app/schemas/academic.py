from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ClassCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    emoji: Optional[str] = Field(None, max_length=16)


class ClassResponse(BaseModel):
    id: UUID
    name: str
    emoji: Optional[str] = None
    code: str
    teacher_id: UUID
    student_count: int = 0

    model_config = ConfigDict(from_attributes=True)


class EnrollStudent(BaseModel):
    student_id: UUID


class JoinClassRequest(BaseModel):
    code: str = Field(..., min_length=4, max_length=12)
