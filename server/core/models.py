"""
Domain models for the student/course store
- Student, Course: entities with store-assigned integer ids
- *Create / *Update: validated field sets accepted by the store
- Enrollment: student <-> course relation
- StoreError / EnrollmentResult: structured outcomes returned by the store
"""
import re
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import field_validator
from sqlmodel import Field, SQLModel

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'


class ErrorKind(str, Enum):
    """Failure categories, used by the HTTP layer to pick a status code."""
    not_found = "not_found"
    validation = "validation"
    capacity = "capacity"
    integrity = "integrity"


def _check_email(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    if not re.match(EMAIL_PATTERN, v):
        raise ValueError("Invalid email format")
    return v


class StudentBase(SQLModel):
    name: str = Field(min_length=1, description="Full name of the student")
    email: str = Field(min_length=1, description="Unique email address")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _check_email(v)


class Student(StudentBase):
    id: int = Field(description="Unique student identifier")


class StudentCreate(StudentBase):
    pass


class StudentUpdate(SQLModel):
    """Partial update - only the fields sent are changed"""
    name: Optional[str] = Field(default=None, description="New name")
    email: Optional[str] = Field(default=None, description="New email address")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        # blank means "not supplied"
        if v is not None and not v.strip():
            return None
        return _check_email(v)


class CourseBase(SQLModel):
    title: str = Field(min_length=1, description="Unique course title")
    teacher: str = Field(min_length=1, description="Name of the teacher")


class Course(CourseBase):
    id: int = Field(description="Unique course identifier")


class CourseCreate(CourseBase):
    pass


class CourseUpdate(SQLModel):
    """Partial update - only the fields sent are changed"""
    title: Optional[str] = Field(default=None, description="New title")
    teacher: Optional[str] = Field(default=None, description="New teacher")


class Enrollment(SQLModel):
    """Registration of one student in one course."""
    student_id: int
    course_id: int
    enrolled_at: datetime = Field(default_factory=datetime.utcnow)


class StoreError(SQLModel):
    error: str
    kind: ErrorKind = ErrorKind.validation

    def to_payload(self) -> dict:
        return {"error": self.error}


class EnrollmentResult(SQLModel):
    success: bool = True
