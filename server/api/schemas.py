from pydantic import BaseModel, Field

from core.models import (
    Course,
    CourseCreate,
    CourseUpdate,
    Student,
    StudentCreate,
    StudentUpdate,
)

__all__ = [
    "CourseCreate",
    "CourseDetailResponse",
    "CourseListResponse",
    "CourseUpdate",
    "EnrollmentResponse",
    "ErrorResponse",
    "HealthResponse",
    "StudentCreate",
    "StudentDetailResponse",
    "StudentListResponse",
    "StudentUpdate",
]


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Error message")


class HealthResponse(BaseModel):
    status: str
    service: str


class StudentListResponse(BaseModel):
    students: list[Student]
    total: int = Field(..., description="Number of students matching the filters")


class CourseListResponse(BaseModel):
    courses: list[Course]
    total: int = Field(..., description="Number of courses matching the filters")


class StudentDetailResponse(BaseModel):
    """Student with the courses they are enrolled in"""
    student: Student
    courses: list[Course] = []


class CourseDetailResponse(BaseModel):
    """Course with its enrolled students"""
    course: Course
    students: list[Student] = []


class EnrollmentResponse(BaseModel):
    success: bool = True
