"""
Student / course / enrollment endpoints
- thin layer over core.storage.Storage
- filtering and pagination happen here, the store always returns full lists
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from api.schemas import (
    CourseCreate,
    CourseDetailResponse,
    CourseListResponse,
    CourseUpdate,
    EnrollmentResponse,
    ErrorResponse,
    HealthResponse,
    StudentCreate,
    StudentDetailResponse,
    StudentListResponse,
    StudentUpdate,
)
from core.models import Course, StoreError, Student
from core.storage import COURSES, STUDENTS, Storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="")

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Validation failed"},
    404: {"model": ErrorResponse, "description": "Not found"},
}


def get_storage(request: Request) -> Storage:
    return request.app.state.store


def _bad_request(result: StoreError) -> HTTPException:
    logger.info(f"Request rejected - kind: {result.kind.value}, error: {result.error}")
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.error)


def _paginate(items: list, page: int, limit: int) -> list:
    start = (page - 1) * limit
    return items[start:start + limit]


@router.get("/health", response_model=HealthResponse, tags=["Health"])
def health_check(request: Request) -> HealthResponse:
    return HealthResponse(status="ok", service=request.app.title)


# ==================== Students ====================

@router.get("/students", response_model=StudentListResponse, tags=["Students"])
def list_students(
    name: Optional[str] = Query(default=None, description="Filter by name (partial match)"),
    email: Optional[str] = Query(default=None, description="Filter by email (partial match)"),
    page: int = Query(default=1, ge=1, description="Page number"),
    limit: int = Query(default=10, ge=1, le=100, description="Students per page"),
    storage: Storage = Depends(get_storage),
) -> StudentListResponse:
    """Paginated list of students with optional filters"""
    students: list[Student] = storage.list(STUDENTS)
    if name:
        students = [s for s in students if name in s.name]
    if email:
        students = [s for s in students if email in s.email]
    return StudentListResponse(students=_paginate(students, page, limit), total=len(students))


@router.get(
    "/students/{student_id}",
    response_model=StudentDetailResponse,
    responses=ERROR_RESPONSES,
    tags=["Students"],
)
def get_student(student_id: int, storage: Storage = Depends(get_storage)) -> StudentDetailResponse:
    """Student details and the courses they are enrolled in"""
    student = storage.get(STUDENTS, student_id)
    if not student:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    return StudentDetailResponse(student=student, courses=storage.get_student_courses(student_id))


@router.post(
    "/students",
    response_model=Student,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    tags=["Students"],
)
def create_student(payload: StudentCreate, storage: Storage = Depends(get_storage)) -> Student:
    result = storage.create(STUDENTS, payload)
    if isinstance(result, StoreError):
        raise _bad_request(result)
    return result


@router.put(
    "/students/{student_id}",
    response_model=Student,
    responses=ERROR_RESPONSES,
    tags=["Students"],
)
def update_student(
    student_id: int,
    payload: StudentUpdate,
    storage: Storage = Depends(get_storage),
) -> Student:
    """Update a student - only the fields sent are changed"""
    result = storage.update_by_id(STUDENTS, student_id, payload)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    if isinstance(result, StoreError):
        raise _bad_request(result)
    return result


@router.delete(
    "/students/{student_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=ERROR_RESPONSES,
    tags=["Students"],
)
def delete_student(student_id: int, storage: Storage = Depends(get_storage)) -> Response:
    result = storage.remove(STUDENTS, student_id)
    if result is False:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    if isinstance(result, StoreError):
        raise _bad_request(result)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ==================== Courses ====================

@router.get("/courses", response_model=CourseListResponse, tags=["Courses"])
def list_courses(
    title: Optional[str] = Query(default=None, description="Filter by title (partial match)"),
    teacher: Optional[str] = Query(default=None, description="Filter by teacher (partial match)"),
    page: int = Query(default=1, ge=1, description="Page number"),
    limit: int = Query(default=10, ge=1, le=100, description="Courses per page"),
    storage: Storage = Depends(get_storage),
) -> CourseListResponse:
    """Paginated list of courses with optional filters"""
    courses: list[Course] = storage.list(COURSES)
    if title:
        courses = [c for c in courses if title in c.title]
    if teacher:
        courses = [c for c in courses if teacher in c.teacher]
    return CourseListResponse(courses=_paginate(courses, page, limit), total=len(courses))


@router.get(
    "/courses/{course_id}",
    response_model=CourseDetailResponse,
    responses=ERROR_RESPONSES,
    tags=["Courses"],
)
def get_course(course_id: int, storage: Storage = Depends(get_storage)) -> CourseDetailResponse:
    """Course details and its enrolled students"""
    course = storage.get(COURSES, course_id)
    if not course:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")
    return CourseDetailResponse(course=course, students=storage.get_course_students(course_id))


@router.post(
    "/courses",
    response_model=Course,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    tags=["Courses"],
)
def create_course(payload: CourseCreate, storage: Storage = Depends(get_storage)) -> Course:
    result = storage.create(COURSES, payload)
    if isinstance(result, StoreError):
        raise _bad_request(result)
    return result


@router.put(
    "/courses/{course_id}",
    response_model=Course,
    responses=ERROR_RESPONSES,
    tags=["Courses"],
)
def update_course(
    course_id: int,
    payload: CourseUpdate,
    storage: Storage = Depends(get_storage),
) -> Course:
    result = storage.update_by_id(COURSES, course_id, payload)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")
    if isinstance(result, StoreError):
        raise _bad_request(result)
    return result


@router.delete(
    "/courses/{course_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=ERROR_RESPONSES,
    tags=["Courses"],
)
def delete_course(course_id: int, storage: Storage = Depends(get_storage)) -> Response:
    result = storage.remove(COURSES, course_id)
    if result is False:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")
    if isinstance(result, StoreError):
        raise _bad_request(result)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ==================== Enrollments ====================

@router.post(
    "/courses/{course_id}/students/{student_id}",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    tags=["Enrollments"],
)
def enroll_student(
    course_id: int,
    student_id: int,
    storage: Storage = Depends(get_storage),
) -> EnrollmentResponse:
    """Enroll a student in a course (at most 3 students per course by default)"""
    result = storage.enroll(student_id, course_id)
    if isinstance(result, StoreError):
        raise _bad_request(result)
    return EnrollmentResponse(success=result.success)


@router.delete(
    "/courses/{course_id}/students/{student_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=ERROR_RESPONSES,
    tags=["Enrollments"],
)
def unenroll_student(
    course_id: int,
    student_id: int,
    storage: Storage = Depends(get_storage),
) -> Response:
    result = storage.unenroll(student_id, course_id)
    if isinstance(result, StoreError):
        raise _bad_request(result)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
