"""
In-memory store for students, courses and enrollments
- uniqueness (student email, course title)
- course capacity
- delete guards while an enrollment references the entity

Domain failures are returned as StoreError values, never raised.
"""
import logging
import threading
from typing import Any, List, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError

from core.models import (
    Course,
    CourseCreate,
    CourseUpdate,
    Enrollment,
    EnrollmentResult,
    ErrorKind,
    StoreError,
    Student,
    StudentCreate,
    StudentUpdate,
)

logger = logging.getLogger(__name__)

STUDENTS = "students"
COURSES = "courses"
ENROLLMENTS = "enrollments"

# a course holds at most three students unless configured otherwise
DEFAULT_CAPACITY = 3

STUDENT_REQUIRED = "name and email required"
STUDENT_INVALID = "Invalid student fields"
COURSE_REQUIRED = "title and teacher required"
COURSE_INVALID = "Invalid course fields"

SEED_STUDENTS = [
    {"name": "Alice", "email": "alice@example.com"},
    {"name": "Bob", "email": "bob@example.com"},
    {"name": "Charlie", "email": "charlie@example.com"},
]

SEED_COURSES = [
    {"title": "Math", "teacher": "Mr. Smith"},
    {"title": "Physics", "teacher": "Mrs. Johnson"},
    {"title": "History", "teacher": "Mr. Brown"},
]

Fields = Union[Mapping[str, Any], BaseModel]


def _coerce_id(value: Any) -> Optional[int]:
    """Path params may arrive as strings; anything non-numeric matches nothing."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _as_dict(fields: Fields) -> dict:
    if isinstance(fields, BaseModel):
        return fields.model_dump(exclude_unset=True)
    return dict(fields)


def _schema_error(exc: ValidationError, required_message: str) -> StoreError:
    for err in exc.errors():
        if err.get("type") == "value_error":
            # only the email validator raises value_error
            return StoreError(error="Invalid email format")
    return StoreError(error=required_message)


class Storage:
    """Owns the three collections; every public operation runs under one lock."""

    def __init__(self, course_capacity: int = DEFAULT_CAPACITY):
        if course_capacity < 1:
            raise ValueError(f"course_capacity must be at least 1, got {course_capacity}")
        self.course_capacity = course_capacity
        self._lock = threading.RLock()
        self.students: dict[int, Student] = {}
        self.courses: dict[int, Course] = {}
        self.enrollments: dict[tuple[int, int], Enrollment] = {}
        self._next_student_id = 1
        self._next_course_id = 1

    @classmethod
    def seeded(cls, course_capacity: int = DEFAULT_CAPACITY) -> "Storage":
        store = cls(course_capacity=course_capacity)
        store.seed()
        return store

    # ==================== lifecycle ====================

    def reset(self) -> None:
        with self._lock:
            self.students.clear()
            self.courses.clear()
            self.enrollments.clear()
            self._next_student_id = 1
            self._next_course_id = 1
            logger.debug("Store reset")

    def seed(self) -> None:
        """
        Replace the store contents with the fixed sample students and courses
        (no enrollments). Ids start at 1 on every call.
        """
        with self._lock:
            self.reset()
            for collection, rows in ((STUDENTS, SEED_STUDENTS), (COURSES, SEED_COURSES)):
                for fields in rows:
                    result = self.create(collection, fields)
                    if isinstance(result, StoreError):
                        raise RuntimeError(f"Seed data rejected: {result.error}")
            logger.info(f"Store seeded - students: {len(self.students)}, courses: {len(self.courses)}")

    # ==================== generic CRUD ====================

    def _collection(self, collection: str) -> dict:
        if collection == STUDENTS:
            return self.students
        if collection == COURSES:
            return self.courses
        if collection == ENROLLMENTS:
            return self.enrollments
        raise KeyError(f"Unknown collection: {collection}")

    def list(self, collection: str) -> List:
        with self._lock:
            return list(self._collection(collection).values())

    def get(self, collection: str, entity_id: Any) -> Optional[Union[Student, Course]]:
        key = _coerce_id(entity_id)
        with self._lock:
            if collection == ENROLLMENTS:
                raise KeyError("Enrollments are looked up by pair, not by id")
            if key is None:
                return None
            return self._collection(collection).get(key)

    def create(self, collection: str, fields: Fields) -> Union[Student, Course, StoreError]:
        with self._lock:
            if collection == STUDENTS:
                return self._create_student(fields)
            if collection == COURSES:
                return self._create_course(fields)
            raise KeyError(f"Cannot create in collection: {collection}")

    def update(self, entity: Union[Student, Course], fields: Fields) -> Union[Student, Course, StoreError]:
        """
        Apply only the supplied fields to an entity obtained via get().
        Existence is the caller's responsibility; use update_by_id() to
        check and update in one step.
        """
        with self._lock:
            if isinstance(entity, Student):
                return self._update_student(entity, fields)
            if isinstance(entity, Course):
                return self._update_course(entity, fields)
            raise TypeError(f"Cannot update {type(entity).__name__}")

    def update_by_id(
        self, collection: str, entity_id: Any, fields: Fields
    ) -> Optional[Union[Student, Course, StoreError]]:
        with self._lock:
            entity = self.get(collection, entity_id)
            if entity is None:
                return None
            return self.update(entity, fields)

    def remove(self, collection: str, entity_id: Any) -> Union[bool, StoreError]:
        if collection not in (STUDENTS, COURSES):
            raise KeyError(f"Cannot remove from collection: {collection}")
        key = _coerce_id(entity_id)
        with self._lock:
            items = self._collection(collection)
            if key is None or key not in items:
                return False

            if collection == STUDENTS:
                if any(sid == key for sid, _ in self.enrollments):
                    logger.warning(f"Delete blocked - student_id: {key} has enrollments")
                    return StoreError(
                        error="Cannot delete student: enrolled in a course",
                        kind=ErrorKind.integrity,
                    )
            elif any(cid == key for _, cid in self.enrollments):
                logger.warning(f"Delete blocked - course_id: {key} has enrollments")
                return StoreError(
                    error="Cannot delete course: students enrolled",
                    kind=ErrorKind.integrity,
                )

            del items[key]
            logger.info(f"Removed from {collection} - id: {key}")
            return True

    # ==================== enrollments ====================

    def enroll(self, student_id: Any, course_id: Any) -> Union[EnrollmentResult, StoreError]:
        sid = _coerce_id(student_id)
        cid = _coerce_id(course_id)
        with self._lock:
            if sid is None or sid not in self.students:
                return StoreError(error="Student not found", kind=ErrorKind.not_found)
            if cid is None or cid not in self.courses:
                return StoreError(error="Course not found", kind=ErrorKind.not_found)
            if (sid, cid) in self.enrollments:
                return StoreError(error="Already enrolled")
            if self._enrolled_count(cid) >= self.course_capacity:
                logger.warning(f"Enroll rejected - course_id: {cid} is full")
                return StoreError(error="Course is full", kind=ErrorKind.capacity)

            self.enrollments[(sid, cid)] = Enrollment(student_id=sid, course_id=cid)
            logger.info(f"Enrolled - student_id: {sid}, course_id: {cid}")
            return EnrollmentResult(success=True)

    def unenroll(self, student_id: Any, course_id: Any) -> Union[EnrollmentResult, StoreError]:
        pair = (_coerce_id(student_id), _coerce_id(course_id))
        with self._lock:
            if pair not in self.enrollments:
                return StoreError(
                    error="Student is not enrolled in this course",
                    kind=ErrorKind.not_found,
                )
            del self.enrollments[pair]
            logger.info(f"Unenrolled - student_id: {pair[0]}, course_id: {pair[1]}")
            return EnrollmentResult(success=True)

    def get_student_courses(self, student_id: Any) -> List[Course]:
        sid = _coerce_id(student_id)
        with self._lock:
            return [
                self.courses[cid]
                for (s, cid) in self.enrollments
                if s == sid and cid in self.courses
            ]

    def get_course_students(self, course_id: Any) -> List[Student]:
        cid = _coerce_id(course_id)
        with self._lock:
            return [
                self.students[sid]
                for (sid, c) in self.enrollments
                if c == cid and sid in self.students
            ]

    def _enrolled_count(self, course_id: int) -> int:
        return sum(1 for _, cid in self.enrollments if cid == course_id)

    # ==================== students ====================

    def _email_taken(self, email: str, exclude_id: Optional[int] = None) -> bool:
        return any(s.email == email and s.id != exclude_id for s in self.students.values())

    def _create_student(self, fields: Fields) -> Union[Student, StoreError]:
        try:
            payload = StudentCreate.model_validate(_as_dict(fields))
        except ValidationError as e:
            return _schema_error(e, STUDENT_REQUIRED)

        if self._email_taken(payload.email):
            logger.warning(f"Create rejected - duplicate email: {payload.email}")
            return StoreError(error="Email must be unique")

        student = Student(id=self._next_student_id, name=payload.name, email=payload.email)
        self._next_student_id += 1
        self.students[student.id] = student
        logger.info(f"Student created - id: {student.id}")
        return student

    def _update_student(self, student: Student, fields: Fields) -> Union[Student, StoreError]:
        try:
            payload = StudentUpdate.model_validate(_as_dict(fields))
        except ValidationError as e:
            return _schema_error(e, STUDENT_INVALID)

        if payload.email and self._email_taken(payload.email, exclude_id=student.id):
            logger.warning(f"Update rejected - duplicate email: {payload.email}")
            return StoreError(error="Email must be unique")

        if payload.name:
            student.name = payload.name
        if payload.email:
            student.email = payload.email
        return student

    # ==================== courses ====================

    def _title_taken(self, title: str, exclude_id: Optional[int] = None) -> bool:
        return any(c.title == title and c.id != exclude_id for c in self.courses.values())

    def _create_course(self, fields: Fields) -> Union[Course, StoreError]:
        try:
            payload = CourseCreate.model_validate(_as_dict(fields))
        except ValidationError as e:
            return _schema_error(e, COURSE_REQUIRED)

        if self._title_taken(payload.title):
            logger.warning(f"Create rejected - duplicate title: {payload.title}")
            return StoreError(error="Course title must be unique")

        course = Course(id=self._next_course_id, title=payload.title, teacher=payload.teacher)
        self._next_course_id += 1
        self.courses[course.id] = course
        logger.info(f"Course created - id: {course.id}")
        return course

    def _update_course(self, course: Course, fields: Fields) -> Union[Course, StoreError]:
        try:
            payload = CourseUpdate.model_validate(_as_dict(fields))
        except ValidationError as e:
            return _schema_error(e, COURSE_INVALID)

        if payload.title and self._title_taken(payload.title, exclude_id=course.id):
            logger.warning(f"Update rejected - duplicate title: {payload.title}")
            return StoreError(error="Course title must be unique")

        if payload.title:
            course.title = payload.title
        if payload.teacher:
            course.teacher = payload.teacher
        return course
