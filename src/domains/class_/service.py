# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class service for teacher-owned class operations.

This module provides the ClassService class for:
- Class CRUD and deactivation, scoped to the owning teacher
- Student enrollment with an enrollment email
- Enrolled student listing and counts
"""

from __future__ import annotations

import logging
from datetime import datetime
from functools import partial
from typing import Any

from sqlalchemy import Select, func, or_, select
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from src.domains.errors import ConflictError, InvalidOperationError, flush_or_conflict
from src.domains.ownership import OwnershipGuard
from src.infrastructure.database.connection import after_commit
from src.infrastructure.database.models.school import Class, Course, StudentClass
from src.infrastructure.database.models.user import User
from src.infrastructure.database.pagination import paginate
from src.infrastructure.notifications.email import EmailNotifier
from src.models.class_ import (
    ClassResponse,
    CreateClassRequest,
    StudentEnrollmentResponse,
    UpdateClassRequest,
)
from src.models.common import PageRequest, PaginatedResult, UserRole
from src.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)

Teacher = aliased(User, name="teacher")
Student = aliased(User, name="student")


class CourseNotFoundError(InvalidOperationError):
    """Raised when a class refers to a missing or inactive course."""

    pass


class InvalidClassDatesError(InvalidOperationError):
    """Raised when the end date is not after the start date."""

    pass


class ClassAlreadyInactiveError(InvalidOperationError):
    """Raised when deactivating a class twice."""

    pass


class StudentNotFoundError(InvalidOperationError):
    """Raised when the student to enroll is missing, inactive or not a Student."""

    pass


class AlreadyEnrolledError(ConflictError):
    """Raised when a student is already enrolled in the class."""

    pass


class ClassService:
    """Service for classes owned by a teacher.

    Attributes:
        db: Async database session.
        guard: Ownership checks.
        notifier: Optional email notifier for enrollment emails.
    """

    def __init__(self, db: AsyncSession, notifier: EmailNotifier | None = None) -> None:
        self.db = db
        self.guard = OwnershipGuard(db)
        self.notifier = notifier

    async def list_teacher_classes(
        self,
        teacher_id: int,
        page: PageRequest | None = None,
        search: str | None = None,
    ) -> PaginatedResult[ClassResponse]:
        """List the teacher's classes, active first then newest start date.

        Args:
            teacher_id: Calling teacher.
            page: Page selection.
            search: Case-insensitive match on class name, course name or
                semester.
        """
        stmt = self._base_query().where(Class.teacher_id == teacher_id)

        if search and search.strip():
            pattern = f"%{search.strip().lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Class.name).like(pattern),
                    func.lower(Course.name).like(pattern),
                    func.lower(Class.semester).like(pattern),
                )
            )

        stmt = stmt.order_by(Class.is_active.desc(), Class.start_date.desc(), Class.id.desc())
        return await paginate(self.db, stmt, page or PageRequest(), self._to_response)

    async def get_class(self, class_id: int, teacher_id: int) -> ClassResponse:
        """Get an owned class, active or not.

        Raises:
            ClassNotFoundError: If missing or owned by someone else.
        """
        await self.guard.require_teacher_owns_class(class_id, teacher_id, active_only=False)
        row = (await self.db.execute(self._base_query().where(Class.id == class_id))).one()
        return self._to_response(row)

    async def create_class(self, request: CreateClassRequest, teacher_id: int) -> ClassResponse:
        """Create a class owned by the calling teacher.

        Raises:
            CourseNotFoundError: If the course is missing or inactive.
            InvalidClassDatesError: If end_date is not after start_date.
        """
        course = (
            await self.db.execute(
                select(Course).where(Course.id == request.course_id, Course.is_active.is_(True))
            )
        ).scalar_one_or_none()
        if course is None:
            raise CourseNotFoundError(f"Course with ID {request.course_id} not found")

        _check_dates(request.start_date, request.end_date)

        class_ = Class(
            name=request.name,
            course_id=request.course_id,
            teacher_id=teacher_id,
            semester=request.semester,
            start_date=request.start_date,
            end_date=request.end_date,
            is_active=True,
        )
        self.db.add(class_)
        await self.db.flush()

        logger.info("Created class: %s (%s) by %s", class_.name, class_.id, teacher_id)

        return await self.get_class(class_.id, teacher_id)

    async def update_class(
        self,
        class_id: int,
        request: UpdateClassRequest,
        teacher_id: int,
    ) -> ClassResponse:
        """Update name, semester and dates of an owned class.

        Raises:
            ClassNotFoundError: If missing or owned by someone else.
            InvalidClassDatesError: If end_date is not after start_date.
        """
        class_ = await self.guard.require_teacher_owns_class(class_id, teacher_id, active_only=False)
        _check_dates(request.start_date, request.end_date)

        class_.name = request.name
        class_.semester = request.semester
        class_.start_date = request.start_date
        class_.end_date = request.end_date
        await self.db.flush()

        logger.info("Updated class: %s by %s", class_id, teacher_id)

        return await self.get_class(class_id, teacher_id)

    async def deactivate_class(self, class_id: int, teacher_id: int) -> ClassResponse:
        """Deactivate an owned class. History stays readable.

        Raises:
            ClassNotFoundError: If missing or owned by someone else.
            ClassAlreadyInactiveError: If the class is already inactive.
        """
        class_ = await self.guard.require_teacher_owns_class(class_id, teacher_id, active_only=False)
        if not class_.is_active:
            raise ClassAlreadyInactiveError("Class is already deactivated")

        class_.is_active = False
        await self.db.flush()

        logger.info("Deactivated class: %s by %s", class_id, teacher_id)

        return await self.get_class(class_id, teacher_id)

    async def enroll_student(
        self,
        class_id: int,
        student_id: int,
        teacher_id: int,
    ) -> StudentEnrollmentResponse:
        """Enroll an active student in an owned, active class.

        The enrollment email is best-effort, never fails the call, and is
        only sent once the enrollment has been committed.

        Raises:
            ClassNotFoundError: If the class is not owned and active.
            StudentNotFoundError: If the user is missing, inactive or not a
                Student.
            AlreadyEnrolledError: If the student is already enrolled.
        """
        class_ = await self.guard.require_teacher_owns_class(class_id, teacher_id)

        student = (
            await self.db.execute(
                select(User).where(
                    User.id == student_id,
                    User.role == UserRole.STUDENT,
                    User.is_active.is_(True),
                )
            )
        ).scalar_one_or_none()
        if student is None:
            raise StudentNotFoundError(f"Student with ID {student_id} not found")

        if await self.guard.is_enrolled(class_id, student_id):
            raise AlreadyEnrolledError("Student is already enrolled in this class")

        enrollment = StudentClass(student_id=student_id, class_id=class_id, enrollment_date=utc_now())
        self.db.add(enrollment)
        await flush_or_conflict(self.db, AlreadyEnrolledError("Student is already enrolled in this class"))

        logger.info("Enrolled student: %s in class=%s by %s", student_id, class_id, teacher_id)

        if self.notifier is not None:
            course_name, teacher_name = (
                await self.db.execute(
                    select(Course.name, User.name)
                    .select_from(Class)
                    .join(Course, Course.id == Class.course_id)
                    .join(User, User.id == Class.teacher_id)
                    .where(Class.id == class_.id)
                )
            ).one()
            after_commit(
                self.db,
                partial(
                    self.notifier.send_class_enrollment,
                    student.email,
                    student.name,
                    class_.name,
                    course_name,
                    teacher_name,
                ),
            )

        return StudentEnrollmentResponse(
            id=enrollment.id,
            student_id=student.id,
            student_name=student.name,
            student_email=student.email,
            class_id=class_.id,
            class_name=class_.name,
            enrollment_date=enrollment.enrollment_date,
        )

    async def list_class_students(
        self,
        class_id: int,
        teacher_id: int,
    ) -> list[StudentEnrollmentResponse]:
        """Students enrolled in an owned class, ordered by name.

        Raises:
            ClassNotFoundError: If missing or owned by someone else.
        """
        class_ = await self.guard.require_teacher_owns_class(class_id, teacher_id, active_only=False)

        rows = (
            await self.db.execute(
                select(StudentClass, Student.name, Student.email)
                .join(Student, Student.id == StudentClass.student_id)
                .where(StudentClass.class_id == class_id)
                .order_by(Student.name, StudentClass.id)
            )
        ).all()

        return [
            StudentEnrollmentResponse(
                id=enrollment.id,
                student_id=enrollment.student_id,
                student_name=name,
                student_email=email,
                class_id=class_.id,
                class_name=class_.name,
                enrollment_date=enrollment.enrollment_date,
            )
            for enrollment, name, email in rows
        ]

    @staticmethod
    def _base_query() -> Select[Any]:
        enrolled = (
            select(func.count(StudentClass.id))
            .where(StudentClass.class_id == Class.id)
            .correlate(Class)
            .scalar_subquery()
        )
        return (
            select(Class, Course.name, Course.code, Teacher.name, enrolled)
            .join(Course, Course.id == Class.course_id)
            .join(Teacher, Teacher.id == Class.teacher_id)
        )

    @staticmethod
    def _to_response(row: Row[Any]) -> ClassResponse:
        class_, course_name, course_code, teacher_name, enrolled = row
        return ClassResponse(
            id=class_.id,
            name=class_.name,
            course_id=class_.course_id,
            course_name=course_name,
            course_code=course_code,
            teacher_id=class_.teacher_id,
            teacher_name=teacher_name,
            semester=class_.semester,
            start_date=class_.start_date,
            end_date=class_.end_date,
            is_active=class_.is_active,
            enrolled_students_count=enrolled or 0,
            created_date=class_.created_date,
            updated_date=class_.updated_date,
        )


def _check_dates(start_date: datetime, end_date: datetime) -> None:
    if ensure_utc(end_date) <= ensure_utc(start_date):
        raise InvalidClassDatesError("End date must be after start date")
