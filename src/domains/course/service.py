# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course catalogue service for administrators.

Courses are soft-deleted. Code uniqueness is enforced per department,
case-insensitively, among active courses only.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import Select, func, or_, select
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.errors import ConflictError, InvalidOperationError, NotFoundError
from src.infrastructure.database.models.school import Class, Course, Department
from src.infrastructure.database.pagination import paginate
from src.models.common import PageRequest, PaginatedResult
from src.models.course import CourseFilter, CourseRequest, CourseResponse

logger = logging.getLogger(__name__)


class CourseNotFoundError(NotFoundError):
    """Raised when a course is missing or inactive."""

    pass


class DepartmentNotFoundError(InvalidOperationError):
    """Raised when a course refers to a missing or inactive department."""

    pass


class DuplicateCourseCodeError(ConflictError):
    """Raised when the code is already used in the department."""

    pass


class CourseHasActiveClassesError(InvalidOperationError):
    """Raised when deleting a course that still has active classes."""

    pass


class CourseService:
    """Service for managing courses.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_courses(
        self,
        filters: CourseFilter | None = None,
        page: PageRequest | None = None,
    ) -> PaginatedResult[CourseResponse]:
        """List active courses ordered by department name then code.

        Args:
            filters: Search over name, code and description, department
                and credit range.
            page: Page selection.
        """
        filters = filters or CourseFilter()
        stmt = self._base_query().where(Course.is_active.is_(True))

        if filters.search and filters.search.strip():
            pattern = f"%{filters.search.strip().lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Course.name).like(pattern),
                    func.lower(Course.code).like(pattern),
                    func.lower(Course.description).like(pattern),
                )
            )
        if filters.department_id is not None:
            stmt = stmt.where(Course.department_id == filters.department_id)
        if filters.min_credits is not None:
            stmt = stmt.where(Course.credits >= filters.min_credits)
        if filters.max_credits is not None:
            stmt = stmt.where(Course.credits <= filters.max_credits)

        stmt = stmt.order_by(Department.name, Course.code, Course.id)
        return await paginate(self.db, stmt, page or PageRequest(), self._to_response)

    async def get_course(self, course_id: int) -> CourseResponse:
        """Get an active course.

        Raises:
            CourseNotFoundError: If missing or inactive.
        """
        stmt = self._base_query().where(Course.id == course_id, Course.is_active.is_(True))
        row = (await self.db.execute(stmt)).one_or_none()
        if row is None:
            raise CourseNotFoundError(f"Course with ID {course_id} not found")
        return self._to_response(row)

    async def create_course(self, request: CourseRequest) -> CourseResponse:
        """Create a course.

        Raises:
            DepartmentNotFoundError: If the department is missing or inactive.
            DuplicateCourseCodeError: If the code is taken in the department.
        """
        await self._require_active_department(request.department_id)
        await self._check_code_available(request.code, request.department_id)

        course = Course(
            name=request.name,
            code=request.code.upper(),
            description=request.description,
            department_id=request.department_id,
            credits=request.credits,
            is_active=True,
        )
        self.db.add(course)
        await self.db.flush()

        logger.info("Created course: %s (%s)", course.code, course.id)

        return await self.get_course(course.id)

    async def update_course(self, course_id: int, request: CourseRequest) -> CourseResponse:
        """Update a course, re-checking department and code.

        Raises:
            CourseNotFoundError: If missing or inactive.
            DepartmentNotFoundError: If the department is missing or inactive.
            DuplicateCourseCodeError: If another course uses the code.
        """
        course = await self._get_active(course_id)
        await self._require_active_department(request.department_id)
        await self._check_code_available(request.code, request.department_id, exclude_id=course_id)

        course.name = request.name
        course.code = request.code.upper()
        course.description = request.description
        course.department_id = request.department_id
        course.credits = request.credits
        await self.db.flush()

        logger.info("Updated course: %s", course_id)

        return await self.get_course(course_id)

    async def delete_course(self, course_id: int) -> bool:
        """Soft delete a course with no active classes.

        Raises:
            CourseNotFoundError: If missing or inactive.
            CourseHasActiveClassesError: If any class of the course is active.
        """
        course = await self._get_active(course_id)

        active_classes = await self.db.execute(
            select(Class.id).where(Class.course_id == course_id, Class.is_active.is_(True)).limit(1)
        )
        if active_classes.scalar_one_or_none() is not None:
            raise CourseHasActiveClassesError(
                "Cannot delete course with active classes. Please deactivate classes first."
            )

        course.is_active = False
        await self.db.flush()

        logger.info("Deleted course: %s", course_id)

        return True

    async def _get_active(self, course_id: int) -> Course:
        course = (
            await self.db.execute(
                select(Course).where(Course.id == course_id, Course.is_active.is_(True))
            )
        ).scalar_one_or_none()
        if course is None:
            raise CourseNotFoundError(f"Course with ID {course_id} not found")
        return course

    async def _require_active_department(self, department_id: int) -> None:
        result = await self.db.execute(
            select(Department.id).where(Department.id == department_id, Department.is_active.is_(True))
        )
        if result.scalar_one_or_none() is None:
            raise DepartmentNotFoundError(f"Department with ID {department_id} not found")

    async def _check_code_available(
        self,
        code: str,
        department_id: int,
        exclude_id: int | None = None,
    ) -> None:
        stmt = select(Course.id).where(
            func.lower(Course.code) == code.lower(),
            Course.department_id == department_id,
            Course.is_active.is_(True),
        )
        if exclude_id is not None:
            stmt = stmt.where(Course.id != exclude_id)

        if (await self.db.execute(stmt.limit(1))).scalar_one_or_none() is not None:
            raise DuplicateCourseCodeError(
                f"Course with code '{code}' already exists in this department"
            )

    @staticmethod
    def _base_query() -> Select[Any]:
        active_classes = (
            select(func.count(Class.id))
            .where(Class.course_id == Course.id, Class.is_active.is_(True))
            .correlate(Course)
            .scalar_subquery()
        )
        return select(Course, Department.name, active_classes).join(
            Department, Department.id == Course.department_id
        )

    @staticmethod
    def _to_response(row: Row[Any]) -> CourseResponse:
        course, department_name, classes_count = row
        return CourseResponse(
            id=course.id,
            name=course.name,
            code=course.code,
            description=course.description,
            department_id=course.department_id,
            department_name=department_name,
            credits=course.credits,
            created_date=course.created_date,
            updated_date=course.updated_date,
            is_active=course.is_active,
            classes_count=classes_count or 0,
        )
