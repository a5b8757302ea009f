# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Department service for administrators."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import Select, func, or_, select
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from src.domains.errors import ConflictError, InvalidOperationError, NotFoundError
from src.infrastructure.database.models.school import Course, Department
from src.infrastructure.database.models.user import User
from src.infrastructure.database.pagination import paginate
from src.models.common import PageRequest, PaginatedResult, UserRole
from src.models.department import DepartmentRequest, DepartmentResponse

logger = logging.getLogger(__name__)

Head = aliased(User, name="head")


class DepartmentNotFoundError(NotFoundError):
    """Raised when a department is missing or inactive."""

    pass


class DuplicateDepartmentNameError(ConflictError):
    """Raised when an active department already uses the name."""

    pass


class InvalidHeadOfDepartmentError(InvalidOperationError):
    """Raised when the head is not an active teacher."""

    pass


class DepartmentHasActiveCoursesError(InvalidOperationError):
    """Raised when deleting a department that still has active courses."""

    pass


class DepartmentService:
    """Service for managing departments.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_departments(
        self,
        page: PageRequest | None = None,
        search: str | None = None,
    ) -> PaginatedResult[DepartmentResponse]:
        """List active departments ordered by name.

        Args:
            page: Page selection.
            search: Case-insensitive match on name or description.
        """
        stmt = self._base_query().where(Department.is_active.is_(True))

        if search and search.strip():
            pattern = f"%{search.strip().lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Department.name).like(pattern),
                    func.lower(Department.description).like(pattern),
                )
            )

        stmt = stmt.order_by(Department.name, Department.id)
        return await paginate(self.db, stmt, page or PageRequest(), self._to_response)

    async def get_department(self, department_id: int) -> DepartmentResponse:
        """Get an active department.

        Raises:
            DepartmentNotFoundError: If missing or inactive.
        """
        stmt = self._base_query().where(
            Department.id == department_id,
            Department.is_active.is_(True),
        )
        row = (await self.db.execute(stmt)).one_or_none()
        if row is None:
            raise DepartmentNotFoundError(f"Department with ID {department_id} not found")
        return self._to_response(row)

    async def create_department(self, request: DepartmentRequest) -> DepartmentResponse:
        """Create a department.

        Raises:
            DuplicateDepartmentNameError: If an active department has the name.
            InvalidHeadOfDepartmentError: If the head is not an active teacher.
        """
        await self._check_name_available(request.name)
        await self._check_head(request.head_of_department_id)

        department = Department(
            name=request.name,
            description=request.description,
            head_of_department_id=request.head_of_department_id,
            is_active=True,
        )
        self.db.add(department)
        await self.db.flush()

        logger.info("Created department: %s (%s)", department.name, department.id)

        return await self.get_department(department.id)

    async def update_department(
        self,
        department_id: int,
        request: DepartmentRequest,
    ) -> DepartmentResponse:
        """Update a department.

        Raises:
            DepartmentNotFoundError: If missing or inactive.
            DuplicateDepartmentNameError: If another active department has
                the name.
            InvalidHeadOfDepartmentError: If the head is not an active teacher.
        """
        department = await self._get_active(department_id)
        await self._check_name_available(request.name, exclude_id=department_id)
        await self._check_head(request.head_of_department_id)

        department.name = request.name
        department.description = request.description
        department.head_of_department_id = request.head_of_department_id
        await self.db.flush()

        logger.info("Updated department: %s", department_id)

        return await self.get_department(department_id)

    async def delete_department(self, department_id: int) -> bool:
        """Soft delete a department with no active courses.

        Raises:
            DepartmentNotFoundError: If missing or inactive.
            DepartmentHasActiveCoursesError: If any active course remains.
        """
        department = await self._get_active(department_id)

        active_courses = await self.db.execute(
            select(Course.id)
            .where(Course.department_id == department_id, Course.is_active.is_(True))
            .limit(1)
        )
        if active_courses.scalar_one_or_none() is not None:
            raise DepartmentHasActiveCoursesError(
                "Cannot delete department with active courses. "
                "Please deactivate or reassign courses first."
            )

        department.is_active = False
        await self.db.flush()

        logger.info("Deleted department: %s", department_id)

        return True

    async def _get_active(self, department_id: int) -> Department:
        department = (
            await self.db.execute(
                select(Department).where(
                    Department.id == department_id,
                    Department.is_active.is_(True),
                )
            )
        ).scalar_one_or_none()
        if department is None:
            raise DepartmentNotFoundError(f"Department with ID {department_id} not found")
        return department

    async def _check_name_available(self, name: str, exclude_id: int | None = None) -> None:
        stmt = select(Department.id).where(
            func.lower(Department.name) == name.lower(),
            Department.is_active.is_(True),
        )
        if exclude_id is not None:
            stmt = stmt.where(Department.id != exclude_id)

        if (await self.db.execute(stmt.limit(1))).scalar_one_or_none() is not None:
            raise DuplicateDepartmentNameError(f"Department with name '{name}' already exists")

    async def _check_head(self, head_id: int | None) -> None:
        if head_id is None:
            return

        result = await self.db.execute(
            select(User.id).where(
                User.id == head_id,
                User.role == UserRole.TEACHER,
                User.is_active.is_(True),
            )
        )
        if result.scalar_one_or_none() is None:
            raise InvalidHeadOfDepartmentError(f"User with ID {head_id} is not a valid teacher")

    @staticmethod
    def _base_query() -> Select[Any]:
        active_courses = (
            select(func.count(Course.id))
            .where(Course.department_id == Department.id, Course.is_active.is_(True))
            .correlate(Department)
            .scalar_subquery()
        )
        return select(Department, Head.name, active_courses).outerjoin(
            Head, Head.id == Department.head_of_department_id
        )

    @staticmethod
    def _to_response(row: Row[Any]) -> DepartmentResponse:
        department, head_name, courses_count = row
        return DepartmentResponse(
            id=department.id,
            name=department.name,
            description=department.description,
            head_of_department_id=department.head_of_department_id,
            head_of_department_name=head_name,
            created_date=department.created_date,
            updated_date=department.updated_date,
            is_active=department.is_active,
            courses_count=courses_count or 0,
        )
