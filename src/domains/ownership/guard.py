# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class ownership and enrollment guards.

Read-only checks run at the start of every class-scoped teacher or student
operation. They never write.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.errors import InvalidOperationError, NotFoundError
from src.infrastructure.database.models.school import Class, StudentClass

CLASS_NOT_OWNED_MESSAGE = "Class not found or you are not the assigned teacher"


class ClassNotFoundError(NotFoundError):
    """Raised when a class is missing or not owned by the calling teacher.

    Both cases raise the same error with the same message.
    """

    pass


class NotEnrolledError(InvalidOperationError):
    """Raised when a student is not enrolled in a class."""

    pass


class OwnershipGuard:
    """Ownership and enrollment predicates over the request session.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def require_teacher_owns_class(
        self,
        class_id: int,
        teacher_id: int,
        active_only: bool = True,
    ) -> Class:
        """Load a class the teacher owns.

        Args:
            class_id: Class identifier.
            teacher_id: Calling teacher.
            active_only: Reject deactivated classes. Historical reads pass
                False.

        Returns:
            The owned class.

        Raises:
            ClassNotFoundError: If missing, inactive (when active_only) or
                owned by someone else.
        """
        stmt = select(Class).where(Class.id == class_id, Class.teacher_id == teacher_id)
        if active_only:
            stmt = stmt.where(Class.is_active.is_(True))

        class_ = (await self.db.execute(stmt)).scalar_one_or_none()
        if class_ is None:
            raise ClassNotFoundError(CLASS_NOT_OWNED_MESSAGE)
        return class_

    async def is_enrolled(self, class_id: int, student_id: int) -> bool:
        result = await self.db.execute(
            select(StudentClass.id).where(
                StudentClass.class_id == class_id,
                StudentClass.student_id == student_id,
            )
        )
        return result.scalar_one_or_none() is not None

    async def require_student_enrolled(
        self,
        class_id: int,
        student_id: int,
        message: str = "Student is not enrolled in this class",
    ) -> None:
        """Fail unless the student is enrolled in the class.

        Raises:
            NotEnrolledError: If no enrollment row exists.
        """
        if not await self.is_enrolled(class_id, student_id):
            raise NotEnrolledError(message)

    async def enrolled_student_ids(self, class_id: int) -> set[int]:
        """Ids of every student enrolled in a class."""
        result = await self.db.execute(
            select(StudentClass.student_id).where(StudentClass.class_id == class_id)
        )
        return set(result.scalars().all())
