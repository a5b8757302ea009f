# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-app notifications from teachers to students.

Every notification row targets exactly one student. Sending to a class
fans out one row per enrolled student.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.errors import InvalidOperationError, NotFoundError
from src.domains.ownership import OwnershipGuard
from src.infrastructure.database.models.notification import Notification
from src.infrastructure.database.models.user import User
from src.models.common import UserRole
from src.models.notification import CreateNotificationRequest, NotificationResponse
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class NotificationNotFoundError(NotFoundError):
    """Raised when a notification is missing or addressed to someone else."""

    pass


class NoRecipientsError(InvalidOperationError):
    """Raised when a send would reach nobody."""

    pass


class InvalidRecipientsError(InvalidOperationError):
    """Raised when some recipient ids are not active students."""

    pass


class AlreadyReadError(InvalidOperationError):
    """Raised when marking an already read notification."""

    pass


class NotificationService:
    """Service for sending and reading notifications.

    Attributes:
        db: Async database session.
        guard: Ownership checks for class sends.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.guard = OwnershipGuard(db)

    async def send_to_class(
        self,
        class_id: int,
        request: CreateNotificationRequest,
        teacher_id: int,
    ) -> list[NotificationResponse]:
        """Notify every student enrolled in an owned, active class.

        Raises:
            ClassNotFoundError: If the class is not owned and active.
            NoRecipientsError: If nobody is enrolled.
        """
        await self.guard.require_teacher_owns_class(class_id, teacher_id)

        student_ids = sorted(await self.guard.enrolled_student_ids(class_id))
        if not student_ids:
            raise NoRecipientsError("No students enrolled in this class")

        notifications = await self._create(student_ids, request)

        logger.info(
            "Sent notification to class: class=%s, recipients=%d, by=%s",
            class_id,
            len(notifications),
            teacher_id,
        )

        return [self._to_response(n) for n in notifications]

    async def send_to_students(
        self,
        student_ids: Iterable[int],
        request: CreateNotificationRequest,
        teacher_id: int,
    ) -> list[NotificationResponse]:
        """Notify specific students. Every id must be an active student.

        Raises:
            NoRecipientsError: If no ids were given or none is valid.
            InvalidRecipientsError: If some ids are not active students.
        """
        requested = list(dict.fromkeys(student_ids))
        if not requested:
            raise NoRecipientsError("At least one student ID is required")

        valid = set(
            (
                await self.db.execute(
                    select(User.id).where(
                        User.id.in_(requested),
                        User.role == UserRole.STUDENT,
                        User.is_active.is_(True),
                    )
                )
            ).scalars().all()
        )
        if not valid:
            raise NoRecipientsError("No valid students found")

        invalid = [sid for sid in requested if sid not in valid]
        if invalid:
            raise InvalidRecipientsError(
                f"Invalid student IDs: {', '.join(str(sid) for sid in invalid)}"
            )

        notifications = await self._create(requested, request)

        logger.info(
            "Sent notification to students: recipients=%d, by=%s",
            len(notifications),
            teacher_id,
        )

        return [self._to_response(n) for n in notifications]

    async def get_student_notifications(
        self,
        student_id: int,
        only_unread: bool = False,
    ) -> list[NotificationResponse]:
        """Notifications addressed to the student, newest first."""
        stmt = select(Notification).where(Notification.recipient_id == student_id)
        if only_unread:
            stmt = stmt.where(Notification.is_read.is_(False))
        stmt = stmt.order_by(Notification.created_date.desc(), Notification.id.desc())

        result = await self.db.execute(stmt)
        return [self._to_response(n) for n in result.scalars().all()]

    async def get_unread_count(self, student_id: int) -> int:
        result = await self.db.execute(
            select(func.count(Notification.id)).where(
                Notification.recipient_id == student_id,
                Notification.is_read.is_(False),
            )
        )
        return result.scalar_one()

    async def mark_as_read(self, notification_id: int, student_id: int) -> NotificationResponse:
        """Mark one of the student's notifications as read.

        Raises:
            NotificationNotFoundError: If missing or addressed to someone else.
            AlreadyReadError: If it was already read.
        """
        notification = (
            await self.db.execute(
                select(Notification).where(
                    Notification.id == notification_id,
                    Notification.recipient_id == student_id,
                )
            )
        ).scalar_one_or_none()
        if notification is None:
            raise NotificationNotFoundError("Notification not found")

        if notification.is_read:
            raise AlreadyReadError("Notification is already marked as read")

        notification.is_read = True
        await self.db.flush()

        return self._to_response(notification)

    async def _create(
        self,
        student_ids: list[int],
        request: CreateNotificationRequest,
    ) -> list[Notification]:
        now = utc_now()
        notifications = [
            Notification(
                title=request.title,
                message=request.message,
                recipient_role=UserRole.STUDENT,
                recipient_id=student_id,
                created_date=now,
                is_read=False,
            )
            for student_id in student_ids
        ]
        self.db.add_all(notifications)
        await self.db.flush()
        return notifications

    @staticmethod
    def _to_response(notification: Notification) -> NotificationResponse:
        return NotificationResponse(
            id=notification.id,
            title=notification.title,
            message=notification.message,
            recipient_role=notification.recipient_role.label if notification.recipient_role else None,
            recipient_id=notification.recipient_id,
            created_date=notification.created_date,
            is_read=notification.is_read,
        )
