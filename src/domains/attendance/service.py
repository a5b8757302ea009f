# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Attendance engine.

This module provides the AttendanceService class for:
- Marking a single student for a calendar date (upsert)
- Marking a whole class for a date in one all-or-nothing batch
- Filtered, paginated attendance listings
- Per-class attendance summaries
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from sqlalchemy import Select, case, func, select
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from src.domains.errors import ConflictError, InputValidationError, InvalidOperationError, flush_or_conflict
from src.domains.ownership import OwnershipGuard
from src.infrastructure.database.models.attendance import Attendance
from src.infrastructure.database.models.school import Class
from src.infrastructure.database.models.user import User
from src.infrastructure.database.pagination import paginate
from src.models.attendance import (
    AttendanceFilter,
    AttendanceResponse,
    AttendanceSummary,
    BulkMarkAttendanceRequest,
    MarkAttendanceRequest,
)
from src.models.common import AttendanceStatus, PageRequest, PaginatedResult
from src.utils.datetime import to_calendar_date, utc_now

logger = logging.getLogger(__name__)

Student = aliased(User, name="student")
MarkedBy = aliased(User, name="marked_by")


class InvalidAttendanceStatusError(InputValidationError):
    """Raised when a status is not Present, Absent or Late."""

    pass


class InvalidAttendanceRecordError(InvalidOperationError):
    """Raised when any record of a bulk request is invalid.

    The whole batch is rejected; nothing is written.
    """

    pass


class AttendanceConflictError(ConflictError):
    """Raised when a concurrent request inserted the same attendance row."""

    pass


def parse_status(value: int | AttendanceStatus) -> AttendanceStatus:
    """Convert a raw status value into an AttendanceStatus.

    Raises:
        InvalidAttendanceStatusError: If value is not 1, 2 or 3.
    """
    try:
        return AttendanceStatus(value)
    except ValueError:
        raise InvalidAttendanceStatusError("Invalid attendance status")


class AttendanceService:
    """Service for teacher-side attendance.

    Attributes:
        db: Async database session.
        guard: Ownership and enrollment checks.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.guard = OwnershipGuard(db)

    async def mark_attendance(
        self,
        request: MarkAttendanceRequest,
        teacher_id: int,
    ) -> AttendanceResponse:
        """Mark one student, overwriting any mark for the same date.

        Args:
            request: Class, student, date and status.
            teacher_id: Calling teacher.

        Returns:
            The resulting attendance record.

        Raises:
            ClassNotFoundError: If the teacher does not own an active class
                with that id.
            NotEnrolledError: If the student is not enrolled.
            InvalidAttendanceStatusError: If the status is out of range.
        """
        await self.guard.require_teacher_owns_class(request.class_id, teacher_id)
        await self.guard.require_student_enrolled(request.class_id, request.student_id)
        status = parse_status(request.status)
        day = to_calendar_date(request.date)

        existing = await self._get_existing_by_student(request.class_id, day, [request.student_id])
        record = self._upsert(
            existing.get(request.student_id),
            request.class_id,
            request.student_id,
            day,
            status,
            teacher_id,
        )
        await flush_or_conflict(
            self.db,
            AttendanceConflictError("Attendance for this student and date was just recorded"),
        )

        logger.info(
            "Marked attendance: class=%s, student=%s, date=%s, status=%s, by=%s",
            request.class_id,
            request.student_id,
            day,
            status.label,
            teacher_id,
        )

        row = (await self.db.execute(self._base_query().where(Attendance.id == record.id))).one()
        return self._to_response(row)

    async def mark_bulk_attendance(
        self,
        request: BulkMarkAttendanceRequest,
        teacher_id: int,
    ) -> list[AttendanceResponse]:
        """Mark many students for one date as a single unit.

        Every record is validated before anything is written. If a student
        appears more than once, the last entry wins.

        Args:
            request: Class, date and per-student statuses.
            teacher_id: Calling teacher.

        Returns:
            All attendance rows for the class on that date, ordered by
            student name, including rows this call did not touch.

        Raises:
            ClassNotFoundError: If the teacher does not own the class.
            InvalidAttendanceRecordError: On the first invalid record.
        """
        await self.guard.require_teacher_owns_class(request.class_id, teacher_id)
        day = to_calendar_date(request.date)
        enrolled = await self.guard.enrolled_student_ids(request.class_id)

        statuses: dict[int, AttendanceStatus] = {}
        for entry in request.attendances:
            if entry.student_id not in enrolled:
                raise InvalidAttendanceRecordError(
                    f"Student {entry.student_id} is not enrolled in this class"
                )
            try:
                statuses[entry.student_id] = AttendanceStatus(entry.status)
            except ValueError:
                raise InvalidAttendanceRecordError(
                    f"Invalid attendance status for student {entry.student_id}"
                )

        existing = await self._get_existing_by_student(request.class_id, day, list(statuses))
        for student_id, status in statuses.items():
            self._upsert(existing.get(student_id), request.class_id, student_id, day, status, teacher_id)

        await flush_or_conflict(
            self.db,
            AttendanceConflictError("Attendance for this class and date was just recorded"),
        )

        logger.info(
            "Marked bulk attendance: class=%s, date=%s, records=%d, by=%s",
            request.class_id,
            day,
            len(statuses),
            teacher_id,
        )

        stmt = (
            self._base_query()
            .where(Attendance.class_id == request.class_id, Attendance.date == day)
            .order_by(Student.name)
        )
        rows = (await self.db.execute(stmt)).all()
        return [self._to_response(row) for row in rows]

    async def get_class_attendance(
        self,
        class_id: int,
        teacher_id: int,
        filters: AttendanceFilter | None = None,
        page: PageRequest | None = None,
    ) -> PaginatedResult[AttendanceResponse]:
        """List attendance for an owned class, newest date first.

        Deactivated classes remain readable for history.

        Raises:
            ClassNotFoundError: If the teacher does not own the class.
            InvalidAttendanceStatusError: If the status filter is out of range.
        """
        await self.guard.require_teacher_owns_class(class_id, teacher_id, active_only=False)
        filters = filters or AttendanceFilter()

        stmt = self._base_query().where(Attendance.class_id == class_id)

        if filters.student_id is not None:
            stmt = stmt.where(Attendance.student_id == filters.student_id)
        if filters.from_date is not None:
            stmt = stmt.where(Attendance.date >= to_calendar_date(filters.from_date))
        if filters.to_date is not None:
            stmt = stmt.where(Attendance.date <= to_calendar_date(filters.to_date))
        if filters.status is not None:
            stmt = stmt.where(Attendance.status == parse_status(filters.status))

        stmt = stmt.order_by(Attendance.date.desc(), Student.name, Attendance.id)

        return await paginate(self.db, stmt, page or PageRequest(), self._to_response)

    async def get_student_attendance(
        self,
        class_id: int,
        student_id: int,
        teacher_id: int,
    ) -> list[AttendanceResponse]:
        """Full attendance history of one student in an owned class.

        Raises:
            ClassNotFoundError: If the teacher does not own the class.
            NotEnrolledError: If the student is not enrolled.
        """
        await self.guard.require_teacher_owns_class(class_id, teacher_id, active_only=False)
        await self.guard.require_student_enrolled(class_id, student_id)

        stmt = (
            self._base_query()
            .where(Attendance.class_id == class_id, Attendance.student_id == student_id)
            .order_by(Attendance.date.desc())
        )
        rows = (await self.db.execute(stmt)).all()
        return [self._to_response(row) for row in rows]

    async def get_attendance_summary(self, class_id: int, teacher_id: int) -> AttendanceSummary:
        """Aggregate attendance counts for an owned class.

        A class with no attendance rows reports a percentage of 0.

        Raises:
            ClassNotFoundError: If the teacher does not own the class.
        """
        class_ = await self.guard.require_teacher_owns_class(class_id, teacher_id, active_only=False)
        total_students = len(await self.guard.enrolled_student_ids(class_id))

        counts = (
            await self.db.execute(
                select(
                    func.count(Attendance.id),
                    func.count(func.distinct(Attendance.date)),
                    _count_status(AttendanceStatus.PRESENT),
                    _count_status(AttendanceStatus.ABSENT),
                    _count_status(AttendanceStatus.LATE),
                ).where(Attendance.class_id == class_id)
            )
        ).one()
        total_records, total_sessions, present, absent, late = (int(c or 0) for c in counts)

        return AttendanceSummary(
            class_id=class_.id,
            class_name=class_.name,
            total_students=total_students,
            total_sessions=total_sessions,
            total_present=present,
            total_absent=absent,
            total_late=late,
            attendance_percentage=attendance_percentage(present + late, total_records),
        )

    def _upsert(
        self,
        record: Attendance | None,
        class_id: int,
        student_id: int,
        day: date,
        status: AttendanceStatus,
        teacher_id: int,
    ) -> Attendance:
        """Overwrite an existing row in place or stage a new one."""
        if record is not None:
            record.status = status
            record.marked_by_teacher_id = teacher_id
            record.created_date = utc_now()
            return record

        record = Attendance(
            class_id=class_id,
            student_id=student_id,
            date=day,
            status=status,
            marked_by_teacher_id=teacher_id,
            created_date=utc_now(),
        )
        self.db.add(record)
        return record

    async def _get_existing_by_student(
        self,
        class_id: int,
        day: date,
        student_ids: list[int],
    ) -> dict[int, Attendance]:
        result = await self.db.execute(
            select(Attendance).where(
                Attendance.class_id == class_id,
                Attendance.date == day,
                Attendance.student_id.in_(student_ids),
            )
        )
        return {record.student_id: record for record in result.scalars().all()}

    @staticmethod
    def _base_query() -> Select[Any]:
        return (
            select(Attendance, Class.name, Student.name, MarkedBy.name)
            .join(Class, Class.id == Attendance.class_id)
            .join(Student, Student.id == Attendance.student_id)
            .join(MarkedBy, MarkedBy.id == Attendance.marked_by_teacher_id)
        )

    @staticmethod
    def _to_response(row: Row[Any]) -> AttendanceResponse:
        record, class_name, student_name, teacher_name = row
        return AttendanceResponse(
            id=record.id,
            class_id=record.class_id,
            class_name=class_name,
            student_id=record.student_id,
            student_name=student_name,
            date=record.date,
            status=record.status.label,
            marked_by_teacher_id=record.marked_by_teacher_id,
            marked_by_teacher_name=teacher_name,
            created_date=record.created_date,
        )


def _count_status(status: AttendanceStatus) -> Any:
    return func.sum(case((Attendance.status == status, 1), else_=0))


def attendance_percentage(attended: int, total_records: int) -> float:
    """Share of attended records as a percentage rounded to 2 places.

    Returns 0.0 when there are no records.
    """
    if total_records == 0:
        return 0.0
    return round(attended / total_records * 100, 2)
