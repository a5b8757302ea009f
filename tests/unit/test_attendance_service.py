# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tests for attendance marking, listing and summaries."""

from datetime import date, datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from src.domains.attendance.service import (
    AttendanceService,
    InvalidAttendanceRecordError,
    InvalidAttendanceStatusError,
    attendance_percentage,
)
from src.domains.ownership import ClassNotFoundError, NotEnrolledError
from src.infrastructure.database.models import Attendance
from src.models.attendance import (
    AttendanceFilter,
    BulkMarkAttendanceRequest,
    MarkAttendanceRequest,
    StudentAttendanceEntry,
)
from src.models.common import AttendanceStatus, PageRequest

DAY = date(2025, 3, 10)


@pytest.fixture
def service(db_session) -> AttendanceService:
    return AttendanceService(db_session)


@pytest_asyncio.fixture
async def roster(factory):
    """A teacher's class with two enrolled students and one outsider."""
    teacher = await factory.teacher(name="Grace")
    class_ = await factory.class_(teacher, name="Algebra A")
    bob = await factory.student(name="Bob")
    alice = await factory.student(name="Alice")
    outsider = await factory.student(name="Zed")
    await factory.enroll(class_, bob)
    await factory.enroll(class_, alice)
    return teacher, class_, alice, bob, outsider


async def _row_count(db_session) -> int:
    return (await db_session.execute(select(func.count(Attendance.id)))).scalar_one()


class TestMarkAttendance:
    """Tests for single-student marking."""

    @pytest.mark.asyncio
    async def test_mark_creates_record(self, service, roster) -> None:
        teacher, class_, alice, _, _ = roster

        response = await service.mark_attendance(
            MarkAttendanceRequest(class_id=class_.id, student_id=alice.id, date=DAY, status=1),
            teacher.id,
        )

        assert response.status == "Present"
        assert response.student_name == "Alice"
        assert response.class_name == "Algebra A"
        assert response.marked_by_teacher_name == "Grace"
        assert response.date == DAY

    @pytest.mark.asyncio
    async def test_mark_twice_same_day_overwrites(self, service, roster, db_session) -> None:
        teacher, class_, alice, _, _ = roster
        morning = datetime(2025, 3, 10, 8, 0, tzinfo=timezone.utc)
        evening = datetime(2025, 3, 10, 18, 30, tzinfo=timezone.utc)

        first = await service.mark_attendance(
            MarkAttendanceRequest(class_id=class_.id, student_id=alice.id, date=morning, status=1),
            teacher.id,
        )
        second = await service.mark_attendance(
            MarkAttendanceRequest(class_id=class_.id, student_id=alice.id, date=evening, status=3),
            teacher.id,
        )

        assert second.id == first.id
        assert second.status == "Late"
        assert await _row_count(db_session) == 1

    @pytest.mark.asyncio
    async def test_other_teacher_cannot_mark(self, service, roster, factory) -> None:
        _, class_, alice, _, _ = roster
        intruder = await factory.teacher()

        with pytest.raises(ClassNotFoundError, match="not the assigned teacher"):
            await service.mark_attendance(
                MarkAttendanceRequest(class_id=class_.id, student_id=alice.id, date=DAY, status=1),
                intruder.id,
            )

    @pytest.mark.asyncio
    async def test_inactive_class_cannot_be_marked(self, service, factory) -> None:
        teacher = await factory.teacher()
        class_ = await factory.class_(teacher, is_active=False)
        student = await factory.student()
        await factory.enroll(class_, student)

        with pytest.raises(ClassNotFoundError):
            await service.mark_attendance(
                MarkAttendanceRequest(class_id=class_.id, student_id=student.id, date=DAY, status=1),
                teacher.id,
            )

    @pytest.mark.asyncio
    async def test_unenrolled_student_rejected(self, service, roster) -> None:
        teacher, class_, _, _, outsider = roster

        with pytest.raises(NotEnrolledError, match="not enrolled"):
            await service.mark_attendance(
                MarkAttendanceRequest(class_id=class_.id, student_id=outsider.id, date=DAY, status=1),
                teacher.id,
            )

    @pytest.mark.asyncio
    async def test_invalid_status_rejected(self, service, roster) -> None:
        teacher, class_, alice, _, _ = roster

        with pytest.raises(InvalidAttendanceStatusError, match="Invalid attendance status"):
            await service.mark_attendance(
                MarkAttendanceRequest(class_id=class_.id, student_id=alice.id, date=DAY, status=7),
                teacher.id,
            )


class TestBulkAttendance:
    """Tests for all-or-nothing bulk marking."""

    @pytest.mark.asyncio
    async def test_bulk_marks_everyone_sorted_by_name(self, service, roster) -> None:
        teacher, class_, alice, bob, _ = roster

        result = await service.mark_bulk_attendance(
            BulkMarkAttendanceRequest(
                class_id=class_.id,
                date=DAY,
                attendances=[
                    StudentAttendanceEntry(student_id=bob.id, status=2),
                    StudentAttendanceEntry(student_id=alice.id, status=1),
                ],
            ),
            teacher.id,
        )

        assert [(r.student_name, r.status) for r in result] == [("Alice", "Present"), ("Bob", "Absent")]

    @pytest.mark.asyncio
    async def test_one_bad_record_writes_nothing(self, service, roster, db_session) -> None:
        teacher, class_, alice, _, outsider = roster

        with pytest.raises(InvalidAttendanceRecordError, match=f"Student {outsider.id}"):
            await service.mark_bulk_attendance(
                BulkMarkAttendanceRequest(
                    class_id=class_.id,
                    date=DAY,
                    attendances=[
                        StudentAttendanceEntry(student_id=alice.id, status=1),
                        StudentAttendanceEntry(student_id=outsider.id, status=1),
                    ],
                ),
                teacher.id,
            )

        assert await _row_count(db_session) == 0

    @pytest.mark.asyncio
    async def test_bad_status_in_batch_writes_nothing(self, service, roster, db_session) -> None:
        teacher, class_, alice, bob, _ = roster

        with pytest.raises(InvalidAttendanceRecordError, match="Invalid attendance status"):
            await service.mark_bulk_attendance(
                BulkMarkAttendanceRequest(
                    class_id=class_.id,
                    date=DAY,
                    attendances=[
                        StudentAttendanceEntry(student_id=alice.id, status=1),
                        StudentAttendanceEntry(student_id=bob.id, status=0),
                    ],
                ),
                teacher.id,
            )

        assert await _row_count(db_session) == 0

    @pytest.mark.asyncio
    async def test_duplicate_student_last_entry_wins(self, service, roster) -> None:
        teacher, class_, alice, _, _ = roster

        result = await service.mark_bulk_attendance(
            BulkMarkAttendanceRequest(
                class_id=class_.id,
                date=DAY,
                attendances=[
                    StudentAttendanceEntry(student_id=alice.id, status=1),
                    StudentAttendanceEntry(student_id=alice.id, status=3),
                ],
            ),
            teacher.id,
        )

        assert [(r.student_id, r.status) for r in result] == [(alice.id, "Late")]

    @pytest.mark.asyncio
    async def test_bulk_updates_existing_and_returns_untouched_rows(self, service, roster, factory) -> None:
        teacher, class_, alice, bob, _ = roster
        await factory.attendance(class_, bob, DAY, AttendanceStatus.ABSENT)
        await factory.attendance(class_, alice, DAY, AttendanceStatus.ABSENT)

        result = await service.mark_bulk_attendance(
            BulkMarkAttendanceRequest(
                class_id=class_.id,
                date=DAY,
                attendances=[StudentAttendanceEntry(student_id=alice.id, status=1)],
            ),
            teacher.id,
        )

        assert [(r.student_name, r.status) for r in result] == [("Alice", "Present"), ("Bob", "Absent")]


class TestAttendanceQueries:
    """Tests for listings, per-student history and summaries."""

    @pytest.mark.asyncio
    async def test_class_attendance_filters_and_orders(self, service, roster, factory) -> None:
        teacher, class_, alice, bob, _ = roster
        await factory.attendance(class_, alice, date(2025, 3, 1), AttendanceStatus.PRESENT)
        await factory.attendance(class_, bob, date(2025, 3, 1), AttendanceStatus.ABSENT)
        await factory.attendance(class_, alice, date(2025, 3, 2), AttendanceStatus.LATE)
        await factory.attendance(class_, alice, date(2025, 3, 5), AttendanceStatus.PRESENT)

        everything = await service.get_class_attendance(class_.id, teacher.id)
        assert [(r.date.day, r.student_name) for r in everything.items] == [
            (5, "Alice"),
            (2, "Alice"),
            (1, "Alice"),
            (1, "Bob"),
        ]

        filtered = await service.get_class_attendance(
            class_.id,
            teacher.id,
            AttendanceFilter(
                student_id=alice.id,
                from_date=date(2025, 3, 1),
                to_date=datetime(2025, 3, 2, 23, 0, tzinfo=timezone.utc),
            ),
        )
        assert [r.date.day for r in filtered.items] == [2, 1]

        late_only = await service.get_class_attendance(class_.id, teacher.id, AttendanceFilter(status=3))
        assert late_only.total_count == 1

    @pytest.mark.asyncio
    async def test_class_attendance_is_paginated(self, service, roster, factory) -> None:
        teacher, class_, alice, _, _ = roster
        for day in range(1, 8):
            await factory.attendance(class_, alice, date(2025, 4, day))

        page = await service.get_class_attendance(
            class_.id, teacher.id, page=PageRequest(page_number=2, page_size=3)
        )

        assert page.total_count == 7
        assert page.total_pages == 3
        assert [r.date.day for r in page.items] == [4, 3, 2]

    @pytest.mark.asyncio
    async def test_history_of_inactive_class_is_readable(self, service, roster, db_session) -> None:
        teacher, class_, _, _, _ = roster
        class_.is_active = False
        await db_session.flush()

        result = await service.get_class_attendance(class_.id, teacher.id)

        assert result.total_count == 0

    @pytest.mark.asyncio
    async def test_student_attendance_newest_first(self, service, roster, factory) -> None:
        teacher, class_, alice, _, _ = roster
        await factory.attendance(class_, alice, date(2025, 1, 1))
        await factory.attendance(class_, alice, date(2025, 2, 1))

        history = await service.get_student_attendance(class_.id, alice.id, teacher.id)

        assert [r.date.month for r in history] == [2, 1]

    @pytest.mark.asyncio
    async def test_summary_counts(self, service, roster, factory) -> None:
        teacher, class_, alice, bob, _ = roster
        await factory.attendance(class_, alice, date(2025, 3, 1), AttendanceStatus.PRESENT)
        await factory.attendance(class_, bob, date(2025, 3, 1), AttendanceStatus.ABSENT)
        await factory.attendance(class_, alice, date(2025, 3, 2), AttendanceStatus.LATE)

        summary = await service.get_attendance_summary(class_.id, teacher.id)

        assert summary.class_name == "Algebra A"
        assert summary.total_students == 2
        assert summary.total_sessions == 2
        assert (summary.total_present, summary.total_absent, summary.total_late) == (1, 1, 1)
        assert summary.attendance_percentage == 66.67

    @pytest.mark.asyncio
    async def test_summary_without_records_is_zero(self, service, roster) -> None:
        teacher, class_, _, _, _ = roster

        summary = await service.get_attendance_summary(class_.id, teacher.id)

        assert summary.total_sessions == 0
        assert summary.attendance_percentage == 0.0


class TestAttendancePercentage:
    @pytest.mark.parametrize(
        ("attended", "total", "expected"),
        [(0, 0, 0.0), (1, 3, 33.33), (3, 3, 100.0), (0, 4, 0.0)],
    )
    def test_percentage(self, attended, total, expected) -> None:
        assert attendance_percentage(attended, total) == expected
