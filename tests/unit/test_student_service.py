# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tests for the student-facing views and submissions."""

from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path

import pytest
import pytest_asyncio

from src.domains.ownership import NotEnrolledError
from src.domains.student.service import (
    AssignmentNotFoundError,
    DuplicateSubmissionError,
    InvalidSubmissionFileError,
    StorageUnavailableError,
    StudentService,
)
from src.infrastructure.storage.local import LocalFileStorage
from src.models.common import AttendanceStatus
from src.models.student import SubmitAssignmentRequest, UploadedFile
from src.utils.datetime import utc_now


@pytest.fixture
def storage(storage_settings) -> LocalFileStorage:
    return LocalFileStorage(storage_settings)


@pytest.fixture
def service(db_session, storage, storage_settings) -> StudentService:
    return StudentService(db_session, storage=storage, limits=storage_settings)


@pytest_asyncio.fixture
async def enrolled(factory):
    """A student enrolled in one active class with one open assignment."""
    teacher = await factory.teacher(name="Grace")
    course = await factory.course(code="PHY101", name="Physics")
    class_ = await factory.class_(teacher, course=course, name="Physics A")
    student = await factory.student(name="Ada")
    await factory.enroll(class_, student)
    assignment = await factory.assignment(class_, title="Lab report")
    return student, class_, assignment


class TestViews:
    @pytest.mark.asyncio
    async def test_enrolled_classes(self, service, enrolled) -> None:
        student, class_, _ = enrolled

        [view] = await service.get_enrolled_classes(student.id)

        assert view.class_id == class_.id
        assert view.course_code == "PHY101"
        assert view.teacher_name == "Grace"
        assert view.is_active is True

    @pytest.mark.asyncio
    async def test_attendance_can_be_filtered_by_class(self, service, enrolled, factory) -> None:
        student, class_, _ = enrolled
        other_class = await factory.class_(await factory.teacher())
        await factory.enroll(other_class, student)
        await factory.attendance(class_, student, date(2025, 3, 1), AttendanceStatus.LATE)
        await factory.attendance(other_class, student, date(2025, 3, 2))

        everything = await service.get_attendance(student.id)
        only_physics = await service.get_attendance(student.id, class_id=class_.id)

        assert [r.date.day for r in everything] == [2, 1]
        assert [(r.class_name, r.status) for r in only_physics] == [("Physics A", "Late")]

    @pytest.mark.asyncio
    async def test_grades_list_only_graded_work(self, service, enrolled, factory) -> None:
        student, class_, assignment = enrolled
        ungraded = await factory.assignment(class_, title="Essay")
        await factory.submission(assignment, student, grade=Decimal("88"))
        await factory.submission(ungraded, student)

        grades = await service.get_grades(student.id)

        assert [(g.assignment_title, g.grade) for g in grades] == [("Lab report", Decimal("88"))]

    @pytest.mark.asyncio
    async def test_assignments_with_submission_state(self, service, enrolled, factory) -> None:
        student, class_, assignment = enrolled
        overdue = await factory.assignment(class_, title="Old", due_date=utc_now() - timedelta(days=3))
        await factory.submission(assignment, student)

        views = await service.get_assignments(student.id)
        by_title = {v.title: v for v in views}

        assert [v.title for v in views] == ["Lab report", "Old"]
        assert by_title["Lab report"].is_submitted is True
        assert by_title["Lab report"].is_overdue is False
        assert by_title["Old"].is_overdue is True

        pending = await service.get_assignments(student.id, only_pending=True)
        assert [v.assignment_id for v in pending] == [overdue.id]

    @pytest.mark.asyncio
    async def test_assignments_from_other_classes_are_hidden(self, service, enrolled, factory) -> None:
        student, _, _ = enrolled
        elsewhere = await factory.class_(await factory.teacher())
        await factory.assignment(elsewhere)

        views = await service.get_assignments(student.id)

        assert len(views) == 1


class TestSubmit:
    @pytest.mark.asyncio
    async def test_submit_once(self, service, enrolled) -> None:
        student, _, assignment = enrolled

        response = await service.submit_assignment(
            assignment.id, SubmitAssignmentRequest(file_url="https://files.test/a.pdf"), student.id
        )

        assert response.student_name == "Ada"
        assert response.is_graded is False
        assert response.file_url == "https://files.test/a.pdf"

    @pytest.mark.asyncio
    async def test_second_submission_conflicts(self, service, enrolled) -> None:
        student, _, assignment = enrolled
        await service.submit_assignment(assignment.id, SubmitAssignmentRequest(), student.id)

        with pytest.raises(DuplicateSubmissionError, match="already submitted"):
            await service.submit_assignment(assignment.id, SubmitAssignmentRequest(), student.id)

    @pytest.mark.asyncio
    async def test_late_submission_is_accepted(self, service, enrolled, factory) -> None:
        student, class_, _ = enrolled
        overdue = await factory.assignment(class_, due_date=utc_now() - timedelta(days=1))

        response = await service.submit_assignment(overdue.id, SubmitAssignmentRequest(), student.id)

        assert response.assignment_id == overdue.id

    @pytest.mark.asyncio
    async def test_unenrolled_student_rejected(self, service, enrolled, factory) -> None:
        _, _, assignment = enrolled
        stranger = await factory.student()

        with pytest.raises(NotEnrolledError, match="You are not enrolled"):
            await service.submit_assignment(assignment.id, SubmitAssignmentRequest(), stranger.id)

    @pytest.mark.asyncio
    async def test_missing_assignment(self, service, enrolled) -> None:
        student, _, _ = enrolled

        with pytest.raises(AssignmentNotFoundError):
            await service.submit_assignment(404, SubmitAssignmentRequest(), student.id)


class TestSubmitFile:
    @pytest.mark.asyncio
    async def test_valid_file_is_stored(self, service, enrolled, storage_settings) -> None:
        student, _, assignment = enrolled

        response = await service.submit_assignment_file(
            assignment.id, UploadedFile(filename="report.pdf", content=b"%PDF-1.4"), student.id
        )

        assert response.file_url.startswith("/uploads/assignments/")
        stored = Path(storage_settings.root_dir) / "assignments" / response.file_url.rsplit("/", 1)[1]
        assert stored.read_bytes() == b"%PDF-1.4"

    @pytest.mark.asyncio
    async def test_disallowed_extension(self, service, enrolled) -> None:
        student, _, assignment = enrolled

        with pytest.raises(InvalidSubmissionFileError) as exc_info:
            await service.submit_assignment_file(
                assignment.id, UploadedFile(filename="virus.exe", content=b"MZ"), student.id
            )

        assert exc_info.value.message == "Invalid file. Allowed: PDF, DOC, DOCX, TXT, ZIP, RAR (Max 10MB)"

    @pytest.mark.asyncio
    async def test_empty_file(self, service, enrolled) -> None:
        student, _, assignment = enrolled

        with pytest.raises(InvalidSubmissionFileError):
            await service.submit_assignment_file(
                assignment.id, UploadedFile(filename="empty.txt", content=b""), student.id
            )

    @pytest.mark.asyncio
    async def test_duplicate_leaves_no_stray_file(self, service, enrolled, storage_settings) -> None:
        student, _, assignment = enrolled
        await service.submit_assignment(assignment.id, SubmitAssignmentRequest(), student.id)

        with pytest.raises(DuplicateSubmissionError):
            await service.submit_assignment_file(
                assignment.id, UploadedFile(filename="late.txt", content=b"x"), student.id
            )

        folder = Path(storage_settings.root_dir) / "assignments"
        assert not folder.exists() or not any(folder.iterdir())

    @pytest.mark.asyncio
    async def test_without_storage(self, db_session, enrolled) -> None:
        student, _, assignment = enrolled

        with pytest.raises(StorageUnavailableError):
            await StudentService(db_session).submit_assignment_file(
                assignment.id, UploadedFile(filename="a.txt", content=b"x"), student.id
            )


class TestSubmissionFile:
    @pytest.mark.asyncio
    async def test_owner_gets_stored_bytes(self, service, enrolled) -> None:
        student, _, assignment = enrolled
        submission = await service.submit_assignment_file(
            assignment.id, UploadedFile(filename="report.pdf", content=b"%PDF-1.4"), student.id
        )

        result = await service.get_submission_file(submission.id, student.id)

        assert result.content == b"%PDF-1.4"
        assert result.file_name == submission.file_url.rsplit("/", 1)[1]
        assert result.file_name.endswith(".pdf")

    @pytest.mark.asyncio
    async def test_other_student_gets_nothing(self, service, enrolled, factory) -> None:
        student, class_, assignment = enrolled
        classmate = await factory.student(name="Bob")
        await factory.enroll(class_, classmate)
        submission = await service.submit_assignment_file(
            assignment.id, UploadedFile(filename="report.pdf", content=b"%PDF-1.4"), student.id
        )

        assert await service.get_submission_file(submission.id, classmate.id) is None

    @pytest.mark.asyncio
    async def test_submission_without_file(self, service, enrolled) -> None:
        student, _, assignment = enrolled
        submission = await service.submit_assignment(assignment.id, SubmitAssignmentRequest(), student.id)

        assert await service.get_submission_file(submission.id, student.id) is None

    @pytest.mark.asyncio
    async def test_file_missing_from_store(self, service, storage, enrolled) -> None:
        student, _, assignment = enrolled
        submission = await service.submit_assignment_file(
            assignment.id, UploadedFile(filename="notes.txt", content=b"x"), student.id
        )
        await storage.delete(submission.file_url)

        assert await service.get_submission_file(submission.id, student.id) is None

    @pytest.mark.asyncio
    async def test_unknown_submission(self, service, enrolled) -> None:
        student, _, _ = enrolled

        assert await service.get_submission_file(9999, student.id) is None


class TestDashboard:
    @pytest.mark.asyncio
    async def test_dashboard_counts(self, service, enrolled, factory) -> None:
        student, class_, assignment = enrolled
        second = await factory.assignment(class_)
        await factory.assignment(class_)
        await factory.submission(assignment, student, grade=Decimal("90"))
        await factory.submission(second, student, grade=Decimal("75"))
        inactive = await factory.class_(await factory.teacher(), is_active=False)
        await factory.enroll(inactive, student)
        for day, status in ((1, AttendanceStatus.PRESENT), (2, AttendanceStatus.ABSENT), (3, AttendanceStatus.LATE)):
            await factory.attendance(class_, student, date(2025, 5, day), status)

        dashboard = await service.get_dashboard(student.id)

        assert dashboard.total_classes == 2
        assert dashboard.active_classes == 1
        assert dashboard.total_assignments == 3
        assert dashboard.pending_assignments == 1
        assert dashboard.submitted_assignments == 2
        assert dashboard.graded_assignments == 2
        assert dashboard.average_grade == 82.5
        assert dashboard.attendance_percentage == 66.67

    @pytest.mark.asyncio
    async def test_empty_dashboard(self, service, factory) -> None:
        student = await factory.student()

        dashboard = await service.get_dashboard(student.id)

        assert dashboard.total_classes == 0
        assert dashboard.average_grade is None
        assert dashboard.attendance_percentage == 0.0
