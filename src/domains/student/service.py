# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student-facing service.

This module provides the StudentService class for:
- Enrolled classes, attendance history and grades
- Assignments across enrolled classes with submission state
- One-shot assignment submission, by URL or by uploaded file, and download
  of the submitted file
- The student dashboard
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath

from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from src.core.config.settings import StorageSettings
from src.domains.assignment.service import submission_query, to_submission_response
from src.domains.attendance.service import attendance_percentage
from src.domains.errors import ConflictError, InputValidationError, NotFoundError, flush_or_conflict
from src.domains.ownership import OwnershipGuard
from src.infrastructure.database.models.assignment import Assignment, Submission
from src.infrastructure.database.models.attendance import Attendance
from src.infrastructure.database.models.school import Class, Course, StudentClass
from src.infrastructure.database.models.user import User
from src.infrastructure.storage.local import LocalFileStorage
from src.models.assignment import SubmissionResponse
from src.models.common import AttendanceStatus
from src.models.student import (
    StudentAssignmentResponse,
    StudentAttendanceResponse,
    StudentClassResponse,
    StudentDashboard,
    StudentGradeResponse,
    SubmissionFile,
    SubmitAssignmentRequest,
    UploadedFile,
)
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

Teacher = aliased(User, name="teacher")

SUBMISSION_FOLDER = "assignments"


class AssignmentNotFoundError(NotFoundError):
    """Raised when the assignment being submitted does not exist."""

    pass


class DuplicateSubmissionError(ConflictError):
    """Raised when the student already submitted this assignment."""

    pass


class InvalidSubmissionFileError(InputValidationError):
    """Raised when an uploaded file fails the size or extension checks."""

    pass


class StorageUnavailableError(InputValidationError):
    """Raised when a file submission arrives but no file store is configured."""

    pass


class StudentService:
    """Service for the student role.

    Attributes:
        db: Async database session.
        guard: Enrollment checks.
        storage: File store for uploaded submissions.
        limits: Upload size and extension limits.
    """

    def __init__(
        self,
        db: AsyncSession,
        storage: LocalFileStorage | None = None,
        limits: StorageSettings | None = None,
    ) -> None:
        self.db = db
        self.guard = OwnershipGuard(db)
        self.storage = storage
        self.limits = limits or StorageSettings()

    async def get_enrolled_classes(self, student_id: int) -> list[StudentClassResponse]:
        """Classes the student is enrolled in, active first, newest enrollment first."""
        stmt = (
            select(StudentClass.enrollment_date, Class, Course.code, Course.name, Course.credits, Teacher.name)
            .join(Class, Class.id == StudentClass.class_id)
            .join(Course, Course.id == Class.course_id)
            .join(Teacher, Teacher.id == Class.teacher_id)
            .where(StudentClass.student_id == student_id)
            .order_by(Class.is_active.desc(), StudentClass.enrollment_date.desc())
        )
        rows = (await self.db.execute(stmt)).all()

        return [
            StudentClassResponse(
                class_id=class_.id,
                class_name=class_.name,
                course_code=course_code,
                course_name=course_name,
                credits=credits,
                teacher_name=teacher_name,
                semester=class_.semester,
                start_date=class_.start_date,
                end_date=class_.end_date,
                is_active=class_.is_active,
                enrollment_date=enrollment_date,
            )
            for enrollment_date, class_, course_code, course_name, credits, teacher_name in rows
        ]

    async def get_attendance(
        self,
        student_id: int,
        class_id: int | None = None,
    ) -> list[StudentAttendanceResponse]:
        """The student's own attendance, newest date first."""
        stmt = (
            select(Attendance, Class.name, Teacher.name)
            .join(Class, Class.id == Attendance.class_id)
            .join(Teacher, Teacher.id == Attendance.marked_by_teacher_id)
            .where(Attendance.student_id == student_id)
        )
        if class_id is not None:
            stmt = stmt.where(Attendance.class_id == class_id)
        stmt = stmt.order_by(Attendance.date.desc(), Class.name)

        rows = (await self.db.execute(stmt)).all()
        return [
            StudentAttendanceResponse(
                class_id=record.class_id,
                class_name=class_name,
                date=record.date,
                status=record.status.label,
                marked_by_teacher_name=teacher_name,
            )
            for record, class_name, teacher_name in rows
        ]

    async def get_grades(self, student_id: int) -> list[StudentGradeResponse]:
        """Graded submissions only, most recently submitted first."""
        grader = aliased(User, name="grader")
        stmt = (
            select(Submission, Assignment.title, Class.name, Course.code, grader.name)
            .join(Assignment, Assignment.id == Submission.assignment_id)
            .join(Class, Class.id == Assignment.class_id)
            .join(Course, Course.id == Class.course_id)
            .outerjoin(grader, grader.id == Submission.graded_by_teacher_id)
            .where(Submission.student_id == student_id, Submission.grade.is_not(None))
            .order_by(Submission.submitted_date.desc())
        )
        rows = (await self.db.execute(stmt)).all()

        return [
            StudentGradeResponse(
                assignment_id=submission.assignment_id,
                assignment_title=title,
                class_name=class_name,
                course_code=course_code,
                submitted_date=submission.submitted_date,
                grade=submission.grade,
                remarks=submission.remarks,
                graded_by_teacher_name=grader_name,
            )
            for submission, title, class_name, course_code, grader_name in rows
        ]

    async def get_assignments(
        self,
        student_id: int,
        class_id: int | None = None,
        only_pending: bool = False,
    ) -> list[StudentAssignmentResponse]:
        """Assignments from enrolled classes, latest due date first.

        Args:
            student_id: Calling student.
            class_id: Restrict to one class.
            only_pending: Drop assignments already submitted.
        """
        own_submission = aliased(Submission, name="own_submission")
        stmt = (
            select(Assignment, Class.name, Course.code, Teacher.name, own_submission)
            .join(
                StudentClass,
                and_(
                    StudentClass.class_id == Assignment.class_id,
                    StudentClass.student_id == student_id,
                ),
            )
            .join(Class, Class.id == Assignment.class_id)
            .join(Course, Course.id == Class.course_id)
            .join(Teacher, Teacher.id == Class.teacher_id)
            .outerjoin(
                own_submission,
                and_(
                    own_submission.assignment_id == Assignment.id,
                    own_submission.student_id == student_id,
                ),
            )
        )
        if class_id is not None:
            stmt = stmt.where(Assignment.class_id == class_id)
        if only_pending:
            stmt = stmt.where(own_submission.id.is_(None))
        stmt = stmt.order_by(Assignment.due_date.desc(), Assignment.id.desc())

        now = utc_now()
        rows = (await self.db.execute(stmt)).all()

        return [
            StudentAssignmentResponse(
                assignment_id=assignment.id,
                title=assignment.title,
                description=assignment.description,
                due_date=assignment.due_date,
                class_id=assignment.class_id,
                class_name=class_name,
                course_code=course_code,
                teacher_name=teacher_name,
                is_submitted=submission is not None,
                submitted_date=submission.submitted_date if submission else None,
                grade=submission.grade if submission else None,
                is_overdue=submission is None and assignment.due_date < now,
            )
            for assignment, class_name, course_code, teacher_name, submission in rows
        ]

    async def submit_assignment(
        self,
        assignment_id: int,
        request: SubmitAssignmentRequest,
        student_id: int,
    ) -> SubmissionResponse:
        """Submit an assignment once, optionally with a file URL.

        Raises:
            AssignmentNotFoundError: If the assignment does not exist.
            NotEnrolledError: If the student is not in the assignment's class.
            DuplicateSubmissionError: If the student already submitted.
        """
        await self._check_can_submit(assignment_id, student_id)
        return await self._create_submission(assignment_id, student_id, request.file_url)

    async def submit_assignment_file(
        self,
        assignment_id: int,
        upload: UploadedFile,
        student_id: int,
    ) -> SubmissionResponse:
        """Submit an assignment with an uploaded file.

        The file is validated before any lookup and only stored once every
        check has passed.

        Raises:
            InvalidSubmissionFileError: If the file is empty, too large, or
                has a disallowed extension.
            StorageUnavailableError: If no file store is configured.
            AssignmentNotFoundError: If the assignment does not exist.
            NotEnrolledError: If the student is not in the assignment's class.
            DuplicateSubmissionError: If the student already submitted.
        """
        if not LocalFileStorage.validate(
            upload.filename,
            upload.size,
            self.limits.max_submission_bytes,
            self.limits.allowed_submission_extensions,
        ):
            allowed = ", ".join(ext.lstrip(".").upper() for ext in self.limits.allowed_submission_extensions)
            max_mb = self.limits.max_submission_bytes // (1024 * 1024)
            raise InvalidSubmissionFileError(f"Invalid file. Allowed: {allowed} (Max {max_mb}MB)")

        if self.storage is None:
            raise StorageUnavailableError("File uploads are not available")

        await self._check_can_submit(assignment_id, student_id)

        file_url = await self.storage.upload(upload.content, upload.filename, SUBMISSION_FOLDER)
        try:
            return await self._create_submission(assignment_id, student_id, file_url)
        except DuplicateSubmissionError:
            await self.storage.delete(file_url)
            raise

    async def get_submission_file(self, submission_id: int, student_id: int) -> SubmissionFile | None:
        """Load the file the student attached to one of their submissions.

        Returns:
            The stored file, or None when the submission is not the
            student's, carries no file, or the file is gone from the store.
        """
        file_url = (
            await self.db.execute(
                select(Submission.file_url).where(
                    Submission.id == submission_id,
                    Submission.student_id == student_id,
                )
            )
        ).scalar_one_or_none()

        if not file_url or self.storage is None:
            return None

        content = await self.storage.read(file_url)
        if content is None:
            logger.warning("Submission file missing: submission=%s, url=%s", submission_id, file_url)
            return None

        return SubmissionFile(file_name=PurePosixPath(file_url).name, content=content)

    async def get_dashboard(self, student_id: int) -> StudentDashboard:
        """Counts, average grade and attendance rate for the student."""
        classes = (
            await self.db.execute(
                select(Class.id, Class.is_active)
                .join(StudentClass, StudentClass.class_id == Class.id)
                .where(StudentClass.student_id == student_id)
            )
        ).all()
        class_ids = [class_id for class_id, _ in classes]

        assignment_ids: set[int] = set()
        if class_ids:
            assignment_ids = set(
                (
                    await self.db.execute(
                        select(Assignment.id).where(Assignment.class_id.in_(class_ids))
                    )
                ).scalars().all()
            )

        submissions = (
            await self.db.execute(
                select(Submission.assignment_id, Submission.grade).where(
                    Submission.student_id == student_id
                )
            )
        ).all()
        submitted_ids = {assignment_id for assignment_id, _ in submissions}
        grades = [grade for _, grade in submissions if grade is not None]

        attended, total_records = (
            await self.db.execute(
                select(
                    func.sum(
                        case(
                            (Attendance.status.in_([AttendanceStatus.PRESENT, AttendanceStatus.LATE]), 1),
                            else_=0,
                        )
                    ),
                    func.count(Attendance.id),
                ).where(Attendance.student_id == student_id)
            )
        ).one()

        return StudentDashboard(
            total_classes=len(classes),
            active_classes=sum(1 for _, is_active in classes if is_active),
            total_assignments=len(assignment_ids),
            pending_assignments=len(assignment_ids - submitted_ids),
            submitted_assignments=len(submissions),
            graded_assignments=len(grades),
            average_grade=round(float(sum(grades)) / len(grades), 2) if grades else None,
            attendance_percentage=attendance_percentage(int(attended or 0), int(total_records or 0)),
        )

    async def _check_can_submit(self, assignment_id: int, student_id: int) -> Assignment:
        assignment = await self.db.get(Assignment, assignment_id)
        if assignment is None:
            raise AssignmentNotFoundError("Assignment not found")

        await self.guard.require_student_enrolled(
            assignment.class_id,
            student_id,
            message="You are not enrolled in this class",
        )

        existing = await self.db.execute(
            select(Submission.id).where(
                Submission.assignment_id == assignment_id,
                Submission.student_id == student_id,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise DuplicateSubmissionError("You have already submitted this assignment")

        return assignment

    async def _create_submission(
        self,
        assignment_id: int,
        student_id: int,
        file_url: str | None,
    ) -> SubmissionResponse:
        submission = Submission(
            assignment_id=assignment_id,
            student_id=student_id,
            file_url=file_url,
            submitted_date=utc_now(),
        )
        self.db.add(submission)
        await flush_or_conflict(
            self.db,
            DuplicateSubmissionError("You have already submitted this assignment"),
        )

        logger.info(
            "Submitted assignment: assignment=%s, student=%s, with_file=%s",
            assignment_id,
            student_id,
            file_url is not None,
        )

        row = (await self.db.execute(submission_query().where(Submission.id == submission.id))).one()
        return to_submission_response(row)
