# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Assignment and grading workflow for teachers.

This module provides the AssignmentService class for:
- Creating, updating and deleting assignments in owned classes
- Listing assignments with derived submission counts
- Listing and grading submissions

Submissions move Submitted -> Graded. Re-grading overwrites the grade and
remarks in place; there is no way back to ungraded.
"""

from __future__ import annotations

import logging
from datetime import datetime
from functools import partial
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from src.domains.errors import ForbiddenError, InvalidOperationError, NotFoundError
from src.domains.ownership import OwnershipGuard
from src.infrastructure.database.connection import after_commit
from src.infrastructure.database.models.assignment import Assignment, Submission
from src.infrastructure.database.models.school import Class
from src.infrastructure.database.models.user import User
from src.infrastructure.database.pagination import paginate
from src.infrastructure.notifications.email import EmailNotifier
from src.models.assignment import (
    AssignmentResponse,
    CreateAssignmentRequest,
    GradeSubmissionRequest,
    SubmissionResponse,
    UpdateAssignmentRequest,
)
from src.models.common import PageRequest, PaginatedResult
from src.utils.datetime import to_calendar_date, utc_now, utc_today

logger = logging.getLogger(__name__)

CreatedBy = aliased(User, name="created_by")
Student = aliased(User, name="student")
GradedBy = aliased(User, name="graded_by")


class AssignmentNotFoundError(NotFoundError):
    """Raised when an assignment is missing or created by another teacher."""

    pass


class SubmissionNotFoundError(NotFoundError):
    """Raised when a submission is not found."""

    pass


class PastDueDateError(InvalidOperationError):
    """Raised when a due date falls before today (UTC)."""

    pass


class HasSubmissionsError(InvalidOperationError):
    """Raised when deleting an assignment that already has student work."""

    pass


class NotSubmissionOwnerError(ForbiddenError):
    """Raised when a teacher grades a submission in a class they do not own."""

    pass


def submission_counts() -> Any:
    """Per-assignment total and graded submission counts as a subquery."""
    return (
        select(
            Submission.assignment_id.label("assignment_id"),
            func.count(Submission.id).label("total"),
            func.count(Submission.grade).label("graded"),
        )
        .group_by(Submission.assignment_id)
        .subquery("submission_counts")
    )


def submission_query() -> Select[Any]:
    """Submissions joined with assignment title, student and grader names."""
    return (
        select(Submission, Assignment.title, Student.name, Student.email, GradedBy.name)
        .join(Assignment, Assignment.id == Submission.assignment_id)
        .join(Student, Student.id == Submission.student_id)
        .outerjoin(GradedBy, GradedBy.id == Submission.graded_by_teacher_id)
    )


def to_submission_response(row: Row[Any]) -> SubmissionResponse:
    submission, title, student_name, student_email, grader_name = row
    return SubmissionResponse(
        id=submission.id,
        assignment_id=submission.assignment_id,
        assignment_title=title,
        student_id=submission.student_id,
        student_name=student_name,
        student_email=student_email,
        submitted_date=submission.submitted_date,
        file_url=submission.file_url,
        grade=submission.grade,
        graded_by_teacher_id=submission.graded_by_teacher_id,
        graded_by_teacher_name=grader_name,
        remarks=submission.remarks,
        is_graded=submission.grade is not None,
    )


class AssignmentService:
    """Service for the teacher side of assignments.

    Attributes:
        db: Async database session.
        guard: Ownership checks.
        notifier: Optional email notifier for grading emails.
    """

    def __init__(self, db: AsyncSession, notifier: EmailNotifier | None = None) -> None:
        self.db = db
        self.guard = OwnershipGuard(db)
        self.notifier = notifier

    async def create_assignment(
        self,
        request: CreateAssignmentRequest,
        teacher_id: int,
    ) -> AssignmentResponse:
        """Create an assignment in an owned, active class.

        Args:
            request: Assignment data.
            teacher_id: Calling teacher.

        Returns:
            Created assignment.

        Raises:
            ClassNotFoundError: If the teacher does not own an active class
                with that id.
            PastDueDateError: If the due date is before today.
        """
        await self.guard.require_teacher_owns_class(request.class_id, teacher_id)
        _check_due_date(request.due_date)

        assignment = Assignment(
            class_id=request.class_id,
            title=request.title,
            description=request.description,
            due_date=request.due_date,
            created_by_teacher_id=teacher_id,
            created_date=utc_now(),
        )
        self.db.add(assignment)
        await self.db.flush()

        logger.info(
            "Created assignment: %s (%s) in class=%s by %s",
            assignment.title,
            assignment.id,
            assignment.class_id,
            teacher_id,
        )

        return await self.get_assignment(assignment.id, teacher_id)

    async def update_assignment(
        self,
        assignment_id: int,
        request: UpdateAssignmentRequest,
        teacher_id: int,
    ) -> AssignmentResponse:
        """Update title, description and due date.

        Raises:
            AssignmentNotFoundError: If missing or created by someone else.
            PastDueDateError: If the new due date is before today.
        """
        assignment = await self._get_owned_assignment(assignment_id, teacher_id)
        _check_due_date(request.due_date)

        assignment.title = request.title
        assignment.description = request.description
        assignment.due_date = request.due_date
        await self.db.flush()

        logger.info("Updated assignment: %s by %s", assignment_id, teacher_id)

        return await self.get_assignment(assignment_id, teacher_id)

    async def delete_assignment(self, assignment_id: int, teacher_id: int) -> bool:
        """Delete an assignment that has no submissions.

        Raises:
            AssignmentNotFoundError: If missing or created by someone else.
            HasSubmissionsError: If any student has submitted work.
        """
        assignment = await self._get_owned_assignment(assignment_id, teacher_id)

        has_submissions = await self.db.execute(
            select(Submission.id).where(Submission.assignment_id == assignment_id).limit(1)
        )
        if has_submissions.scalar_one_or_none() is not None:
            raise HasSubmissionsError("Cannot delete assignment with existing submissions")

        await self.db.delete(assignment)
        await self.db.flush()

        logger.info("Deleted assignment: %s by %s", assignment_id, teacher_id)

        return True

    async def get_assignment(self, assignment_id: int, teacher_id: int) -> AssignmentResponse:
        """Get one assignment created by the teacher.

        Raises:
            AssignmentNotFoundError: If missing or created by someone else.
        """
        stmt = self._base_query().where(
            Assignment.id == assignment_id,
            Assignment.created_by_teacher_id == teacher_id,
        )
        row = (await self.db.execute(stmt)).one_or_none()
        if row is None:
            raise AssignmentNotFoundError("Assignment not found or you don't have access")
        return self._to_response(row)

    async def list_class_assignments(
        self,
        class_id: int,
        teacher_id: int,
        page: PageRequest | None = None,
    ) -> PaginatedResult[AssignmentResponse]:
        """List a class's assignments, newest first.

        Raises:
            ClassNotFoundError: If the teacher does not own the class.
        """
        await self.guard.require_teacher_owns_class(class_id, teacher_id, active_only=False)

        stmt = (
            self._base_query()
            .where(Assignment.class_id == class_id)
            .order_by(Assignment.created_date.desc(), Assignment.id.desc())
        )
        return await paginate(self.db, stmt, page or PageRequest(), self._to_response)

    async def get_assignment_submissions(
        self,
        assignment_id: int,
        teacher_id: int,
    ) -> list[SubmissionResponse]:
        """List all submissions for an assignment, ordered by student name.

        Raises:
            AssignmentNotFoundError: If missing or created by someone else.
        """
        await self._get_owned_assignment(assignment_id, teacher_id)

        stmt = (
            submission_query()
            .where(Submission.assignment_id == assignment_id)
            .order_by(Student.name, Submission.id)
        )
        rows = (await self.db.execute(stmt)).all()
        return [to_submission_response(row) for row in rows]

    async def grade_submission(
        self,
        submission_id: int,
        request: GradeSubmissionRequest,
        teacher_id: int,
    ) -> SubmissionResponse:
        """Grade or re-grade a submission.

        Only the teacher who owns the assignment's class may grade. The
        student is emailed about the grade on a best-effort basis once the
        grade has been committed.

        Args:
            submission_id: Submission identifier.
            request: Grade (0-100) and optional remarks.
            teacher_id: Calling teacher.

        Returns:
            The graded submission.

        Raises:
            SubmissionNotFoundError: If the submission does not exist.
            NotSubmissionOwnerError: If the class belongs to another teacher.
        """
        result = await self.db.execute(
            select(Submission, Assignment.title, Class.teacher_id)
            .join(Assignment, Assignment.id == Submission.assignment_id)
            .join(Class, Class.id == Assignment.class_id)
            .where(Submission.id == submission_id)
        )
        row = result.one_or_none()
        if row is None:
            raise SubmissionNotFoundError("Submission not found")

        submission, assignment_title, owner_id = row
        if owner_id != teacher_id:
            raise NotSubmissionOwnerError("Only the assigned teacher can grade this submission")

        regrade = submission.grade is not None
        submission.grade = request.grade
        submission.remarks = request.remarks
        submission.graded_by_teacher_id = teacher_id
        await self.db.flush()

        logger.info(
            "%s submission: %s, grade=%s, by=%s",
            "Re-graded" if regrade else "Graded",
            submission_id,
            request.grade,
            teacher_id,
        )

        response_row = (
            await self.db.execute(submission_query().where(Submission.id == submission_id))
        ).one()
        response = to_submission_response(response_row)

        if self.notifier is not None:
            after_commit(
                self.db,
                partial(
                    self.notifier.send_assignment_graded,
                    response.student_email,
                    response.student_name,
                    assignment_title,
                    request.grade,
                ),
            )

        return response

    async def _get_owned_assignment(self, assignment_id: int, teacher_id: int) -> Assignment:
        result = await self.db.execute(
            select(Assignment).where(
                Assignment.id == assignment_id,
                Assignment.created_by_teacher_id == teacher_id,
            )
        )
        assignment = result.scalar_one_or_none()
        if assignment is None:
            raise AssignmentNotFoundError("Assignment not found or you don't have access")
        return assignment

    @staticmethod
    def _base_query() -> Select[Any]:
        counts = submission_counts()
        return (
            select(
                Assignment,
                Class.name,
                CreatedBy.name,
                func.coalesce(counts.c.total, 0),
                func.coalesce(counts.c.graded, 0),
            )
            .join(Class, Class.id == Assignment.class_id)
            .join(CreatedBy, CreatedBy.id == Assignment.created_by_teacher_id)
            .outerjoin(counts, counts.c.assignment_id == Assignment.id)
        )

    @staticmethod
    def _to_response(row: Row[Any]) -> AssignmentResponse:
        assignment, class_name, teacher_name, total, graded = row
        return AssignmentResponse(
            id=assignment.id,
            class_id=assignment.class_id,
            class_name=class_name,
            title=assignment.title,
            description=assignment.description,
            due_date=assignment.due_date,
            created_by_teacher_id=assignment.created_by_teacher_id,
            created_by_teacher_name=teacher_name,
            created_date=assignment.created_date,
            total_submissions=total,
            graded_submissions=graded,
            pending_submissions=total - graded,
        )


def _check_due_date(due_date: datetime) -> None:
    if to_calendar_date(due_date) < utc_today():
        raise PastDueDateError("Assignment due date cannot be in the past")
