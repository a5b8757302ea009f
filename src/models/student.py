# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student-facing view models and submission requests."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, Field


class SubmitAssignmentRequest(BaseModel):
    """Submission by URL; file_url may be omitted for work handed in offline."""

    file_url: str | None = Field(default=None, max_length=500)


class UploadedFile(BaseModel):
    """A file received from the client, held in memory."""

    filename: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


class SubmissionFile(BaseModel):
    """Stored bytes of a submission, with the file name they were saved under."""

    file_name: str
    content: bytes


class StudentClassResponse(BaseModel):
    class_id: int
    class_name: str
    course_code: str
    course_name: str
    credits: int
    teacher_name: str
    semester: str
    start_date: dt.datetime
    end_date: dt.datetime
    is_active: bool
    enrollment_date: dt.datetime


class StudentAttendanceResponse(BaseModel):
    class_id: int
    class_name: str
    date: dt.date
    status: str
    marked_by_teacher_name: str


class StudentGradeResponse(BaseModel):
    assignment_id: int
    assignment_title: str
    class_name: str
    course_code: str
    submitted_date: dt.datetime
    grade: Decimal
    remarks: str | None
    graded_by_teacher_name: str | None


class StudentAssignmentResponse(BaseModel):
    """An assignment from one of the student's classes.

    is_overdue is true only when the due date has passed and nothing was
    submitted.
    """

    assignment_id: int
    title: str
    description: str | None
    due_date: dt.datetime
    class_id: int
    class_name: str
    course_code: str
    teacher_name: str
    is_submitted: bool
    submitted_date: dt.datetime | None
    grade: Decimal | None
    is_overdue: bool


class StudentDashboard(BaseModel):
    total_classes: int
    active_classes: int
    total_assignments: int
    pending_assignments: int
    submitted_assignments: int
    graded_assignments: int
    average_grade: float | None
    attendance_percentage: float
