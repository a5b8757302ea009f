# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Assignment, submission and grading models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class CreateAssignmentRequest(BaseModel):
    class_id: int
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    due_date: datetime


class UpdateAssignmentRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    due_date: datetime


class GradeSubmissionRequest(BaseModel):
    grade: Decimal = Field(..., ge=0, le=100, max_digits=5, decimal_places=2)
    remarks: str | None = Field(default=None, max_length=500)


class AssignmentResponse(BaseModel):
    """Assignment with derived submission counts.

    pending_submissions counts submissions that are not graded yet.
    """

    id: int
    class_id: int
    class_name: str
    title: str
    description: str | None
    due_date: datetime
    created_by_teacher_id: int
    created_by_teacher_name: str
    created_date: datetime
    total_submissions: int = 0
    graded_submissions: int = 0
    pending_submissions: int = 0


class SubmissionResponse(BaseModel):
    id: int
    assignment_id: int
    assignment_title: str
    student_id: int
    student_name: str
    student_email: str
    submitted_date: datetime
    file_url: str | None
    grade: Decimal | None
    graded_by_teacher_id: int | None
    graded_by_teacher_name: str | None
    remarks: str | None
    is_graded: bool
