# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class management request and response models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CreateClassRequest(BaseModel):
    """Request model for creating a class.

    The owning teacher is always the caller; it is not part of the request.
    """

    name: str = Field(..., min_length=1, max_length=100)
    course_id: int
    semester: str = Field(..., min_length=1, max_length=50)
    start_date: datetime
    end_date: datetime


class UpdateClassRequest(BaseModel):
    """Request model for updating a class. The course cannot change."""

    name: str = Field(..., min_length=1, max_length=100)
    semester: str = Field(..., min_length=1, max_length=50)
    start_date: datetime
    end_date: datetime


class EnrollStudentRequest(BaseModel):
    student_id: int


class ClassResponse(BaseModel):
    id: int
    name: str
    course_id: int
    course_name: str
    course_code: str
    teacher_id: int
    teacher_name: str
    semester: str
    start_date: datetime
    end_date: datetime
    is_active: bool
    enrolled_students_count: int = 0
    created_date: datetime
    updated_date: datetime | None = None


class StudentEnrollmentResponse(BaseModel):
    id: int
    student_id: int
    student_name: str
    student_email: str
    class_id: int
    class_name: str
    enrollment_date: datetime
