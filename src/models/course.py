# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Course catalogue request and response models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CourseRequest(BaseModel):
    """Request model for creating or updating a course.

    The code is matched case-insensitively and stored upper-cased.
    """

    name: str = Field(..., min_length=1, max_length=100)
    code: str = Field(..., min_length=1, max_length=20)
    description: str | None = Field(default=None, max_length=500)
    department_id: int
    credits: int = Field(..., ge=1, le=20)


class CourseFilter(BaseModel):
    search: str | None = None
    department_id: int | None = None
    min_credits: int | None = None
    max_credits: int | None = None


class CourseResponse(BaseModel):
    id: int
    name: str
    code: str
    description: str | None
    department_id: int
    department_name: str
    credits: int
    created_date: datetime
    updated_date: datetime | None = None
    is_active: bool
    classes_count: int = 0
