# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Department request and response models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class DepartmentRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    head_of_department_id: int | None = None


class DepartmentResponse(BaseModel):
    id: int
    name: str
    description: str | None
    head_of_department_id: int | None
    head_of_department_name: str | None
    created_date: datetime
    updated_date: datetime | None = None
    is_active: bool
    courses_count: int = 0
