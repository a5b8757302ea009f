# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User administration request and response models."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

_STRONG_PASSWORD = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$")


class UpdateUserRequest(BaseModel):
    """Admin update of a user.

    new_password is optional. When given it must have upper and lower case
    letters, a digit and one of @$!%*?&.
    """

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr = Field(..., max_length=150)
    role: int
    new_password: str | None = Field(default=None, min_length=8, max_length=72)

    @field_validator("new_password", mode="after")
    @classmethod
    def check_password_strength(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        if not _STRONG_PASSWORD.match(v):
            raise ValueError(
                "Password must contain at least one uppercase, one lowercase, "
                "one number and one special character"
            )
        return v


class UserFilter(BaseModel):
    search: str | None = None
    role: int | None = None
    is_active: bool | None = None


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: str
    created_date: datetime
    updated_date: datetime | None = None
    is_active: bool


class UserStatistics(BaseModel):
    total_users: int
    total_admins: int
    total_teachers: int
    total_students: int
    inactive_users: int
