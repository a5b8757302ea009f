# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication request and response models."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

_REGISTER_PASSWORD = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)[A-Za-z\d@$!%*?&]{6,}$")


class RegisterRequest(BaseModel):
    """Self-registration payload.

    role is kept as a raw integer so the service can reject values outside
    the role set with its own error instead of a schema failure. Passwords
    need upper and lower case letters and a digit, drawn from letters,
    digits and @$!%*?&.
    """

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr = Field(..., max_length=150)
    password: str = Field(..., min_length=6, max_length=72)
    role: int

    @field_validator("password", mode="after")
    @classmethod
    def check_password_strength(cls, v: str) -> str:
        if not _REGISTER_PASSWORD.fullmatch(v):
            raise ValueError(
                "Password must contain at least one uppercase letter, one lowercase "
                "letter and one number, using only letters, digits and @$!%*?&"
            )
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class AuthResponse(BaseModel):
    """Identity plus a fresh token pair.

    Attributes:
        user_id: User identifier.
        name: Display name.
        email: Normalized (lower-case) email.
        role: Role label.
        access_token: Signed access token.
        refresh_token: Opaque refresh token, shown to the client once.
        expires_at: Access token expiry.
    """

    user_id: int
    name: str
    email: str
    role: str
    access_token: str
    refresh_token: str
    expires_at: datetime

