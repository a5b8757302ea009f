# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User and refresh token tables."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import (
    ActiveMixin,
    Base,
    IntEnumType,
    TimestampMixin,
    UTCDateTime,
)
from src.models.common import UserRole
from src.utils.datetime import is_expired, utc_now


class User(ActiveMixin, TimestampMixin, Base):
    """Account for an admin, teacher or student.

    Emails are stored lower-cased so the unique index is case-insensitive.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(150), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(IntEnumType(UserRole), nullable=False, index=True)


class RefreshToken(Base):
    """Server-side record of an issued refresh token.

    Only the SHA-256 hash of the opaque token is stored. Rows are never
    deleted; revoked and expired tokens remain as an audit trail.
    """

    __tablename__ = "refresh_tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utc_now)
    is_revoked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    revoked_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    @property
    def is_expired(self) -> bool:
        return is_expired(self.expires_at)

    @property
    def is_active(self) -> bool:
        return not self.is_revoked and not self.is_expired
