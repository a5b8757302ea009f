# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification table."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, IntEnumType, UTCDateTime
from src.models.common import UserRole
from src.utils.datetime import utc_now


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(String(1000), nullable=False)
    recipient_role: Mapped[UserRole | None] = mapped_column(IntEnumType(UserRole), nullable=True)
    recipient_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    created_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utc_now)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
