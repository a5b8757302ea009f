# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Declarative base and shared column helpers for ORM models.

Models reference each other only through foreign-key ids. There are no
relationship() navigation properties; read paths join explicitly.
"""

from __future__ import annotations

from datetime import datetime
from enum import IntEnum
from typing import Any

from sqlalchemy import Boolean, DateTime, Integer
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from src.utils.datetime import ensure_utc, utc_now


class Base(DeclarativeBase):
    """Declarative base for all tables."""


class IntEnumType(TypeDecorator):
    """Store an IntEnum as its integer value.

    Unknown integers read back from the database raise ValueError instead
    of leaking raw ints into the domain layer.
    """

    impl = Integer
    cache_ok = True

    def __init__(self, enum_class: type[IntEnum], *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._enum_class = enum_class

    def process_bind_param(self, value: Any, dialect: Dialect) -> int | None:
        if value is None:
            return None
        return int(self._enum_class(value))

    def process_result_value(self, value: Any, dialect: Dialect) -> IntEnum | None:
        if value is None:
            return None
        return self._enum_class(value)


class UTCDateTime(TypeDecorator):
    """Timezone-aware DateTime that always reads back as UTC.

    SQLite drops tzinfo on round trip; PostgreSQL returns aware values.
    Normalizing here keeps comparisons in the services consistent.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Dialect) -> datetime | None:
        return ensure_utc(value)

    def process_result_value(self, value: Any, dialect: Dialect) -> datetime | None:
        return ensure_utc(value)


class ActiveMixin:
    """Soft-delete flag. Inactive rows stay referenced for history."""

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)


class TimestampMixin:
    """Created/updated audit columns."""

    created_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utc_now)
    updated_date: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True, default=None, onupdate=utc_now
    )
