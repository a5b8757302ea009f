# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared enums and pagination contracts.

Every listing operation accepts a PageRequest and returns a
PaginatedResult, so clamping and page arithmetic live in one place.
"""

from __future__ import annotations

import math
from enum import IntEnum
from typing import Generic, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class UserRole(IntEnum):
    """Closed set of account roles. Wire values are 1, 2 and 3."""

    ADMIN = 1
    TEACHER = 2
    STUDENT = 3

    @property
    def label(self) -> str:
        """Display name used in tokens and responses, e.g. "Teacher"."""
        return self.name.title()

    @classmethod
    def from_label(cls, label: str) -> "UserRole":
        return cls[label.upper()]


class AttendanceStatus(IntEnum):
    PRESENT = 1
    ABSENT = 2
    LATE = 3

    @property
    def label(self) -> str:
        return self.name.title()


class PageRequest(BaseModel):
    """Page selection with clamping.

    page_number below 1 becomes 1. page_size above 100 becomes 100 and a
    page_size below 1 falls back to the default of 10.
    """

    page_number: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    @field_validator("page_number", mode="after")
    @classmethod
    def clamp_page_number(cls, value: int) -> int:
        return max(value, 1)

    @field_validator("page_size", mode="after")
    @classmethod
    def clamp_page_size(cls, value: int) -> int:
        if value < 1:
            return DEFAULT_PAGE_SIZE
        return min(value, MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        return (self.page_number - 1) * self.page_size


class PaginatedResult(BaseModel, Generic[T]):
    """One page of results plus navigation metadata.

    Attributes:
        items: Items on the requested page.
        total_count: Number of items matching the filters across all pages.
        page_number: Clamped page number.
        page_size: Clamped page size.
        total_pages: ceil(total_count / page_size).
        has_previous_page: True when page_number > 1.
        has_next_page: True when page_number < total_pages.
    """

    model_config = ConfigDict(frozen=True)

    items: list[T] = Field(default_factory=list)
    total_count: int
    page_number: int
    page_size: int
    total_pages: int
    has_previous_page: bool
    has_next_page: bool

    @classmethod
    def create(
        cls,
        items: Sequence[T],
        total_count: int,
        page: PageRequest,
    ) -> "PaginatedResult[T]":
        """Build a page from already-sliced items and the unsliced count."""
        total_pages = math.ceil(total_count / page.page_size) if total_count else 0
        return cls(
            items=list(items),
            total_count=total_count,
            page_number=page.page_number,
            page_size=page.page_size,
            total_pages=total_pages,
            has_previous_page=page.page_number > 1,
            has_next_page=page.page_number < total_pages,
        )
