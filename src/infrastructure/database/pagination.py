# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Paginated query helper shared by every listing operation.

Callers build a filtered and ordered SELECT, then hand it over with a row
mapper. The total is counted over the same statement without ordering.
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.common import PageRequest, PaginatedResult

T = TypeVar("T")


async def count_rows(db: AsyncSession, stmt: Select[Any]) -> int:
    """Count rows a statement would return, ignoring its ORDER BY."""
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    return (await db.execute(count_stmt)).scalar_one()


async def paginate(
    db: AsyncSession,
    stmt: Select[Any],
    page: PageRequest,
    mapper: Callable[[Row[Any]], T],
) -> PaginatedResult[T]:
    """Execute one page of a statement.

    Args:
        db: Request-scoped session.
        stmt: Filtered and ordered statement.
        page: Clamped page selection.
        mapper: Converts one result row into the response item.

    Returns:
        Page of mapped items with navigation metadata.
    """
    total_count = await count_rows(db, stmt)

    rows = (await db.execute(stmt.offset(page.offset).limit(page.page_size))).all()

    return PaginatedResult.create(
        items=[mapper(row) for row in rows],
        total_count=total_count,
        page=page,
    )
