# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for PostgreSQL connections.

Example:
    from src.infrastructure.database import init_database, get_session

    await init_database(settings)
    async with get_session() as session:
        result = await session.execute(select(User))
"""

from src.infrastructure.database.connection import (
    DatabaseError,
    after_commit,
    check_database_connection,
    close_database,
    get_engine,
    get_session,
    get_sessionmaker,
    init_database,
    run_after_commit,
)
from src.infrastructure.database.pagination import count_rows, paginate

__all__ = [
    "DatabaseError",
    "init_database",
    "close_database",
    "get_engine",
    "get_sessionmaker",
    "get_session",
    "after_commit",
    "run_after_commit",
    "check_database_connection",
    "count_rows",
    "paginate",
]
