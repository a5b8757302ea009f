# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User domain package.

This package provides administrator user management:
- UserService: listing, updates, soft deletion and statistics
- Exceptions: User-related error types

Example:
    >>> from src.domains.user import UserService
    >>> service = UserService(db, password_hasher)
    >>> stats = await service.get_statistics()
"""

from src.domains.user.service import (
    EmailInUseError,
    UserNotFoundError,
    UserOperationError,
    UserService,
)

__all__ = [
    "UserService",
    "UserNotFoundError",
    "EmailInUseError",
    "UserOperationError",
]
