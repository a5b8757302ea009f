# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class domain package.

This package provides teacher-owned class management:
- Class CRUD and deactivation
- Student enrollment and enrolled student listing
"""

from src.domains.class_.service import (
    AlreadyEnrolledError,
    ClassAlreadyInactiveError,
    ClassService,
    CourseNotFoundError,
    InvalidClassDatesError,
    StudentNotFoundError,
)

__all__ = [
    "ClassService",
    "AlreadyEnrolledError",
    "ClassAlreadyInactiveError",
    "CourseNotFoundError",
    "InvalidClassDatesError",
    "StudentNotFoundError",
]
