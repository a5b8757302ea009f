# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""ORM models.

Importing this package registers every table on Base.metadata.
"""

from src.infrastructure.database.models.assignment import Assignment, Submission
from src.infrastructure.database.models.attendance import Attendance
from src.infrastructure.database.models.base import Base
from src.infrastructure.database.models.notification import Notification
from src.infrastructure.database.models.school import Class, Course, Department, StudentClass
from src.infrastructure.database.models.user import RefreshToken, User

__all__ = [
    "Base",
    "User",
    "RefreshToken",
    "Department",
    "Course",
    "Class",
    "StudentClass",
    "Attendance",
    "Assignment",
    "Submission",
    "Notification",
]
