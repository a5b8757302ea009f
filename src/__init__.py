"""School administration backend.

Role-based services for admins (departments, courses, users), teachers
(classes, attendance, assignments, grading) and students (enrollments,
submissions, grades, notifications).

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
