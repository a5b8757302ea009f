# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer.

Each domain module provides a service class that receives the
request-scoped AsyncSession and encapsulates the business rules.

Domains:
    auth: Registration, login, refresh token rotation and revocation.
    ownership: Class ownership and enrollment guards.
    attendance: Attendance marking, queries and summaries.
    assignment: Assignment lifecycle and grading.
    student: Student-facing views and submissions.
    class_: Teacher class management and enrollment.
    course: Course catalogue administration.
    department: Department administration.
    user: User administration and statistics.
    notification: Teacher-to-student notifications.
"""
