# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Attendance request and response models."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field


class MarkAttendanceRequest(BaseModel):
    """Mark one student for one calendar date.

    date may carry a time of day; only the calendar date is kept.
    status is validated by the service (1=Present, 2=Absent, 3=Late).
    """

    class_id: int
    student_id: int
    date: dt.datetime | dt.date
    status: int


class StudentAttendanceEntry(BaseModel):
    student_id: int
    status: int


class BulkMarkAttendanceRequest(BaseModel):
    class_id: int
    date: dt.datetime | dt.date
    attendances: list[StudentAttendanceEntry] = Field(..., min_length=1)


class AttendanceFilter(BaseModel):
    """Conjunctive filters for a class attendance listing.

    Date bounds are inclusive and compared by calendar date only.
    """

    student_id: int | None = None
    from_date: dt.datetime | dt.date | None = None
    to_date: dt.datetime | dt.date | None = None
    status: int | None = None


class AttendanceResponse(BaseModel):
    id: int
    class_id: int
    class_name: str
    student_id: int
    student_name: str
    date: dt.date
    status: str
    marked_by_teacher_id: int
    marked_by_teacher_name: str
    created_date: dt.datetime


class AttendanceSummary(BaseModel):
    """Aggregate attendance for a class.

    Attributes:
        total_students: Students currently enrolled.
        total_sessions: Distinct calendar dates with any attendance row.
        attendance_percentage: (present + late) / all rows * 100, rounded
            to 2 places; 0 when there are no rows.
    """

    class_id: int
    class_name: str
    total_students: int
    total_sessions: int
    total_present: int
    total_absent: int
    total_late: int
    attendance_percentage: float
