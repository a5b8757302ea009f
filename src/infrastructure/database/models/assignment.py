# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Assignment and submission tables."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, UTCDateTime
from src.utils.datetime import utc_now


class Assignment(Base):
    __tablename__ = "assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    class_id: Mapped[int] = mapped_column(ForeignKey("classes.id"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    due_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    created_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utc_now)
    created_by_teacher_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)


class Submission(Base):
    """A student's single submission for an assignment.

    grade is null until graded; grading overwrites in place.
    """

    __tablename__ = "submissions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    assignment_id: Mapped[int] = mapped_column(ForeignKey("assignments.id"), nullable=False, index=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    submitted_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utc_now)
    file_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    grade: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    graded_by_teacher_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    remarks: Mapped[str | None] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        UniqueConstraint("assignment_id", "student_id", name="uq_submission_assignment_student"),
    )
