# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests
- Service tests against an in-memory SQLite database
- Integration flows
"""

from collections.abc import AsyncGenerator
from datetime import date, datetime, timedelta
from typing import Any

import pytest
import pytest_asyncio
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.core.config.settings import JWTSettings, StorageSettings
from src.domains.auth.jwt import JWTManager
from src.domains.auth.password import PasswordHasher
from src.infrastructure.database.models import (
    Assignment,
    Attendance,
    Base,
    Class,
    Course,
    Department,
    StudentClass,
    Submission,
    User,
)
from src.models.common import AttendanceStatus, UserRole
from src.utils.datetime import utc_now

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line(
        "markers", "integration: mark test as an end-to-end flow over the database"
    )


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def jwt_settings() -> JWTSettings:
    """JWT settings with a test-only secret."""
    return JWTSettings(
        secret_key=SecretStr("test-secret-key-for-testing-only-32-bytes"),
        issuer="schoolms-test",
        audience="schoolms-test-clients",
        expiration_in_minutes=60,
        refresh_token_expiration_in_days=7,
    )


@pytest.fixture
def jwt_manager(jwt_settings: JWTSettings) -> JWTManager:
    return JWTManager(jwt_settings)


@pytest.fixture
def password_hasher() -> PasswordHasher:
    """Cheap bcrypt cost so tests stay fast."""
    return PasswordHasher(rounds=4)


@pytest.fixture
def storage_settings(tmp_path) -> StorageSettings:
    return StorageSettings(root_dir=str(tmp_path / "uploads"))


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with the full schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Session configured like the application's request session."""
    session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session


class SchoolFactory:
    """Creates persisted rows with sensible defaults.

    Every helper flushes so generated ids are available immediately.
    """

    def __init__(self, session: AsyncSession, hasher: PasswordHasher) -> None:
        self.session = session
        self.hasher = hasher
        self._counter = 0

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    async def _add(self, obj: Any) -> Any:
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def user(
        self,
        role: UserRole = UserRole.STUDENT,
        name: str | None = None,
        email: str | None = None,
        password: str = "Password1!",
        is_active: bool = True,
    ) -> User:
        n = self._next()
        return await self._add(
            User(
                name=name or f"{role.label} {n}",
                email=email or f"{role.label.lower()}{n}@school.edu",
                password_hash=self.hasher.hash(password),
                role=role,
                is_active=is_active,
            )
        )

    async def teacher(self, **kwargs: Any) -> User:
        return await self.user(role=UserRole.TEACHER, **kwargs)

    async def student(self, **kwargs: Any) -> User:
        return await self.user(role=UserRole.STUDENT, **kwargs)

    async def admin(self, **kwargs: Any) -> User:
        return await self.user(role=UserRole.ADMIN, **kwargs)

    async def department(
        self,
        name: str | None = None,
        head_of_department_id: int | None = None,
        is_active: bool = True,
    ) -> Department:
        return await self._add(
            Department(
                name=name or f"Department {self._next()}",
                head_of_department_id=head_of_department_id,
                is_active=is_active,
            )
        )

    async def course(
        self,
        department: Department | None = None,
        code: str | None = None,
        name: str | None = None,
        credits: int = 3,
        is_active: bool = True,
    ) -> Course:
        department = department or await self.department()
        n = self._next()
        return await self._add(
            Course(
                name=name or f"Course {n}",
                code=code or f"CS{100 + n}",
                department_id=department.id,
                credits=credits,
                is_active=is_active,
            )
        )

    async def class_(
        self,
        teacher: User,
        course: Course | None = None,
        name: str | None = None,
        semester: str = "Fall 2025",
        is_active: bool = True,
        start_date: datetime | None = None,
    ) -> Class:
        course = course or await self.course()
        start = start_date or utc_now() - timedelta(days=30)
        return await self._add(
            Class(
                name=name or f"Class {self._next()}",
                course_id=course.id,
                teacher_id=teacher.id,
                semester=semester,
                start_date=start,
                end_date=start + timedelta(days=120),
                is_active=is_active,
            )
        )

    async def enroll(self, class_: Class, student: User) -> StudentClass:
        return await self._add(StudentClass(class_id=class_.id, student_id=student.id))

    async def assignment(
        self,
        class_: Class,
        title: str | None = None,
        due_date: datetime | None = None,
    ) -> Assignment:
        return await self._add(
            Assignment(
                class_id=class_.id,
                title=title or f"Assignment {self._next()}",
                due_date=due_date or utc_now() + timedelta(days=7),
                created_by_teacher_id=class_.teacher_id,
                created_date=utc_now(),
            )
        )

    async def submission(
        self,
        assignment: Assignment,
        student: User,
        grade: Any = None,
        file_url: str | None = None,
    ) -> Submission:
        return await self._add(
            Submission(
                assignment_id=assignment.id,
                student_id=student.id,
                submitted_date=utc_now(),
                file_url=file_url,
                grade=grade,
                graded_by_teacher_id=None,
            )
        )

    async def attendance(
        self,
        class_: Class,
        student: User,
        day: date,
        status: AttendanceStatus = AttendanceStatus.PRESENT,
    ) -> Attendance:
        return await self._add(
            Attendance(
                class_id=class_.id,
                student_id=student.id,
                date=day,
                status=status,
                marked_by_teacher_id=class_.teacher_id,
                created_date=utc_now(),
            )
        )


@pytest.fixture
def factory(db_session: AsyncSession, password_hasher: PasswordHasher) -> SchoolFactory:
    """Row factory bound to the test session."""
    return SchoolFactory(db_session, password_hasher)
