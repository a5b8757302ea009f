# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application wiring.

This module builds the long-lived collaborators (token manager, password
hasher, email notifier, file store) once at startup and hands out services
bound to one request-scoped session.

Example:
    async with lifespan() as container:
        async with container.request(request_id="r-1") as scope:
            response = await scope.auth.login(request)
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import Settings, get_settings
from src.domains.assignment.service import AssignmentService
from src.domains.attendance.service import AttendanceService
from src.domains.auth.jwt import JWTManager
from src.domains.auth.password import PasswordHasher
from src.domains.auth.service import AuthService
from src.domains.class_.service import ClassService
from src.domains.course.service import CourseService
from src.domains.department.service import DepartmentService
from src.domains.notification.service import NotificationService
from src.domains.student.service import StudentService
from src.domains.user.service import UserService
from src.infrastructure.database.connection import (
    check_database_connection,
    close_database,
    get_session,
    init_database,
)
from src.infrastructure.notifications.email import EmailNotifier
from src.infrastructure.storage.local import LocalFileStorage
from src.utils.logging import bind_context, clear_context, setup_logging

logger = logging.getLogger(__name__)


class RequestScope:
    """Services sharing one unit of work.

    Attributes:
        session: The request-scoped session.
    """

    def __init__(self, container: "ServiceContainer", session: AsyncSession) -> None:
        self._container = container
        self.session = session

    @property
    def auth(self) -> AuthService:
        return AuthService(self.session, self._container.jwt_manager, self._container.password_hasher)

    @property
    def users(self) -> UserService:
        return UserService(self.session, self._container.password_hasher)

    @property
    def departments(self) -> DepartmentService:
        return DepartmentService(self.session)

    @property
    def courses(self) -> CourseService:
        return CourseService(self.session)

    @property
    def classes(self) -> ClassService:
        return ClassService(self.session, notifier=self._container.notifier)

    @property
    def attendance(self) -> AttendanceService:
        return AttendanceService(self.session)

    @property
    def assignments(self) -> AssignmentService:
        return AssignmentService(self.session, notifier=self._container.notifier)

    @property
    def students(self) -> StudentService:
        return StudentService(
            self.session,
            storage=self._container.storage,
            limits=self._container.settings.storage,
        )

    @property
    def notifications(self) -> NotificationService:
        return NotificationService(self.session)


class ServiceContainer:
    """Long-lived collaborators built from settings.

    Attributes:
        settings: Application settings.
        jwt_manager: Access token issuance and validation.
        password_hasher: bcrypt hasher.
        notifier: Best-effort email notifier.
        storage: Local file store for submissions.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.jwt_manager = JWTManager(settings.jwt)
        self.password_hasher = PasswordHasher(rounds=settings.password.bcrypt_rounds)
        self.notifier = EmailNotifier(settings.email)
        self.storage = LocalFileStorage(settings.storage)

    @asynccontextmanager
    async def request(self, request_id: str | None = None) -> AsyncIterator[RequestScope]:
        """Open one unit of work with a request id bound to every log line.

        The session commits when the block exits cleanly and rolls back
        otherwise.

        Args:
            request_id: Correlation id; a random one is generated if omitted.

        Yields:
            Services bound to the request session.
        """
        bind_context(request_id=request_id or uuid.uuid4().hex)
        try:
            async with get_session() as session:
                yield RequestScope(self, session)
        finally:
            clear_context()


@asynccontextmanager
async def lifespan(settings: Settings | None = None) -> AsyncIterator[ServiceContainer]:
    """Start up logging and the database, and tear them down on exit.

    Args:
        settings: Settings to use; defaults to get_settings().

    Yields:
        The service container.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    logger.info("Starting school administration backend: environment=%s", settings.environment)

    await init_database(settings)
    if not await check_database_connection():
        logger.warning("Database is not reachable at startup")

    if not settings.email.is_configured:
        logger.info("Email notifications disabled")

    try:
        yield ServiceContainer(settings)
    finally:
        await close_database()
        logger.info("Shut down school administration backend")
