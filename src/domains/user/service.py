# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User service for administrator user management.

This module provides the UserService that handles:
- User listing, search and filtering
- Profile, email, role and password updates
- Soft deletion with dependency checks
- Role statistics

Users are never hard-deleted. Role changes and deletions are refused while
the user still owns classes, heads a department or has enrollments.

Example:
    >>> service = UserService(db)
    >>> users = await service.list_users(UserFilter(role=2))
    >>> await service.delete_user(user_id, acting_user_id=admin_id)
"""

from __future__ import annotations

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.auth.password import PasswordHasher
from src.domains.auth.service import parse_role
from src.domains.errors import ConflictError, InvalidOperationError, NotFoundError, flush_or_conflict
from src.infrastructure.database.models.school import Class, Department, StudentClass
from src.infrastructure.database.models.user import User
from src.infrastructure.database.pagination import paginate
from src.models.common import PageRequest, PaginatedResult, UserRole
from src.models.user import UpdateUserRequest, UserFilter, UserResponse, UserStatistics

logger = logging.getLogger(__name__)


class UserNotFoundError(NotFoundError):
    """Raised when a user is not found."""

    pass


class EmailInUseError(ConflictError):
    """Raised when another user already has the email."""

    pass


class UserOperationError(InvalidOperationError):
    """Raised when a role change or deletion is blocked by dependent records."""

    pass


class UserService:
    """Service for managing users as an administrator.

    Attributes:
        _db: Async database session.
        _hasher: Password hasher for password resets.
    """

    def __init__(self, db: AsyncSession, password_hasher: PasswordHasher | None = None) -> None:
        self._db = db
        self._hasher = password_hasher or PasswordHasher()

    async def list_users(
        self,
        filters: UserFilter | None = None,
        page: PageRequest | None = None,
    ) -> PaginatedResult[UserResponse]:
        """List users ordered by role then name.

        An unknown role filter value is ignored.

        Args:
            filters: Search over name and email, role, active flag.
            page: Page selection.
        """
        filters = filters or UserFilter()
        stmt = select(User)

        if filters.search and filters.search.strip():
            pattern = f"%{filters.search.strip().lower()}%"
            stmt = stmt.where(
                or_(func.lower(User.name).like(pattern), func.lower(User.email).like(pattern))
            )

        if filters.role is not None and filters.role in {role.value for role in UserRole}:
            stmt = stmt.where(User.role == UserRole(filters.role))

        if filters.is_active is not None:
            stmt = stmt.where(User.is_active.is_(filters.is_active))

        stmt = stmt.order_by(User.role, User.name, User.id)
        return await paginate(self._db, stmt, page or PageRequest(), lambda row: self._to_response(row[0]))

    async def get_user(self, user_id: int) -> UserResponse:
        """Get a user by id, active or not.

        Raises:
            UserNotFoundError: If user not found.
        """
        return self._to_response(await self._get_by_id(user_id))

    async def update_user(self, user_id: int, request: UpdateUserRequest) -> UserResponse:
        """Update a user.

        Args:
            user_id: User to update.
            request: New name, email, role and optional password.

        Returns:
            Updated user.

        Raises:
            UserNotFoundError: If user not found.
            InvalidRoleError: If the role is outside 1..3.
            EmailInUseError: If another user has the email.
            UserOperationError: If the role change is blocked.
        """
        user = await self._get_by_id(user_id)
        role = parse_role(request.role)
        email = request.email.lower()

        existing = await self._db.execute(
            select(User.id).where(func.lower(User.email) == email, User.id != user_id)
        )
        if existing.scalar_one_or_none() is not None:
            raise EmailInUseError(f"Email '{request.email}' is already in use")

        if user.role != role:
            await self._check_role_change(user)

        user.name = request.name
        user.email = email
        user.role = role
        if request.new_password:
            user.password_hash = self._hasher.hash(request.new_password)

        await flush_or_conflict(self._db, EmailInUseError(f"Email '{request.email}' is already in use"))

        logger.info(
            "User updated: %s (role=%s, password_changed=%s)",
            user_id,
            role.label,
            bool(request.new_password),
        )

        return self._to_response(user)

    async def delete_user(self, user_id: int, acting_user_id: int | None = None) -> bool:
        """Soft delete a user.

        Args:
            user_id: User to deactivate.
            acting_user_id: Administrator performing the deletion.

        Raises:
            UserNotFoundError: If user not found.
            UserOperationError: If deleting oneself or dependent records
                remain.
        """
        if acting_user_id is not None and acting_user_id == user_id:
            raise UserOperationError("You cannot delete your own account")

        user = await self._get_by_id(user_id)

        if user.role == UserRole.TEACHER:
            if await self._heads_active_department(user_id):
                raise UserOperationError(
                    "Cannot delete user: User is head of department. Please reassign first."
                )
            if await self._has_active_classes(user_id):
                raise UserOperationError(
                    "Cannot delete user: User has active classes. Please reassign first."
                )
        elif user.role == UserRole.STUDENT and await self._has_enrollments(user_id):
            raise UserOperationError("Cannot delete user: User has active class enrollments.")

        user.is_active = False
        await self._db.flush()

        logger.info("User deleted: %s by %s", user_id, acting_user_id)

        return True

    async def get_statistics(self) -> UserStatistics:
        """Active totals by role and the inactive count."""
        rows = (
            await self._db.execute(
                select(User.role, User.is_active, func.count(User.id)).group_by(User.role, User.is_active)
            )
        ).all()

        active: dict[UserRole, int] = {role: 0 for role in UserRole}
        inactive = 0
        for role, is_active, count in rows:
            if is_active:
                active[role] += count
            else:
                inactive += count

        return UserStatistics(
            total_users=sum(active.values()),
            total_admins=active[UserRole.ADMIN],
            total_teachers=active[UserRole.TEACHER],
            total_students=active[UserRole.STUDENT],
            inactive_users=inactive,
        )

    async def _check_role_change(self, user: User) -> None:
        if user.role == UserRole.TEACHER:
            if await self._has_active_classes(user.id):
                raise UserOperationError(
                    "Cannot change role: User is currently assigned as teacher to active classes"
                )
            if await self._heads_active_department(user.id):
                raise UserOperationError("Cannot change role: User is currently head of department")
        elif user.role == UserRole.STUDENT and await self._has_enrollments(user.id):
            raise UserOperationError("Cannot change role: User is currently enrolled in classes")

    async def _has_active_classes(self, user_id: int) -> bool:
        result = await self._db.execute(
            select(Class.id).where(Class.teacher_id == user_id, Class.is_active.is_(True)).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def _heads_active_department(self, user_id: int) -> bool:
        result = await self._db.execute(
            select(Department.id)
            .where(Department.head_of_department_id == user_id, Department.is_active.is_(True))
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def _has_enrollments(self, user_id: int) -> bool:
        result = await self._db.execute(
            select(StudentClass.id).where(StudentClass.student_id == user_id).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def _get_by_id(self, user_id: int) -> User:
        user = await self._db.get(User, user_id)
        if user is None:
            raise UserNotFoundError(f"User with ID {user_id} not found")
        return user

    @staticmethod
    def _to_response(user: User) -> UserResponse:
        return UserResponse(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role.label,
            created_date=user.created_date,
            updated_date=user.updated_date,
            is_active=user.is_active,
        )
