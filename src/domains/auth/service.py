# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication orchestrator.

Composes the credential store, the token service and the refresh token
ledger into register, login, refresh and revoke.

Refresh tokens rotate on use: every successful refresh revokes the token
that was presented and stores a new one. Revoked and expired tokens are
terminal. The revoke of the old token is a conditional UPDATE, so two
concurrent refreshes with the same token cannot both succeed.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.auth.jwt import JWTManager
from src.domains.auth.password import PasswordHasher
from src.domains.errors import (
    ConflictError,
    InputValidationError,
    UnauthorizedError,
    flush_or_conflict,
)
from src.infrastructure.database.models.user import RefreshToken, User
from src.models.auth import AuthResponse, LoginRequest, RegisterRequest
from src.models.common import UserRole
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

# Hash verified when the email is unknown so both failure paths cost the same.
_timing_hash: str | None = None


class DuplicateEmailError(ConflictError):
    """Raised when registering an email that already exists."""

    pass


class InvalidRoleError(InputValidationError):
    """Raised when a role value is outside the role set."""

    pass


class InvalidCredentialsError(UnauthorizedError):
    """Raised for any login failure.

    Unknown email, inactive account and wrong password all share this
    error and its message.
    """

    pass


class InvalidRefreshTokenError(UnauthorizedError):
    """Raised when a refresh token is not in the ledger."""

    pass


class TokenInactiveError(UnauthorizedError):
    """Raised when a refresh token is revoked or expired."""

    pass


class AccountInactiveError(UnauthorizedError):
    """Raised when the owner of a refresh token has been deactivated."""

    pass


def parse_role(value: int | UserRole) -> UserRole:
    """Convert a raw role value into a UserRole.

    Raises:
        InvalidRoleError: If value is not 1, 2 or 3.
    """
    try:
        return UserRole(value)
    except ValueError:
        raise InvalidRoleError("Invalid role specified")


class AuthService:
    """Registration, login and refresh token lifecycle.

    Attributes:
        _db: Request-scoped session. This service flushes; the caller
            commits once when the request completes.
        _jwt_manager: Token service.
        _hasher: Credential store.
    """

    def __init__(
        self,
        db: AsyncSession,
        jwt_manager: JWTManager,
        password_hasher: PasswordHasher | None = None,
    ) -> None:
        self._db = db
        self._jwt_manager = jwt_manager
        self._hasher = password_hasher or PasswordHasher()

    async def register(self, request: RegisterRequest) -> AuthResponse:
        """Create an account and sign it in.

        Args:
            request: Registration data.

        Returns:
            AuthResponse with a new token pair.

        Raises:
            InvalidRoleError: If the role is not Admin, Teacher or Student.
            DuplicateEmailError: If the email is already registered.
        """
        role = parse_role(request.role)
        email = request.email.lower()

        if await self._get_user_by_email(email):
            raise DuplicateEmailError("Email already exists")

        user = User(
            name=request.name.strip(),
            email=email,
            password_hash=self._hasher.hash(request.password),
            role=role,
            is_active=True,
            created_date=utc_now(),
        )
        self._db.add(user)
        await flush_or_conflict(self._db, DuplicateEmailError("Email already exists"))

        response = await self._issue_tokens(user)

        logger.info("User registered: user=%s, role=%s", user.id, role.label)

        return response

    async def login(self, request: LoginRequest) -> AuthResponse:
        """Verify credentials and issue a token pair.

        Earlier sessions are left untouched, so a user can be signed in
        from several clients at once.

        Raises:
            InvalidCredentialsError: If the email is unknown, the account is
                inactive, or the password does not match.
        """
        user = await self._get_user_by_email(request.email.lower())

        if user is None:
            self._hasher.verify(request.password, self._get_timing_hash())
            logger.warning("Login failed: unknown email")
            raise InvalidCredentialsError("Invalid email or password")

        password_ok = self._hasher.verify(request.password, user.password_hash)
        if not password_ok or not user.is_active:
            logger.warning("Login failed: user=%s", user.id)
            raise InvalidCredentialsError("Invalid email or password")

        response = await self._issue_tokens(user)

        logger.info("User logged in: user=%s", user.id)

        return response

    async def refresh_token(self, refresh_token: str) -> AuthResponse:
        """Exchange a refresh token for a new token pair.

        The presented token is revoked and a new one is stored in the same
        unit of work; if anything later fails, the request rollback undoes
        both.

        Args:
            refresh_token: Opaque refresh token issued earlier.

        Returns:
            AuthResponse with a new token pair.

        Raises:
            InvalidRefreshTokenError: If the token is unknown.
            TokenInactiveError: If the token is revoked or expired, or was
                rotated by a concurrent request.
            AccountInactiveError: If the owning user is deactivated.
        """
        stored_token = await self._get_stored_token(refresh_token)

        if stored_token is None:
            raise InvalidRefreshTokenError("Invalid refresh token")

        if not stored_token.is_active:
            logger.warning(
                "Inactive refresh token presented: user=%s, token=%s",
                stored_token.user_id,
                stored_token.id,
            )
            raise TokenInactiveError("Refresh token is expired or revoked")

        user = await self._db.get(User, stored_token.user_id)
        if user is None or not user.is_active:
            raise AccountInactiveError("User account is inactive")

        # Conditional revoke; zero rows means another request rotated it first
        result = await self._db.execute(
            update(RefreshToken)
            .where(
                RefreshToken.id == stored_token.id,
                RefreshToken.is_revoked.is_(False),
            )
            .values(is_revoked=True, revoked_at=utc_now())
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            raise TokenInactiveError("Refresh token is expired or revoked")

        response = await self._issue_tokens(user)

        logger.info("Refresh token rotated: user=%s, old_token=%s", user.id, stored_token.id)

        return response

    async def revoke_token(self, refresh_token: str) -> bool:
        """Revoke a refresh token (logout).

        Args:
            refresh_token: Opaque refresh token.

        Returns:
            False if the token is unknown, True otherwise. Revoking an
            already revoked token leaves its revocation time unchanged.
        """
        stored_token = await self._get_stored_token(refresh_token)

        if stored_token is None:
            return False

        if not stored_token.is_revoked:
            stored_token.is_revoked = True
            stored_token.revoked_at = utc_now()
            await self._db.flush()
            logger.info("Refresh token revoked: user=%s, token=%s", stored_token.user_id, stored_token.id)

        return True

    def validate_access_token(self, access_token: str) -> int:
        """Validate an access token and return the caller's user id.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the token is invalid.
        """
        return self._jwt_manager.validate(access_token)

    async def _issue_tokens(self, user: User) -> AuthResponse:
        """Create an access token and persist a new active refresh token."""
        access = self._jwt_manager.create_access_token(
            user_id=user.id,
            email=user.email,
            name=user.name,
            role=user.role,
        )

        raw_refresh = self._jwt_manager.create_refresh_token()
        now = utc_now()
        self._db.add(
            RefreshToken(
                token_hash=self._jwt_manager.hash_token(raw_refresh),
                user_id=user.id,
                expires_at=self._jwt_manager.refresh_token_expiry(now),
                created_at=now,
                is_revoked=False,
            )
        )
        await flush_or_conflict(self._db, ConflictError("Could not issue refresh token"))

        return AuthResponse(
            user_id=user.id,
            name=user.name,
            email=user.email,
            role=user.role.label,
            access_token=access.token,
            refresh_token=raw_refresh,
            expires_at=access.expires_at,
        )

    async def _get_user_by_email(self, email: str) -> User | None:
        result = await self._db.execute(
            select(User).where(func.lower(User.email) == email.lower())
        )
        return result.scalar_one_or_none()

    async def _get_stored_token(self, refresh_token: str) -> RefreshToken | None:
        if not refresh_token:
            return None
        result = await self._db.execute(
            select(RefreshToken).where(
                RefreshToken.token_hash == self._jwt_manager.hash_token(refresh_token)
            )
        )
        return result.scalar_one_or_none()

    def _get_timing_hash(self) -> str:
        global _timing_hash
        if _timing_hash is None:
            _timing_hash = self._hasher.hash("timing-equalizer")
        return _timing_hash
