# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tests for registration, login and the refresh token lifecycle."""

from datetime import timedelta

import pytest
from pydantic import ValidationError
from sqlalchemy import select

from src.domains.auth.jwt import InvalidTokenError, JWTManager
from src.domains.auth.password import PasswordTooLongError
from src.domains.auth.service import (
    AccountInactiveError,
    AuthService,
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    InvalidRoleError,
    TokenInactiveError,
)
from src.infrastructure.database.models import RefreshToken, User
from src.models.auth import LoginRequest, RegisterRequest
from src.utils.datetime import utc_now


@pytest.fixture
def auth_service(db_session, jwt_manager, password_hasher) -> AuthService:
    return AuthService(db_session, jwt_manager, password_hasher)


def _register_request(**overrides) -> RegisterRequest:
    data = {"name": "Ada Lovelace", "email": "Ada@School.edu", "password": "Secret1", "role": 3}
    data.update(overrides)
    return RegisterRequest(**data)


async def _stored_tokens(db_session) -> list[RefreshToken]:
    result = await db_session.execute(select(RefreshToken).order_by(RefreshToken.id))
    return list(result.scalars().all())


class TestRegister:
    """Tests for AuthService.register."""

    @pytest.mark.asyncio
    async def test_register_returns_token_pair(self, auth_service, jwt_manager) -> None:
        response = await auth_service.register(_register_request())

        assert response.email == "ada@school.edu"
        assert response.role == "Student"
        assert response.refresh_token
        assert jwt_manager.validate(response.access_token) == response.user_id

    @pytest.mark.asyncio
    async def test_register_stores_only_hashed_refresh_token(self, auth_service, db_session) -> None:
        response = await auth_service.register(_register_request())

        [stored] = await _stored_tokens(db_session)
        assert stored.token_hash == JWTManager.hash_token(response.refresh_token)
        assert stored.token_hash != response.refresh_token
        assert stored.is_revoked is False

    @pytest.mark.asyncio
    async def test_duplicate_email_is_case_insensitive(self, auth_service) -> None:
        await auth_service.register(_register_request())

        with pytest.raises(DuplicateEmailError, match="Email already exists"):
            await auth_service.register(_register_request(email="ADA@school.edu"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", [0, 4, 99])
    async def test_invalid_role_rejected(self, auth_service, role) -> None:
        with pytest.raises(InvalidRoleError, match="Invalid role specified"):
            await auth_service.register(_register_request(role=role))

    @pytest.mark.parametrize(
        "password",
        ["secret1", "SECRET1", "Secrets", "Secret 1", "Sécret1", "Secret1\n"],
    )
    def test_weak_or_non_ascii_password_rejected(self, password) -> None:
        with pytest.raises(ValidationError, match="one uppercase letter"):
            _register_request(password=password)

    @pytest.mark.parametrize("password", ["Secret1", "aB3456", "P@ssw0rd!"])
    def test_valid_passwords_accepted(self, password) -> None:
        assert _register_request(password=password).password == password

    @pytest.mark.asyncio
    async def test_over_long_password_is_a_domain_error(self, auth_service, db_session) -> None:
        request = RegisterRequest.model_construct(
            name="Ada Lovelace", email="ada@school.edu", password="é" * 40, role=3
        )

        with pytest.raises(PasswordTooLongError):
            await auth_service.register(request)

        assert (await db_session.execute(select(User))).scalars().all() == []


class TestLogin:
    """Tests for AuthService.login."""

    @pytest.mark.asyncio
    async def test_login_with_any_email_case(self, auth_service) -> None:
        registered = await auth_service.register(_register_request())

        response = await auth_service.login(LoginRequest(email="ADA@SCHOOL.edu", password="Secret1"))

        assert response.user_id == registered.user_id

    @pytest.mark.asyncio
    async def test_login_keeps_other_sessions(self, auth_service, db_session) -> None:
        await auth_service.register(_register_request())
        await auth_service.login(LoginRequest(email="ada@school.edu", password="Secret1"))

        tokens = await _stored_tokens(db_session)
        assert len(tokens) == 2
        assert not any(token.is_revoked for token in tokens)

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email_look_the_same(self, auth_service) -> None:
        await auth_service.register(_register_request())

        with pytest.raises(InvalidCredentialsError) as wrong_password:
            await auth_service.login(LoginRequest(email="ada@school.edu", password="nope"))
        with pytest.raises(InvalidCredentialsError) as unknown:
            await auth_service.login(LoginRequest(email="ghost@school.edu", password="nope"))

        assert wrong_password.value.message == unknown.value.message == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_inactive_account_cannot_log_in(self, auth_service, factory) -> None:
        await factory.student(email="gone@school.edu", password="Secret1", is_active=False)

        with pytest.raises(InvalidCredentialsError):
            await auth_service.login(LoginRequest(email="gone@school.edu", password="Secret1"))


class TestRefresh:
    """Tests for refresh token rotation."""

    @pytest.mark.asyncio
    async def test_refresh_rotates_token(self, auth_service, db_session) -> None:
        first = await auth_service.register(_register_request())

        second = await auth_service.refresh_token(first.refresh_token)

        assert second.refresh_token != first.refresh_token
        old, new = await _stored_tokens(db_session)
        assert old.is_revoked is True
        assert old.revoked_at is not None
        assert new.is_revoked is False

    @pytest.mark.asyncio
    async def test_refresh_token_is_single_use(self, auth_service) -> None:
        first = await auth_service.register(_register_request())
        await auth_service.refresh_token(first.refresh_token)

        with pytest.raises(TokenInactiveError):
            await auth_service.refresh_token(first.refresh_token)

    @pytest.mark.asyncio
    async def test_unknown_token(self, auth_service) -> None:
        with pytest.raises(InvalidRefreshTokenError, match="Invalid refresh token"):
            await auth_service.refresh_token("never-issued")

    @pytest.mark.asyncio
    async def test_expired_token(self, auth_service, db_session) -> None:
        response = await auth_service.register(_register_request())
        [stored] = await _stored_tokens(db_session)
        stored.expires_at = utc_now() - timedelta(seconds=1)
        await db_session.flush()

        with pytest.raises(TokenInactiveError, match="expired or revoked"):
            await auth_service.refresh_token(response.refresh_token)

    @pytest.mark.asyncio
    async def test_deactivated_user_cannot_refresh(self, auth_service, db_session) -> None:
        response = await auth_service.register(_register_request())
        user = await db_session.get(User, response.user_id)
        user.is_active = False
        await db_session.flush()

        with pytest.raises(AccountInactiveError):
            await auth_service.refresh_token(response.refresh_token)


class TestRevoke:
    """Tests for logout."""

    @pytest.mark.asyncio
    async def test_revoke_then_refresh_fails(self, auth_service) -> None:
        response = await auth_service.register(_register_request())

        assert await auth_service.revoke_token(response.refresh_token) is True
        with pytest.raises(TokenInactiveError):
            await auth_service.refresh_token(response.refresh_token)

    @pytest.mark.asyncio
    async def test_revoke_unknown_returns_false(self, auth_service) -> None:
        assert await auth_service.revoke_token("never-issued") is False

    @pytest.mark.asyncio
    async def test_revoke_twice_keeps_first_revocation_time(self, auth_service, db_session) -> None:
        response = await auth_service.register(_register_request())
        await auth_service.revoke_token(response.refresh_token)
        [stored] = await _stored_tokens(db_session)
        first_revoked_at = stored.revoked_at

        assert await auth_service.revoke_token(response.refresh_token) is True
        assert stored.revoked_at == first_revoked_at


class TestValidateAccessToken:
    @pytest.mark.asyncio
    async def test_roundtrip(self, auth_service) -> None:
        response = await auth_service.register(_register_request(role=2))

        assert auth_service.validate_access_token(response.access_token) == response.user_id

    def test_tampered_token(self, auth_service) -> None:
        with pytest.raises(InvalidTokenError):
            auth_service.validate_access_token("eyJhbGciOiJIUzI1NiJ9.e30.bad")
