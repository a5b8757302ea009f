# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Token service: signed access tokens and opaque refresh tokens.

Access tokens are JWTs created with python-jose and carry the caller's
identity and role. Refresh tokens are random strings with no embedded
claims; they are only meaningful through the server-side ledger.

Example:
    >>> from src.core.config import get_settings
    >>> jwt_manager = JWTManager(get_settings().jwt)
    >>> issued = jwt_manager.create_access_token(1, "a@b.io", "Ann", UserRole.ADMIN)
    >>> user_id = jwt_manager.validate(issued.token)
"""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta

from jose import ExpiredSignatureError, JWTError as JoseJWTError, jwt
from pydantic import BaseModel

from src.core.config.settings import JWTSettings
from src.domains.errors import UnauthorizedError
from src.models.common import UserRole
from src.utils.datetime import utc_now

logger = logging.getLogger(__name__)

REFRESH_TOKEN_BYTES = 64


class TokenPayload(BaseModel):
    """Decoded access token claims.

    Attributes:
        sub: Subject (user ID).
        email: User email.
        name: User display name.
        role: Role label ("Admin", "Teacher" or "Student").
        iss: Issuer.
        aud: Audience.
        exp: Expiration timestamp.
        iat: Issued at timestamp.
        jti: JWT ID for token tracking.
    """

    sub: str
    email: str
    name: str
    role: str
    iss: str
    aud: str
    exp: int
    iat: int
    jti: str

    @property
    def user_id(self) -> int:
        return int(self.sub)

    @property
    def user_role(self) -> UserRole:
        return UserRole.from_label(self.role)


class IssuedAccessToken(BaseModel):
    """A freshly signed access token and the instant it stops being valid."""

    token: str
    expires_at: datetime


class TokenExpiredError(UnauthorizedError):
    """Raised when a token has expired."""

    pass


class InvalidTokenError(UnauthorizedError):
    """Raised when a token is malformed, wrongly signed or has wrong claims."""

    pass


class JWTManager:
    """Access token issuance and validation.

    Validation checks signature, issuer, audience and expiry with zero
    clock-skew leeway, so a token is rejected the second it expires.

    Attributes:
        _settings: JWT configuration settings.
    """

    def __init__(self, settings: JWTSettings) -> None:
        self._settings = settings

    def create_access_token(
        self,
        user_id: int,
        email: str,
        name: str,
        role: UserRole,
    ) -> IssuedAccessToken:
        """Create a signed access token for a user.

        Args:
            user_id: User identifier.
            email: User email.
            name: User display name.
            role: User role.

        Returns:
            IssuedAccessToken with the token string and its expiry.
        """
        now = utc_now()
        expires_at = now + timedelta(minutes=self._settings.expiration_in_minutes)

        payload = {
            "sub": str(user_id),
            "email": email,
            "name": name,
            "role": UserRole(role).label,
            "iss": self._settings.issuer,
            "aud": self._settings.audience,
            "exp": int(expires_at.timestamp()),
            "iat": int(now.timestamp()),
            "jti": secrets.token_urlsafe(16),
        }

        token = jwt.encode(
            payload,
            self._settings.secret_key.get_secret_value(),
            algorithm=self._settings.algorithm,
        )
        return IssuedAccessToken(token=token, expires_at=expires_at)

    @staticmethod
    def create_refresh_token() -> str:
        """Create an unguessable opaque refresh token."""
        return secrets.token_urlsafe(REFRESH_TOKEN_BYTES)

    def refresh_token_expiry(self, now: datetime | None = None) -> datetime:
        """Compute the expiry for a refresh token issued now."""
        return (now or utc_now()) + timedelta(
            days=self._settings.refresh_token_expiration_in_days
        )

    def decode_access_token(self, token: str) -> TokenPayload:
        """Decode and validate an access token.

        Args:
            token: JWT token string.

        Returns:
            TokenPayload with decoded claims.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the token is invalid.
        """
        try:
            payload = jwt.decode(
                token,
                self._settings.secret_key.get_secret_value(),
                algorithms=[self._settings.algorithm],
                audience=self._settings.audience,
                issuer=self._settings.issuer,
                options={"leeway": 0, "require_exp": True, "require_sub": True},
            )
            return TokenPayload(**payload)

        except ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except (JoseJWTError, ValueError, TypeError) as e:
            logger.warning("Token decode failed: %s", str(e))
            raise InvalidTokenError("Invalid token")

    def validate(self, token: str) -> int:
        """Validate an access token and return the user id it identifies.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the token is invalid.
        """
        return self.decode_access_token(token).user_id

    @staticmethod
    def hash_token(token: str) -> str:
        """SHA-256 hex digest of a refresh token, as stored in the ledger."""
        return hashlib.sha256(token.encode()).hexdigest()
