# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Credential store: bcrypt password hashing.

Example:
    >>> hasher = PasswordHasher(rounds=11)
    >>> hashed = hasher.hash("my_password")
    >>> hasher.verify("my_password", hashed)
    True
"""

import logging

import bcrypt

from src.domains.errors import InputValidationError

logger = logging.getLogger(__name__)

DEFAULT_ROUNDS = 11

# bcrypt only reads this many bytes of input and recent releases refuse more.
MAX_PASSWORD_BYTES = 72


class PasswordTooLongError(InputValidationError):
    """Raised when a password exceeds what bcrypt can hash."""

    pass


class PasswordHasher:
    """Salted adaptive password hashing.

    The salt and cost factor are embedded in the hash string, so verify()
    needs nothing but the stored value.

    Attributes:
        _rounds: bcrypt cost factor (log2 of the iteration count).
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self._rounds = rounds

    def hash(self, password: str) -> str:
        """Hash a password with a fresh salt.

        Args:
            password: Plain text password to hash.

        Returns:
            bcrypt hash string.

        Raises:
            ValueError: If password is empty.
            PasswordTooLongError: If the UTF-8 encoding exceeds 72 bytes.
        """
        if not password:
            raise ValueError("Password cannot be empty")

        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise PasswordTooLongError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(encoded, salt).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Check a password against a stored hash.

        A malformed stored hash yields False rather than an error.

        Args:
            password: Plain text password to verify.
            password_hash: Stored bcrypt hash.

        Returns:
            True if password matches the hash, False otherwise.
        """
        if not password or not password_hash:
            return False

        try:
            return bcrypt.checkpw(
                password.encode("utf-8"),
                password_hash.encode("utf-8"),
            )
        except ValueError as e:
            logger.warning("Password verification failed: %s", str(e))
            return False
