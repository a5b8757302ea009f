# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication domain services.

Exports:
    PasswordHasher: bcrypt credential store.
    JWTManager: Access token issuance and validation, refresh token minting.
    AuthService: Register, login, refresh rotation and revocation.
"""

from src.domains.auth.jwt import JWTManager
from src.domains.auth.password import PasswordHasher
from src.domains.auth.service import AuthService

__all__ = [
    "PasswordHasher",
    "JWTManager",
    "AuthService",
]
