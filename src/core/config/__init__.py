# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package.

Example:
    >>> from src.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.jwt.issuer)
    'schoolms'
"""

from src.core.config.settings import (
    DatabaseSettings,
    EmailSettings,
    JWTSettings,
    PasswordSettings,
    Settings,
    StorageSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "DatabaseSettings",
    "JWTSettings",
    "PasswordSettings",
    "EmailSettings",
    "StorageSettings",
]
