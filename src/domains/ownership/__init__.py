# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment and ownership guards shared by class-scoped services."""

from src.domains.ownership.guard import (
    ClassNotFoundError,
    NotEnrolledError,
    OwnershipGuard,
)

__all__ = [
    "OwnershipGuard",
    "ClassNotFoundError",
    "NotEnrolledError",
]
