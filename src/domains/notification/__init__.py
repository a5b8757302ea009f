# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Teacher-to-student notifications."""

from src.domains.notification.service import NotificationService

__all__ = ["NotificationService"]
