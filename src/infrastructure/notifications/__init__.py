# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Outbound notification delivery.

Only email is delivered out of band; in-app notifications are rows written
by the notification domain service.
"""

from src.infrastructure.notifications.email import EmailNotifier

__all__ = ["EmailNotifier"]
