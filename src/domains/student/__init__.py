# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student views, submissions and dashboard."""

from src.domains.student.service import StudentService

__all__ = ["StudentService"]
