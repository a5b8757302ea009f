# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Assignment lifecycle and grading."""

from src.domains.assignment.service import AssignmentService

__all__ = ["AssignmentService"]
