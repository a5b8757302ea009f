# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Department management."""

from src.domains.department.service import DepartmentService

__all__ = ["DepartmentService"]
