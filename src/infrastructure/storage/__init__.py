# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""File storage for uploaded submission files."""

from src.infrastructure.storage.local import LocalFileStorage, StorageError

__all__ = ["LocalFileStorage", "StorageError"]
