# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Local-disk blob store keyed by public URL.

Files are written under ``root_dir/<folder>/<uuid><ext>`` and exposed as
``<public_prefix>/<folder>/<uuid><ext>``. Callers only ever see the URL.
Blocking file IO runs in a worker thread via asyncio.to_thread().
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import Path, PurePosixPath
from typing import Iterable

from src.core.config.settings import StorageSettings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when a file cannot be written."""

    pass


class LocalFileStorage:
    """Upload, read, delete and validate files on the local filesystem.

    Attributes:
        _root: Directory backing the public prefix.
        _prefix: Public URL prefix, e.g. "/uploads".
    """

    def __init__(self, settings: StorageSettings) -> None:
        self._root = Path(settings.root_dir)
        self._prefix = "/" + settings.public_prefix.strip("/")

    async def upload(self, data: bytes, filename: str, folder: str) -> str:
        """Store bytes under a fresh unique name.

        Args:
            data: File content.
            filename: Original client file name; only its extension is kept.
            folder: Logical folder, e.g. "assignments".

        Returns:
            Public URL of the stored file.

        Raises:
            StorageError: If the file cannot be written.
        """
        folder = _safe_segment(folder)
        unique_name = f"{uuid.uuid4()}{PurePosixPath(filename).suffix.lower()}"
        target = self._root / folder / unique_name

        try:
            await asyncio.to_thread(_write_file, target, data)
        except OSError as e:
            logger.error("Error uploading file %s: %s", filename, str(e), exc_info=True)
            raise StorageError("Failed to upload file") from e

        url = f"{self._prefix}/{folder}/{unique_name}"
        logger.info("File uploaded: %s", url)
        return url

    async def delete(self, url: str) -> bool:
        """Delete a stored file by URL.

        Returns:
            True if a file was removed, False for an empty, foreign or
            unknown URL.
        """
        path = self._path_for(url)
        if path is None:
            return False

        try:
            removed = await asyncio.to_thread(_remove_file, path)
        except OSError as e:
            logger.error("Error deleting file %s: %s", url, str(e), exc_info=True)
            return False

        if removed:
            logger.info("File deleted: %s", url)
        return removed

    async def read(self, url: str) -> bytes | None:
        """Load a stored file by URL.

        Returns:
            File content, or None for an empty, foreign or unknown URL.
        """
        path = self._path_for(url)
        if path is None:
            return None

        try:
            return await asyncio.to_thread(_read_file, path)
        except OSError as e:
            logger.error("Error reading file %s: %s", url, str(e), exc_info=True)
            return None

    @staticmethod
    def validate(
        filename: str,
        size: int,
        max_bytes: int,
        allowed_extensions: Iterable[str],
    ) -> bool:
        """Check an upload against size and extension limits.

        Returns:
            False for empty or oversize files and for extensions not in
            allowed_extensions (compared case-insensitively).
        """
        if not filename or size <= 0 or size > max_bytes:
            return False
        extension = PurePosixPath(filename).suffix.lower()
        return extension in {ext.lower() for ext in allowed_extensions}

    def _path_for(self, url: str) -> Path | None:
        if not url or not url.startswith(self._prefix + "/"):
            return None
        parts = PurePosixPath(url[len(self._prefix) :]).parts
        # Expect exactly "/", folder, file name
        if len(parts) != 3:
            return None
        folder, name = parts[1], parts[2]
        if folder in ("..", ".") or name in ("..", "."):
            return None
        return self._root / folder / name


def _safe_segment(folder: str) -> str:
    segment = folder.strip().strip("/")
    if not segment or "/" in segment or "\\" in segment or segment in (".", ".."):
        raise StorageError(f"Invalid storage folder: {folder!r}")
    return segment


def _write_file(target: Path, data: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)


def _remove_file(path: Path) -> bool:
    if not path.is_file():
        return False
    path.unlink()
    return True


def _read_file(path: Path) -> bytes | None:
    if not path.is_file():
        return None
    return path.read_bytes()
