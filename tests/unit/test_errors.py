# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the domain error taxonomy and boundary translation."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from src.domains.errors import (
    GENERIC_ERROR_MESSAGE,
    ConflictError,
    ForbiddenError,
    InputValidationError,
    InvalidOperationError,
    NotFoundError,
    UnauthorizedError,
    flush_or_conflict,
    to_error_response,
)


class TestStatusCodes:
    @pytest.mark.parametrize(
        ("error_class", "status"),
        [
            (NotFoundError, 404),
            (ConflictError, 409),
            (InvalidOperationError, 400),
            (UnauthorizedError, 401),
            (ForbiddenError, 403),
            (InputValidationError, 400),
        ],
    )
    def test_each_kind_maps_to_fixed_status(self, error_class, status) -> None:
        response = to_error_response(error_class("boom"), trace_id="t-1")

        assert response.status_code == status
        assert response.message == "boom"
        assert response.trace_id == "t-1"
        assert response.success is False
        assert response.details is None


class TestUnexpectedErrors:
    def test_production_hides_details(self) -> None:
        response = to_error_response(RuntimeError("db password is hunter2"), debug=False)

        assert response.status_code == 500
        assert response.message == GENERIC_ERROR_MESSAGE
        assert response.details is None
        assert response.trace_id

    def test_debug_exposes_details(self) -> None:
        try:
            raise RuntimeError("kaboom")
        except RuntimeError as exc:
            response = to_error_response(exc, debug=True)

        assert response.status_code == 500
        assert response.message == "kaboom"
        assert "RuntimeError" in response.details

    def test_trace_ids_are_generated(self) -> None:
        first = to_error_response(RuntimeError())
        second = to_error_response(RuntimeError())

        assert first.trace_id != second.trace_id


class TestFlushOrConflict:
    @pytest.mark.asyncio
    async def test_integrity_error_becomes_conflict(self) -> None:
        db = MagicMock()
        db.flush = AsyncMock(side_effect=IntegrityError("INSERT", {}, Exception("unique")))
        conflict = ConflictError("Already there")

        with pytest.raises(ConflictError, match="Already there") as exc_info:
            await flush_or_conflict(db, conflict)

        assert isinstance(exc_info.value.__cause__, IntegrityError)

    @pytest.mark.asyncio
    async def test_successful_flush_passes_through(self) -> None:
        db = MagicMock()
        db.flush = AsyncMock()

        await flush_or_conflict(db, ConflictError("unused"))

        db.flush.assert_awaited_once()
