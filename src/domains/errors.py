# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain error taxonomy and its boundary translation.

Services raise subclasses of the kinds defined here. Whatever sits in front
of the services (an HTTP layer, a CLI, a job runner) calls
to_error_response() to turn any exception into a fixed status code and a
user-safe message.

Example:
    >>> try:
    ...     await service.delete_assignment(assignment_id, teacher_id)
    ... except Exception as exc:
    ...     body = to_error_response(exc, debug=settings.debug)
"""

from __future__ import annotations

import logging
import traceback
import uuid

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An internal server error occurred. Please try again later."


class DomainError(Exception):
    """Base exception for business rule failures.

    Attributes:
        message: User-safe description.
        status_code: Status the boundary reports for this kind of failure.
    """

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(DomainError):
    """Entity absent, or present but not owned by the caller.

    Both cases share one message so existence is not leaked.
    """

    status_code = 404


class ConflictError(DomainError):
    """Uniqueness violation (duplicate email, enrollment, submission...)."""

    status_code = 409


class InvalidOperationError(DomainError):
    """Business rule violation."""

    status_code = 400


class UnauthorizedError(DomainError):
    """Bad credentials or an invalid, expired or revoked token."""

    status_code = 401


class ForbiddenError(DomainError):
    """Caller is identified but not allowed to act on an existing entity."""

    status_code = 403


class InputValidationError(DomainError):
    """Malformed input shape or a field constraint violation."""

    status_code = 400


class ErrorResponse(BaseModel):
    """Body returned to clients for any failure."""

    success: bool = False
    message: str
    status_code: int
    trace_id: str
    details: str | None = None


def to_error_response(
    exc: BaseException,
    debug: bool = False,
    trace_id: str | None = None,
) -> ErrorResponse:
    """Translate an exception into the client-facing error body.

    Domain errors keep their own status code and message. Anything else is
    reported as 500; the exception text and traceback are only exposed
    when debug is set.

    Args:
        exc: The exception that ended the operation.
        debug: Whether detail may be exposed (development mode).
        trace_id: Correlation id, generated when not supplied.

    Returns:
        ErrorResponse ready to be serialized.
    """
    trace_id = trace_id or uuid.uuid4().hex

    if isinstance(exc, DomainError):
        return ErrorResponse(
            message=exc.message,
            status_code=exc.status_code,
            trace_id=trace_id,
        )

    logger.error("Unhandled error (trace_id=%s): %s", trace_id, exc, exc_info=exc)

    if debug:
        details = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return ErrorResponse(
            message=str(exc) or GENERIC_ERROR_MESSAGE,
            status_code=500,
            trace_id=trace_id,
            details=details,
        )

    return ErrorResponse(
        message=GENERIC_ERROR_MESSAGE,
        status_code=500,
        trace_id=trace_id,
    )


async def flush_or_conflict(db: AsyncSession, conflict: ConflictError) -> None:
    """Flush pending writes, reporting a unique-constraint race as a conflict.

    The application-level duplicate checks give clear messages; the
    database constraint is what actually holds under concurrent requests.

    Args:
        db: Request-scoped session.
        conflict: Error to raise if the flush violates a constraint.

    Raises:
        ConflictError: The supplied error, chained to the IntegrityError.
    """
    try:
        await db.flush()
    except IntegrityError as e:
        logger.warning("Constraint violation on flush: %s", conflict.message)
        raise conflict from e
