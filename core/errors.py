"""
core/errors.py -- Error kinds raised by the service and their HTTP mapping.

Every failure a route can report belongs to exactly one ErrorKind. Route and
auth code raise AppError subclasses; api/main.py owns the one exception
handler that turns a kind into a status code and the error envelope. Nothing
else in the codebase chooses status codes for domain failures.

internal_failure() wraps a block of route work so an unexpected exception
becomes InternalError(<route-specific message>) chained to the real cause.
The cause is logged at the boundary and never reaches the response body.

Layer rule: core/ is the kernel. No imports from api/, auth/, or media/.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum


class ErrorKind(str, Enum):
    validation = "validation_error"
    authentication = "authentication_error"
    authorization = "authorization_error"
    not_found = "not_found"
    internal = "internal_error"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.validation: 400,
    ErrorKind.authentication: 401,
    ErrorKind.authorization: 403,
    ErrorKind.not_found: 404,
    ErrorKind.internal: 500,
}


class AppError(Exception):
    """Base class for failures that carry a client-facing message."""

    kind: ErrorKind = ErrorKind.internal

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Rejected input: duplicate account, unusable password or picture."""

    kind = ErrorKind.validation


class AuthenticationError(AppError):
    """Missing, invalid or expired token; wrong credentials."""

    kind = ErrorKind.authentication


class AuthorizationError(AppError):
    """Authenticated, but not allowed to perform the operation."""

    kind = ErrorKind.authorization


class NotFoundError(AppError):
    kind = ErrorKind.not_found


class InternalError(AppError):
    kind = ErrorKind.internal


def error_for(kind: ErrorKind, message: str) -> AppError:
    """Build the AppError subclass matching kind."""
    return _ERROR_CLASSES[kind](message)


_ERROR_CLASSES: dict[ErrorKind, type[AppError]] = {
    ErrorKind.validation: ValidationError,
    ErrorKind.authentication: AuthenticationError,
    ErrorKind.authorization: AuthorizationError,
    ErrorKind.not_found: NotFoundError,
    ErrorKind.internal: InternalError,
}


@contextmanager
def internal_failure(message: str) -> Iterator[None]:
    """Re-raise anything that is not already an AppError as InternalError(message).

    Usage:
        with internal_failure("Failed to fetch users"):
            users = store.list_users()
    """
    try:
        yield
    except AppError:
        raise
    except Exception as exc:
        raise InternalError(message) from exc
