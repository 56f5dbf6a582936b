"""
tests/test_errors.py -- Unit tests for core/errors.py.

Covers:
  - each ErrorKind maps to one status code
  - error_for() builds the matching AppError subclass
  - internal_failure() passes AppErrors through and wraps everything else
"""

from __future__ import annotations

import pytest

from core.errors import (
    AppError,
    AuthenticationError,
    AuthorizationError,
    ErrorKind,
    InternalError,
    NotFoundError,
    ValidationError,
    error_for,
    internal_failure,
)


@pytest.mark.parametrize(
    "kind,status,cls",
    [
        (ErrorKind.validation, 400, ValidationError),
        (ErrorKind.authentication, 401, AuthenticationError),
        (ErrorKind.authorization, 403, AuthorizationError),
        (ErrorKind.not_found, 404, NotFoundError),
        (ErrorKind.internal, 500, InternalError),
    ],
)
def test_kind_status_and_class(kind: ErrorKind, status: int, cls: type[AppError]) -> None:
    assert kind.status_code == status
    err = error_for(kind, "boom")
    assert type(err) is cls
    assert err.kind is kind
    assert err.message == "boom"


def test_internal_failure_passes_app_errors_through() -> None:
    with pytest.raises(NotFoundError) as exc_info:
        with internal_failure("Failed to delete user"):
            raise NotFoundError("User not found")
    assert exc_info.value.message == "User not found"


def test_internal_failure_wraps_unexpected_exceptions() -> None:
    with pytest.raises(InternalError) as exc_info:
        with internal_failure("Failed to fetch users"):
            raise RuntimeError("database is locked")
    assert exc_info.value.message == "Failed to fetch users"
    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert "database is locked" not in exc_info.value.message


def test_internal_failure_is_silent_on_success() -> None:
    with internal_failure("Failed"):
        value = 1 + 1
    assert value == 2
