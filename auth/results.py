"""
auth/results.py -- Explicit result types returned by AuthService.

Expected failures (missing input, unknown admin, bad password, bad token) are
values, not exceptions. The route layer maps ErrorKind to an HTTP status in
one place (api/routes/v1/admin.py::_raise_for).

Layer rule: no imports from api/, tracker/, or notify/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from auth.models import Admin

T = TypeVar("T")


class ErrorKind(str, Enum):
    MISSING_FIELD = "missing_field"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    INTERNAL = "internal"

    @property
    def status_code(self) -> int:
        return _STATUS[self]


_STATUS: dict[ErrorKind, int] = {
    ErrorKind.MISSING_FIELD: 400,
    ErrorKind.CONFLICT: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.INTERNAL: 500,
}


@dataclass(frozen=True)
class AuthError:
    """A classified failure.

    code is the machine-readable reason sent to clients: for UNAUTHORIZED it
    is one of "bad_credentials", "expired_token", "invalid_token".
    detail carries the original exception text for INTERNAL errors. It is
    meant for logs and debug responses, not for clients to parse.
    """

    kind: ErrorKind
    code: str
    message: str
    detail: str | None = None


@dataclass(frozen=True)
class AuthResult(Generic[T]):
    value: T | None = None
    error: AuthError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class AuthSession:
    """Returned by signup and login."""

    access_token: str
    refresh_token: str
    admin: Admin


@dataclass(frozen=True)
class ProfileGrant:
    """Returned by get_profile and refresh: the admin plus a fresh access token."""

    access_token: str
    admin: Admin
