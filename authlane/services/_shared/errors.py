"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and never depend on Flask or
HTTP. The translation to HTTP responses (RFC 7807) is handled through
``BaseService.translate_exceptions()`` and ``authlane/core/errors.py``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - The API layer or BaseService will later translate them to APIError.
    """

    pass


class AuthErrorKind(str, Enum):
    """Reason an authentication operation was rejected."""

    INVALID_CREDENTIALS = "invalid_credentials"
    INACTIVE_PRINCIPAL = "inactive_principal"
    MALFORMED_TOKEN = "malformed_token"
    EXPIRED_TOKEN = "expired_token"
    BLACKLISTED_TOKEN = "blacklisted_token"
    UNKNOWN_TOKEN = "unknown_token"
    UNKNOWN_PRINCIPAL = "unknown_principal"
    MISCONFIGURED_GUARD = "misconfigured_guard"


@dataclass(slots=True, eq=False)
class AuthenticationError(ServiceError):
    """
    Single failure type for every authentication operation.

    :param kind: Machine-readable failure reason.
    :type kind: AuthErrorKind
    :param message: Human-readable explanation, safe to show to clients.
    :type message: str
    """

    kind: AuthErrorKind
    message: str

    def __post_init__(self) -> None:
        Exception.__init__(self, self.message)

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"

    @property
    def is_configuration_error(self) -> bool:
        return self.kind is AuthErrorKind.MISCONFIGURED_GUARD


def misconfigured(message: str) -> AuthenticationError:
    """Build the error raised when a guard cannot be constructed."""
    return AuthenticationError(AuthErrorKind.MISCONFIGURED_GUARD, message)
