"""Service layer public API.

Callers import from :mod:`authlane.services` without knowing internal
structure.

Re-exports
----------
- Base primitives: :class:`BaseService`
- Errors: :class:`ServiceError`, :class:`AuthenticationError`, :class:`AuthErrorKind`
- Auth: :class:`AuthManager`, :class:`DriverRegistry`, :class:`Guard`,
  :class:`AuthConfig`, :class:`ProviderConfig`, :class:`GuardConfig`,
  :class:`DriverKind`, :class:`Principal`, :class:`AuthResponse`,
  :class:`TokenInvalidationContext`, :class:`LogoutType`
"""

from __future__ import annotations

from authlane.services._shared.base import BaseService
from authlane.services._shared.errors import AuthenticationError, AuthErrorKind, ServiceError
from authlane.services.auth.config import AuthConfig, DriverKind, GuardConfig, ProviderConfig
from authlane.services.auth.dto import AuthResponse, TokenInvalidationContext
from authlane.services.auth.guard import Guard
from authlane.services.auth.manager import AuthManager, DriverRegistry
from authlane.services.auth.principal import Principal
from authlane.services.auth.strategies import LogoutType

__all__ = [
    "AuthConfig",
    "AuthErrorKind",
    "AuthManager",
    "AuthResponse",
    "AuthenticationError",
    "BaseService",
    "DriverKind",
    "DriverRegistry",
    "Guard",
    "GuardConfig",
    "LogoutType",
    "Principal",
    "ProviderConfig",
    "ServiceError",
    "TokenInvalidationContext",
]
