"""
authlane.services._shared.ports
===============================

Collection of *ports* (hexagonal interfaces) that define the contracts the
authentication services depend on.

Modules
-------
- :mod:`token_store`:
    :class:`~.TokenStore`, :class:`~.TokenRecord`, :class:`~.TokenType` and the
    :class:`~.InMemoryTokenStore` double.
- :mod:`token_generator`:
    :class:`~.TokenGenerator`, random token material.
- :mod:`password_hasher`:
    :class:`~.PasswordHasher`, password hash verification.
- :mod:`user_directory`:
    :class:`~.UserDirectory` and the :class:`~.InMemoryUserDirectory` double.

Concrete adapters (SQLAlchemy, Redis, werkzeug, ``secrets``) live under
``authlane.infra`` and ``authlane.repositories``.
"""

from __future__ import annotations

from .password_hasher import PasswordHasher
from .token_generator import TokenGenerator
from .token_store import (
    SESSION_DELIMITER,
    InMemoryTokenStore,
    TokenRecord,
    TokenStore,
    TokenType,
    session_id_of,
)
from .user_directory import InMemoryUserDirectory, UserDirectory

__all__ = [
    "SESSION_DELIMITER",
    "InMemoryTokenStore",
    "InMemoryUserDirectory",
    "PasswordHasher",
    "TokenGenerator",
    "TokenRecord",
    "TokenStore",
    "TokenType",
    "UserDirectory",
    "session_id_of",
]
