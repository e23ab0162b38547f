"""Build the :class:`AuthManager` for a Flask application."""

from __future__ import annotations

import logging

from flask import Flask, current_app, g

from authlane.core.extensions import db, get_redis, metadata
from authlane.infra.redis.redis_token_store import RedisTokenStore
from authlane.infra.security.password_hasher import WerkzeugPasswordHasher
from authlane.infra.sql.sqlalchemy_token_store import SQLAlchemyTokenStore
from authlane.infra.sql.sqlalchemy_user_directory import SQLAlchemyUserDirectory
from authlane.services._shared.ports.token_store import InMemoryTokenStore, TokenStore
from authlane.services.auth.config import AuthConfig
from authlane.services.auth.manager import AuthManager

log = logging.getLogger(__name__)

EXTENSION_KEY = "auth_manager"

# Set by ``require_auth``; cleared before every request
REQUEST_AUTH_KEYS = ("principal", "auth_guard", "auth_token")


def build_token_store(app: Flask) -> TokenStore:
    """Select the token backend named by ``AUTH_TOKEN_STORE``."""
    backend = str(app.config.get("AUTH_TOKEN_STORE", "sqlalchemy")).strip().lower()
    if backend == "sqlalchemy":
        return SQLAlchemyTokenStore(lambda: db.session)
    if backend == "redis":
        return RedisTokenStore(r=get_redis())
    if backend == "memory":
        return InMemoryTokenStore()
    raise RuntimeError(f"Unknown AUTH_TOKEN_STORE backend: {backend!r}")


def init_app(app: Flask) -> AuthManager:
    """
    Create the manager from ``AUTH_*`` settings and store it on the app.

    Every configured guard is constructed immediately, so a missing secret or
    provider stops the application from starting.
    """
    manager = AuthManager(
        AuthConfig.from_flask_config(app.config),
        store=build_token_store(app),
        directory=SQLAlchemyUserDirectory(lambda: db.session, metadata=metadata),
        hasher=WerkzeugPasswordHasher(),
    )
    guards = manager.warm()
    log.info("auth guards ready: %s", ", ".join(guards) or "(none)")
    app.extensions[EXTENSION_KEY] = manager

    @app.before_request
    def _forget_previous_principal() -> None:
        for key in REQUEST_AUTH_KEYS:
            g.pop(key, None)

    return manager


def get_auth_manager() -> AuthManager:
    """Return the manager of the current application."""
    try:
        return current_app.extensions[EXTENSION_KEY]
    except KeyError:
        raise RuntimeError("AuthManager is not initialized. Call init_app() first.") from None
