"""Environment-selected settings: storage, logging and the guard/provider maps."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any, Final

from dotenv import load_dotenv

# Selects the settings class below
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'


load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Read a ``1/true/yes/y/on`` style flag; ``default`` when unset."""
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int | None) -> int | None:
    """Parse an optional integer from an environment variable."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return int(val)


def default_auth_providers() -> dict[str, dict[str, Any]]:
    """Return the provider map backing the bundled ``users`` table."""
    return {
        "users": {
            "table": "users",
            "primary_key": "id",
            "identifying_fields": ["email", "username"],
            "password_field": "password_hash",
            "active_field": "is_active",
            "secret": os.getenv("AUTH_JWT_SECRET", ""),
            "algorithm": os.getenv("AUTH_JWT_ALGORITHM", "HS256"),
            "access_ttl": env_int("AUTH_ACCESS_TTL", None),
            "refresh_ttl": env_int("AUTH_REFRESH_TTL", None),
        }
    }


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret used for session signing.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    REDIS_URL: str | None
        Redis connection string; required when ``AUTH_TOKEN_STORE`` is
        ``"redis"``.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    AUTH_DEFAULT_GUARD: str
        Guard used when a caller does not name one.
    AUTH_GUARDS: dict
        ``{name: {"driver": "jwt" | "token", "provider": key}}``.
    AUTH_PROVIDERS: dict
        ``{key: {"table", "primary_key", "identifying_fields", ...}}``.
    AUTH_TOKEN_STORE: str
        Token persistence backend: ``"sqlalchemy"``, ``"redis"`` or
        ``"memory"``.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"

    # Flask session signing; tokens use the provider secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")

    # User and token tables
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Only consulted when AUTH_TOKEN_STORE is "redis"
    REDIS_URL = os.getenv("REDIS_URL") or None

    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Auth
    AUTH_DEFAULT_GUARD = os.getenv("AUTH_DEFAULT_GUARD", "api")
    AUTH_GUARDS: dict[str, dict[str, str]] = {
        "api": {"driver": "jwt", "provider": "users"},
        "token": {"driver": "token", "provider": "users"},
    }
    AUTH_PROVIDERS = default_auth_providers()
    AUTH_TOKEN_STORE = os.getenv("AUTH_TOKEN_STORE", "sqlalchemy")

    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Local runs: debug on and a throwaway signing secret when none is set."""

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    AUTH_PROVIDERS = {
        "users": {
            **default_auth_providers()["users"],
            "secret": os.getenv(
                "AUTH_JWT_SECRET", "dev-only-signing-secret-not-for-production"
            ),
        }
    }


class TestingConfig(BaseConfig):
    """In-memory SQLite and a fixed signing secret; ``TEST_DATABASE_URL`` overrides the database."""

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    PROPAGATE_EXCEPTIONS = True
    AUTH_PROVIDERS = {
        "users": {
            **default_auth_providers()["users"],
            "secret": "test-signing-secret-0123456789abcdef",
        }
    }


class ProductionConfig(BaseConfig):
    """No fallback secret: without ``AUTH_JWT_SECRET`` the jwt guards refuse to start."""

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False


CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Settings class named by ``APP_ENV``, :class:`DevelopmentConfig` when unset or unknown."""
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)
