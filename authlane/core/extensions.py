"""Process-wide database handle and the optional Redis connection for token storage."""

from __future__ import annotations

import logging

import redis  # type: ignore[import-untyped]
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData

log = logging.getLogger(__name__)

# Constraint names stay stable across SQLite and Postgres
metadata = MetaData(
    naming_convention={
        "ix": "ix_%(table_name)s_%(column_0_name)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
redis_client: redis.Redis | None = None


def connect_redis(url: str) -> redis.Redis:
    """Open a client for ``url`` and fail fast when the server is unreachable."""
    client = redis.Redis.from_url(url)
    try:
        client.ping()
    except RedisError as exc:
        raise RuntimeError(f"Redis token backend unreachable at {url!r}") from exc
    return client


def init_app(app: Flask) -> None:
    """
    Bind the database and, when ``REDIS_URL`` is set, the Redis connection.

    Importing :mod:`authlane.models` registers the ``users`` and
    ``personal_access_tokens`` tables on :data:`metadata` so that
    ``db.create_all()`` and table reflection see them.
    """
    global redis_client

    db.init_app(app)
    from authlane import models as _models  # noqa: F401

    url = app.config.get("REDIS_URL")
    redis_client = connect_redis(url) if url else None
    if redis_client is None:
        app.extensions.pop("redis_client", None)
    else:
        app.extensions["redis_client"] = redis_client
        log.debug("redis token backend connected")


def get_redis() -> redis.Redis:
    """Return the Redis client used by the ``redis`` token store backend."""
    if redis_client is None:
        raise RuntimeError("AUTH_TOKEN_STORE is 'redis' but REDIS_URL is not configured.")
    return redis_client
