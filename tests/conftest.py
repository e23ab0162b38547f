"""Pytest fixtures configuring an isolated transactional database layer.

Each test runs inside a SAVEPOINT-backed transaction against an in-memory
SQLite database so data changes never leak between cases. Service-level
tests get in-memory doubles for the token store and the user directory.
"""

from __future__ import annotations

import os

import pytest
from sqlalchemy import event
from sqlalchemy.orm import scoped_session, sessionmaker

from authlane.core.config import TestingConfig
from authlane.core.extensions import db as _db  # Flask-SQLAlchemy instance
from authlane.factory import create_app  # application factory under test
from authlane.infra.security.password_hasher import WerkzeugPasswordHasher
from authlane.services._shared.ports.token_store import InMemoryTokenStore
from authlane.services._shared.ports.user_directory import InMemoryUserDirectory
from authlane.services.auth.config import AuthConfig
from authlane.services.auth.manager import AuthManager

from tests.helpers.auth import FAST_HASH, PASSWORD, UNIT_SECRET


class TestConfig(TestingConfig):
    """Testing configuration for creating the Flask app.

    Notes
    -----
    - Uses an in-memory SQLite database for speed.
    - Persists tokens through SQLAlchemy so API tests share the SAVEPOINT.
    - Avoids hitting external services (no Redis).
    """

    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    REDIS_URL = None
    AUTH_TOKEN_STORE = "sqlalchemy"
    LOG_LEVEL = "WARNING"


@pytest.fixture(scope="session")
def app():
    """Create a Flask application configured for testing.

    Returns
    -------
    flask.Flask
        Application instance with :class:`TestConfig` applied and logging
        noise reduced.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    app = create_app(TestConfig, instance_relative_config=False)
    app.logger.setLevel("WARNING")
    return app


@pytest.fixture(scope="session")
def db(app):
    """Create database tables once per test session.

    Yields
    ------
    flask_sqlalchemy.SQLAlchemy
        Database extension bound to the testing application.
    """
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    """Keep a dedicated DBAPI connection open for the whole session."""
    conn = db.engine.connect()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def session(db, connection):
    """Provide a SQLAlchemy session wrapped in a nested transaction.

    Notes
    -----
    The fixture begins a top-level transaction, starts a SAVEPOINT per test,
    and reinstalls the SAVEPOINT whenever SQLAlchemy ends one. ``db.session``
    is swapped for the scoped session so the token store and the user
    directory (both resolving ``db.session`` lazily) join the same
    transaction.
    """
    # 1) Top-level transaction
    top_trans = connection.begin()

    # 2) Scoped session bound to the connection
    SessionFactory = sessionmaker(bind=connection, future=True)
    scoped = scoped_session(SessionFactory)

    # 3) SAVEPOINT per test
    nested = connection.begin_nested()

    # 4) Re-create SAVEPOINT when the previous nested transaction ends
    @event.listens_for(scoped(), "after_transaction_end")
    def _restart_savepoint(sess, trans):  # pragma: no cover
        if trans.nested and not trans._parent.nested:
            nonlocal nested
            nested = connection.begin_nested()

    # 5) Monkey-patch db.session so app code uses this scoped session
    original_session = db.session
    db.session.remove()
    db.session = scoped

    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = original_session
        top_trans.rollback()


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


# -- Hook up Factory Boy to pytest SQLAlchemy session --------------------------
@pytest.fixture(autouse=True)
def _factories_session(session):
    """Wire Factory Boy's session helper to the transactional session fixture."""
    from tests.factories import SQLAlchemySession

    SQLAlchemySession.set(session)
    yield
    SQLAlchemySession.clear()


@pytest.fixture()
def client(app):
    """Return a Flask test client."""
    return app.test_client()


# -- In-memory service doubles -------------------------------------------------
@pytest.fixture()
def hasher():
    """Password hasher with a cheap work factor."""
    return WerkzeugPasswordHasher(method=FAST_HASH)


@pytest.fixture()
def directory(hasher):
    """Users table with one active and one inactive principal."""
    return InMemoryUserDirectory(
        {
            "users": [
                {
                    "id": 1,
                    "email": "ada@example.com",
                    "username": "ada",
                    "password": hasher.hash(PASSWORD),
                    "is_active": True,
                },
                {
                    "id": 2,
                    "email": "bob@example.com",
                    "username": "bob",
                    "password": hasher.hash(PASSWORD),
                    "is_active": False,
                },
            ]
        }
    )


@pytest.fixture()
def token_store():
    return InMemoryTokenStore()


@pytest.fixture()
def auth_config():
    """Two guards over the users table: ``api`` (JWT) and ``token`` (opaque)."""
    return AuthConfig.from_mapping(
        {
            "api": {"driver": "jwt", "provider": "users"},
            "token": {"driver": "token", "provider": "opaque"},
        },
        {
            "users": {
                "table": "users",
                "identifying_fields": ["email", "username"],
                "secret": UNIT_SECRET,
                "access_ttl": 600,
                "refresh_ttl": 3600,
            },
            "opaque": {
                "table": "users",
                "identifying_fields": ["email", "username"],
                "refresh_ttl": 3600,
            },
        },
        default_guard="api",
    )


@pytest.fixture()
def manager(auth_config, token_store, directory, hasher):
    """AuthManager wired to in-memory doubles."""
    return AuthManager(auth_config, store=token_store, directory=directory, hasher=hasher)


@pytest.fixture()
def credentials():
    return {"email": "ada@example.com", "password": PASSWORD}


@pytest.fixture()
def freeze_time():
    """Factory returning :func:`freezegun.freeze_time`.

    Examples
    --------
    >>> def test_with_frozen_time(freeze_time):
    ...     with freeze_time("2024-01-01"):
    ...         ...
    """
    from freezegun import freeze_time as _freeze_time

    def _factory(target=None, **kwargs):
        return _freeze_time(target or "2024-01-01", **kwargs)

    return _factory
