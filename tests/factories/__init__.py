"""Factories persisting users into the per-test SAVEPOINT session."""

from __future__ import annotations

import factory


class SQLAlchemySession:
    """Holder for the session of the running test; empty between tests."""

    _session = None

    @classmethod
    def set(cls, session):
        cls._session = session

    @classmethod
    def clear(cls):
        cls._session = None

    @classmethod
    def get(cls):
        if cls._session is None:
            raise RuntimeError("No test session bound; request the 'session' fixture.")
        return cls._session


class BaseFactory(factory.alchemy.SQLAlchemyModelFactory):
    """Flush-only persistence: rows vanish with the test's rolled-back transaction."""

    class Meta:
        abstract = True
        sqlalchemy_session_factory = SQLAlchemySession.get
        sqlalchemy_session_persistence = "flush"
