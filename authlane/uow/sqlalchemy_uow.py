"""
SQLAlchemy implementation of UnitOfWork.
"""

from __future__ import annotations

from collections.abc import Callable

from sqlalchemy.orm import Session

from authlane.repositories import RecordRepository, TokenRepository
from authlane.uow.base import UnitOfWork


class SQLAlchemyUnitOfWork(UnitOfWork):
    """
    Session-scoped UoW sharing one session across repositories.

    :param session_factory: Returns the session to use, e.g. ``lambda: db.session``.
        Resolved on every ``__enter__`` so request-scoped sessions are honored.
    :param read_only: When ``True`` the scope neither commits nor rolls back and
        leaves the session transaction to its owner.
    """

    def __init__(self, session_factory: Callable[[], Session], *, read_only: bool = False) -> None:
        self._session_factory = session_factory
        self.read_only = read_only

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        self.session = self._session_factory()
        self.tokens = TokenRepository(self.session)
        self.records = RecordRepository(self.session)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.read_only:
            return
        if exc_type is None:
            try:
                self.commit()
            except Exception:
                self.rollback()
                raise
        else:
            self.rollback()

    def commit(self) -> None:
        if self.read_only:
            raise RuntimeError("Read-only UnitOfWork does not allow commit().")
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
