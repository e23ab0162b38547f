"""
Transaction boundary shared by the token repositories.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from authlane.repositories import RecordRepository, TokenRepository


class UnitOfWork(ABC):
    """
    One store operation, committed or rolled back as a whole.

    Entering the scope binds ``tokens`` (ORM rows) and ``records`` (the
    :class:`TokenRecord` view) to the same transaction. A clean exit commits;
    an exception rolls back and propagates.
    """

    tokens: TokenRepository
    records: RecordRepository
    read_only: bool = False

    @abstractmethod
    def __enter__(self) -> UnitOfWork: ...
    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None: ...
    @abstractmethod
    def commit(self) -> None: ...
    @abstractmethod
    def rollback(self) -> None: ...
