from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any, cast

from sqlalchemy.orm import Session

from authlane.models.base import as_utc
from authlane.models.token import PersonalAccessToken
from authlane.services._shared.ports.token_store import (
    TokenRecord,
    TokenStore,
    TokenType,
    record_matches,
    session_prefix,
)
from authlane.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork


def _to_row(record: TokenRecord) -> PersonalAccessToken:
    return PersonalAccessToken(
        token=record.token,
        principal_id=record.principal_id,
        guard=record.guard,
        type=record.type.value,
        created_at=as_utc(record.created_at),
        expires_at=as_utc(record.expires_at),
        meta=dict(record.metadata),
    )


def _to_record(row: PersonalAccessToken) -> TokenRecord:
    return TokenRecord(
        token=row.token,
        principal_id=row.principal_id,
        guard=row.guard,
        type=TokenType(row.type),
        created_at=cast(datetime, as_utc(row.created_at)),
        expires_at=as_utc(row.expires_at),
        metadata=dict(row.meta or {}),
    )


class SQLAlchemyTokenStore(TokenStore):
    """
    Token store over the ``personal_access_tokens`` table.

    Each call runs in its own unit of work: writes commit before returning so
    that every verifying process sees them.

    :param session_factory: Returns the session to use (``lambda: db.session``
        inside Flask).
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def _rw(self) -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(self._session_factory)

    def _ro(self) -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(self._session_factory, read_only=True)

    # -------------------------- API ----------------------------

    def store(self, record: TokenRecord) -> TokenRecord:
        with self._rw() as uow:
            uow.tokens.save(_to_row(record))
        return record

    def find(self, token: str) -> TokenRecord | None:
        with self._ro() as uow:
            row = uow.tokens.get(token)
            return _to_record(row) if row is not None else None

    def find_by_session(
        self,
        session_id: str,
        guard: str | None = None,
        type: TokenType | None = None,
    ) -> list[TokenRecord]:
        with self._ro() as uow:
            rows = uow.tokens.list_by_prefix(
                session_prefix(session_id),
                guard=guard,
                type=TokenType(type).value if type is not None else None,
            )
            return [_to_record(r) for r in rows]

    def find_by_principal(self, principal_id: Any, guard: str | None = None) -> list[TokenRecord]:
        with self._ro() as uow:
            rows = uow.tokens.list_by_principal(str(principal_id), guard=guard)
            return [_to_record(r) for r in rows]

    def delete(self, token: str) -> int:
        with self._rw() as uow:
            return uow.tokens.delete_tokens([token])

    def delete_by_principal(
        self,
        principal_id: Any,
        *,
        guard: str | None = None,
        filter: Mapping[str, Any] | None = None,
    ) -> int:
        with self._rw() as uow:
            rows = uow.tokens.list_by_principal(str(principal_id), guard=guard)
            doomed = [r.token for r in rows if record_matches(_to_record(r), filter)]
            return uow.tokens.delete_tokens(doomed)

    def is_blacklisted(self, token: str) -> bool:
        record = self.find(token)
        return record is not None and record.type is TokenType.BLACKLIST

    def cleanup_expired(self) -> int:
        with self._rw() as uow:
            return uow.tokens.delete_expired(datetime.now(UTC))
