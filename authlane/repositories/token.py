"""Query helpers for :class:`~authlane.models.token.PersonalAccessToken` rows."""

from __future__ import annotations

from collections.abc import Collection
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from authlane.models.token import PersonalAccessToken


class TokenRepository:
    """Repository for token rows bound to one session."""

    model = PersonalAccessToken

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, token: str) -> PersonalAccessToken | None:
        stmt = select(PersonalAccessToken).where(PersonalAccessToken.token == token)
        return self.session.scalars(stmt).first()

    def save(self, row: PersonalAccessToken) -> PersonalAccessToken:
        """Insert or replace by primary key."""
        merged = self.session.merge(row)
        self.session.flush()
        return merged

    def list_by_prefix(
        self,
        prefix: str,
        *,
        guard: str | None = None,
        type: str | None = None,
    ) -> list[PersonalAccessToken]:
        stmt = select(PersonalAccessToken).where(
            PersonalAccessToken.token.startswith(prefix, autoescape=True)
        )
        if guard is not None:
            stmt = stmt.where(PersonalAccessToken.guard == guard)
        if type is not None:
            stmt = stmt.where(PersonalAccessToken.type == type)
        return list(self.session.scalars(stmt.order_by(PersonalAccessToken.created_at)))

    def list_by_principal(
        self, principal_id: str, *, guard: str | None = None
    ) -> list[PersonalAccessToken]:
        stmt = select(PersonalAccessToken).where(PersonalAccessToken.principal_id == principal_id)
        if guard is not None:
            stmt = stmt.where(PersonalAccessToken.guard == guard)
        return list(self.session.scalars(stmt.order_by(PersonalAccessToken.created_at)))

    def delete_tokens(self, tokens: Collection[str]) -> int:
        if not tokens:
            return 0
        result = self.session.execute(
            delete(PersonalAccessToken)
            .where(PersonalAccessToken.token.in_(list(tokens)))
            .execution_options(synchronize_session="fetch")
        )
        return int(result.rowcount or 0)

    def delete_expired(self, now: datetime) -> int:
        result = self.session.execute(
            delete(PersonalAccessToken)
            .where(
                PersonalAccessToken.expires_at.is_not(None),
                PersonalAccessToken.expires_at <= now,
            )
            .execution_options(synchronize_session="fetch")
        )
        return int(result.rowcount or 0)
