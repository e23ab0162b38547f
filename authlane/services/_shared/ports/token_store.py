from __future__ import annotations

import threading
from collections.abc import Collection, Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Protocol

#: Separator between the session correlation id and the random part of a
#: refresh token: ``"<session_id>::<random>"``.
SESSION_DELIMITER = "::"

#: Record attributes accepted in ``delete_by_principal(filter=...)``.
FILTERABLE_FIELDS = frozenset({"type", "token"})


class TokenType(str, Enum):
    """Kind of persisted token record."""

    ACCESS = "access"
    REFRESH = "refresh"
    BLACKLIST = "blacklist"


@dataclass(frozen=True, slots=True)
class TokenRecord:
    """
    Persisted token.

    :ivar token: Raw token string, unique across all records.
    :ivar principal_id: Owner identifier, normalized to ``str``.
    :ivar guard: Guard name the token was issued by.
    :ivar type: Access, refresh or blacklist.
    :ivar created_at: Issuance time (UTC).
    :ivar expires_at: Expiry (UTC); ``None`` means the record never expires.
    :ivar metadata: Free-form JSON-serializable attributes.
    """

    token: str
    principal_id: str
    guard: str
    type: TokenType
    created_at: datetime
    expires_at: datetime | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "principal_id", str(self.principal_id))
        object.__setattr__(self, "type", TokenType(self.type))

    @property
    def session_id(self) -> str | None:
        """Correlation id encoded as the token prefix, if any."""
        return session_id_of(self.token)

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or datetime.now(UTC))


def session_id_of(token: str) -> str | None:
    """Return the ``<session_id>`` part of ``"<session_id>::<random>"``."""
    head, sep, _ = token.partition(SESSION_DELIMITER)
    return head if sep and head else None


def session_prefix(session_id: str) -> str:
    return f"{session_id}{SESSION_DELIMITER}"


def record_matches(record: TokenRecord, filter: Mapping[str, Any] | None) -> bool:
    """
    Check ``record`` against an equality filter.

    Values may be scalars or collections (membership test). Unknown keys
    raise :class:`ValueError` so that typos never widen a delete.
    """
    if not filter:
        return True
    for key, expected in filter.items():
        if key not in FILTERABLE_FIELDS:
            raise ValueError(f"Unsupported token filter field: {key!r}")
        actual = getattr(record, key)
        if isinstance(expected, Collection) and not isinstance(expected, str):
            if actual not in expected:
                return False
        elif actual != expected:
            return False
    return True


class TokenStore(Protocol):
    """
    Persistence for token records.

    Every verifying instance must see the same store. Deletes are idempotent
    and return the number of records removed.
    """

    def store(self, record: TokenRecord) -> TokenRecord:
        """Insert or replace the record keyed by ``record.token``."""

    def find(self, token: str) -> TokenRecord | None:
        """Return the record for ``token`` or ``None``."""

    def find_by_session(
        self,
        session_id: str,
        guard: str | None = None,
        type: TokenType | None = None,
    ) -> list[TokenRecord]:
        """Return records whose token starts with ``"<session_id>::"``."""

    def find_by_principal(self, principal_id: Any, guard: str | None = None) -> list[TokenRecord]:
        """Return every record owned by ``principal_id``."""

    def delete(self, token: str) -> int:
        """Remove one record; ``0`` when absent."""

    def delete_by_principal(
        self,
        principal_id: Any,
        *,
        guard: str | None = None,
        filter: Mapping[str, Any] | None = None,
    ) -> int:
        """Remove records owned by ``principal_id`` matching ``guard`` and ``filter``."""

    def is_blacklisted(self, token: str) -> bool:
        """``True`` iff a ``blacklist`` record exists for ``token``."""

    def cleanup_expired(self) -> int:
        """Remove every record whose ``expires_at`` is in the past."""


class InMemoryTokenStore(TokenStore):
    """
    Process-local token store.

    .. note::
       Uses a threading lock so concurrent test threads see consistent data.
    """

    def __init__(self) -> None:
        self._records: dict[str, TokenRecord] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def store(self, record: TokenRecord) -> TokenRecord:
        with self._lock:
            self._records[record.token] = replace(record, metadata=dict(record.metadata))
            return record

    def find(self, token: str) -> TokenRecord | None:
        return self._records.get(token)

    def find_by_session(
        self,
        session_id: str,
        guard: str | None = None,
        type: TokenType | None = None,
    ) -> list[TokenRecord]:
        prefix = session_prefix(session_id)
        with self._lock:
            return [
                r
                for r in self._records.values()
                if r.token.startswith(prefix)
                and (guard is None or r.guard == guard)
                and (type is None or r.type == type)
            ]

    def find_by_principal(self, principal_id: Any, guard: str | None = None) -> list[TokenRecord]:
        pid = str(principal_id)
        with self._lock:
            return [
                r
                for r in self._records.values()
                if r.principal_id == pid and (guard is None or r.guard == guard)
            ]

    def delete(self, token: str) -> int:
        with self._lock:
            return 1 if self._records.pop(token, None) is not None else 0

    def delete_by_principal(
        self,
        principal_id: Any,
        *,
        guard: str | None = None,
        filter: Mapping[str, Any] | None = None,
    ) -> int:
        pid = str(principal_id)
        with self._lock:
            doomed = [
                token
                for token, r in self._records.items()
                if r.principal_id == pid
                and (guard is None or r.guard == guard)
                and record_matches(r, filter)
            ]
            for token in doomed:
                del self._records[token]
            return len(doomed)

    def is_blacklisted(self, token: str) -> bool:
        record = self._records.get(token)
        return record is not None and record.type is TokenType.BLACKLIST

    def cleanup_expired(self) -> int:
        now = datetime.now(UTC)
        with self._lock:
            doomed = [token for token, r in self._records.items() if r.is_expired(now)]
            for token in doomed:
                del self._records[token]
            return len(doomed)
