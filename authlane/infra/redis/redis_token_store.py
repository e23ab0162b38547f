from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import redis  # type: ignore[import-untyped]

from authlane.services._shared.ports.token_store import (
    TokenRecord,
    TokenStore,
    TokenType,
    record_matches,
    session_id_of,
)


def _s(value: Any) -> str:
    return value.decode() if isinstance(value, bytes) else str(value)


@dataclass(slots=True)
class RedisTokenStore(TokenStore):
    """
    Redis-backed token store.

    Layout::

        tok:rec:{token}        hash with the record fields, expiring with the record
        tok:idx:p:{principal}  set of tokens owned by a principal
        tok:idx:s:{session}    set of tokens sharing a session correlation id

    Records and indexes live under separate prefixes, so no token string can
    name an index key.

    Index sets are not expired by Redis; readers drop members whose hash has
    gone and :meth:`cleanup_expired` sweeps them.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    # -------------------- helpers --------------------

    @staticmethod
    def _k(token: str) -> str:
        return f"tok:rec:{token}"

    @staticmethod
    def _kp(principal_id: Any) -> str:
        return f"tok:idx:p:{principal_id}"

    @staticmethod
    def _ks(session_id: str) -> str:
        return f"tok:idx:s:{session_id}"

    @staticmethod
    def _dump(record: TokenRecord) -> dict[str, str]:
        return {
            "principal_id": record.principal_id,
            "guard": record.guard,
            "type": record.type.value,
            "created_at": record.created_at.isoformat(),
            "expires_at": record.expires_at.isoformat() if record.expires_at else "",
            "metadata": json.dumps(dict(record.metadata), default=str),
        }

    @staticmethod
    def _load(token: str, raw: Mapping[Any, Any]) -> TokenRecord:
        data = {_s(k): _s(v) for k, v in raw.items()}
        expires_at = data.get("expires_at") or ""
        return TokenRecord(
            token=token,
            principal_id=data["principal_id"],
            guard=data["guard"],
            type=TokenType(data["type"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            expires_at=datetime.fromisoformat(expires_at) if expires_at else None,
            metadata=json.loads(data.get("metadata") or "{}"),
        )

    def _load_many(self, index_key: str) -> list[TokenRecord]:
        tokens = sorted(_s(t) for t in self.r.smembers(index_key))
        if not tokens:
            return []
        pipe = self.r.pipeline(transaction=False)
        for token in tokens:
            pipe.hgetall(self._k(token))
        records: list[TokenRecord] = []
        stale: list[str] = []
        for token, raw in zip(tokens, pipe.execute(), strict=True):
            if raw:
                records.append(self._load(token, raw))
            else:
                stale.append(token)
        if stale:
            self.r.srem(index_key, *stale)
        return records

    def _remove(self, records: Iterable[TokenRecord]) -> int:
        batch = list(records)
        if not batch:
            return 0
        pipe = self.r.pipeline(transaction=True)
        del_replies: list[int] = []
        for record in batch:
            del_replies.append(len(pipe))
            pipe.delete(self._k(record.token))
            pipe.srem(self._kp(record.principal_id), record.token)
            sid = session_id_of(record.token)
            if sid:
                pipe.srem(self._ks(sid), record.token)
        results = pipe.execute()
        return sum(int(results[i]) for i in del_replies)

    # -------------------- API ------------------------

    def store(self, record: TokenRecord) -> TokenRecord:
        key = self._k(record.token)
        pipe = self.r.pipeline(transaction=True)
        pipe.delete(key)
        pipe.hset(key, mapping=self._dump(record))
        if record.expires_at is not None:
            pipe.expireat(key, record.expires_at)
        pipe.sadd(self._kp(record.principal_id), record.token)
        sid = record.session_id
        if sid:
            pipe.sadd(self._ks(sid), record.token)
        pipe.execute()
        return record

    def find(self, token: str) -> TokenRecord | None:
        raw = self.r.hgetall(self._k(token))
        return self._load(token, raw) if raw else None

    def find_by_session(
        self,
        session_id: str,
        guard: str | None = None,
        type: TokenType | None = None,
    ) -> list[TokenRecord]:
        return [
            r
            for r in self._load_many(self._ks(session_id))
            if (guard is None or r.guard == guard) and (type is None or r.type == type)
        ]

    def find_by_principal(self, principal_id: Any, guard: str | None = None) -> list[TokenRecord]:
        return [
            r
            for r in self._load_many(self._kp(principal_id))
            if guard is None or r.guard == guard
        ]

    def delete(self, token: str) -> int:
        record = self.find(token)
        if record is None:
            return 0
        return self._remove([record])

    def delete_by_principal(
        self,
        principal_id: Any,
        *,
        guard: str | None = None,
        filter: Mapping[str, Any] | None = None,
    ) -> int:
        doomed = [
            r for r in self.find_by_principal(principal_id, guard) if record_matches(r, filter)
        ]
        return self._remove(doomed)

    def is_blacklisted(self, token: str) -> bool:
        kind = self.r.hget(self._k(token), "type")
        return kind is not None and _s(kind) == TokenType.BLACKLIST.value

    def cleanup_expired(self) -> int:
        """
        Delete records whose expiry has passed and prune dangling index members.

        Redis already evicts expired hashes on its own, so the returned count
        only covers records that were still present.
        """
        now = datetime.now(UTC)
        removed = 0
        for index_key in self.r.scan_iter(match="tok:idx:p:*"):
            expired = [r for r in self._load_many(_s(index_key)) if r.is_expired(now)]
            removed += self._remove(expired)
        for index_key in self.r.scan_iter(match="tok:idx:s:*"):
            self._load_many(_s(index_key))
        return removed
