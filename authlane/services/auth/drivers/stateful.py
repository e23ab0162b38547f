"""Opaque access tokens looked up in the token store."""

from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar

from authlane.services._shared.errors import AuthErrorKind, AuthenticationError
from authlane.services._shared.ports.token_store import TokenRecord, TokenType
from authlane.services.auth.config import DriverKind
from authlane.services.auth.drivers.base import AuthDriver
from authlane.services.auth.dto import AuthResponse, TokenInvalidationContext
from authlane.services.auth.principal import Principal


class StatefulDriver(AuthDriver):
    """
    Access and refresh tokens are random strings persisted as records.

    Deleting a record revokes it; there is no blacklist. Access records keep
    the session id in their metadata so a logout or a refresh can find the
    paired tokens.
    """

    kind: ClassVar[DriverKind] = DriverKind.TOKEN
    DEFAULT_ACCESS_TTL: ClassVar[int | None] = None
    ACCESS_TOKEN_LENGTH: ClassVar[int] = 64
    MIN_TOKEN_LENGTH: ClassVar[int] = 32

    # ---- issuing ----

    def _issue_access(self, principal: Principal, session_id: str, now: datetime) -> str:
        identifier = principal.auth_identifier
        prefix = identifier if self.generator.can_prefix(identifier) else None
        token = self.generator.generate(self.ACCESS_TOKEN_LENGTH, prefix=prefix)
        self.store.store(
            TokenRecord(
                token=token,
                principal_id=identifier,
                guard=self.guard,
                type=TokenType.ACCESS,
                created_at=now,
                expires_at=self._expiry(now, self.access_ttl),
                metadata={"session_id": session_id},
            )
        )
        return token

    def generate_tokens(self, principal: Principal) -> AuthResponse:
        now = self.now_utc()
        session_id = self._new_session_id()
        access = self._issue_access(principal, session_id, now)
        refresh = self._issue_refresh(principal, session_id, now)
        return self._response(principal, access, refresh, session_id)

    # ---- verification ----

    def validate_token_format(self, token: str) -> bool:
        return (
            isinstance(token, str)
            and len(token) >= self.MIN_TOKEN_LENGTH
            and self.generator.is_valid_format(token)
        )

    def _plausible(self, value: Any) -> bool:
        return self.validate_token_format(value) or self.is_refresh_format(value)

    def owns_token(self, value: Any) -> bool:
        if not self._plausible(value):
            return False
        record = self.store.find(value)
        return record is not None and record.guard == self.guard

    def verify_token(self, token: str) -> Principal:
        if not self.validate_token_format(token):
            raise AuthenticationError(AuthErrorKind.MALFORMED_TOKEN, "Invalid token format")
        record = self.store.find(token)
        if record is None or record.guard != self.guard or record.type is not TokenType.ACCESS:
            raise AuthenticationError(AuthErrorKind.UNKNOWN_TOKEN, "Token not found")
        if record.is_expired(self.now_utc()):
            self.store.delete(record.token)
            raise AuthenticationError(AuthErrorKind.EXPIRED_TOKEN, "Token has expired")
        return self.resolve_principal(record.principal_id)

    # ---- rotation ----

    def refresh_token(self, refresh_token: str) -> AuthResponse:
        record = self._load_refresh(refresh_token)
        principal = self.resolve_principal(record.principal_id)
        session_id = record.session_id or str(record.metadata.get("session_id"))
        previous_access = [
            r.token
            for r in self.store.find_by_principal(record.principal_id, self.guard)
            if r.type is TokenType.ACCESS and r.metadata.get("session_id") == session_id
        ]
        now = self.now_utc()
        access = self._issue_access(principal, session_id, now)
        refresh = self._issue_refresh(principal, session_id, now)
        self.store.delete(record.token)
        for token in previous_access:
            self.store.delete(token)
        return self._response(principal, access, refresh, session_id)

    # ---- revocation ----

    def invalidation_context(self, token: str) -> TokenInvalidationContext:
        if not self._plausible(token):
            raise AuthenticationError(AuthErrorKind.MALFORMED_TOKEN, "Invalid token format")
        record = self.store.find(token)
        if record is None or record.guard != self.guard or record.type is TokenType.BLACKLIST:
            raise AuthenticationError(AuthErrorKind.UNKNOWN_TOKEN, "Token not found")
        if record.type is TokenType.REFRESH:
            return self._refresh_context(record)
        session_id = record.metadata.get("session_id")
        return TokenInvalidationContext(
            principal_id=record.principal_id,
            guard=self.guard,
            access_token=token,
            metadata={"session_id": session_id} if session_id else {},
        )
