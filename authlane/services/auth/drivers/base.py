"""Behavior shared by the signed-token and opaque-token drivers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from typing import Any, ClassVar

from authlane.services._shared.errors import AuthErrorKind, AuthenticationError
from authlane.services._shared.ports.token_generator import TokenGenerator
from authlane.services._shared.ports.token_store import (
    SESSION_DELIMITER,
    TokenRecord,
    TokenStore,
    TokenType,
)
from authlane.services._shared.ports.user_directory import UserDirectory
from authlane.services.auth.config import DriverKind, ProviderConfig
from authlane.services.auth.dto import AuthResponse, TokenInvalidationContext
from authlane.services.auth.principal import Principal
from authlane.services.auth.strategies import InvalidationStrategyFactory, LogoutType


class AuthDriver(ABC):
    """
    Issues, verifies, rotates and revokes tokens for one guard.

    Both built-in drivers pair every access token with a refresh token of the
    form ``"<session_id>::<random>"``. The session id is minted at login and
    reused by every refresh so the pair keeps its device identity.

    Rotation is not atomic: two concurrent refreshes of one live refresh token
    can both succeed and leave two refresh records for the session. Both are
    removed by the next logout of that session.
    """

    kind: ClassVar[DriverKind | str]
    DEFAULT_ACCESS_TTL: ClassVar[int | None] = None
    SESSION_ID_LENGTH: ClassVar[int] = 32
    REFRESH_SECRET_LENGTH: ClassVar[int] = 64

    def __init__(
        self,
        *,
        guard: str,
        provider: ProviderConfig,
        store: TokenStore,
        directory: UserDirectory,
        generator: TokenGenerator,
        strategies: InvalidationStrategyFactory | None = None,
    ) -> None:
        self.guard = guard
        self.provider = provider
        self.store = store
        self.directory = directory
        self.generator = generator
        self.strategies = strategies or InvalidationStrategyFactory()
        self.access_ttl: int | None = (
            provider.access_ttl if provider.access_ttl is not None else self.DEFAULT_ACCESS_TTL
        )
        self.refresh_ttl: int = provider.refresh_ttl
        self.log = logging.getLogger(type(self).__module__)

    # ---- contract ----

    def authenticate(self, principal: Principal) -> AuthResponse:
        """Issue a fresh access/refresh pair for ``principal``."""
        return self.generate_tokens(principal)

    @abstractmethod
    def generate_tokens(self, principal: Principal) -> AuthResponse: ...

    @abstractmethod
    def verify_token(self, token: str) -> Principal:
        """Return the re-resolved principal or raise :class:`AuthenticationError`."""

    @abstractmethod
    def refresh_token(self, refresh_token: str) -> AuthResponse:
        """Rotate ``refresh_token`` into a new pair of the same session."""

    @abstractmethod
    def invalidation_context(self, token: str) -> TokenInvalidationContext:
        """Describe ``token`` for a logout strategy."""

    @abstractmethod
    def validate_token_format(self, token: str) -> bool: ...

    @abstractmethod
    def owns_token(self, value: Any) -> bool:
        """Whether ``value`` is a token of this driver rather than a principal id."""

    # ---- revocation ----

    def invalidate_token(
        self,
        token: str,
        logout_type: LogoutType | str = LogoutType.SINGLE_DEVICE,
        *,
        refresh_token: str | None = None,
    ) -> int:
        context = self.invalidation_context(token)
        if refresh_token and not context.refresh_token:
            context = replace(context, refresh_token=refresh_token)
        return self.strategies.create(logout_type).invalidate(context, self.store)

    def invalidate_principal(self, principal_id: Any) -> int:
        """Revoke every token of ``principal_id`` for this guard."""
        context = TokenInvalidationContext(principal_id=principal_id, guard=self.guard)
        return self.strategies.create(LogoutType.ALL_DEVICES).invalidate(context, self.store)

    def invalidate_other_sessions(self, token: str) -> int:
        """Revoke every session of the token's principal except the token's own."""
        context = self.invalidation_context(token)
        keep = context.session_id
        removed = 0
        for record in self.store.find_by_principal(context.principal_id, self.guard):
            if record.type is TokenType.BLACKLIST:
                continue
            session = record.session_id or record.metadata.get("session_id")
            if keep is not None and session == keep:
                continue
            if keep is None and record.token == token:
                continue
            removed += self.store.delete(record.token)
        return removed

    # ---- helpers ----

    @staticmethod
    def now_utc() -> datetime:
        return datetime.now(UTC)

    def _expiry(self, now: datetime, ttl: int | None) -> datetime | None:
        return now + timedelta(seconds=ttl) if ttl is not None else None

    def _new_session_id(self) -> str:
        return self.generator.generate(self.SESSION_ID_LENGTH)

    def _issue_refresh(self, principal: Principal, session_id: str, now: datetime) -> str:
        secret = self.generator.generate(self.REFRESH_SECRET_LENGTH)
        token = f"{session_id}{SESSION_DELIMITER}{secret}"
        self.store.store(
            TokenRecord(
                token=token,
                principal_id=principal.auth_identifier,
                guard=self.guard,
                type=TokenType.REFRESH,
                created_at=now,
                expires_at=self._expiry(now, self.refresh_ttl),
                metadata={"session_id": session_id},
            )
        )
        return token

    @staticmethod
    def is_refresh_format(token: Any) -> bool:
        """``"<session_id>::<secret>"`` with both parts non-empty."""
        parts = token.split(SESSION_DELIMITER) if isinstance(token, str) else []
        return len(parts) == 2 and all(parts)

    def _refresh_record(self, token: Any) -> TokenRecord | None:
        """The refresh record of this guard stored under ``token``, expired or not."""
        if not self.is_refresh_format(token):
            return None
        record = self.store.find(token)
        if record is None or record.guard != self.guard or record.type is not TokenType.REFRESH:
            return None
        return record

    def _refresh_context(self, record: TokenRecord) -> TokenInvalidationContext:
        session_id = record.metadata.get("session_id") or record.session_id
        return TokenInvalidationContext(
            principal_id=record.principal_id,
            guard=self.guard,
            refresh_token=record.token,
            metadata={"session_id": session_id} if session_id else {},
        )

    def _load_refresh(self, refresh_token: str) -> TokenRecord:
        """
        Validate a presented refresh token and return its live record.

        Expired records are deleted as they are found.
        """
        if not self.is_refresh_format(refresh_token):
            raise AuthenticationError(
                AuthErrorKind.MALFORMED_TOKEN, "Invalid refresh token format"
            )
        record = self.store.find(refresh_token)
        if record is None or record.guard != self.guard:
            raise AuthenticationError(AuthErrorKind.UNKNOWN_TOKEN, "Refresh token not found")
        if record.type is not TokenType.REFRESH:
            raise AuthenticationError(AuthErrorKind.MALFORMED_TOKEN, "Not a refresh token")
        if record.is_expired(self.now_utc()):
            self.store.delete(record.token)
            raise AuthenticationError(AuthErrorKind.EXPIRED_TOKEN, "Refresh token has expired")
        return record

    def resolve_principal(self, principal_id: Any) -> Principal:
        """
        Load the principal from its backing table.

        Token contents are never trusted for identity: a deleted or
        deactivated principal is rejected here.
        """
        record = self.directory.find_by_id(
            principal_id, self.provider.table, self.provider.primary_key
        )
        if record is None:
            raise AuthenticationError(
                AuthErrorKind.UNKNOWN_PRINCIPAL, "User not found or deactivated"
            )
        principal = Principal.from_record(record, self.provider)
        if not principal.active:
            raise AuthenticationError(AuthErrorKind.INACTIVE_PRINCIPAL, "User account is inactive")
        return principal

    def _response(
        self,
        principal: Principal,
        access_token: str,
        refresh_token: str,
        session_id: str,
    ) -> AuthResponse:
        return AuthResponse(
            user=principal.projection,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=self.access_ttl,
            refresh_expires_in=self.refresh_ttl,
            metadata={"guard": self.guard, "session_id": session_id},
        )
