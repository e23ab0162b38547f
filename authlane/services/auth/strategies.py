"""Logout strategies: revoke one device's session or every session."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol

from authlane.services._shared.ports.token_store import TokenRecord, TokenStore, TokenType
from authlane.services.auth.dto import TokenInvalidationContext

log = logging.getLogger(__name__)


class LogoutType(str, Enum):
    SINGLE_DEVICE = "single_device"
    ALL_DEVICES = "all_devices"


class TokenInvalidationStrategy(Protocol):
    """Revoke tokens described by a context; returns the number of records touched."""

    def invalidate(self, context: TokenInvalidationContext, store: TokenStore) -> int: ...


class SingleDeviceLogout:
    """
    Revoke the presented token and the refresh token of the same session.

    Signed tokens cannot be deleted, so they are blacklisted until their own
    expiry. Opaque access tokens are deleted, together with every other
    access record of the session, so presenting only the refresh token still
    ends the session.
    """

    def invalidate(self, context: TokenInvalidationContext, store: TokenStore) -> int:
        touched = 0
        if context.access_token:
            if context.is_signed:
                store.store(
                    TokenRecord(
                        token=context.access_token,
                        principal_id=context.principal_id,
                        guard=context.guard,
                        type=TokenType.BLACKLIST,
                        created_at=datetime.now(UTC),
                        expires_at=context.token_expiry,
                        metadata={"session_id": context.session_id} if context.session_id else {},
                    )
                )
                touched += 1
            else:
                touched += store.delete(context.access_token)
        if not context.is_signed:
            touched += self._revoke_session_access(context, store)
        touched += self._revoke_refresh(context, store)
        log.debug(
            "single-device logout touched %s record(s)",
            touched,
            extra={"guard": context.guard, "principal_id": str(context.principal_id)},
        )
        return touched

    @staticmethod
    def _revoke_session_access(context: TokenInvalidationContext, store: TokenStore) -> int:
        session_id = context.session_id
        if not session_id:
            return 0
        owner = str(context.principal_id)
        return sum(
            store.delete(r.token)
            for r in store.find_by_principal(context.principal_id, context.guard)
            if r.type is TokenType.ACCESS
            and r.principal_id == owner
            and r.metadata.get("session_id") == session_id
        )

    @staticmethod
    def _revoke_refresh(context: TokenInvalidationContext, store: TokenStore) -> int:
        owner = str(context.principal_id)
        if context.session_id:
            records = store.find_by_session(context.session_id, context.guard, TokenType.REFRESH)
            return sum(store.delete(r.token) for r in records if r.principal_id == owner)
        if context.refresh_token:
            record = store.find(context.refresh_token)
            if record and record.principal_id == owner and record.guard == context.guard:
                return store.delete(record.token)
        return 0


class AllDevicesLogout:
    """Delete every record of the principal for the guard, blacklist entries included."""

    def invalidate(self, context: TokenInvalidationContext, store: TokenStore) -> int:
        removed = store.delete_by_principal(context.principal_id, guard=context.guard)
        log.debug(
            "all-devices logout removed %s record(s)",
            removed,
            extra={"guard": context.guard, "principal_id": str(context.principal_id)},
        )
        return removed


class InvalidationStrategyFactory:
    """
    Pick a strategy by :class:`LogoutType`.

    Strategies hold no state, so one instance of each is shared.
    """

    def __init__(
        self, strategies: Mapping[LogoutType, TokenInvalidationStrategy] | None = None
    ) -> None:
        self._strategies: dict[LogoutType, TokenInvalidationStrategy] = {
            LogoutType.SINGLE_DEVICE: SingleDeviceLogout(),
            LogoutType.ALL_DEVICES: AllDevicesLogout(),
        }
        self._strategies.update(strategies or {})

    def create(self, logout_type: LogoutType | str) -> TokenInvalidationStrategy:
        try:
            return self._strategies[LogoutType(logout_type)]
        except (KeyError, ValueError):
            raise ValueError(f"Unsupported logout type: {logout_type!r}") from None
