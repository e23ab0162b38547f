"""Unit tests for logout strategies and their factory."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from authlane.services._shared.ports.token_store import InMemoryTokenStore, TokenRecord, TokenType
from authlane.services.auth.dto import TokenInvalidationContext
from authlane.services.auth.strategies import (
    AllDevicesLogout,
    InvalidationStrategyFactory,
    LogoutType,
    SingleDeviceLogout,
)


def _put(store, token, type=TokenType.REFRESH, principal_id="1", guard="api", **metadata):
    now = datetime.now(UTC)
    store.store(
        TokenRecord(
            token=token,
            principal_id=principal_id,
            guard=guard,
            type=type,
            created_at=now,
            expires_at=now + timedelta(hours=1),
            metadata=metadata,
        )
    )


@pytest.fixture()
def store():
    return InMemoryTokenStore()


class TestSingleDeviceLogout:
    def test_signed_token_is_blacklisted_until_its_expiry(self, store):
        _put(store, "s1::r1")
        expiry = datetime.now(UTC) + timedelta(minutes=5)
        context = TokenInvalidationContext(
            principal_id="1",
            guard="api",
            access_token="aaa.bbb.ccc",
            token_expiry=expiry,
            metadata={"session_id": "s1"},
        )

        touched = SingleDeviceLogout().invalidate(context, store)

        assert touched == 2
        entry = store.find("aaa.bbb.ccc")
        assert entry.type is TokenType.BLACKLIST
        assert entry.expires_at == expiry
        assert store.find("s1::r1") is None

    def test_opaque_token_is_deleted_with_its_session_refresh(self, store):
        _put(store, "opaque-access", type=TokenType.ACCESS)
        _put(store, "s1::r1")
        _put(store, "s2::r2")
        context = TokenInvalidationContext(
            principal_id="1",
            guard="api",
            access_token="opaque-access",
            metadata={"session_id": "s1"},
        )

        assert SingleDeviceLogout().invalidate(context, store) == 2
        assert store.find("opaque-access") is None
        assert store.find("s2::r2") is not None
        assert not store.is_blacklisted("opaque-access")

    def test_refresh_token_alone_ends_the_opaque_session(self, store):
        _put(store, "access-1", type=TokenType.ACCESS, session_id="s1")
        _put(store, "access-2", type=TokenType.ACCESS, session_id="s2")
        _put(store, "s1::r1")
        context = TokenInvalidationContext(
            principal_id="1",
            guard="api",
            refresh_token="s1::r1",
            metadata={"session_id": "s1"},
        )

        assert SingleDeviceLogout().invalidate(context, store) == 2
        assert store.find("access-1") is None
        assert store.find("s1::r1") is None
        assert store.find("access-2") is not None

    def test_other_principals_session_is_left_alone(self, store):
        _put(store, "s1::r1", principal_id="2")
        context = TokenInvalidationContext(
            principal_id="1", guard="api", metadata={"session_id": "s1"}
        )
        assert SingleDeviceLogout().invalidate(context, store) == 0
        assert store.find("s1::r1") is not None

    def test_explicit_refresh_token_without_session(self, store):
        _put(store, "legacy-refresh")
        context = TokenInvalidationContext(
            principal_id="1", guard="api", refresh_token="legacy-refresh"
        )
        assert SingleDeviceLogout().invalidate(context, store) == 1
        assert store.find("legacy-refresh") is None


class TestAllDevicesLogout:
    def test_deletes_every_record_of_principal_for_guard(self, store):
        _put(store, "s1::r1")
        _put(store, "s2::r2")
        _put(store, "bl.ack.list", type=TokenType.BLACKLIST)
        _put(store, "s3::r3", guard="admin")
        _put(store, "s4::r4", principal_id="2")
        context = TokenInvalidationContext(principal_id=1, guard="api")

        assert AllDevicesLogout().invalidate(context, store) == 3
        assert store.find_by_principal("1", "api") == []
        assert store.find("s3::r3") is not None
        assert store.find("s4::r4") is not None


class TestFactory:
    def test_creates_by_enum_and_value(self):
        factory = InvalidationStrategyFactory()
        assert isinstance(factory.create(LogoutType.SINGLE_DEVICE), SingleDeviceLogout)
        assert isinstance(factory.create("all_devices"), AllDevicesLogout)

    def test_unknown_type_raises(self):
        with pytest.raises(ValueError):
            InvalidationStrategyFactory().create("some_devices")

    def test_custom_strategy_overrides_builtin(self):
        class Noop:
            def invalidate(self, context, store):
                return 0

        noop = Noop()
        factory = InvalidationStrategyFactory({LogoutType.ALL_DEVICES: noop})
        assert factory.create(LogoutType.ALL_DEVICES) is noop
