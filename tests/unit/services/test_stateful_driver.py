"""Unit tests for opaque-token guards (StatefulDriver) through the AuthManager."""

from __future__ import annotations

import fakeredis
import pytest

from authlane.infra.redis.redis_token_store import RedisTokenStore
from authlane.services._shared.errors import AuthenticationError, AuthErrorKind
from authlane.services._shared.ports.token_store import TokenType
from authlane.services.auth.config import AuthConfig
from authlane.services.auth.drivers.stateful import StatefulDriver
from authlane.services.auth.manager import AuthManager


def _kind(excinfo) -> AuthErrorKind:
    return excinfo.value.kind


@pytest.fixture()
def expiring_manager(token_store, directory, hasher):
    """Opaque guard whose access tokens live for one minute."""
    config = AuthConfig.from_mapping(
        {"token": {"driver": "token", "provider": "users"}},
        {"users": {"table": "users", "identifying_fields": ["email"], "access_ttl": 60}},
        default_guard="token",
    )
    return AuthManager(config, store=token_store, directory=directory, hasher=hasher)


class TestIssuing:
    def test_login_stores_access_and_refresh(self, manager, token_store, credentials):
        tokens = manager.login("token", credentials)

        assert isinstance(manager.guard("token").driver, StatefulDriver)
        prefix, _, body = tokens.access_token.partition("|")
        assert prefix == "1" and len(body) == 64
        assert tokens.expires_in is None

        access = token_store.find(tokens.access_token)
        assert access.type is TokenType.ACCESS
        assert access.expires_at is None
        assert access.metadata["session_id"] == tokens.metadata["session_id"]
        assert token_store.find(tokens.refresh_token).type is TokenType.REFRESH

    def test_tokens_are_unique_per_login(self, manager, credentials):
        first = manager.login("token", credentials)
        second = manager.login("token", credentials)
        assert first.access_token != second.access_token
        assert first.metadata["session_id"] != second.metadata["session_id"]


class TestVerification:
    def test_valid_token(self, manager, credentials):
        tokens = manager.login("token", credentials)
        assert manager.verify("token", tokens.access_token).id == 1

    @pytest.mark.parametrize("token", ["short", "has space " * 5, ""])
    def test_malformed(self, manager, token):
        with pytest.raises(AuthenticationError) as info:
            manager.verify("token", token)
        assert _kind(info) is AuthErrorKind.MALFORMED_TOKEN

    def test_refresh_token_is_not_an_access_token(self, manager, credentials):
        tokens = manager.login("token", credentials)
        with pytest.raises(AuthenticationError) as info:
            manager.verify("token", tokens.refresh_token)
        assert _kind(info) is AuthErrorKind.MALFORMED_TOKEN

    def test_unknown_token(self, manager):
        with pytest.raises(AuthenticationError) as info:
            manager.verify("token", "x" * 64)
        assert _kind(info) is AuthErrorKind.UNKNOWN_TOKEN

    def test_token_of_another_guard_is_unknown(self, token_store, directory, hasher, credentials):
        provider = {"table": "users", "identifying_fields": ["email"]}
        config = AuthConfig.from_mapping(
            {
                "web": {"driver": "token", "provider": "users"},
                "mobile": {"driver": "token", "provider": "users"},
            },
            {"users": provider},
            default_guard="web",
        )
        manager = AuthManager(config, store=token_store, directory=directory, hasher=hasher)
        token = manager.login("mobile", credentials).access_token

        with pytest.raises(AuthenticationError) as info:
            manager.verify("web", token)
        assert _kind(info) is AuthErrorKind.UNKNOWN_TOKEN

    def test_expired_token_is_deleted(
        self, expiring_manager, token_store, credentials, freeze_time
    ):
        with freeze_time("2024-01-01 00:00:00") as frozen:
            tokens = expiring_manager.login(None, credentials)
            frozen.move_to("2024-01-01 00:01:00")
            with pytest.raises(AuthenticationError) as info:
                expiring_manager.verify(None, tokens.access_token)
        assert _kind(info) is AuthErrorKind.EXPIRED_TOKEN
        assert token_store.find(tokens.access_token) is None

    def test_deactivated_principal(self, manager, directory, credentials):
        tokens = manager.login("token", credentials)
        directory.update("users", "id", 1, is_active=0)
        with pytest.raises(AuthenticationError) as info:
            manager.verify("token", tokens.access_token)
        assert _kind(info) is AuthErrorKind.INACTIVE_PRINCIPAL


class TestRefresh:
    def test_rotation_replaces_both_tokens(self, manager, token_store, credentials):
        first = manager.login("token", credentials)
        second = manager.refresh("token", first.refresh_token)

        assert second.metadata["session_id"] == first.metadata["session_id"]
        assert token_store.find(first.access_token) is None
        assert token_store.find(first.refresh_token) is None
        assert manager.verify("token", second.access_token).id == 1
        with pytest.raises(AuthenticationError) as info:
            manager.verify("token", first.access_token)
        assert _kind(info) is AuthErrorKind.UNKNOWN_TOKEN

    def test_access_token_cannot_refresh(self, manager, credentials):
        tokens = manager.login("token", credentials)
        with pytest.raises(AuthenticationError) as info:
            manager.refresh("token", tokens.access_token)
        assert _kind(info) is AuthErrorKind.MALFORMED_TOKEN


class TestLogout:
    def test_single_device_deletes_pair_without_blacklisting(
        self, manager, token_store, credentials
    ):
        tokens = manager.login("token", credentials)

        assert manager.logout("token", tokens.access_token) == 2

        assert token_store.find(tokens.access_token) is None
        assert token_store.find(tokens.refresh_token) is None
        assert not token_store.is_blacklisted(tokens.access_token)
        with pytest.raises(AuthenticationError) as info:
            manager.verify("token", tokens.access_token)
        assert _kind(info) is AuthErrorKind.UNKNOWN_TOKEN

    def test_logout_of_unknown_token(self, manager):
        with pytest.raises(AuthenticationError) as info:
            manager.logout("token", "y" * 64)
        assert _kind(info) is AuthErrorKind.UNKNOWN_TOKEN

    def test_all_devices(self, manager, token_store, credentials):
        phone = manager.login("token", credentials)
        laptop = manager.login("token", credentials)

        assert manager.logout_all("token", laptop.access_token) == 4

        assert token_store.find_by_principal(1, "token") == []
        assert not manager.check("token", phone.access_token)
        assert not manager.check("token", laptop.access_token)

    def test_all_devices_by_principal_id_spares_other_guards(self, manager, credentials):
        opaque = manager.login("token", credentials)
        signed = manager.login("api", credentials)

        manager.logout_all("token", "1")

        assert not manager.check("token", opaque.access_token)
        assert manager.check("api", signed.access_token)

    def test_logout_others(self, manager, credentials):
        current = manager.login("token", credentials)
        other = manager.login("token", credentials)

        assert manager.logout_others("token", current.access_token) == 2

        assert manager.check("token", current.access_token)
        assert not manager.check("token", other.access_token)

    def test_refresh_token_alone_ends_the_session(self, manager, token_store, credentials):
        phone = manager.login("token", credentials)
        laptop = manager.login("token", credentials)

        assert manager.logout("token", phone.refresh_token) == 2

        assert token_store.find(phone.access_token) is None
        assert not manager.check("token", phone.access_token)
        assert manager.check("token", laptop.access_token)

    @pytest.mark.parametrize("token", ["p:1", "s:abc", "has space"])
    def test_logout_rejects_malformed_before_lookup(self, manager, token):
        assert not manager.guard("token").driver.owns_token(token)
        with pytest.raises(AuthenticationError) as info:
            manager.logout("token", token)
        assert _kind(info) is AuthErrorKind.MALFORMED_TOKEN


class TestRedisBackedGuard:
    @pytest.fixture()
    def redis_manager(self, auth_config, directory, hasher):
        store = RedisTokenStore(r=fakeredis.FakeRedis())
        return AuthManager(auth_config, store=store, directory=directory, hasher=hasher)

    def test_index_shaped_token_is_malformed_not_a_store_error(self, redis_manager, credentials):
        redis_manager.login("token", credentials)

        with pytest.raises(AuthenticationError) as info:
            redis_manager.logout("token", "p:1")
        assert _kind(info) is AuthErrorKind.MALFORMED_TOKEN
        assert redis_manager.verify("token", redis_manager.login("token", credentials).access_token)

    def test_logout_by_refresh_token(self, redis_manager, credentials):
        tokens = redis_manager.login("token", credentials)

        assert redis_manager.logout("token", tokens.refresh_token) == 2
        assert not redis_manager.check("token", tokens.access_token)
