"""Unit tests for AuthManager guard resolution and the driver registry."""

from __future__ import annotations

import threading

import pytest

from authlane.services._shared.errors import AuthenticationError, AuthErrorKind
from authlane.services.auth.config import AuthConfig
from authlane.services.auth.drivers.stateful import StatefulDriver
from authlane.services.auth.manager import AuthManager, DriverRegistry
from tests.helpers.auth import UNIT_SECRET


def _manager(guards, providers, token_store, directory, hasher, **kwargs):
    config = AuthConfig.from_mapping(guards, providers, default_guard=next(iter(guards)))
    return AuthManager(config, store=token_store, directory=directory, hasher=hasher, **kwargs)


def _misconfigured(excinfo) -> bool:
    return excinfo.value.kind is AuthErrorKind.MISCONFIGURED_GUARD


class TestGuardResolution:
    def test_default_guard(self, manager):
        assert manager.guard().name == "api"
        assert manager.guard(None) is manager.guard("api")

    def test_guards_are_cached(self, manager):
        assert manager.guard("token") is manager.guard("token")

    def test_has_guard(self, manager):
        assert manager.has_guard("api")
        assert not manager.has_guard("admin")

    def test_warm_builds_every_guard(self, manager):
        assert sorted(manager.warm()) == ["api", "token"]

    def test_undefined_guard(self, manager):
        with pytest.raises(AuthenticationError) as info:
            manager.guard("admin")
        assert _misconfigured(info)

    def test_concurrent_lookups_share_one_guard(self, manager):
        seen = []

        def lookup():
            seen.append(manager.guard("api"))

        threads = [threading.Thread(target=lookup) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len({id(g) for g in seen}) == 1


class TestMisconfiguration:
    @pytest.mark.parametrize("secret", [None, "", "secret", "default-secret-key"])
    def test_jwt_guard_needs_real_secret(self, secret, token_store, directory, hasher):
        manager = _manager(
            {"api": {"driver": "jwt", "provider": "users"}},
            {"users": {"table": "users", "secret": secret}},
            token_store,
            directory,
            hasher,
        )
        with pytest.raises(AuthenticationError) as info:
            manager.guard("api")
        assert _misconfigured(info)

    def test_unknown_driver(self, token_store, directory, hasher):
        manager = _manager(
            {"api": {"driver": "saml", "provider": "users"}},
            {"users": {"table": "users"}},
            token_store,
            directory,
            hasher,
        )
        with pytest.raises(AuthenticationError) as info:
            manager.guard("api")
        assert _misconfigured(info)
        assert "saml" in info.value.message

    def test_missing_provider(self, token_store, directory, hasher):
        manager = _manager(
            {"api": {"driver": "token", "provider": "staff"}},
            {"users": {"table": "users"}},
            token_store,
            directory,
            hasher,
        )
        with pytest.raises(AuthenticationError) as info:
            manager.guard("api")
        assert _misconfigured(info)

    def test_provider_without_table(self, token_store, directory, hasher):
        manager = _manager(
            {"api": {"driver": "token", "provider": "users"}},
            {"users": {"identifying_fields": ["email"]}},
            token_store,
            directory,
            hasher,
        )
        with pytest.raises(AuthenticationError) as info:
            manager.warm()
        assert _misconfigured(info)

    def test_non_numeric_ttl(self):
        with pytest.raises(AuthenticationError) as info:
            AuthConfig.from_mapping({}, {"users": {"table": "users", "access_ttl": "soon"}})
        assert _misconfigured(info)

    def test_operations_surface_misconfiguration(self, token_store, directory, hasher):
        manager = _manager(
            {"api": {"driver": "jwt", "provider": "users"}},
            {"users": {"table": "users"}},
            token_store,
            directory,
            hasher,
        )
        with pytest.raises(AuthenticationError) as info:
            manager.login("api", {"email": "ada@example.com", "password": "x"})
        assert _misconfigured(info)


class TestDriverRegistry:
    def test_custom_driver_kind(self, token_store, directory, hasher, credentials):
        class LongLivedDriver(StatefulDriver):
            ACCESS_TOKEN_LENGTH = 96

        manager = _manager(
            {"kiosk": {"driver": "long", "provider": "users"}},
            {"users": {"table": "users"}},
            token_store,
            directory,
            hasher,
        )
        manager.register_driver("long", LongLivedDriver)

        tokens = manager.login("kiosk", credentials)

        assert isinstance(manager.guard("kiosk").driver, LongLivedDriver)
        assert len(tokens.access_token.partition("|")[2]) == 96

    def test_driver_instances_are_created_once_per_key(self):
        registry = DriverRegistry()
        built = []

        def build():
            built.append(object())
            return built[-1]

        first = registry.get_or_create(("api", "users"), build)
        second = registry.get_or_create(("api", "users"), build)
        assert first is second
        assert len(built) == 1

        registry.clear()
        assert registry.get_or_create(("api", "users"), build) is not first

    def test_supports(self):
        registry = DriverRegistry()
        assert registry.supports("jwt") and registry.supports("token")
        assert not registry.supports("saml")


class TestHousekeeping:
    def test_cleanup_expired_delegates_to_store(self, manager, token_store, credentials,
                                                freeze_time):
        with freeze_time("2024-01-01 00:00:00") as frozen:
            manager.login("api", credentials)
            manager.login("token", credentials)
            frozen.move_to("2024-01-02 00:00:00")
            assert manager.cleanup_expired() == 2
        # the non-expiring opaque access token survives
        assert len(token_store) == 1


def test_independent_secrets_per_provider(token_store, directory, hasher, credentials):
    manager = _manager(
        {
            "api": {"driver": "jwt", "provider": "users"},
            "partner": {"driver": "jwt", "provider": "partners"},
        },
        {
            "users": {"table": "users", "secret": UNIT_SECRET},
            "partners": {"table": "users", "secret": UNIT_SECRET[::-1]},
        },
        token_store,
        directory,
        hasher,
    )
    token = manager.login("api", credentials).access_token
    with pytest.raises(AuthenticationError) as info:
        manager.verify("partner", token)
    assert info.value.kind is AuthErrorKind.MALFORMED_TOKEN
