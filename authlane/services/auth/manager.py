"""Entry point resolving guards from configuration."""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from typing import Any

from authlane.infra.security.token_generator import SecureTokenGenerator
from authlane.services._shared.base import BaseService
from authlane.services._shared.errors import AuthErrorKind, AuthenticationError, misconfigured
from authlane.services._shared.ports.password_hasher import PasswordHasher
from authlane.services._shared.ports.token_generator import TokenGenerator
from authlane.services._shared.ports.token_store import TokenStore
from authlane.services._shared.ports.user_directory import UserDirectory
from authlane.services.auth.config import AuthConfig, DriverKind
from authlane.services.auth.drivers.base import AuthDriver
from authlane.services.auth.drivers.stateful import StatefulDriver
from authlane.services.auth.drivers.stateless import StatelessDriver
from authlane.services.auth.dto import AuthResponse
from authlane.services.auth.guard import Guard
from authlane.services.auth.principal import Principal
from authlane.services.auth.strategies import InvalidationStrategyFactory

#: Called with keyword arguments ``guard, provider, store, directory,
#: generator, strategies`` and returning a driver.
DriverFactory = Callable[..., AuthDriver]


class DriverRegistry:
    """
    Driver factories by kind, and driver instances by ``(guard, provider)``.

    Instances are created once per key; later lookups return the same object.
    """

    def __init__(self, factories: Mapping[str, DriverFactory] | None = None) -> None:
        self._factories: dict[str, DriverFactory] = {
            DriverKind.JWT.value: StatelessDriver,
            DriverKind.TOKEN.value: StatefulDriver,
        }
        self._factories.update(factories or {})
        self._drivers: dict[tuple[str, str], AuthDriver] = {}
        self._lock = threading.Lock()

    def register(self, kind: str, factory: DriverFactory) -> None:
        self._factories[str(kind)] = factory

    def supports(self, kind: str) -> bool:
        return str(kind) in self._factories

    def factory_for(self, kind: str) -> DriverFactory:
        try:
            return self._factories[str(kind)]
        except KeyError:
            raise misconfigured(f"Unsupported auth driver: {kind!r}") from None

    def get_or_create(self, key: tuple[str, str], build: Callable[[], AuthDriver]) -> AuthDriver:
        driver = self._drivers.get(key)
        if driver is not None:
            return driver
        with self._lock:
            if key not in self._drivers:
                self._drivers[key] = build()
            return self._drivers[key]

    def clear(self) -> None:
        with self._lock:
            self._drivers.clear()


class AuthManager(BaseService):
    """
    Unified authentication surface over every configured guard.

    :param config: Guard and provider settings.
    :param store: Token persistence shared by every guard.
    :param directory: Principal lookups.
    :param hasher: Password verification.
    :param generator: Token material (CSPRNG by default).
    :param registry: Driver registry; a fresh one per manager by default.
    :param strategies: Logout strategy factory shared by drivers.
    """

    MIN_REFRESH_TOKEN_LENGTH = 16

    def __init__(
        self,
        config: AuthConfig,
        *,
        store: TokenStore,
        directory: UserDirectory,
        hasher: PasswordHasher,
        generator: TokenGenerator | None = None,
        registry: DriverRegistry | None = None,
        strategies: InvalidationStrategyFactory | None = None,
    ) -> None:
        super().__init__()
        self.config = config
        self.store = store
        self.directory = directory
        self.hasher = hasher
        self.generator = generator or SecureTokenGenerator()
        self.registry = registry or DriverRegistry()
        self.strategies = strategies or InvalidationStrategyFactory()
        self._guards: dict[str, Guard] = {}
        self._lock = threading.Lock()

    # ---- guards ----

    def has_guard(self, name: str) -> bool:
        return name in self.config.guards

    def register_driver(self, kind: str, factory: DriverFactory) -> None:
        """Make a custom driver kind available to guards configured with it."""
        self.registry.register(kind, factory)

    def guard(self, name: str | None = None) -> Guard:
        """
        Return the guard named ``name`` (the default guard when omitted).

        :raises AuthenticationError: ``misconfigured_guard`` if its config is
            incomplete or its driver cannot be built.
        """
        name = name or self.config.default_guard
        guard = self._guards.get(name)
        if guard is not None:
            return guard
        with self._lock:
            if name not in self._guards:
                self._guards[name] = self._build_guard(name)
            return self._guards[name]

    def _build_guard(self, name: str) -> Guard:
        guard_cfg, provider = self.config.resolve(name)
        factory = self.registry.factory_for(guard_cfg.driver)
        driver = self.registry.get_or_create(
            (name, provider.key),
            lambda: factory(
                guard=name,
                provider=provider,
                store=self.store,
                directory=self.directory,
                generator=self.generator,
                strategies=self.strategies,
            ),
        )
        self.log.debug(
            "guard %s uses %s driver", name, guard_cfg.driver, extra={"guard": name}
        )
        return Guard(
            name,
            driver=driver,
            provider=provider,
            directory=self.directory,
            hasher=self.hasher,
        )

    def warm(self) -> list[str]:
        """Construct every configured guard so misconfiguration surfaces early."""
        return [self.guard(name).name for name in self.config.guards]

    # ---- operations ----

    def login(self, guard: str | None, credentials: Mapping[str, Any]) -> AuthResponse:
        return self.guard(guard).login(credentials)

    def verify(self, guard: str | None, token: str) -> Principal:
        return self.guard(guard).verify(token)

    def check(self, guard: str | None, token: str) -> bool:
        return self.guard(guard).check(token)

    def refresh(self, guard: str | None, refresh_token: str) -> AuthResponse:
        if not isinstance(refresh_token, str) or len(refresh_token) < self.MIN_REFRESH_TOKEN_LENGTH:
            raise AuthenticationError(AuthErrorKind.MALFORMED_TOKEN, "Invalid refresh token format")
        return self.guard(guard).refresh(refresh_token)

    def logout(self, guard: str | None, token: str, *, refresh_token: str | None = None) -> int:
        return self.guard(guard).logout(token, refresh_token=refresh_token)

    def logout_all(self, guard: str | None, token_or_principal_id: Any) -> int:
        return self.guard(guard).logout_all(token_or_principal_id)

    def logout_others(self, guard: str | None, token: str) -> int:
        return self.guard(guard).logout_others(token)

    def cleanup_expired(self) -> int:
        removed = self.store.cleanup_expired()
        self.log.info("expired tokens removed: %s", removed, extra={"event": "auth.cleanup"})
        return removed
