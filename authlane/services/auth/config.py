"""Guard and provider configuration for the authentication services."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from authlane.services._shared.errors import misconfigured

DEFAULT_REFRESH_TTL = 7 * 24 * 3600


class DriverKind(str, Enum):
    """Built-in token technologies."""

    JWT = "jwt"
    TOKEN = "token"


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    """
    Where principals live and how their tokens are minted.

    :param key: Provider name referenced by guards.
    :param table: Table (or collection) holding principal records.
    :param primary_key: Identifier column.
    :param identifying_fields: Columns accepted as login identifiers.
    :param password_field: Column holding the password hash; never exposed.
    :param active_field: Column flagging active principals. Missing or
        ``None`` values count as active.
    :param hidden_fields: Extra columns left out of the public projection.
    :param secret: Signing key for JWT guards.
    :param algorithm: JWS algorithm for JWT guards.
    :param access_ttl: Access token lifetime in seconds (driver default if ``None``).
    :param refresh_ttl: Refresh token lifetime in seconds.
    :param leeway: Clock skew tolerance in seconds for JWT verification.
    """

    key: str
    table: str
    primary_key: str = "id"
    identifying_fields: tuple[str, ...] = ("email",)
    password_field: str = "password"
    active_field: str = "is_active"
    hidden_fields: tuple[str, ...] = ()
    secret: str | None = None
    algorithm: str = "HS256"
    access_ttl: int | None = None
    refresh_ttl: int = DEFAULT_REFRESH_TTL
    leeway: int = 0

    @property
    def private_fields(self) -> frozenset[str]:
        return frozenset({self.password_field, "password", *self.hidden_fields})

    @classmethod
    def from_mapping(cls, key: str, raw: Mapping[str, Any]) -> ProviderConfig:
        if not isinstance(raw, Mapping):
            raise misconfigured(f"Auth provider '{key}' must be a mapping.")
        fields_ = raw.get("identifying_fields", raw.get("fields", ("email",)))
        if isinstance(fields_, str):
            fields_ = (fields_,)
        refresh_ttl = raw.get("refresh_ttl")
        try:
            return cls(
                key=key,
                table=str(raw.get("table") or ""),
                primary_key=str(raw.get("primary_key") or "id"),
                identifying_fields=tuple(str(f) for f in fields_),
                password_field=str(raw.get("password_field") or "password"),
                active_field=str(raw.get("active_field") or "is_active"),
                hidden_fields=tuple(str(f) for f in raw.get("hidden_fields") or ()),
                secret=raw.get("secret"),
                algorithm=str(raw.get("algorithm") or "HS256"),
                access_ttl=_optional_int(raw.get("access_ttl")),
                refresh_ttl=DEFAULT_REFRESH_TTL if refresh_ttl is None else int(refresh_ttl),
                leeway=int(raw.get("leeway") or 0),
            )
        except (TypeError, ValueError) as exc:
            raise misconfigured(f"Auth provider '{key}' is invalid: {exc}") from exc

    def validate(self) -> None:
        """Raise ``misconfigured_guard`` when the provider cannot serve a guard."""
        if not self.table:
            raise misconfigured(f"Auth provider '{self.key}' has no table.")
        if not self.identifying_fields:
            raise misconfigured(f"Auth provider '{self.key}' has no identifying fields.")
        if self.access_ttl is not None and self.access_ttl <= 0:
            raise misconfigured(f"Auth provider '{self.key}' access_ttl must be positive.")
        if self.refresh_ttl <= 0:
            raise misconfigured(f"Auth provider '{self.key}' refresh_ttl must be positive.")


@dataclass(frozen=True, slots=True)
class GuardConfig:
    """Binding of a guard name to a driver kind and a provider key."""

    name: str
    driver: str
    provider: str


@dataclass(frozen=True, slots=True)
class AuthConfig:
    """Resolved ``AUTH_*`` settings."""

    guards: Mapping[str, GuardConfig] = field(default_factory=dict)
    providers: Mapping[str, ProviderConfig] = field(default_factory=dict)
    default_guard: str = "api"

    @classmethod
    def from_mapping(
        cls,
        guards: Mapping[str, Mapping[str, Any]],
        providers: Mapping[str, Mapping[str, Any]],
        default_guard: str = "api",
    ) -> AuthConfig:
        """
        Build from plain dictionaries.

        Guard entries are parsed leniently; driver and provider references
        are checked when a guard is first constructed.
        """
        parsed_guards: dict[str, GuardConfig] = {}
        for name, raw in (guards or {}).items():
            if not isinstance(raw, Mapping):
                raise misconfigured(f"Auth guard '{name}' must be a mapping.")
            parsed_guards[name] = GuardConfig(
                name=name,
                driver=str(raw.get("driver") or "").strip().lower(),
                provider=str(raw.get("provider") or ""),
            )
        parsed_providers = {
            key: ProviderConfig.from_mapping(key, raw) for key, raw in (providers or {}).items()
        }
        return cls(guards=parsed_guards, providers=parsed_providers, default_guard=default_guard)

    @classmethod
    def from_flask_config(cls, config: Mapping[str, Any]) -> AuthConfig:
        return cls.from_mapping(
            config.get("AUTH_GUARDS") or {},
            config.get("AUTH_PROVIDERS") or {},
            default_guard=config.get("AUTH_DEFAULT_GUARD") or "api",
        )

    def resolve(self, name: str) -> tuple[GuardConfig, ProviderConfig]:
        """
        Return the guard and its provider.

        :raises AuthenticationError: ``misconfigured_guard`` when either is missing.
        """
        guard = self.guards.get(name)
        if guard is None:
            raise misconfigured(f"Auth guard '{name}' is not defined.")
        if not guard.driver:
            raise misconfigured(f"Auth guard '{name}' has no driver.")
        provider = self.providers.get(guard.provider)
        if provider is None:
            raise misconfigured(
                f"Auth provider '{guard.provider}' for guard '{name}' is not defined."
            )
        provider.validate()
        return guard, provider


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)
