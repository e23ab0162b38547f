from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from authlane.services._shared.errors import AuthErrorKind, AuthenticationError
from authlane.services.auth.config import ProviderConfig

#: Values of the provider's active column that count as "active".
ACTIVE_VALUES = (True, 1, "1", "true", None)


def is_active_value(value: Any) -> bool:
    if isinstance(value, str):
        value = value.strip().lower()
    return value in ACTIVE_VALUES


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Immutable snapshot of an authenticated principal.

    :ivar id: Provider-defined identifier.
    :ivar id_field: Name of the identifier column.
    :ivar password_hash: Stored credential hash, if the record carries one.
    :ivar attributes: Public projection; never contains the password field.
    :ivar active: Whether the record's active flag allows authentication.
    """

    id: Any
    id_field: str = "id"
    password_hash: str | None = field(default=None, repr=False)
    attributes: Mapping[str, Any] = field(default_factory=dict)
    active: bool = True

    @classmethod
    def from_record(cls, record: Mapping[str, Any], provider: ProviderConfig) -> Principal:
        data = dict(record)
        identifier = data.get(provider.primary_key)
        if identifier is None:
            raise AuthenticationError(
                AuthErrorKind.UNKNOWN_PRINCIPAL, "Principal record has no identifier"
            )
        hashed = data.get(provider.password_field)
        return cls(
            id=identifier,
            id_field=provider.primary_key,
            password_hash=str(hashed) if hashed else None,
            attributes={k: v for k, v in data.items() if k not in provider.private_fields},
            active=is_active_value(data.get(provider.active_field)),
        )

    @property
    def auth_identifier(self) -> str:
        """Identifier as stored on token records."""
        return str(self.id)

    @property
    def projection(self) -> dict[str, Any]:
        return dict(self.attributes)
