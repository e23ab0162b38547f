from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class AuthResponse:
    """
    Tokens issued for one login or refresh.

    :param user: Public projection of the principal.
    :param access_token: Token presented on every request.
    :param refresh_token: Token exchanged for a new pair.
    :param token_type: Authorization scheme, always ``"Bearer"`` for built-in drivers.
    :param expires_in: Access token lifetime in seconds (``None`` = non-expiring).
    :param refresh_expires_in: Refresh token lifetime in seconds.
    :param metadata: Extra attributes such as ``guard`` and ``session_id``.
    """

    user: Mapping[str, Any]
    access_token: str
    refresh_token: str | None = None
    token_type: str = "Bearer"
    expires_in: int | None = None
    refresh_expires_in: int | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def has_tokens(self) -> bool:
        return bool(self.access_token)

    @property
    def authorization_header(self) -> str:
        return f"{self.token_type} {self.access_token}"

    def to_dict(self) -> dict[str, Any]:
        """Serializable view; drops the password field and ``None`` values."""
        user = {k: v for k, v in self.user.items() if k != "password"}
        data: dict[str, Any] = {
            "user": user,
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_type": self.token_type,
            "expires_in": self.expires_in,
            "refresh_expires_in": self.refresh_expires_in,
            "metadata": dict(self.metadata) or None,
        }
        return {k: v for k, v in data.items() if v is not None}


@dataclass(frozen=True, slots=True)
class TokenInvalidationContext:
    """
    Everything a logout strategy needs about the presented token.

    ``token_expiry`` is only set for signed tokens; strategies use its
    presence to choose between blacklisting and deleting.
    """

    principal_id: Any
    guard: str
    access_token: str | None = None
    refresh_token: str | None = None
    token_expiry: datetime | None = None
    claims: Mapping[str, Any] | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_signed(self) -> bool:
        return self.token_expiry is not None

    @property
    def session_id(self) -> str | None:
        value = self.metadata.get("session_id")
        return str(value) if value else None
