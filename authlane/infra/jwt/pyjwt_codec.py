"""Signed access tokens encoded with PyJWT."""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any

import jwt

from authlane.services._shared.errors import AuthErrorKind, AuthenticationError, misconfigured

_SEGMENT = re.compile(r"[A-Za-z0-9_-]+")

#: Secrets that are refused at construction time.
PLACEHOLDER_SECRETS = frozenset({"default-secret-key", "CHANGE_ME", "CHANGE_ME_JWT", "secret"})

REQUIRED_CLAIMS = ("sub", "iat", "exp", "jti")


def looks_like_jwt(token: Any) -> bool:
    """Three non-empty base64url segments separated by dots."""
    if not isinstance(token, str):
        return False
    parts = token.split(".")
    return len(parts) == 3 and all(_SEGMENT.fullmatch(p) for p in parts)


def to_json_safe(value: Any) -> Any:
    """
    Normalize ``value`` into JSON-serializable data.

    Mappings and sequences are converted recursively; dates become ISO-8601
    strings; enums collapse to their value; anything else unknown falls back
    to ``str(value)``.
    """
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, Mapping):
        return {str(k): to_json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_json_safe(v) for v in value]
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Enum):
        return to_json_safe(value.value)
    if isinstance(value, Decimal):
        return str(value)
    return str(value)


class PyJWTCodec:
    """
    Encode and verify HMAC/RSA signed tokens for one provider.

    :param secret: Signing key. Empty or placeholder values are rejected.
    :param algorithm: JWS algorithm, ``HS256`` by default.
    :param leeway: Clock skew tolerance in seconds applied to ``exp``/``iat``.
    """

    def __init__(self, secret: str | None, algorithm: str = "HS256", leeway: int = 0) -> None:
        if not secret or not str(secret).strip() or secret in PLACEHOLDER_SECRETS:
            raise misconfigured("A non-default signing secret is required for JWT guards.")
        self._secret = secret
        self.algorithm = algorithm
        self.leeway = leeway

    def encode(self, claims: Mapping[str, Any]) -> str:
        return jwt.encode(dict(claims), self._secret, algorithm=self.algorithm)

    def decode(self, token: str, *, verify_exp: bool = True) -> dict[str, Any]:
        """
        Verify the signature (and expiry unless disabled) and return the claims.

        :raises AuthenticationError: ``expired_token`` or ``malformed_token``.
        """
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                leeway=self.leeway,
                options={"require": list(REQUIRED_CLAIMS), "verify_exp": verify_exp},
            )
        except jwt.ExpiredSignatureError as exc:
            raise AuthenticationError(AuthErrorKind.EXPIRED_TOKEN, "Token has expired") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthenticationError(AuthErrorKind.MALFORMED_TOKEN, "Invalid token") from exc
