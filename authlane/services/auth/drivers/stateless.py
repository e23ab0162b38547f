"""Signed (JWT) access tokens with stored refresh tokens."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, ClassVar

from authlane.infra.jwt.pyjwt_codec import PyJWTCodec, looks_like_jwt, to_json_safe
from authlane.services._shared.errors import AuthErrorKind, AuthenticationError
from authlane.services._shared.ports.token_store import TokenType
from authlane.services.auth.config import DriverKind
from authlane.services.auth.drivers.base import AuthDriver
from authlane.services.auth.dto import AuthResponse, TokenInvalidationContext
from authlane.services.auth.principal import Principal


class StatelessDriver(AuthDriver):
    """
    Access tokens are JWTs verified by signature; refresh tokens are stored.

    Claims: ``sub`` (principal id as string), ``uid`` (principal id as
    issued), ``iat``, ``exp``, ``jti`` (session correlation id), ``grd``
    (guard) and ``user`` (JSON-safe public projection, informational only).

    A signed token verifies only while its session still holds a refresh
    record, so deleting a session's refresh tokens revokes its access tokens.
    """

    kind: ClassVar[DriverKind] = DriverKind.JWT
    DEFAULT_ACCESS_TTL: ClassVar[int | None] = 3600

    def __init__(self, *, codec: PyJWTCodec | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.codec = codec or PyJWTCodec(
            self.provider.secret, self.provider.algorithm, self.provider.leeway
        )

    # ---- issuing ----

    def _sign(self, principal: Principal, session_id: str, now: datetime) -> str:
        ttl = self.access_ttl or self.DEFAULT_ACCESS_TTL or 0
        issued_at = int(now.timestamp())
        claims = {
            "sub": principal.auth_identifier,
            "uid": to_json_safe(principal.id),
            "iat": issued_at,
            "exp": issued_at + ttl,
            "jti": session_id,
            "grd": self.guard,
            "user": to_json_safe(principal.projection),
        }
        return self.codec.encode(claims)

    def generate_tokens(self, principal: Principal) -> AuthResponse:
        now = self.now_utc()
        session_id = self._new_session_id()
        access = self._sign(principal, session_id, now)
        refresh = self._issue_refresh(principal, session_id, now)
        return self._response(principal, access, refresh, session_id)

    # ---- verification ----

    def validate_token_format(self, token: str) -> bool:
        return looks_like_jwt(token)

    def owns_token(self, value: Any) -> bool:
        return looks_like_jwt(value) or self._refresh_record(value) is not None

    def _claims(self, token: str, *, verify_exp: bool = True) -> dict[str, Any]:
        if not self.validate_token_format(token):
            raise AuthenticationError(AuthErrorKind.MALFORMED_TOKEN, "Invalid token format")
        claims = self.codec.decode(token, verify_exp=verify_exp)
        if claims.get("grd", self.guard) != self.guard:
            raise AuthenticationError(
                AuthErrorKind.UNKNOWN_TOKEN, "Token was not issued by this guard"
            )
        if "user" not in claims:
            raise AuthenticationError(AuthErrorKind.MALFORMED_TOKEN, "Invalid token payload")
        return claims

    @staticmethod
    def _principal_id(claims: dict[str, Any]) -> Any:
        return claims.get("uid", claims["sub"])

    def _session_alive(self, session_id: str, principal_id: Any) -> bool:
        now = self.now_utc()
        owner = str(principal_id)
        return any(
            r.principal_id == owner and not r.is_expired(now)
            for r in self.store.find_by_session(session_id, self.guard, TokenType.REFRESH)
        )

    def verify_token(self, token: str) -> Principal:
        if not self.validate_token_format(token):
            raise AuthenticationError(AuthErrorKind.MALFORMED_TOKEN, "Invalid token format")
        if self.store.is_blacklisted(token):
            raise AuthenticationError(
                AuthErrorKind.BLACKLISTED_TOKEN, "Token has been revoked"
            )
        claims = self._claims(token)
        principal_id = self._principal_id(claims)
        if not self._session_alive(str(claims["jti"]), principal_id):
            raise AuthenticationError(AuthErrorKind.UNKNOWN_TOKEN, "Session has been revoked")
        return self.resolve_principal(principal_id)

    # ---- rotation ----

    def refresh_token(self, refresh_token: str) -> AuthResponse:
        record = self._load_refresh(refresh_token)
        principal = self.resolve_principal(record.principal_id)
        session_id = record.session_id or str(record.metadata.get("session_id"))
        now = self.now_utc()
        access = self._sign(principal, session_id, now)
        refresh = self._issue_refresh(principal, session_id, now)
        self.store.delete(record.token)
        return self._response(principal, access, refresh, session_id)

    # ---- revocation ----

    def invalidation_context(self, token: str) -> TokenInvalidationContext:
        if not looks_like_jwt(token) and self.is_refresh_format(token):
            record = self._refresh_record(token)
            if record is None:
                raise AuthenticationError(AuthErrorKind.UNKNOWN_TOKEN, "Refresh token not found")
            return self._refresh_context(record)
        # Expired tokens may still log out so that their refresh token goes too.
        claims = self._claims(token, verify_exp=False)
        return TokenInvalidationContext(
            principal_id=self._principal_id(claims),
            guard=self.guard,
            access_token=token,
            token_expiry=datetime.fromtimestamp(int(claims["exp"]), UTC),
            claims=claims,
            metadata={"session_id": str(claims["jti"])},
        )

