"""Named authentication context binding a driver to a principal provider."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from authlane.services._shared.base import BaseService
from authlane.services._shared.errors import AuthErrorKind, AuthenticationError
from authlane.services._shared.ports.password_hasher import PasswordHasher
from authlane.services._shared.ports.user_directory import UserDirectory
from authlane.services.auth.config import ProviderConfig
from authlane.services.auth.drivers.base import AuthDriver
from authlane.services.auth.dto import AuthResponse
from authlane.services.auth.principal import Principal
from authlane.services.auth.strategies import LogoutType

INVALID_CREDENTIALS = "Invalid credentials"


class Guard(BaseService):
    """
    Login, verification, rotation and logout for one guard.

    Every credential failure (bad shape, unknown identifier, wrong password)
    raises the same ``invalid_credentials`` error so callers cannot probe
    which identifiers exist.
    """

    def __init__(
        self,
        name: str,
        *,
        driver: AuthDriver,
        provider: ProviderConfig,
        directory: UserDirectory,
        hasher: PasswordHasher,
    ) -> None:
        super().__init__()
        self.name = name
        self.driver = driver
        self.provider = provider
        self.directory = directory
        self.hasher = hasher

    # ---- credentials ----

    def _identifiers(self, credentials: Any) -> tuple[dict[str, Any], str]:
        if not isinstance(credentials, Mapping) or not credentials:
            raise AuthenticationError(AuthErrorKind.INVALID_CREDENTIALS, INVALID_CREDENTIALS)
        password = credentials.get("password")
        if not isinstance(password, str) or not password:
            raise AuthenticationError(AuthErrorKind.INVALID_CREDENTIALS, INVALID_CREDENTIALS)
        values = {
            f: credentials[f]
            for f in self.provider.identifying_fields
            if credentials.get(f) not in (None, "")
        }
        if not values:
            raise AuthenticationError(AuthErrorKind.INVALID_CREDENTIALS, INVALID_CREDENTIALS)
        return values, password

    def attempt(self, credentials: Mapping[str, Any]) -> Principal | None:
        """
        Check credentials without issuing tokens.

        :returns: The principal, or ``None`` when the credentials do not match.
            Inactive principals are returned; callers decide what to do.
        """
        try:
            values, password = self._identifiers(credentials)
        except AuthenticationError:
            return None
        record = self.directory.find_by_credential_fields(
            values, self.provider.identifying_fields, self.provider.table
        )
        if record is None:
            return None
        principal = Principal.from_record(record, self.provider)
        if not principal.password_hash:
            return None
        if not self.hasher.verify(password, principal.password_hash):
            return None
        return principal

    def login(self, credentials: Mapping[str, Any]) -> AuthResponse:
        self._identifiers(credentials)
        principal = self.attempt(credentials)
        if principal is None:
            self.log.warning(
                "login rejected",
                extra={
                    "event": "auth.login_failed",
                    "guard": self.name,
                    "kind": AuthErrorKind.INVALID_CREDENTIALS.value,
                },
            )
            raise AuthenticationError(AuthErrorKind.INVALID_CREDENTIALS, INVALID_CREDENTIALS)
        return self.login_principal(principal)

    def login_principal(self, principal: Principal) -> AuthResponse:
        """Issue tokens for a principal authenticated by other means."""
        if not principal.active:
            self.log.warning(
                "login rejected",
                extra={
                    "event": "auth.login_failed",
                    "guard": self.name,
                    "principal_id": principal.auth_identifier,
                    "kind": AuthErrorKind.INACTIVE_PRINCIPAL.value,
                },
            )
            raise AuthenticationError(AuthErrorKind.INACTIVE_PRINCIPAL, "User account is inactive")
        response = self.driver.authenticate(principal)
        self.log.info(
            "login succeeded",
            extra={
                "event": "auth.login",
                "guard": self.name,
                "principal_id": principal.auth_identifier,
            },
        )
        return response

    # ---- tokens ----

    def validate_token_format(self, token: str) -> bool:
        return self.driver.validate_token_format(token)

    def verify(self, token: str) -> Principal:
        try:
            return self.driver.verify_token(token)
        except AuthenticationError as exc:
            self.log.info(
                "token rejected",
                extra={"event": "auth.verify_failed", "guard": self.name, "kind": exc.kind.value},
            )
            raise

    def user(self, token: str) -> Principal:
        return self.verify(token)

    def check(self, token: str) -> bool:
        try:
            self.driver.verify_token(token)
        except AuthenticationError:
            return False
        return True

    def refresh(self, refresh_token: str) -> AuthResponse:
        response = self.driver.refresh_token(refresh_token)
        self.log.info(
            "tokens refreshed",
            extra={
                "event": "auth.refresh",
                "guard": self.name,
                "principal_id": str(response.user.get(self.provider.primary_key)),
            },
        )
        return response

    # ---- logout ----

    def logout(self, token: str, *, refresh_token: str | None = None) -> int:
        """Revoke the session ``token`` belongs to."""
        removed = self.driver.invalidate_token(
            token, LogoutType.SINGLE_DEVICE, refresh_token=refresh_token
        )
        self.log.info("logout", extra={"event": "auth.logout", "guard": self.name})
        return removed

    def logout_all(self, token_or_principal_id: Any) -> int:
        """Revoke every session of the principal, given one of its tokens or its id."""
        if self.driver.owns_token(token_or_principal_id):
            removed = self.driver.invalidate_token(token_or_principal_id, LogoutType.ALL_DEVICES)
        else:
            removed = self.driver.invalidate_principal(token_or_principal_id)
        self.log.info("logout everywhere", extra={"event": "auth.logout_all", "guard": self.name})
        return removed

    def logout_others(self, token: str) -> int:
        """Revoke every session except the one ``token`` belongs to."""
        removed = self.driver.invalidate_other_sessions(token)
        self.log.info(
            "logout other sessions", extra={"event": "auth.logout_others", "guard": self.name}
        )
        return removed
