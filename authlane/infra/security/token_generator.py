"""Cryptographically secure token material based on :mod:`secrets`."""

from __future__ import annotations

import re
import secrets
import string
import uuid

_BARE = re.compile(r"[A-Za-z0-9_-]+")
_PREFIXED = re.compile(r"[A-Za-z0-9_-]+\|[A-Za-z0-9_-]+")


class SecureTokenGenerator:
    """
    Token generator drawing from the operating system CSPRNG.

    Tokens are URL-safe base64 characters truncated to the requested length;
    a prefix (typically the principal id) is joined with ``"|"``.
    """

    PREFIX_SEPARATOR = "|"

    def generate(self, length: int = 64, prefix: str | None = None) -> str:
        if length < 1:
            raise ValueError("Token length must be a positive integer.")
        token = secrets.token_urlsafe(length)[:length]
        if prefix is None:
            return token
        if not _BARE.fullmatch(prefix):
            raise ValueError(f"Token prefix contains unsupported characters: {prefix!r}")
        return f"{prefix}{self.PREFIX_SEPARATOR}{token}"

    def is_valid_format(self, token: str) -> bool:
        if not isinstance(token, str) or not token:
            return False
        return bool(_BARE.fullmatch(token) or _PREFIXED.fullmatch(token))

    def can_prefix(self, value: str) -> bool:
        """Whether ``value`` may be used as a token prefix."""
        return bool(_BARE.fullmatch(value))

    # ---- other shapes ----

    @staticmethod
    def generate_numeric(length: int = 6) -> str:
        """Random digits, e.g. one-time codes."""
        return "".join(secrets.choice(string.digits) for _ in range(length))

    @staticmethod
    def generate_alphanumeric(length: int = 32) -> str:
        alphabet = string.ascii_letters + string.digits
        return "".join(secrets.choice(alphabet) for _ in range(length))

    @staticmethod
    def generate_uuid() -> str:
        return str(uuid.uuid4())
