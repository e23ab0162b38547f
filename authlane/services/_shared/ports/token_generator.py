from __future__ import annotations

from typing import Protocol


class TokenGenerator(Protocol):
    """
    Source of random token material.

    Implementations MUST draw from a CSPRNG.
    """

    def generate(self, length: int = 64, prefix: str | None = None) -> str:
        """
        Return ``length`` URL-safe random characters.

        With ``prefix`` the result is ``"<prefix>|<random>"``.
        """

    def is_valid_format(self, token: str) -> bool:
        """Accept ``[A-Za-z0-9_-]+`` optionally preceded by ``"<prefix>|"``."""

    def can_prefix(self, value: str) -> bool:
        """Whether ``value`` fits the token alphabet and may prefix a token."""
