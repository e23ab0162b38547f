from __future__ import annotations

from typing import Protocol


class PasswordHasher(Protocol):
    """Verify (and produce) password hashes."""

    def verify(self, plain: str, hashed: str) -> bool:
        """Return ``True`` if ``plain`` matches ``hashed``."""

    def hash(self, plain: str) -> str:
        """Return a salted hash for ``plain``."""
