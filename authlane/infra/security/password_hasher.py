"""Password hashing backed by :mod:`werkzeug.security`."""

from __future__ import annotations

from werkzeug.security import check_password_hash, generate_password_hash


class WerkzeugPasswordHasher:
    """
    Verify and produce werkzeug password hashes (scrypt/pbkdf2).

    A malformed or empty stored hash never verifies.
    """

    def __init__(self, method: str | None = None) -> None:
        self.method = method

    def verify(self, plain: str, hashed: str) -> bool:
        if not plain or not hashed:
            return False
        try:
            return check_password_hash(hashed, plain)
        except ValueError:
            # Unknown hash method or corrupt hash string
            return False

    def hash(self, plain: str) -> str:
        if not isinstance(plain, str) or not plain:
            raise ValueError("Password must be a non-empty string.")
        if self.method:
            return generate_password_hash(plain, method=self.method)
        return generate_password_hash(plain)
