"""User model backing the default ``users`` auth provider."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Boolean, String, UniqueConstraint, true
from sqlalchemy.orm import Mapped, mapped_column, validates

from authlane.core.extensions import db
from authlane.infra.security.password_hasher import WerkzeugPasswordHasher

from .base import PKMixin, ReprMixin, TimestampMixin

_hasher = WerkzeugPasswordHasher()


class User(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Authentication identity.

    Fields
    ------
    email : str
        Login email. Stored normalized (lowercase, trimmed).
    username : str
        Public handle, also accepted as a login identifier.
    full_name : str | None
        Optional display name.
    password_hash : str
        Hashed password (write-only setter via ``password``).
    is_active : bool
        Inactive users cannot log in and their tokens stop verifying.
    """

    __tablename__ = "users"
    _repr_fields = ("id", "username")

    email: Mapped[str] = mapped_column(String(254), nullable=False)
    username: Mapped[str] = mapped_column(String(50), nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    password_hash: Mapped[str] = mapped_column(String(254), nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        UniqueConstraint("username", name="uq_users_username"),
    )

    @property
    def password(self) -> Any:
        """
        Disallow reading passwords.

        :raises AttributeError: Always, to ensure password is write-only.
        """
        raise AttributeError("Password is write-only.")

    @password.setter
    def password(self, raw: str) -> None:
        self.password_hash = _hasher.hash(raw)

    @validates("email")
    def _normalize_email(self, _key: str, value: str) -> str:
        return value.strip().lower()
