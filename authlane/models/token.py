"""Persisted token records (access, refresh and blacklist)."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from authlane.core.extensions import db


class PersonalAccessToken(db.Model):
    """
    One row per token record.

    The raw token is the primary key. Refresh tokens start with their
    session correlation id (``"<session>::<random>"``) so session lookups are
    prefix scans on the key.
    """

    __tablename__ = "personal_access_tokens"

    # Signed access tokens are stored verbatim in blacklist rows
    token: Mapped[str] = mapped_column(String(2048), primary_key=True)
    principal_id: Mapped[str] = mapped_column(String(128), nullable=False)
    guard: Mapped[str] = mapped_column(String(64), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    meta: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, nullable=False, default=dict)

    __table_args__ = (
        Index("ix_personal_access_tokens_principal_guard", "principal_id", "guard"),
        Index("ix_personal_access_tokens_expires_at", "expires_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<PersonalAccessToken type={self.type} guard={self.guard} "
            f"principal={self.principal_id}>"
        )
