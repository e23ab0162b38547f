"""Column mixins and datetime normalisation shared by the models."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, func
from sqlalchemy.orm import Mapped, mapped_column


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from backends such as SQLite."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class TimestampMixin:
    """Audit columns for account rows; token rows carry their own ``created_at``."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )


class PKMixin:
    """Integer ``id`` key; principals expose it to guards as a string."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)


class ReprMixin:
    _repr_fields = ("id",)

    def __repr__(self) -> str:
        parts = " ".join(f"{name}={getattr(self, name, None)!r}" for name in self._repr_fields)
        return f"<{type(self).__name__} {parts}>"
