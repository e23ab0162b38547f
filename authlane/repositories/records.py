"""Generic single-row lookups over tables named in auth provider config."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy import Column, Table, select
from sqlalchemy.orm import Session


def coerce_for(column: Column[Any], value: Any) -> Any:
    """Convert ``value`` to the column's Python type when it is not already."""
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value
    if value is None or isinstance(value, python_type):
        return value
    try:
        return python_type(value)
    except (TypeError, ValueError):
        return value


class RecordRepository:
    """Read plain mappings from an arbitrary :class:`~sqlalchemy.Table`."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def find_one(self, table: Table, criteria: Mapping[str, Any]) -> dict[str, Any] | None:
        """
        Return the first row matching every ``column == value`` criterion.

        :raises KeyError: If a criterion names a column the table lacks.
        """
        stmt = select(table)
        for name, value in criteria.items():
            column = table.c[name]
            stmt = stmt.where(column == coerce_for(column, value))
        row = self.session.execute(stmt.limit(1)).mappings().first()
        return dict(row) if row is not None else None
