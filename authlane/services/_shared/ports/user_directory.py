from __future__ import annotations

import threading
from collections.abc import Mapping, Sequence
from typing import Any, Protocol


class UserDirectory(Protocol):
    """
    Read access to the tables backing principals.

    Records are returned as plain mappings; the caller decides which columns
    matter through its provider configuration.
    """

    def find_by_credential_fields(
        self,
        values: Mapping[str, Any],
        fields: Sequence[str],
        table: str,
    ) -> Mapping[str, Any] | None:
        """
        Find the record whose ``fields`` equal the given ``values``.

        Only fields present in ``values`` take part in the match; when none
        is present the lookup returns ``None``.
        """

    def find_by_id(self, id: Any, table: str, id_field: str) -> Mapping[str, Any] | None:
        """Return the record whose ``id_field`` equals ``id``."""


class InMemoryUserDirectory(UserDirectory):
    """
    Dictionary-backed directory for unit tests.

    Identifiers are compared as strings, matching how token records store
    principal ids.
    """

    def __init__(self, tables: Mapping[str, list[dict[str, Any]]] | None = None) -> None:
        self._tables: dict[str, list[dict[str, Any]]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }
        self._lock = threading.Lock()

    def add(self, table: str, record: Mapping[str, Any]) -> dict[str, Any]:
        row = dict(record)
        with self._lock:
            self._tables.setdefault(table, []).append(row)
        return row

    def update(self, table: str, id_field: str, id: Any, **changes: Any) -> None:
        with self._lock:
            for row in self._tables.get(table, []):
                if str(row.get(id_field)) == str(id):
                    row.update(changes)

    def remove(self, table: str, id_field: str, id: Any) -> None:
        with self._lock:
            rows = self._tables.get(table, [])
            self._tables[table] = [r for r in rows if str(r.get(id_field)) != str(id)]

    def find_by_credential_fields(
        self,
        values: Mapping[str, Any],
        fields: Sequence[str],
        table: str,
    ) -> Mapping[str, Any] | None:
        criteria = {f: values[f] for f in fields if values.get(f) is not None}
        if not criteria:
            return None
        for row in self._tables.get(table, []):
            if all(row.get(f) == v for f, v in criteria.items()):
                return dict(row)
        return None

    def find_by_id(self, id: Any, table: str, id_field: str) -> Mapping[str, Any] | None:
        for row in self._tables.get(table, []):
            if str(row.get(id_field)) == str(id):
                return dict(row)
        return None
