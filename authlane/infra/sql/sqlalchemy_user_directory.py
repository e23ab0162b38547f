from __future__ import annotations

import threading
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from sqlalchemy import MetaData, Table
from sqlalchemy.orm import Session

from authlane.services._shared.ports.user_directory import UserDirectory
from authlane.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork


class SQLAlchemyUserDirectory(UserDirectory):
    """
    Principal lookups against any table named in provider config.

    Tables declared on ``metadata`` (the application models) are used as-is;
    any other table is reflected once from the database and cached.

    :param session_factory: Returns the session to use.
    :param metadata: Declared application metadata, consulted before reflecting.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        metadata: MetaData | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._declared = metadata
        self._reflected = MetaData()
        self._lock = threading.Lock()

    def _table(self, session: Session, name: str) -> Table:
        if self._declared is not None and name in self._declared.tables:
            return self._declared.tables[name]
        with self._lock:
            if name not in self._reflected.tables:
                Table(name, self._reflected, autoload_with=session.connection())
            return self._reflected.tables[name]

    def find_by_credential_fields(
        self,
        values: Mapping[str, Any],
        fields: Sequence[str],
        table: str,
    ) -> Mapping[str, Any] | None:
        criteria = {f: values[f] for f in fields if values.get(f) is not None}
        if not criteria:
            return None
        with SQLAlchemyUnitOfWork(self._session_factory, read_only=True) as uow:
            return uow.records.find_one(self._table(uow.session, table), criteria)

    def find_by_id(self, id: Any, table: str, id_field: str) -> Mapping[str, Any] | None:
        with SQLAlchemyUnitOfWork(self._session_factory, read_only=True) as uow:
            return uow.records.find_one(self._table(uow.session, table), {id_field: id})
