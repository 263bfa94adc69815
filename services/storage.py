"""
Storage collaborator for existence and uniqueness lookups.

The validation layer only ever asks two questions of persistent storage:
does a record with ``key == value`` exist, and does a record other than the
current one already hold ``value``. SQLAlchemyStorage answers both with
single-row SELECTs against the Flask-SQLAlchemy metadata.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

import structlog
from sqlalchemy import Column, MetaData, Table, select
from sqlalchemy.exc import SQLAlchemyError

from models import db

from .base_service import DatabaseSession, ServiceError, StorageUnavailableError

logger = structlog.get_logger(__name__)

_UNCOERCIBLE = object()

# Signed 64-bit range storable in an INTEGER/BIGINT column
_INT_MIN, _INT_MAX = -2 ** 63, 2 ** 63 - 1


@runtime_checkable
class StorageBackend(Protocol):
    """Lookup interface used by exists/unique constraints."""

    def exists(self, collection: str, key: str, value: Any) -> bool:
        ...

    def find_conflicting(self, collection: str, key: str, value: Any,
                         excluding_id: Optional[Any] = None) -> bool:
        """True when a record other than ``excluding_id`` holds ``value``."""
        ...


def coerce_to_column(column: Column, value: Any) -> Any:
    """
    Convert ``value`` to the column's Python type.

    Returns the module-level sentinel when the value cannot be represented,
    e.g. ``"abc"`` or a number outside the 64-bit range for an integer key.
    """
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value

    if python_type is int:
        if isinstance(value, bool):
            return _UNCOERCIBLE
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if not isinstance(value, int):
            try:
                value = int(str(value).strip())
            except ValueError:
                return _UNCOERCIBLE
        return value if _INT_MIN <= value <= _INT_MAX else _UNCOERCIBLE
    if python_type is str:
        return value if isinstance(value, str) else str(value)
    return value


class SQLAlchemyStorage:
    """
    StorageBackend over a SQLAlchemy session.

    Args:
        db_session: Session used to run lookups
        metadata: Table metadata; defaults to the application models' metadata
    """

    def __init__(self, db_session: DatabaseSession, metadata: Optional[MetaData] = None) -> None:
        self.db_session = db_session
        self.metadata = metadata if metadata is not None else db.metadata

    def _table(self, collection: str) -> Table:
        table = self.metadata.tables.get(collection)
        if table is None:
            raise ServiceError(f"Unknown collection '{collection}'", error_code='UNKNOWN_COLLECTION')
        return table

    def _column(self, table: Table, key: str) -> Column:
        if key not in table.c:
            raise ServiceError(
                f"Unknown column '{key}' on collection '{table.name}'",
                error_code='UNKNOWN_COLLECTION'
            )
        return table.c[key]

    def exists(self, collection: str, key: str, value: Any) -> bool:
        table = self._table(collection)
        column = self._column(table, key)
        coerced = coerce_to_column(column, value)
        if coerced is _UNCOERCIBLE:
            return False

        statement = select(column).where(column == coerced).limit(1)
        return self._run(statement, collection, key) is not None

    def find_conflicting(self, collection: str, key: str, value: Any,
                         excluding_id: Optional[Any] = None) -> bool:
        table = self._table(collection)
        column = self._column(table, key)
        coerced = coerce_to_column(column, value)
        if coerced is _UNCOERCIBLE:
            return False

        id_column = table.c.id
        statement = select(id_column).where(column == coerced)
        if excluding_id is not None:
            excluded = coerce_to_column(id_column, excluding_id)
            if excluded is not _UNCOERCIBLE:
                statement = statement.where(id_column != excluded)
        row = self._run(statement.limit(1), collection, key)
        return row is not None

    def _run(self, statement: Any, collection: str, key: str) -> Any:
        try:
            return self.db_session.execute(statement).first()
        except OverflowError as e:
            # The driver cannot bind the value, so no stored row can match it
            logger.warning("storage_lookup_unbindable", collection=collection, key=key, error=str(e))
            return None
        except SQLAlchemyError as e:
            logger.error("storage_lookup_failed", collection=collection, key=key, error=str(e))
            raise StorageUnavailableError(
                f"Lookup on '{collection}.{key}' failed",
                collection=collection,
                cause=e
            ) from e


__all__ = [
    'StorageBackend',
    'SQLAlchemyStorage',
    'coerce_to_column',
]
