"""
Installed-definition index.

The workflow engine records every published definition instance in a
per-flow schema: flow ``sys-tasks`` → table ``"sys_tasks"."Instances"``.
Reconciliation needs two things from it:

* the newest row for a key (version is deliberately ignored; one logical
  "latest" instance per key is tracked), and
* deletion of one row by id.

Schema names are interpolated into SQL, so they are validated as plain
identifiers first; everything else is a bound parameter.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from vnext_sync.core.dialect import Dialect, SQLiteDialect
from vnext_sync.core.errors import DatabaseError, QueryError, UnsafeIdentifierError
from vnext_sync.core.logging import get_logger
from vnext_sync.core.protocols import Connection

logger = get_logger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

INSTANCES_TABLE = "Instances"


@dataclass(frozen=True)
class RemoteIndexEntry:
    """One published instance as recorded in the index."""

    instance_id: str
    key: str
    created_at: Any = None


def schema_for_flow(flow: str) -> str:
    """``sys-tasks`` → ``sys_tasks``; rejects anything that is not an identifier."""
    schema = flow.replace("-", "_")
    if not _IDENTIFIER_RE.match(schema):
        raise UnsafeIdentifierError(f"Flow {flow!r} does not map to a valid schema name").with_context(flow=flow)
    return schema


def _row_value(row: Any, column: str, position: int) -> Any:
    try:
        return row[column]
    except (KeyError, IndexError, TypeError):
        return row[position]


class InstanceIndex:
    """Index access over any :class:`~vnext_sync.core.protocols.Connection`."""

    def __init__(self, conn: Connection, dialect: Dialect | None = None) -> None:
        self.conn = conn
        self.dialect = dialect or SQLiteDialect()

    def _table(self, flow: str) -> str:
        return f'"{schema_for_flow(flow)}"."{INSTANCES_TABLE}"'

    def find_latest(self, flow: str, key: str) -> RemoteIndexEntry | None:
        sql = (
            f'SELECT "Id", "Key", "CreatedAt" FROM {self._table(flow)} '
            f'WHERE "Key" = {self.dialect.placeholder(0)} '
            'ORDER BY "CreatedAt" DESC LIMIT 1'
        )
        try:
            self.conn.execute(sql, (key,))
            row = self.conn.fetchone()
            # Read-only, but PostgreSQL keeps the implicit transaction open.
            self.conn.rollback()
        except Exception as exc:
            self._safe_rollback()
            raise QueryError(f"Index lookup failed for {key!r} in {flow}: {exc}", cause=exc).with_context(
                flow=flow, key=key
            ) from exc

        if row is None:
            return None
        entry = RemoteIndexEntry(
            instance_id=str(_row_value(row, "Id", 0)),
            key=str(_row_value(row, "Key", 1)),
            created_at=_row_value(row, "CreatedAt", 2),
        )
        logger.debug("index_hit", flow=flow, key=key, instance_id=entry.instance_id)
        return entry

    def delete(self, flow: str, instance_id: str) -> None:
        sql = f'DELETE FROM {self._table(flow)} WHERE "Id" = {self.dialect.placeholder(0)}'
        try:
            self.conn.execute(sql, (instance_id,))
            self.conn.commit()
        except Exception as exc:
            self._safe_rollback()
            raise QueryError(f"Index delete failed for {instance_id} in {flow}: {exc}", cause=exc).with_context(
                flow=flow, instance_id=instance_id
            ) from exc
        logger.debug("index_deleted", flow=flow, instance_id=instance_id)

    def ping(self) -> bool:
        """``SELECT 1``; raises on failure."""
        try:
            self.conn.execute("SELECT 1")
            self.conn.fetchone()
            self.conn.rollback()
        except Exception as exc:
            self._safe_rollback()
            raise QueryError(f"Index database not reachable: {exc}", cause=exc) from exc
        return True

    def _safe_rollback(self) -> None:
        try:
            self.conn.rollback()
        except Exception as exc:  # connection may already be gone
            logger.debug("index_rollback_failed", error=str(exc))


class UnavailableIndex:
    """Stands in for an index whose database could not be reached.

    Every call raises the original connection error, so each definition
    fails on its own and the batch still reports per item.
    """

    def __init__(self, error: DatabaseError) -> None:
        self.error = error

    def find_latest(self, flow: str, key: str) -> RemoteIndexEntry | None:
        raise self.error

    def delete(self, flow: str, instance_id: str) -> None:
        raise self.error

    def ping(self) -> bool:
        raise self.error
