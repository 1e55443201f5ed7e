"""SQLite connection adapter.

Wraps a raw :class:`sqlite3.Connection` to satisfy the
:class:`~vnext_sync.core.protocols.Connection` protocol.

The instance index lives in one schema per flow (``"sys_flows"."Instances"``).
SQLite has no schemas, so each one is an attached database: in memory for
``:memory:`` connections, a sibling file (``index.sys_flows.db``) otherwise.

Usage::

    from vnext_sync.core.sqlite_conn import SqliteConnection

    conn = SqliteConnection(":memory:", schemas=["sys_tasks"])
    conn.execute('SELECT "Id" FROM "sys_tasks"."Instances" WHERE "Key" = ?', ("k1",))
    row = conn.fetchone()
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable
from pathlib import Path
from typing import Any

INSTANCES_DDL = """
CREATE TABLE IF NOT EXISTS "{schema}"."Instances" (
    "Id" TEXT PRIMARY KEY,
    "Key" TEXT NOT NULL,
    "Version" TEXT,
    "CreatedAt" TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now'))
)
"""


class SqliteConnection:
    """Adapter: ``sqlite3.Connection`` → ``Connection`` protocol.

    Maintains a single cursor so that ``execute`` and ``fetchone``
    operate on the same result set.
    """

    def __init__(
        self,
        path: str = ":memory:",
        *,
        schemas: Iterable[str] = (),
        row_factory: Any = sqlite3.Row,
    ) -> None:
        self._path = path
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = row_factory
        self._cursor = self._conn.cursor()
        for schema in schemas:
            self.attach_schema(schema)

    # -- Connection protocol -----------------------------------------------

    def execute(self, sql: str, params: tuple = ()) -> Any:
        self._cursor.execute(sql, params)
        return self._cursor

    def fetchone(self) -> Any:
        return self._cursor.fetchone()

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()

    # -- schemas -----------------------------------------------------------

    def attach_schema(self, schema: str) -> None:
        """Attach *schema* (if needed) and create its ``Instances`` table."""
        attached = {row[1] for row in self._conn.execute("PRAGMA database_list")}
        if schema not in attached:
            if self._path == ":memory:":
                target = ":memory:"
            else:
                base = Path(self._path)
                target = str(base.with_name(f"{base.stem}.{schema}{base.suffix or '.db'}"))
            self._conn.execute(f'ATTACH DATABASE ? AS "{schema}"', (target,))
        self._conn.execute(INSTANCES_DDL.format(schema=schema))
        self._conn.commit()

    @property
    def raw(self) -> sqlite3.Connection:
        """Access the underlying ``sqlite3.Connection``."""
        return self._conn

    def __repr__(self) -> str:
        return f"SqliteConnection({self._path!r})"
