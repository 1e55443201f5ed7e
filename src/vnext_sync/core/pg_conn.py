"""PostgreSQL connection adapter using psycopg 3.

The workflow engine owns the ``"<schema>"."Instances"`` tables, so this
adapter never creates anything; it only reads and deletes rows.
"""

from __future__ import annotations

from typing import Any

import psycopg
from psycopg.rows import dict_row

from vnext_sync.core.errors import DatabaseConnectionError


class PgConnection:
    """Adapter: ``psycopg.Connection`` → ``Connection`` protocol."""

    def __init__(self, url: str, *, connect_timeout: int = 10) -> None:
        try:
            self._conn = psycopg.connect(
                url, connect_timeout=connect_timeout, row_factory=dict_row
            )
        except psycopg.Error as exc:
            raise DatabaseConnectionError(
                f"Failed to connect to PostgreSQL: {exc}", cause=exc
            ) from exc
        self._cursor = self._conn.cursor()

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

    def __repr__(self) -> str:
        return f"PgConnection({self._conn.info.dsn!r})"
