"""SQL dialect abstraction.

Index queries are written once; the dialect supplies the placeholder
style of the backend they run on.

>>> SQLiteDialect().placeholder(0)
'?'
>>> PostgreSQLDialect().placeholder(0)
'%s'
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract."""

    @property
    def name(self) -> str:
        """Human-readable dialect name (e.g. ``'sqlite'``)."""
        ...

    def placeholder(self, index: int) -> str:
        """Single positional placeholder (0-based index)."""
        ...


class SQLiteDialect:
    """SQLite dialect — ``?`` placeholders."""

    @property
    def name(self) -> str:
        return "sqlite"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"


class PostgreSQLDialect:
    """PostgreSQL dialect — ``%s`` placeholders (psycopg)."""

    @property
    def name(self) -> str:
        return "postgresql"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "%s"


def get_dialect(backend: str) -> Dialect:
    """Return the dialect for a backend identifier from :class:`ConnectionInfo`."""
    if backend == "postgresql":
        return PostgreSQLDialect()
    return SQLiteDialect()
