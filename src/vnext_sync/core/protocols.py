"""
Protocol definitions for vnext-sync.

The reconciliation engine depends on shapes, not implementations: any
object matching :class:`Connection` can back the instance index, and any
object matching :class:`IndexStore` / :class:`DefinitionPublisher` can be
handed to the engine. Tests use in-memory SQLite and fake publishers.

Architecture:
    ::

        protocols.py
        ├── Connection          — sync DB protocol (sqlite3 adapter, psycopg adapter)
        ├── IndexStore          — latest-by-key lookup + delete-by-id
        └── DefinitionPublisher — publish + reinitialize + health
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from vnext_sync.api import PublishResult
    from vnext_sync.index import RemoteIndexEntry


@runtime_checkable
class Connection(Protocol):
    """Minimal synchronous connection interface.

    ::

        execute(sql, params)   → Execute single statement
        fetchone()             → Get one result row
        commit()               → Commit transaction
        rollback()             → Rollback transaction
    """

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute SQL statement with optional parameters."""
        ...

    def fetchone(self) -> Any:
        """Fetch one row from last query."""
        ...

    def commit(self) -> None:
        """Commit current transaction."""
        ...

    def rollback(self) -> None:
        """Rollback current transaction."""
        ...


@runtime_checkable
class IndexStore(Protocol):
    """Contract of the installed-definition index."""

    def find_latest(self, flow: str, key: str) -> RemoteIndexEntry | None:
        """Most recently created entry for *key* under *flow*'s schema."""
        ...

    def delete(self, flow: str, instance_id: str) -> None:
        """Remove one entry by id."""
        ...


@runtime_checkable
class DefinitionPublisher(Protocol):
    """Contract of the remote definition API."""

    def publish(self, payload: dict[str, Any]) -> PublishResult:
        """Publish a full definition payload. Never raises."""
        ...

    def reinitialize(self) -> bool:
        """Ask the engine to reload its definitions. Best effort."""
        ...

    def health(self) -> bool:
        """Whether the API answers its health endpoint."""
        ...
