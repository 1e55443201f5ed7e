"""
Test support utilities for vnext-sync tests.

Helpers that are not fixtures but are shared across test modules: sample
documents, index row insertion and a fake definition API.
"""

from __future__ import annotations

import json
import uuid
from pathlib import Path
from typing import Any

from vnext_sync.api import PublishResult
from vnext_sync.core.sqlite_conn import SqliteConnection
from vnext_sync.index import schema_for_flow

SCRIPT_TEXT = "public class CheckLimit { bool Run() => amount < 1000; } // ü\n"
SCRIPT_LOCATION = "./src/CheckLimit.csx"

CONFIG = {
    "domain": "core",
    "paths": {
        "componentsRoot": "core",
        "workflows": "Workflows",
        "tasks": "Tasks",
        "schemas": "Schemas",
    },
}


def write_json(path: Path, document: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document, indent=2) + "\n", encoding="utf-8")
    return path


def load_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def task_definition(key: str = "task-a", version: str = "1.0.0", **extra: Any) -> dict[str, Any]:
    document: dict[str, Any] = {"key": key, "version": version, "flow": "sys-tasks", "attributes": {"type": "6"}}
    document.update(extra)
    return document


def insert_instance(
    conn: SqliteConnection,
    flow: str,
    key: str,
    instance_id: str | None = None,
    created_at: str = "2024-01-01T00:00:00.000",
) -> str:
    """Insert one index row and return its id."""
    instance_id = instance_id or uuid.uuid4().hex
    conn.execute(
        f'INSERT INTO "{schema_for_flow(flow)}"."Instances" ("Id", "Key", "CreatedAt") VALUES (?, ?, ?)',
        (instance_id, key, created_at),
    )
    conn.commit()
    return instance_id


def count_instances(conn: SqliteConnection, flow: str, key: str) -> int:
    conn.execute(f'SELECT COUNT(*) FROM "{schema_for_flow(flow)}"."Instances" WHERE "Key" = ?', (key,))
    return conn.fetchone()[0]


class FakeApi:
    """Records calls; a successful publish adds an index row like the engine does.

    ``fail_keys`` maps a definition key to the error message to return.
    """

    def __init__(self, conn: SqliteConnection | None = None) -> None:
        self.conn = conn
        self.published: list[dict[str, Any]] = []
        self.reinitialize_calls = 0
        self.reinitialize_ok = True
        self.healthy = True
        self.fail_keys: dict[str, str] = {}

    def publish(self, payload: dict[str, Any]) -> PublishResult:
        self.published.append(payload)
        key = payload.get("key")
        if key in self.fail_keys:
            return PublishResult(success=False, error=self.fail_keys[key], status_code=400)
        instance_id = uuid.uuid4().hex
        if self.conn is not None:
            insert_instance(self.conn, payload.get("flow", "sys-flows"), key, instance_id, created_at="2030-01-01")
        return PublishResult(success=True, instance_id=instance_id, status_code=200)

    def reinitialize(self) -> bool:
        self.reinitialize_calls += 1
        return self.reinitialize_ok

    def health(self) -> bool:
        return self.healthy

    @property
    def published_keys(self) -> list[str]:
        return [payload.get("key") for payload in self.published]
