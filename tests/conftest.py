"""
Shared pytest fixtures for vnext-sync tests.

This module provides:
- A sample project tree (config, component folders, definitions, scripts)
- An in-memory SQLite index with every flow schema attached
- A fake definition API that records calls and writes index rows
- Logging reset between tests
"""

from __future__ import annotations

from pathlib import Path

import pytest
import structlog

from tests._support import CONFIG, SCRIPT_LOCATION, SCRIPT_TEXT, FakeApi, task_definition, write_json
from vnext_sync.core.settings import SyncSettings
from vnext_sync.core.sqlite_conn import SqliteConnection
from vnext_sync.discovery.config import ProjectConfigLoader
from vnext_sync.discovery.folders import DiscoveredFolders, discover_components
from vnext_sync.index import InstanceIndex
from vnext_sync.ops.context import SyncContext, index_schemas

# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark everything without an explicit marker as a unit test."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def _reset_logging():
    """Drop logging configuration a test (or a CLI run) installed."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


# =============================================================================
# Sample project
# =============================================================================


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    """Project tree::

        vnext.config.json
        core/Tasks/task-a.json            key task-a, one NAT site for the script
        core/Tasks/src/CheckLimit.csx
        core/Tasks/.meta/ignored.json
        core/Workflows/flow-a.json        two Base64 sites for the script
        core/Workflows/flow-a.diagram.json
        core/Schemas/                     (empty)
    """
    root = tmp_path / "project"
    write_json(root / "vnext.config.json", CONFIG)
    components = root / "core"

    write_json(
        components / "Tasks" / "task-a.json",
        task_definition(
            attributes={
                "type": "6",
                "config": {"location": SCRIPT_LOCATION, "code": "", "encoding": "NAT"},
            }
        ),
    )
    script = components / "Tasks" / "src" / "CheckLimit.csx"
    script.parent.mkdir(parents=True)
    script.write_bytes(SCRIPT_TEXT.encode("utf-8"))
    write_json(components / "Tasks" / ".meta" / "ignored.json", {"key": "meta", "version": "1", "ref": "CheckLimit.csx"})

    write_json(
        components / "Workflows" / "flow-a.json",
        {
            "key": "flow-a",
            "version": "1.0.0",
            "flow": "sys-flows",
            "attributes": {
                "states": [
                    {"key": "s1", "onEntries": [{"location": SCRIPT_LOCATION, "code": "old"}]},
                    {"key": "s2", "rule": {"location": SCRIPT_LOCATION, "code": "old", "encoding": "B64"}},
                    {"key": "s3", "rule": {"location": "./src/Other.csx", "code": "keep"}},
                ]
            },
        },
    )
    write_json(components / "Workflows" / "flow-a.diagram.json", {"nodes": ["CheckLimit.csx"]})
    (components / "Schemas").mkdir()
    return root


@pytest.fixture()
def discovered(project: Path) -> DiscoveredFolders:
    return discover_components(project, ProjectConfigLoader(project).load())


# =============================================================================
# Index, API and context
# =============================================================================


@pytest.fixture()
def sqlite_conn() -> SqliteConnection:
    """In-memory SQLite with one attached schema per flow."""
    conn = SqliteConnection(":memory:", schemas=index_schemas())
    yield conn
    conn.close()


@pytest.fixture()
def index(sqlite_conn: SqliteConnection) -> InstanceIndex:
    return InstanceIndex(sqlite_conn)


@pytest.fixture()
def fake_api(sqlite_conn: SqliteConnection) -> FakeApi:
    return FakeApi(sqlite_conn)


@pytest.fixture()
def settings() -> SyncSettings:
    return SyncSettings(api_base_url="http://engine.test", database_url="memory", _env_file=None)


@pytest.fixture()
def ctx(project: Path, settings: SyncSettings, index: InstanceIndex, fake_api: FakeApi) -> SyncContext:
    """SyncContext wired to the sample project, SQLite index and fake API."""
    return SyncContext(
        project_root=project,
        settings=settings,
        loader=ProjectConfigLoader(project),
        index=index,
        api=fake_api,
        caller="test",
    )


@pytest.fixture()
def dry_ctx(ctx: SyncContext) -> SyncContext:
    ctx.dry_run = True
    return ctx
