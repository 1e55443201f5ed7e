"""
Run-scoped context for operations.

Every operation function receives a :class:`SyncContext` as its first
argument. The context carries the project root, settings, the project
configuration loader, the index and API collaborators and the dry-run
flag. :func:`open_context` builds a real one from settings and closes what
it opened.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from vnext_sync.core.connection import ConnectionInfo, create_connection
from vnext_sync.core.dialect import get_dialect
from vnext_sync.core.errors import DatabaseError
from vnext_sync.core.logging import get_logger
from vnext_sync.core.protocols import DefinitionPublisher, IndexStore
from vnext_sync.core.settings import SyncSettings
from vnext_sync.discovery.config import ComponentType, ProjectConfig, ProjectConfigLoader
from vnext_sync.discovery.folders import DiscoveredFolders, discover_components
from vnext_sync.index import InstanceIndex, UnavailableIndex, schema_for_flow

logger = get_logger(__name__)


@dataclass
class SyncContext:
    """Context passed to every operation function.

    Attributes:
        project_root: Directory holding the project configuration file.
        settings: Connection and behaviour settings.
        loader: Project configuration loader for *project_root*.
        index: Installed-instance index.
        api: Definition API client.
        dry_run: When ``True``, no file, index or API writes happen.
        connection: Description of the index connection, when known.
        run_id: Unique ID for this invocation (auto-generated).
        caller: Origin of the request, ``"cli"`` or ``"sdk"``.
    """

    project_root: Path
    settings: SyncSettings
    loader: ProjectConfigLoader
    index: IndexStore
    api: DefinitionPublisher
    dry_run: bool = False
    connection: ConnectionInfo | None = None
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    caller: str = "sdk"

    def config(self) -> ProjectConfig:
        """Loaded project configuration; raises ``ConfigError``."""
        return self.loader.load()

    def discover(self) -> DiscoveredFolders:
        """Discovered component folders; raises ``ConfigError`` when there are none."""
        return discover_components(self.project_root, self.config()).require_any()


def index_schemas() -> list[str]:
    """Schemas of every known flow, for backends that create them locally."""
    return [schema_for_flow(component_type.flow) for component_type in ComponentType]


@contextmanager
def open_context(
    project_root: Path,
    settings: SyncSettings | None = None,
    *,
    dry_run: bool = False,
    caller: str = "sdk",
) -> Iterator[SyncContext]:
    """Connect to the index and the API for one run.

    Example:
        with open_context(Path(".")) as ctx:
            report = update_components(ctx, UpdateRequest())
    """
    from vnext_sync.api import DefinitionApiClient

    settings = settings or SyncSettings()
    project_root = Path(project_root).resolve()
    conn = None
    try:
        conn, info = create_connection(settings.database_url, schemas=index_schemas())
        index: IndexStore = InstanceIndex(conn, get_dialect(info.backend))
    except DatabaseError as exc:
        logger.warning("index_unavailable", **exc.to_dict())
        info = None
        index = UnavailableIndex(exc)
    else:
        if info.is_sqlite and info.persistent:
            # The engine only writes to PostgreSQL; a local file never sees its publishes.
            logger.warning("index_is_local_sqlite_file", path=info.display)
    api = DefinitionApiClient(settings)
    try:
        yield SyncContext(
            project_root=project_root,
            settings=settings,
            loader=ProjectConfigLoader(project_root, settings.config_file_name),
            index=index,
            api=api,
            dry_run=dry_run,
            connection=info,
            caller=caller,
        )
    finally:
        api.close()
        if conn is not None:
            conn.close()
