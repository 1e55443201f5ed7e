"""
System check operation.

Reports whether the project configuration loads, which component folders
exist, whether the definition API answers its health endpoint and whether
the index database accepts a query. Nothing here raises for an unhealthy
subsystem; problems are reported in :class:`SystemCheck`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from vnext_sync.core.connection import mask_url
from vnext_sync.core.errors import ConfigError, SyncError
from vnext_sync.core.logging import get_logger
from vnext_sync.discovery.folders import DiscoveryEntry, list_discovered
from vnext_sync.ops.context import SyncContext

logger = get_logger(__name__)


@dataclass
class SystemCheck:
    """Outcome of :func:`check_system`."""

    project_root: str
    config_ok: bool = False
    config_error: str | None = None
    domain: str | None = None
    folders: list[DiscoveryEntry] = field(default_factory=list)
    api_url: str = ""
    api_ok: bool = False
    database: str = ""
    database_ok: bool = False
    database_error: str | None = None

    @property
    def folders_found(self) -> int:
        return sum(1 for entry in self.folders if entry.found)

    @property
    def healthy(self) -> bool:
        return self.config_ok and self.folders_found > 0 and self.api_ok and self.database_ok

    @property
    def exit_code(self) -> int:
        return 0 if self.healthy else 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_root": self.project_root,
            "healthy": self.healthy,
            "config": {"ok": self.config_ok, "domain": self.domain, "error": self.config_error},
            "folders": [
                {
                    "type": entry.component_type.value,
                    "folder": entry.folder_name,
                    "path": str(entry.path),
                    "found": entry.found,
                }
                for entry in self.folders
            ],
            "api": {"url": self.api_url, "ok": self.api_ok},
            "database": {"target": self.database, "ok": self.database_ok, "error": self.database_error},
        }


def check_system(ctx: SyncContext) -> SystemCheck:
    """Check configuration, folders, API and index database."""
    check = SystemCheck(
        project_root=str(ctx.project_root),
        api_url=ctx.settings.health_url,
        database=ctx.connection.display if ctx.connection else mask_url(ctx.settings.database_url),
    )

    try:
        config = ctx.config()
    except ConfigError as exc:
        check.config_error = exc.message
        logger.warning("check_config_failed", error=exc.message)
    else:
        check.config_ok = True
        check.domain = config.domain
        check.folders = list_discovered(ctx.project_root, config)

    check.api_ok = ctx.api.health()

    ping = getattr(ctx.index, "ping", None)
    if ping is None:
        check.database_ok = True
    else:
        try:
            check.database_ok = bool(ping())
        except SyncError as exc:
            check.database_error = exc.message
            logger.warning("check_database_failed", error=exc.message)

    logger.info(
        "system_checked",
        config=check.config_ok,
        folders=check.folders_found,
        api=check.api_ok,
        database=check.database_ok,
    )
    return check
