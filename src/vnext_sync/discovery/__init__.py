"""Project configuration and component folder discovery."""

from vnext_sync.discovery.config import (
    DEFAULT_CONFIG_FILE,
    DEFAULT_FLOW,
    ComponentPaths,
    ComponentType,
    ProjectConfig,
    ProjectConfigLoader,
    parse_project_config,
)
from vnext_sync.discovery.folders import (
    DiscoveredFolders,
    DiscoveryEntry,
    discover_components,
    list_discovered,
)

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_FLOW",
    "ComponentPaths",
    "ComponentType",
    "DiscoveredFolders",
    "DiscoveryEntry",
    "ProjectConfig",
    "ProjectConfigLoader",
    "discover_components",
    "list_discovered",
    "parse_project_config",
]
