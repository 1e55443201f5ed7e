"""Component folder discovery.

Strictly configuration-driven: only the folders named in the project
configuration are checked, under the configured components root. Unknown
directories are never scanned. Read-only.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path

from vnext_sync.core.errors import ConfigError
from vnext_sync.core.logging import get_logger
from vnext_sync.discovery.config import ComponentType, ProjectConfig

logger = get_logger(__name__)


class DiscoveredFolders(Mapping[ComponentType, Path]):
    """Component type → absolute folder path, for folders that exist.

    Built once per run and never persisted.
    """

    def __init__(self, folders: Mapping[ComponentType, Path]) -> None:
        self._folders = {t: Path(p) for t, p in folders.items()}

    def __getitem__(self, key: ComponentType) -> Path:
        return self._folders[key]

    def __iter__(self) -> Iterator[ComponentType]:
        return iter(self._folders)

    def __len__(self) -> int:
        return len(self._folders)

    def __repr__(self) -> str:
        return f"DiscoveredFolders({ {t.value: str(p) for t, p in self._folders.items()} })"

    def owner_of(self, path: Path) -> ComponentType | None:
        """Component type whose folder contains *path* (deepest folder wins)."""
        resolved = Path(path).resolve()
        best: tuple[int, ComponentType] | None = None
        for component_type, folder in self._folders.items():
            if resolved.is_relative_to(folder):
                depth = len(folder.parts)
                if best is None or depth > best[0]:
                    best = (depth, component_type)
        return best[1] if best else None

    def require_any(self) -> DiscoveredFolders:
        """Raise :class:`ConfigError` when nothing was discovered."""
        if not self._folders:
            raise ConfigError("No component folders found for the configured paths")
        return self


@dataclass(frozen=True)
class DiscoveryEntry:
    """One row of :func:`list_discovered`."""

    component_type: ComponentType
    folder_name: str
    path: Path
    found: bool


def discover_components(project_root: Path, config: ProjectConfig) -> DiscoveredFolders:
    """Return the configured component folders that exist on disk."""
    root = config.components_root(Path(project_root))
    found: dict[ComponentType, Path] = {}

    for component_type, folder_name in config.component_folders().items():
        candidate = root / folder_name
        if candidate.is_dir():
            found[component_type] = candidate.resolve()
        else:
            logger.debug("component_folder_missing", component=component_type.value, path=str(candidate))

    logger.debug("components_discovered", count=len(found), root=str(root))
    return DiscoveredFolders(found)


def list_discovered(project_root: Path, config: ProjectConfig) -> list[DiscoveryEntry]:
    """Found/missing status for every configured component type."""
    root = config.components_root(Path(project_root))
    entries = []
    for component_type, folder_name in config.component_folders().items():
        path = root / folder_name
        entries.append(
            DiscoveryEntry(
                component_type=component_type,
                folder_name=folder_name,
                path=path,
                found=path.is_dir(),
            )
        )
    return entries
