"""
Definition metadata extraction.

Reads a JSON definition from disk and returns the fields reconciliation
needs. ``key`` and ``version`` may be missing (the engine then skips the
file); ``flow`` is always resolved, falling back to the component folder the
file lives in and finally to ``sys-flows``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from vnext_sync.core.errors import DefinitionParseError
from vnext_sync.discovery.config import DEFAULT_FLOW, ComponentType
from vnext_sync.discovery.folders import DiscoveredFolders


@dataclass
class ComponentDefinition:
    """One JSON definition as read from disk for this run."""

    path: Path
    key: str | None
    version: str | None
    flow: str
    payload: dict[str, Any] = field(repr=False)
    component_type: ComponentType | None = None

    @property
    def is_reconcilable(self) -> bool:
        return bool(self.key) and bool(self.version)


def _scalar(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def read_json_document(path: Path) -> Any:
    """Load a UTF-8 JSON file, wrapping failures in :class:`DefinitionParseError`."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise DefinitionParseError(f"Cannot read {path}: {exc}", cause=exc).with_context(
            file=str(path)
        ) from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise DefinitionParseError(f"Invalid JSON in {Path(path).name}: {exc}", cause=exc).with_context(
            file=str(path)
        ) from exc


def detect_component_type(path: Path, discovered: DiscoveredFolders) -> ComponentType | None:
    """Component type from the discovered folder containing *path*.

    When the file sits outside every discovered folder, a path segment
    equal (case-insensitively) to a discovered folder's name or to a
    type's conventional name decides.
    """
    owner = discovered.owner_of(path)
    if owner is not None:
        return owner

    segments = [part.lower() for part in Path(path).parts[:-1]]
    for component_type, folder in discovered.items():
        if folder.name.lower() in segments:
            return component_type
    for component_type in ComponentType:
        if component_type.label.lower() in segments:
            return component_type
    return None


def detect_flow(path: Path, discovered: DiscoveredFolders) -> str:
    component_type = detect_component_type(path, discovered)
    return component_type.flow if component_type else DEFAULT_FLOW


def extract_metadata(path: Path, discovered: DiscoveredFolders) -> ComponentDefinition:
    """Parse *path* and extract ``key``, ``version``, ``flow`` and the payload."""
    document = read_json_document(path)
    if not isinstance(document, dict):
        raise DefinitionParseError(
            f"{Path(path).name} is not a JSON object"
        ).with_context(file=str(path))

    component_type = detect_component_type(path, discovered)
    flow = _scalar(document.get("flow"))
    if flow is None:
        flow = component_type.flow if component_type else DEFAULT_FLOW

    return ComponentDefinition(
        path=Path(path),
        key=_scalar(document.get("key")),
        version=_scalar(document.get("version")),
        flow=flow,
        payload=document,
        component_type=component_type,
    )
