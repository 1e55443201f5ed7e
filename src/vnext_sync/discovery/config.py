"""
Project configuration (``vnext.config.json``).

The configuration file is the single source of truth for where component
definitions live. It is validated eagerly when loaded: a run never starts
with a mapping that would fail on the first lookup.

Example file::

    {
      "domain": "core",
      "paths": {
        "componentsRoot": "core",
        "workflows": "Workflows",
        "tasks": "Tasks",
        "schemas": "Schemas"
      }
    }

Component types are an explicit enumeration (:class:`ComponentType`), each
carrying its configuration key, its conventional folder name and the remote
flow identifier the engine uses for it.

There is no module-level cache. A :class:`ProjectConfigLoader` holds the
loaded object for one project root and exposes :meth:`~ProjectConfigLoader.reload`
and :meth:`~ProjectConfigLoader.invalidate`.
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from vnext_sync.core.errors import InvalidConfigError, MissingConfigError
from vnext_sync.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_FILE = "vnext.config.json"
DEFAULT_FLOW = "sys-flows"


class ComponentType(str, Enum):
    """Logical component types, keyed by their configuration name."""

    WORKFLOWS = "workflows"
    TASKS = "tasks"
    SCHEMAS = "schemas"
    VIEWS = "views"
    FUNCTIONS = "functions"
    EXTENSIONS = "extensions"

    @property
    def label(self) -> str:
        """Conventional folder name, e.g. ``Workflows``."""
        return self.value.capitalize()

    @property
    def flow(self) -> str:
        """Remote flow identifier, e.g. ``sys-flows``."""
        return _FLOWS[self]

    @classmethod
    def from_label(cls, text: str) -> ComponentType:
        """Accept ``tasks``, ``Tasks`` or ``TASKS``."""
        try:
            return cls(text.strip().lower())
        except ValueError:
            choices = ", ".join(t.label for t in cls)
            raise ValueError(f"Unknown component type {text!r} (expected one of {choices})") from None


_FLOWS: dict[ComponentType, str] = {
    ComponentType.WORKFLOWS: "sys-flows",
    ComponentType.TASKS: "sys-tasks",
    ComponentType.SCHEMAS: "sys-schemas",
    ComponentType.VIEWS: "sys-views",
    ComponentType.FUNCTIONS: "sys-functions",
    ComponentType.EXTENSIONS: "sys-extensions",
}


class ComponentPaths(BaseModel):
    """``paths`` section: components root plus one folder per type."""

    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    components_root: str = Field(alias="componentsRoot", min_length=1)
    workflows: str | None = None
    tasks: str | None = None
    schemas: str | None = None
    views: str | None = None
    functions: str | None = None
    extensions: str | None = None

    @field_validator(*(t.value for t in ComponentType))
    @classmethod
    def _not_blank(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("folder name must not be empty")
        return value

    @model_validator(mode="after")
    def _at_least_one_component(self) -> ComponentPaths:
        if not self.folders():
            raise ValueError("no recognised component paths (expected any of: "
                             + ", ".join(t.value for t in ComponentType) + ")")
        for unknown in (self.model_extra or {}):
            logger.warning("config_unknown_path_key", key=unknown)
        return self

    def folders(self) -> dict[ComponentType, str]:
        """Configured folder name per component type, in enum order."""
        result: dict[ComponentType, str] = {}
        for component_type in ComponentType:
            folder = getattr(self, component_type.value)
            if folder:
                result[component_type] = folder
        return result


class ProjectConfig(BaseModel):
    """Validated content of ``vnext.config.json``."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    domain: str = Field(min_length=1)
    paths: ComponentPaths

    def components_root(self, project_root: Path) -> Path:
        return (project_root / self.paths.components_root).resolve()

    def component_folders(self) -> dict[ComponentType, str]:
        return self.paths.folders()


def parse_project_config(text: str, *, source: str = DEFAULT_CONFIG_FILE) -> ProjectConfig:
    """Parse and validate configuration text. Raises :class:`InvalidConfigError`."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidConfigError(source, f"not valid JSON ({exc})", cause=exc) from exc

    try:
        return ProjectConfig.model_validate(data)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in exc.errors()
        )
        raise InvalidConfigError(source, problems, cause=exc) from exc


class ProjectConfigLoader:
    """Loads the configuration of one project root, explicitly.

    ``load()`` reads the file once per loader; ``reload()`` always re-reads;
    ``invalidate()`` forgets the loaded value.
    """

    def __init__(self, project_root: Path, file_name: str = DEFAULT_CONFIG_FILE) -> None:
        self.project_root = Path(project_root).resolve()
        self.file_name = file_name
        self._config: ProjectConfig | None = None

    @property
    def path(self) -> Path:
        return self.project_root / self.file_name

    def load(self) -> ProjectConfig:
        if self._config is None:
            self._config = self._read()
        return self._config

    def reload(self) -> ProjectConfig:
        self.invalidate()
        return self.load()

    def invalidate(self) -> None:
        self._config = None

    def _read(self) -> ProjectConfig:
        if not self.path.is_file():
            raise MissingConfigError(
                self.file_name, f"{self.file_name} not found: {self.path}"
            ).with_context(file=str(self.path))

        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise InvalidConfigError(self.file_name, f"cannot be read ({exc})", cause=exc) from exc

        config = parse_project_config(text, source=self.file_name)
        logger.debug(
            "project_config_loaded",
            path=str(self.path),
            domain=config.domain,
            components=[t.value for t in config.component_folders()],
        )
        return config
