"""
Change-set selection.

Produces the list of JSON definitions or script files a run works on.
Three modes, one per invocation, in order of precedence:

    EXPLICIT    a single path given by the caller
    EXHAUSTIVE  every matching file under every discovered folder
    DIFF        files reported changed by ``git status`` (default)

JSON candidates are filtered the same way in every mode: metadata-only
folders, diagram annotations, package manifests and anything named
``*config*`` are never component definitions.

A missing ``git`` binary, a directory outside any repository or
unparseable status output all yield an empty DIFF selection; the caller
reports that as "up to date".
"""

from __future__ import annotations

import subprocess
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from vnext_sync.core.logging import get_logger
from vnext_sync.discovery.folders import DiscoveredFolders

logger = get_logger(__name__)

JSON_EXTENSION = ".json"

# Folders whose JSON content is never a component definition.
EXCLUDED_DIR_NAMES = frozenset({".meta", "node_modules", "dist", ".git"})
DIAGRAM_SUFFIX = ".diagram.json"
PACKAGE_PREFIX = "package"
CONFIG_MARKER = "config"

# "XY path": two status columns, then a space.
STATUS_PREFIX_WIDTH = 3


class SelectionMode(str, Enum):
    EXPLICIT = "explicit"
    EXHAUSTIVE = "exhaustive"
    DIFF = "diff"


@dataclass
class Selection:
    """Files selected for one run."""

    mode: SelectionMode
    extension: str
    files: list[Path] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.files

    def __len__(self) -> int:
        return len(self.files)

    def __iter__(self) -> Iterator[Path]:
        return iter(self.files)


# ── Filtering ────────────────────────────────────────────────────────────


def _relative_parts(path: Path, base: Path | None) -> tuple[str, ...]:
    if base is not None and path.is_relative_to(base):
        return path.relative_to(base).parts[:-1]
    return path.parts[:-1]


def in_excluded_folder(path: Path, base: Path | None = None) -> bool:
    """True when any folder between *base* and *path* is excluded."""
    return any(part in EXCLUDED_DIR_NAMES for part in _relative_parts(path, base))


def is_definition_file(path: Path, base: Path | None = None) -> bool:
    """Whether *path* may be a component definition JSON file."""
    name = path.name.lower()
    if not name.endswith(JSON_EXTENSION):
        return False
    if name.endswith(DIAGRAM_SUFFIX):
        return False
    if name.startswith(PACKAGE_PREFIX):
        return False
    if CONFIG_MARKER in name:
        return False
    return not in_excluded_folder(path, base)


def matches_extension(path: Path, extension: str, base: Path | None = None) -> bool:
    """Extension check plus JSON definition rules when *extension* is ``.json``."""
    if extension == JSON_EXTENSION:
        return is_definition_file(path, base)
    return path.name.lower().endswith(extension.lower()) and not in_excluded_folder(path, base)


def iter_component_files(
    discovered: DiscoveredFolders, extension: str
) -> Iterator[tuple[Path, Path]]:
    """Yield ``(folder, file)`` for every matching file under discovered folders."""
    for folder in discovered.values():
        for candidate in sorted(folder.rglob(f"*{extension}")):
            if candidate.is_file() and matches_extension(candidate, extension, folder):
                yield folder, candidate


# ── Version control ──────────────────────────────────────────────────────


def _unquote(path_text: str) -> str:
    """Undo git's C-style quoting of unusual path names."""
    if len(path_text) >= 2 and path_text[0] == path_text[-1] == '"':
        inner = path_text[1:-1]
        return inner.encode("latin-1", "backslashreplace").decode("unicode_escape").encode("latin-1").decode("utf-8")
    return path_text


def parse_status_line(line: str) -> str | None:
    """Path portion of one ``git status --porcelain`` line, or None."""
    if len(line) <= STATUS_PREFIX_WIDTH:
        return None
    path_text = line[STATUS_PREFIX_WIDTH:].strip()
    if " -> " in path_text:
        path_text = path_text.split(" -> ", 1)[1]
    if not path_text:
        return None
    return _unquote(path_text)


class GitStatusReader:
    """Reads changed paths from the repository containing a directory."""

    def __init__(self, executable: str = "git", timeout: float = 30.0) -> None:
        self.executable = executable
        self.timeout = timeout

    def _run(self, args: list[str], cwd: Path) -> str:
        completed = subprocess.run(
            [self.executable, *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            check=True,
            timeout=self.timeout,
        )
        return completed.stdout

    def repository_root(self, start: Path) -> Path:
        return Path(self._run(["rev-parse", "--show-toplevel"], start).strip()).resolve()

    def changed_paths(self, start: Path) -> list[Path]:
        """Absolute paths of changed entries, or ``[]`` when git is unusable."""
        try:
            repo_root = self.repository_root(start)
            output = self._run(["status", "--porcelain", "--untracked-files=all"], repo_root)
        except (OSError, subprocess.SubprocessError, ValueError) as exc:
            logger.debug("git_status_unavailable", cwd=str(start), error=str(exc))
            return []

        paths: list[Path] = []
        for line in output.splitlines():
            try:
                relative = parse_status_line(line)
            except UnicodeError:
                logger.debug("git_status_line_skipped", line=line)
                continue
            if relative:
                paths.append((repo_root / relative).resolve())
        return paths


# ── Selector ─────────────────────────────────────────────────────────────


class ChangeSetSelector:
    """Chooses the files to process for a run."""

    def __init__(
        self,
        project_root: Path,
        discovered: DiscoveredFolders,
        *,
        git: GitStatusReader | None = None,
    ) -> None:
        self.project_root = Path(project_root).resolve()
        self.discovered = discovered
        self.git = git or GitStatusReader()

    def select(
        self,
        extension: str,
        *,
        explicit: str | Path | None = None,
        exhaustive: bool = False,
    ) -> Selection:
        if explicit is not None:
            return Selection(SelectionMode.EXPLICIT, extension, self._explicit(explicit, extension))
        if exhaustive:
            return Selection(SelectionMode.EXHAUSTIVE, extension, self.all_files(extension))
        return Selection(SelectionMode.DIFF, extension, self.changed_files(extension))

    def resolve(self, path: str | Path) -> Path:
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.project_root / candidate
        return candidate.resolve()

    def _explicit(self, path: str | Path, extension: str) -> list[Path]:
        resolved = self.resolve(path)
        if not matches_extension(resolved, extension, self.project_root):
            logger.warning("explicit_file_filtered", path=str(resolved), extension=extension)
            return []
        return [resolved]

    def all_files(self, extension: str) -> list[Path]:
        return [path for _, path in iter_component_files(self.discovered, extension)]

    def changed_files(self, extension: str) -> list[Path]:
        selected = _dedupe(
            path
            for path in self.git.changed_paths(self.project_root)
            if path.name.lower().endswith(extension.lower())
            and path.is_file()
            and path.is_relative_to(self.project_root)
            and matches_extension(path, extension, self.project_root)
        )
        logger.debug("git_changes_selected", extension=extension, count=len(selected))
        return selected


def _dedupe(paths: Iterable[Path]) -> list[Path]:
    seen: set[Path] = set()
    result = []
    for path in paths:
        if path not in seen:
            seen.add(path)
            result.append(path)
    return result
