"""
Script embedding.

Component definitions reference script files through embedding sites,
JSON objects carrying both a ``location`` and a ``code`` field::

    {"location": "./src/Rules/CheckLimit.csx", "code": "...", "encoding": "B64"}

Embedding a script rewrites ``code`` at every site whose ``location``
equals the script's canonical location, in every definition under the
discovered folders. ``encoding`` selects the stored form: ``NAT`` keeps the
script text as is, anything else (or no tag at all) stores Base64 of the
file's bytes.

Finding candidates is a cheap text search for the script's file name;
only files that mention it are parsed and walked.
"""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from vnext_sync.core.errors import ScriptReadError
from vnext_sync.core.logging import get_logger
from vnext_sync.discovery.folders import DiscoveredFolders
from vnext_sync.selection import JSON_EXTENSION, iter_component_files

logger = get_logger(__name__)

LOCATION_FIELD = "location"
CODE_FIELD = "code"
ENCODING_FIELD = "encoding"


class ScriptEncoding(str, Enum):
    NATIVE = "NAT"
    BASE64 = "B64"

    @classmethod
    def from_tag(cls, tag: Any) -> ScriptEncoding:
        if tag == cls.NATIVE.value:
            return cls.NATIVE
        return cls.BASE64


@dataclass(frozen=True)
class ScriptContent:
    """A script in both stored forms."""

    native: str
    base64: str

    @classmethod
    def from_bytes(cls, data: bytes) -> ScriptContent:
        return cls(
            native=data.decode("utf-8"),
            base64=base64.b64encode(data).decode("ascii"),
        )

    def encoded(self, encoding: ScriptEncoding) -> str:
        return self.native if encoding is ScriptEncoding.NATIVE else self.base64


@dataclass
class EmbedResult:
    """Outcome of embedding one script.

    ``success`` is False when no definition currently references the
    script; that is a skip, not a failure. Per-file read/parse/write
    problems land in ``errors``.
    """

    script: Path
    location: str
    success: bool = False
    updated_json_count: int = 0
    total_updates: int = 0
    per_file_counts: dict[Path, int] = field(default_factory=dict)
    candidates: list[Path] = field(default_factory=list)
    errors: dict[Path, str] = field(default_factory=dict)

    @property
    def skipped(self) -> bool:
        return not self.success and not self.errors


def script_location(script_path: Path, marker: str = "src") -> str:
    """Canonical ``./src/...`` location of a script.

    The path is truncated at the last segment equal to *marker*; without
    such a segment the bare file name is used.
    """
    parts = Path(script_path).parts
    indexes = [i for i, part in enumerate(parts) if part == marker]
    if indexes:
        return "./" + "/".join(parts[indexes[-1]:])
    return "./" + Path(script_path).name


def read_script(script_path: Path) -> ScriptContent:
    try:
        return ScriptContent.from_bytes(Path(script_path).read_bytes())
    except (OSError, UnicodeDecodeError) as exc:
        raise ScriptReadError(f"Cannot read script {Path(script_path).name}: {exc}", cause=exc).with_context(
            file=str(script_path)
        ) from exc


def update_code_sites(node: Any, location: str, content: ScriptContent) -> int:
    """Overwrite ``code`` at every site matching *location*; return the count.

    JSON documents are trees, so plain recursion terminates. Only existing
    ``code`` values are reassigned; no keys are added or removed while
    iterating.
    """
    if isinstance(node, list):
        return sum(update_code_sites(item, location, content) for item in node)
    if not isinstance(node, dict):
        return 0

    updated = 0
    if node.get(LOCATION_FIELD) == location and CODE_FIELD in node:
        node[CODE_FIELD] = content.encoded(ScriptEncoding.from_tag(node.get(ENCODING_FIELD)))
        updated += 1

    for value in list(node.values()):
        updated += update_code_sites(value, location, content)
    return updated


def dump_json(document: Any, *, trailing_newline: bool = False) -> str:
    """2-space pretty print used for every file this package writes."""
    text = json.dumps(document, indent=2, ensure_ascii=False)
    return text + "\n" if trailing_newline else text


def find_referencing_json(script_name: str, discovered: DiscoveredFolders) -> list[Path]:
    """Definition files under discovered folders whose text mentions *script_name*."""
    matches = []
    for _, candidate in iter_component_files(discovered, JSON_EXTENSION):
        try:
            text = candidate.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("embed_candidate_unreadable", file=str(candidate), error=str(exc))
            continue
        if script_name in text:
            matches.append(candidate)
    return matches


def embed_into_file(json_path: Path, location: str, content: ScriptContent, *, dry_run: bool = False) -> int:
    """Update one definition file in place; return the number of updated sites."""
    text = json_path.read_text(encoding="utf-8")
    document = json.loads(text)
    updated = update_code_sites(document, location, content)
    if updated and not dry_run:
        json_path.write_text(
            dump_json(document, trailing_newline=text.endswith("\n")), encoding="utf-8"
        )
    return updated


def embed_script(
    script_path: Path,
    discovered: DiscoveredFolders,
    *,
    marker: str = "src",
    dry_run: bool = False,
) -> EmbedResult:
    """Embed one script into every definition that references it.

    Raises :class:`ScriptReadError` if the script itself cannot be read.
    """
    script_path = Path(script_path)
    content = read_script(script_path)
    result = EmbedResult(script=script_path, location=script_location(script_path, marker))
    result.candidates = find_referencing_json(script_path.name, discovered)

    for json_path in result.candidates:
        try:
            updated = embed_into_file(json_path, result.location, content, dry_run=dry_run)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            result.errors[json_path] = str(exc)
            logger.warning("embed_file_failed", script=script_path.name, file=str(json_path), error=str(exc))
            continue
        if updated:
            result.per_file_counts[json_path] = updated
            result.total_updates += updated

    result.updated_json_count = len(result.per_file_counts)
    result.success = result.updated_json_count > 0

    logger.debug(
        "script_embedded" if result.success else "script_unreferenced",
        script=script_path.name,
        location=result.location,
        files=result.updated_json_count,
        sites=result.total_updates,
        dry_run=dry_run,
    )
    return result
