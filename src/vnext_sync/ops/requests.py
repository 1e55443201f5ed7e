"""
Typed request objects for operations.

Each dataclass is the input contract of one operation function; requests
carry only validated, transport-agnostic data.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from vnext_sync.discovery.config import ComponentType


@dataclass(frozen=True, slots=True)
class UpdateRequest:
    """Request for :func:`vnext_sync.ops.components.update_components`.

    Attributes:
        file: Reconcile only this definition (scripts still follow ``all``).
        all: Every script and every definition instead of the git diff.
    """

    file: Path | None = None
    all: bool = False


@dataclass(frozen=True, slots=True)
class EmbedRequest:
    """Request for :func:`vnext_sync.ops.scripts.embed_scripts`."""

    file: Path | None = None
    all: bool = False


@dataclass(frozen=True, slots=True)
class ResetRequest:
    """Request for :func:`vnext_sync.ops.components.reset_components`.

    ``component_type=None`` resets every discovered type.
    """

    component_type: ComponentType | None = None
