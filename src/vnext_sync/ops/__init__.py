"""
Operations layer.

Transport-agnostic functions behind the CLI. Each takes a
:class:`~vnext_sync.ops.context.SyncContext` and returns a
:class:`~vnext_sync.report.BatchReport` (or :class:`SystemCheck`).
Configuration errors propagate; everything else is recorded in the result.
"""

from vnext_sync.ops.components import reset_components, sync_missing, update_components
from vnext_sync.ops.context import SyncContext, open_context
from vnext_sync.ops.health import SystemCheck, check_system
from vnext_sync.ops.requests import EmbedRequest, ResetRequest, UpdateRequest
from vnext_sync.ops.scripts import embed_scripts

__all__ = [
    "EmbedRequest",
    "ResetRequest",
    "SyncContext",
    "SystemCheck",
    "UpdateRequest",
    "check_system",
    "embed_scripts",
    "open_context",
    "reset_components",
    "sync_missing",
    "update_components",
]
