"""
Component reconciliation operations.

``update_components``  embed changed scripts, then reconcile the selected
                       definitions (explicit file, all, or the git diff)
``sync_missing``       embed every script, publish only definitions the
                       index does not know
``reset_components``   re-publish every definition of one type, or of all
                       types

Embedding runs first so that definitions it rewrites show up in the git
diff of the reconciliation step.
"""

from __future__ import annotations

import time
from pathlib import Path

from vnext_sync.core.errors import ConfigError
from vnext_sync.core.logging import LogContext, get_logger
from vnext_sync.discovery.config import ComponentType
from vnext_sync.discovery.folders import DiscoveredFolders
from vnext_sync.ops.context import SyncContext
from vnext_sync.ops.requests import ResetRequest, UpdateRequest
from vnext_sync.ops.scripts import embed_selected, select_scripts
from vnext_sync.reconcile import ReconcileMode, ReconciliationEngine
from vnext_sync.report import BatchReport
from vnext_sync.selection import JSON_EXTENSION, ChangeSetSelector, iter_component_files

logger = get_logger(__name__)


def _engine(ctx: SyncContext, mode: ReconcileMode = ReconcileMode.REPLACE) -> ReconciliationEngine:
    return ReconciliationEngine(
        ctx.index,
        ctx.api,
        mode=mode,
        delete_policy=ctx.settings.delete_failure_policy,
        dry_run=ctx.dry_run,
    )


def _reconcile(
    ctx: SyncContext,
    files: list[Path],
    discovered: DiscoveredFolders,
    report: BatchReport,
    mode: ReconcileMode = ReconcileMode.REPLACE,
) -> BatchReport:
    report.add_candidates(len(files))
    if not files:
        logger.info("no_definitions_selected")
        return report
    return _engine(ctx, mode).run(files, discovered, report)


def update_components(ctx: SyncContext, request: UpdateRequest) -> BatchReport:
    """Embed scripts, then reconcile the selected definitions."""
    started = time.perf_counter()
    discovered = ctx.discover()
    report = BatchReport(operation="update", dry_run=ctx.dry_run)

    with LogContext(run=ctx.run_id, operation=report.operation, caller=ctx.caller):
        scripts = select_scripts(ctx, discovered, exhaustive=request.all)
        report.add_candidates(len(scripts))
        embed_selected(ctx, scripts, discovered, report)

        selection = ChangeSetSelector(ctx.project_root, discovered).select(
            JSON_EXTENSION, explicit=request.file, exhaustive=request.all
        )
        logger.info("definitions_selected", mode=selection.mode.value, count=len(selection))
        _reconcile(ctx, selection.files, discovered, report)

    report.elapsed_ms = (time.perf_counter() - started) * 1000
    return report


def sync_missing(ctx: SyncContext) -> BatchReport:
    """Publish every definition that has no index entry yet."""
    started = time.perf_counter()
    discovered = ctx.discover()
    report = BatchReport(operation="sync", dry_run=ctx.dry_run)

    with LogContext(run=ctx.run_id, operation=report.operation, caller=ctx.caller):
        scripts = select_scripts(ctx, discovered, exhaustive=True)
        report.add_candidates(len(scripts))
        embed_selected(ctx, scripts, discovered, report)

        files = [path for _, path in iter_component_files(discovered, JSON_EXTENSION)]
        _reconcile(ctx, files, discovered, report, ReconcileMode.MISSING_ONLY)

    report.elapsed_ms = (time.perf_counter() - started) * 1000
    return report


def reset_components(ctx: SyncContext, request: ResetRequest | None = None) -> BatchReport:
    """Re-publish every definition of ``request.component_type`` (or all types).

    Raises :class:`ConfigError` when the requested type has no discovered
    folder.
    """
    request = request or ResetRequest()
    started = time.perf_counter()
    discovered = ctx.discover()
    report = BatchReport(operation="reset", dry_run=ctx.dry_run)

    scope = _scope(discovered, request.component_type)
    with LogContext(run=ctx.run_id, operation=report.operation, caller=ctx.caller):
        files = [path for _, path in iter_component_files(scope, JSON_EXTENSION)]
        logger.info("reset_selected", scope=[t.value for t in scope], count=len(files))
        _reconcile(ctx, files, discovered, report)

    report.elapsed_ms = (time.perf_counter() - started) * 1000
    return report


def _scope(discovered: DiscoveredFolders, component_type: ComponentType | None) -> DiscoveredFolders:
    if component_type is None:
        return discovered
    if component_type not in discovered:
        raise ConfigError(f"{component_type.label} folder not found").with_context(
            component_type=component_type.value
        )
    return DiscoveredFolders({component_type: discovered[component_type]})
