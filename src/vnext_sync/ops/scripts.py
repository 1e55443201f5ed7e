"""
Script embedding operations.

Select script files (explicit, all, or changed in git) and embed each into
every definition that references it.
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from pathlib import Path

from vnext_sync.core.errors import ScriptReadError
from vnext_sync.core.logging import LogContext, get_logger
from vnext_sync.discovery.folders import DiscoveredFolders
from vnext_sync.embed import embed_script
from vnext_sync.ops.context import SyncContext
from vnext_sync.ops.requests import EmbedRequest
from vnext_sync.report import BatchReport
from vnext_sync.selection import ChangeSetSelector

logger = get_logger(__name__)


def embed_selected(
    ctx: SyncContext,
    scripts: Iterable[Path],
    discovered: DiscoveredFolders,
    report: BatchReport,
) -> BatchReport:
    """Embed *scripts* in order, recording each outcome in *report*."""
    for script in scripts:
        with LogContext(script=script.name):
            try:
                result = embed_script(
                    script,
                    discovered,
                    marker=ctx.settings.source_root_marker,
                    dry_run=ctx.dry_run,
                )
            except ScriptReadError as exc:
                logger.warning("script_read_failed", **exc.to_dict())
                report.record_script_failure(script, exc.message)
                continue
        report.record_embed(result)
        if result.success:
            logger.info("script_embedded", script=script.name, files=result.updated_json_count, sites=result.total_updates)
        elif result.skipped:
            logger.info("script_unreferenced", script=script.name)
    return report


def select_scripts(
    ctx: SyncContext,
    discovered: DiscoveredFolders,
    *,
    file: Path | None = None,
    exhaustive: bool = False,
) -> list[Path]:
    selector = ChangeSetSelector(ctx.project_root, discovered)
    selection = selector.select(ctx.settings.script_extension, explicit=file, exhaustive=exhaustive)
    logger.debug("scripts_selected", mode=selection.mode.value, count=len(selection))
    return selection.files


def embed_scripts(ctx: SyncContext, request: EmbedRequest) -> BatchReport:
    """Embedding-only run."""
    started = time.perf_counter()
    discovered = ctx.discover()
    report = BatchReport(operation="scripts", dry_run=ctx.dry_run)

    with LogContext(run=ctx.run_id, operation=report.operation, caller=ctx.caller):
        scripts = select_scripts(ctx, discovered, file=request.file, exhaustive=request.all)
        report.add_candidates(len(scripts))
        embed_selected(ctx, scripts, discovered, report)

    report.elapsed_ms = (time.perf_counter() - started) * 1000
    return report
