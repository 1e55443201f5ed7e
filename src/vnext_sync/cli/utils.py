"""
CLI utility helpers — context creation and report rendering.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from vnext_sync.core.errors import ConfigError
from vnext_sync.core.logging import configure_logging
from vnext_sync.core.settings import SyncSettings
from vnext_sync.ops.context import SyncContext, open_context
from vnext_sync.ops.health import SystemCheck
from vnext_sync.report import BatchReport, BatchStatus

console = Console()
err_console = Console(stderr=True)

CONFIG_ERROR_EXIT = 2


# ── Context helper ───────────────────────────────────────────────────────


def load_settings() -> SyncSettings:
    settings = SyncSettings()
    configure_logging(settings.log_level, json_format=settings.json_logs)
    return settings


@contextmanager
def cli_context(project: Path, *, dry_run: bool = False) -> Iterator[SyncContext]:
    """Open a :class:`SyncContext` for a command; config errors exit with 2."""
    settings = load_settings()
    try:
        with open_context(project, settings, dry_run=dry_run, caller="cli") as ctx:
            yield ctx
    except ConfigError as exc:
        err_console.print(f"[bold red]Configuration error[/bold red]: {exc.message}")
        raise typer.Exit(code=CONFIG_ERROR_EXIT) from exc


def confirm_or_abort(message: str, *, assume_yes: bool, as_json: bool = False) -> None:
    """Ask before a destructive run; JSON output never prompts, so it needs ``--yes``."""
    if assume_yes:
        return
    if as_json:
        raise typer.BadParameter("--json cannot prompt for confirmation; pass --yes", param_hint="--yes")
    if not typer.confirm(message, default=False):
        console.print("[yellow]Cancelled.[/yellow]")
        raise typer.Exit(code=0)


# ── Output helpers ───────────────────────────────────────────────────────


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def output_report(report: BatchReport, *, as_json: bool = False, title: str = "") -> None:
    """Render a :class:`BatchReport` and exit with its exit code."""
    if as_json:
        print_json(report.to_dict())
        raise typer.Exit(code=report.exit_code)

    if report.status is BatchStatus.UP_TO_DATE:
        console.print("[green]✓ Everything is up to date.[/green]")
        raise typer.Exit(code=0)

    if report.script_updates:
        _print_script_updates(report.script_updates)

    _print_stats(report, title=title)

    if report.failures:
        err_console.print(f"\n[bold red]{len(report.failures)} failure(s):[/bold red]")
        for failure in report.failures:
            err_console.print(f"  [red]✗[/red] [{failure.type}] {failure.file.name}: {failure.error}")

    if report.reinitialized is False:
        err_console.print("[yellow]⚠ System re-initialization failed.[/yellow]")

    prefix = "[dim](dry run)[/dim] " if report.dry_run else ""
    if report.status is BatchStatus.FAILED:
        console.print(f"\n{prefix}[bold red]Completed with failures.[/bold red]")
    else:
        console.print(f"\n{prefix}[bold green]Completed successfully.[/bold green]")
    raise typer.Exit(code=report.exit_code)


def output_check(check: SystemCheck, *, as_json: bool = False) -> None:
    """Render a :class:`SystemCheck` and exit 0 when healthy."""
    if as_json:
        print_json(check.to_dict())
        raise typer.Exit(code=check.exit_code)

    console.print(f"[bold]Project:[/bold] {check.project_root}")
    if check.config_ok:
        console.print(f"  [green]✓[/green] configuration (domain: {check.domain})")
    else:
        console.print(f"  [red]✗[/red] configuration: {check.config_error}")

    if check.folders:
        table = Table(title="Component folders", show_lines=False, pad_edge=False)
        table.add_column("Type")
        table.add_column("Folder")
        table.add_column("Status")
        for entry in check.folders:
            status = "[green]found[/green]" if entry.found else "[dim]missing[/dim]"
            table.add_row(entry.component_type.label, entry.folder_name, status)
        console.print(table)

    api_mark = "[green]✓[/green]" if check.api_ok else "[red]✗[/red]"
    console.print(f"  {api_mark} API {check.api_url}")
    db_mark = "[green]✓[/green]" if check.database_ok else "[red]✗[/red]"
    db_error = f": {check.database_error}" if check.database_error else ""
    console.print(f"  {db_mark} database {check.database}{db_error}")
    raise typer.Exit(code=check.exit_code)


# ── Private helpers ──────────────────────────────────────────────────────


def _print_stats(report: BatchReport, *, title: str = "") -> None:
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for column in ("Type", "Created", "Updated", "Failed", "Skipped"):
        table.add_column(column, justify="left" if column == "Type" else "right")
    for label, stats in report.stats.items():
        table.add_row(label, str(stats.created), str(stats.updated), str(stats.failed), str(stats.skipped))
    console.print(table)


def _print_script_updates(script_updates: dict[str, int]) -> None:
    console.print("[bold]Scripts embedded:[/bold]")
    for name, count in script_updates.items():
        console.print(f"  [cyan]{name}[/cyan]: {count} site(s)")
