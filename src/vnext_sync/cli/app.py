"""
Root Typer application for the vnext-sync CLI.

Commands map one-to-one onto :mod:`vnext_sync.ops` functions; this module
only parses options, asks for confirmation and renders results.
"""

from __future__ import annotations

from pathlib import Path

import typer
from typer import Typer

from vnext_sync.cli.utils import (
    cli_context,
    confirm_or_abort,
    console,
    load_settings,
    output_check,
    output_report,
    print_json,
)
from vnext_sync.discovery.config import ComponentType

app = Typer(
    name="vnext-sync",
    help="vnext-sync — keep component definitions, the instance index and the definition API in step.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

ProjectOption = typer.Option(Path("."), "--project", "-p", help="Project root holding vnext.config.json.")
DryRunOption = typer.Option(False, "--dry-run", help="Show what would change without writing anything.")
JsonOption = typer.Option(False, "--json", help="Print the result as JSON.")
YesOption = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation.")


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("vnext-sync")
        except PackageNotFoundError:
            from vnext_sync import __version__ as v
        typer.echo(f"vnext-sync {v}")
        raise typer.Exit()


@app.callback()
def callback(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """vnext-sync CLI — embed scripts, publish definitions, check the system."""


# ── Commands ─────────────────────────────────────────────────────────────


@app.command("update")
def update(
    all_files: bool = typer.Option(False, "--all", "-a", help="Every script and definition, not just git changes."),
    file: Path | None = typer.Option(None, "--file", "-f", help="Reconcile only this definition."),
    project: Path = ProjectOption,
    dry_run: bool = DryRunOption,
    json_out: bool = JsonOption,
    yes: bool = YesOption,
) -> None:
    """Embed changed scripts, then publish changed definitions."""
    from vnext_sync.ops.components import update_components
    from vnext_sync.ops.requests import UpdateRequest

    if all_files and file is None:
        confirm_or_abort("ALL definitions will be re-published. Continue?", assume_yes=yes, as_json=json_out)

    with cli_context(project, dry_run=dry_run) as ctx:
        report = update_components(ctx, UpdateRequest(file=file, all=all_files))
        output_report(report, as_json=json_out, title="Update")


@app.command("scripts")
def scripts(
    all_files: bool = typer.Option(False, "--all", "-a", help="Every script, not just git changes."),
    file: Path | None = typer.Option(None, "--file", "-f", help="Embed only this script."),
    project: Path = ProjectOption,
    dry_run: bool = DryRunOption,
    json_out: bool = JsonOption,
) -> None:
    """Embed scripts into the definitions that reference them."""
    from vnext_sync.ops.requests import EmbedRequest
    from vnext_sync.ops.scripts import embed_scripts

    with cli_context(project, dry_run=dry_run) as ctx:
        report = embed_scripts(ctx, EmbedRequest(file=file, all=all_files))
        output_report(report, as_json=json_out, title="Scripts")


@app.command("sync")
def sync(
    project: Path = ProjectOption,
    dry_run: bool = DryRunOption,
    json_out: bool = JsonOption,
) -> None:
    """Publish definitions that are not in the index yet."""
    from vnext_sync.ops.components import sync_missing

    with cli_context(project, dry_run=dry_run) as ctx:
        report = sync_missing(ctx)
        output_report(report, as_json=json_out, title="Sync")


@app.command("reset")
def reset(
    component_type: str | None = typer.Option(
        None, "--type", "-t", help="Workflows, Tasks, Schemas, Views, Functions or Extensions (default: all)."
    ),
    project: Path = ProjectOption,
    dry_run: bool = DryRunOption,
    json_out: bool = JsonOption,
    yes: bool = YesOption,
) -> None:
    """Re-publish every definition of one type, or of all types."""
    from vnext_sync.ops.components import reset_components
    from vnext_sync.ops.requests import ResetRequest

    selected: ComponentType | None = None
    if component_type and component_type.upper() != "ALL":
        try:
            selected = ComponentType.from_label(component_type)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--type") from exc

    scope = selected.label if selected else "ALL component types"
    confirm_or_abort(f"{scope} will be re-published. Continue?", assume_yes=yes, as_json=json_out)

    with cli_context(project, dry_run=dry_run) as ctx:
        report = reset_components(ctx, ResetRequest(component_type=selected))
        output_report(report, as_json=json_out, title=f"Reset: {scope}")


@app.command("check")
def check(
    project: Path = ProjectOption,
    json_out: bool = JsonOption,
) -> None:
    """Check configuration, component folders, API and database."""
    from vnext_sync.ops.health import check_system

    with cli_context(project) as ctx:
        output_check(check_system(ctx), as_json=json_out)


@app.command("config")
def show_config(
    json_out: bool = JsonOption,
) -> None:
    """Show the effective settings (passwords masked)."""
    from rich.table import Table

    from vnext_sync.core.connection import mask_url

    settings = load_settings()
    values = settings.model_dump(mode="json")
    values["database_url"] = mask_url(settings.database_url)

    if json_out:
        print_json(values)
        return

    table = Table(title="Settings")
    table.add_column("Setting")
    table.add_column("Value")
    for key, value in sorted(values.items()):
        table.add_row(f"VNEXT_{key.upper()}", str(value))
    console.print(table)


def main() -> None:
    app()
