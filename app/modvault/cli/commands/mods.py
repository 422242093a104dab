"""Mod management commands.

Lists mods and changes their state: enable, disable, toggle, install and
delete. Each change is snapshotted when auto-snapshots are on.
"""

import json
from pathlib import Path
from typing import Annotated

import typer

from modvault.cli.types import OutputFormat, open_service
from modvault.core.errors import ModvaultError
from modvault.mods.models import ToggleResult
from modvault.utils.formatting import (
    console,
    create_mod_table,
    format_mod_row,
    print_error,
    print_info,
    print_success,
)

app = typer.Typer(
    help="List and manage individual mods.",
    no_args_is_help=True,
)


@app.command("list")
def list_mods(
    ctx: typer.Context,
    enabled_only: Annotated[
        bool,
        typer.Option("--enabled", help="Show only enabled mods."),
    ] = False,
    disabled_only: Annotated[
        bool,
        typer.Option("--disabled", help="Show only disabled mods."),
    ] = False,
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format.",
            case_sensitive=False,
        ),
    ] = OutputFormat.TABLE,
) -> None:
    """List recorded mods."""
    if enabled_only and disabled_only:
        print_error("--enabled and --disabled are mutually exclusive.")
        raise typer.Exit(code=1)

    state = True if enabled_only else False if disabled_only else None
    service = open_service(ctx)
    try:
        records = service.list_mods(enabled=state)
    except ModvaultError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps([r.to_dict() for r in records]))
        return

    if not records:
        print_info("No mods recorded. Run 'modvault scan' first.")
        return

    table = create_mod_table()
    for record in records:
        table.add_row(*format_mod_row(record))
    console.print(table)


def _report_toggle(result: ToggleResult) -> None:
    state = "enabled" if result.enabled else "disabled"
    if not result.changed:
        print_info(f"Mod {result.mod_id} is already {state}.")
        return
    print_success(f"Mod {result.mod_id} {state}.")
    if result.snapshot is not None and not result.snapshot.no_changes:
        console.print(f"[dim]Snapshot [snapshot.id]{result.snapshot.snapshot_id[:7]}[/][/dim]")


def _apply(ctx: typer.Context, mod_id: str, enabled: bool | None) -> None:
    service = open_service(ctx)
    try:
        if enabled is None:
            result = service.toggle(mod_id)
        else:
            result = service.set_enabled(mod_id, enabled)
    except ModvaultError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    _report_toggle(result)


@app.command()
def toggle(
    ctx: typer.Context,
    mod_id: Annotated[str, typer.Argument(help="Mod id.")],
) -> None:
    """Flip a mod between enabled and disabled."""
    _apply(ctx, mod_id, None)


@app.command()
def enable(
    ctx: typer.Context,
    mod_id: Annotated[str, typer.Argument(help="Mod id.")],
) -> None:
    """Enable a mod."""
    _apply(ctx, mod_id, True)


@app.command()
def disable(
    ctx: typer.Context,
    mod_id: Annotated[str, typer.Argument(help="Mod id.")],
) -> None:
    """Disable a mod."""
    _apply(ctx, mod_id, False)


@app.command()
def delete(
    ctx: typer.Context,
    mod_id: Annotated[str, typer.Argument(help="Mod id.")],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Delete a mod file and its record."""
    service = open_service(ctx)
    try:
        record = service.get(mod_id)
        if not yes and not typer.confirm(f"Delete {record.file_name}?"):
            print_info("Aborted.")
            raise typer.Exit(code=0)
        service.delete(mod_id)
    except ModvaultError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_success(f"Deleted {record.file_name}.")


@app.command()
def install(
    ctx: typer.Context,
    source: Annotated[
        Path,
        typer.Argument(help="Mod file to copy into the mods directory."),
    ],
) -> None:
    """Install a mod file into the mods directory."""
    service = open_service(ctx)
    try:
        record = service.install(source.expanduser())
    except ModvaultError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_success(f"Installed {record.display_name} as {record.id}.")
