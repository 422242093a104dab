"""History commands.

Shows snapshots of the mods directory, takes manual snapshots and rolls
back to an earlier one.
"""

import json
from typing import Annotated

import typer

from modvault.cli.types import open_service
from modvault.core.errors import ModvaultError
from modvault.utils.formatting import (
    console,
    create_history_table,
    format_history_row,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from modvault.vcs.models import Snapshot

app = typer.Typer(
    name="history",
    help="View and restore snapshots of the mods directory.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def history(
    ctx: typer.Context,
    limit: Annotated[
        int,
        typer.Option(
            "--limit",
            "-n",
            help="Maximum number of snapshots to show.",
        ),
    ] = 20,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show snapshots, newest first.

    Examples:
        modvault history              # Show last 20 snapshots
        modvault history -n 50        # Show last 50 snapshots
        modvault history --json       # JSON output for scripting
    """
    if ctx.invoked_subcommand is not None:
        return

    service = open_service(ctx)
    try:
        snapshots = service.history(limit)
    except ModvaultError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if json_output:
        console.print_json(json.dumps([s.to_dict() for s in snapshots]))
        return

    if not snapshots:
        print_info("No snapshots found.")
        return

    _print_table(snapshots)


def _print_table(snapshots: list[Snapshot]) -> None:
    table = create_history_table()
    for snapshot in snapshots:
        table.add_row(*format_history_row(snapshot))
    console.print(table)


@app.command()
def snapshot(
    ctx: typer.Context,
    message: Annotated[
        str,
        typer.Option("--message", "-m", help="Snapshot message."),
    ] = "Manual snapshot",
) -> None:
    """Record the current state of the mods directory."""
    service = open_service(ctx)
    try:
        result = service.snapshot(message)
    except ModvaultError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if result.no_changes:
        print_info("Nothing changed since the last snapshot.")
        return
    print_success(f"Created snapshot {result.snapshot_id}")


@app.command()
def rollback(
    ctx: typer.Context,
    snapshot_id: Annotated[str, typer.Argument(help="Snapshot id (full or abbreviated).")],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Restore the mods directory to a snapshot.

    The current state is kept on a backup branch first, so a rollback can
    itself be undone.
    """
    if not yes:
        print_warning("Rollback replaces the contents of the mods directory.")
        if not typer.confirm(f"Roll back to {snapshot_id}?"):
            print_info("Aborted.")
            raise typer.Exit(code=0)

    service = open_service(ctx)
    try:
        result = service.rollback(snapshot_id)
    except ModvaultError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Rolled back to {result.snapshot_id[:7]} on {result.branch}.")
    console.print(f"[dim]Previous state saved as branch {result.backup_branch}[/dim]")


@app.command()
def branches(ctx: typer.Context) -> None:
    """List branches, including rollback backups."""
    service = open_service(ctx)
    try:
        names = service.branches()
        current = service.current_branch()
    except ModvaultError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    for name in names:
        marker = "*" if name == current else " "
        console.print(f"{marker} {name}")


@app.command()
def branch(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Name of the new branch.")],
    no_switch: Annotated[
        bool,
        typer.Option("--no-switch", help="Create the branch without checking it out."),
    ] = False,
) -> None:
    """Create a branch at the current snapshot."""
    service = open_service(ctx)
    try:
        service.create_branch(name, switch=not no_switch)
    except ModvaultError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if no_switch:
        print_success(f"Created branch {name}")
    else:
        print_success(f"Created and switched to branch {name}")


@app.command()
def switch(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Branch to check out.")],
) -> None:
    """Check out another branch and re-scan its mods."""
    service = open_service(ctx)
    try:
        service.switch_branch(name)
    except ModvaultError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Switched to branch {name}")


@app.command()
def status(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
) -> None:
    """Show changes made since the last snapshot."""
    service = open_service(ctx)
    try:
        repo_status = service.status()
    except ModvaultError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if json_output:
        console.print_json(json.dumps(repo_status.to_dict()))
        return

    console.print(f"On branch [bold]{repo_status.branch or '(detached)'}[/bold]")
    if repo_status.clean:
        print_info("Nothing changed since the last snapshot.")
        return
    for label, style, paths in (
        ("Staged", "added", repo_status.staged),
        ("Modified", "changed", repo_status.modified),
        ("Untracked", "removed", repo_status.untracked),
    ):
        for path in paths:
            console.print(f"  [{style}]{label:<10}[/{style}] {path}")
