"""Conflicts command implementation."""

import json
from typing import Annotated

import typer

from modvault.cli.types import open_service
from modvault.core.errors import ModvaultError
from modvault.utils.formatting import (
    console,
    create_conflict_table,
    format_conflict_row,
    print_error,
    print_success,
)

app = typer.Typer(
    help="Detect conflicts among enabled mods.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def conflicts(
    ctx: typer.Context,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON."),
    ] = False,
) -> None:
    """Report duplicate mods and excessive script mods.

    Exits with code 2 when conflicts are found, so scripts can react.
    """
    service = open_service(ctx)
    try:
        report = service.conflicts()
    except ModvaultError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if json_output:
        console.print_json(json.dumps(report.to_dict()))
    elif not report.has_conflicts:
        print_success("No conflicts found.")
    else:
        table = create_conflict_table()
        for finding in report.findings:
            table.add_row(*format_conflict_row(finding))
        console.print(table)
        console.print("\n[bold]Suggestions:[/]")
        for suggestion in report.suggestions:
            console.print(f"  - {suggestion}")

    if report.has_conflicts:
        raise typer.Exit(code=2)
