"""Scan command implementation.

Reconciles the record store with the mods directory.
"""

import json
from typing import Annotated

import typer

from modvault.cli.types import OutputFormat, open_service
from modvault.core.errors import ModvaultError
from modvault.mods.models import ScanReport
from modvault.utils.formatting import (
    console,
    create_mod_table,
    format_mod_row,
    print_error,
    print_warning,
)

app = typer.Typer(
    help="Scan the mods directory and update mod records.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def scan(
    ctx: typer.Context,
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
    """Scan the mods directory.

    New files are recorded, changed files re-hashed, files renamed outside
    modvault are matched by content, and records of vanished files removed.

    Examples:
        modvault scan
        modvault scan --format json
    """
    service = open_service(ctx)
    try:
        report = service.scan()
    except ModvaultError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(report.to_dict()))
        return

    _print_report(report)


def _print_report(report: ScanReport) -> None:
    table = create_mod_table(title=f"Mods in {report.root}")
    for record in report.records:
        table.add_row(*format_mod_row(record))
    console.print(table)

    enabled = sum(1 for r in report.records if r.enabled)
    console.print(
        f"\n[dim]{len(report.records)} mods ({enabled} enabled): "
        f"[added]{len(report.added)} added[/], "
        f"[changed]{len(report.updated)} updated[/], "
        f"[changed]{len(report.moved)} moved[/], "
        f"[removed]{len(report.removed)} removed[/][/dim]"
    )
    for error in report.errors:
        print_warning(f"Could not read {error}")
