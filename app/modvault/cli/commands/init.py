"""Init command implementation.

Registers a mods directory, creates its snapshot repository and records
the mods found in it.
"""

from pathlib import Path
from typing import Annotated

import typer

from modvault.cli.types import get_config_path, load_cli_config, open_service
from modvault.core.config import save_config
from modvault.core.errors import ModvaultError
from modvault.utils.formatting import console, print_error, print_info, print_success
from modvault.utils.shell import command_exists

app = typer.Typer(
    help="Set up a mods directory for versioned management.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def init(
    ctx: typer.Context,
    mods_path: Annotated[
        Path | None,
        typer.Option(
            "--mods-path",
            "-p",
            help="Mods directory to manage. Saved to the config file.",
        ),
    ] = None,
) -> None:
    """Initialize a mods directory.

    Creates a git repository in the mods directory (if it has none), writes
    the ignore list, takes the initial snapshot and scans all mods.

    Examples:
        modvault init --mods-path ~/Documents/Mods
        modvault init                 # Re-use the configured directory
    """
    config = load_cli_config(ctx)

    if mods_path is not None:
        resolved = mods_path.expanduser().resolve()
        if not resolved.is_dir():
            print_error(f"Not a directory: {resolved}")
            raise typer.Exit(code=1)
        config = config.model_copy(update={"mods_path": resolved})
        try:
            saved = save_config(config, get_config_path(ctx))
        except ModvaultError as e:
            print_error(str(e))
            raise typer.Exit(code=1) from e
        print_info(f"Saved mods directory to {saved}")

    if not command_exists(config.git_executable):
        print_error(f"{config.git_executable} not found. Install git to use modvault.")
        raise typer.Exit(code=1)

    service = open_service(ctx, config)
    try:
        ensured = service.ensure_repository()
        report = service.scan()
    except ModvaultError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if ensured.created:
        print_success(f"Created snapshot repository in {ensured.root}")
    else:
        print_info(f"Repository already present in {ensured.root}")

    console.print(f"Found [bold]{len(report.records)}[/] mods.")
    for error in report.errors:
        console.print(f"[warning]Unreadable:[/] {error}")
