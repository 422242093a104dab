"""Main CLI application entry point.

Defines the Typer application and global options.
"""

from pathlib import Path
from typing import Annotated

import typer

from modvault import __version__
from modvault.cli.commands import config, conflicts, history, init, mods, profiles, scan, watch
from modvault.core.logs import configure_logging

app = typer.Typer(
    name="modvault",
    help="Versioned state management for game mod folders.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"modvault version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Config file to use instead of ~/.config/modvault/config.toml.",
            envvar="MODVAULT_CONFIG",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
) -> None:
    """modvault - enable, disable and version your mods.

    Every change to the mods directory is recorded as a snapshot that can
    be inspected and rolled back.
    """
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = config_path


# Register commands
app.add_typer(init.app, name="init")
app.add_typer(scan.app, name="scan")
app.add_typer(mods.app, name="mods")
app.add_typer(conflicts.app, name="conflicts")
app.add_typer(profiles.app, name="profiles")
app.add_typer(history.app, name="history")
app.add_typer(watch.app, name="watch")
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
