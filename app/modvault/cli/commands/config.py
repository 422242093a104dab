"""Configuration commands."""

import json
from typing import Annotated, Any

import typer
from pydantic import ValidationError

from modvault.cli.types import get_config_path, load_cli_config
from modvault.core.config import ModvaultConfig, config_to_dict, save_config
from modvault.core.errors import ModvaultError
from modvault.core.paths import get_config_path as default_config_path
from modvault.utils.formatting import console, print_error, print_success

app = typer.Typer(
    help="Show and change configuration.",
    no_args_is_help=True,
)

# Keys that hold lists; values are given comma-separated on the command line
_LIST_KEYS = {"mod_extensions"}


@app.command()
def show(
    ctx: typer.Context,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON."),
    ] = False,
) -> None:
    """Show the effective configuration."""
    config = load_cli_config(ctx)
    data = config.model_dump(mode="json")
    data["effective_database_path"] = str(config.effective_database_path)

    if json_output:
        console.print_json(json.dumps(data))
        return

    path = get_config_path(ctx) or default_config_path()
    console.print(f"[dim]Config file: {path}[/dim]")
    for key, value in data.items():
        console.print(f"[header]{key}[/] = {value}")


@app.command("set")
def set_value(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Setting name, e.g. script_threshold.")],
    value: Annotated[str, typer.Argument(help="New value.")],
) -> None:
    """Change one setting and save the config file."""
    if key not in ModvaultConfig.model_fields:
        print_error(f"Unknown setting: {key}")
        raise typer.Exit(code=1)

    config = load_cli_config(ctx)
    data: dict[str, Any] = config_to_dict(config)
    data[key] = [v.strip() for v in value.split(",")] if key in _LIST_KEYS else value

    try:
        updated = ModvaultConfig.model_validate(data)
    except ValidationError as e:
        print_error(f"Invalid value for {key}: {e.errors()[0]['msg']}")
        raise typer.Exit(code=1) from e

    try:
        path = save_config(updated, get_config_path(ctx))
    except ModvaultError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_success(f"Set {key} in {path}")
