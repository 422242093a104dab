"""Shared types and helpers for CLI commands."""

from enum import Enum
from pathlib import Path

import typer

from modvault.core.config import ModvaultConfig, load_config
from modvault.core.errors import ModvaultError
from modvault.core.service import ModvaultService
from modvault.utils.formatting import print_error


class OutputFormat(str, Enum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


def get_config_path(ctx: typer.Context) -> Path | None:
    """Config file chosen with the global --config option, if any."""
    obj = ctx.find_root().obj or {}
    return obj.get("config_path")


def load_cli_config(ctx: typer.Context) -> ModvaultConfig:
    """Load the configuration, reporting failures as a CLI error."""
    try:
        return load_config(get_config_path(ctx))
    except ModvaultError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


def open_service(ctx: typer.Context, config: ModvaultConfig | None = None) -> ModvaultService:
    """Build the service for this invocation and close it when the command ends.

    Args:
        ctx: Typer context of the running command.
        config: Configuration to use. Loaded from disk if None.

    Returns:
        Ready ModvaultService.
    """
    if config is None:
        config = load_cli_config(ctx)
    try:
        service = ModvaultService(config)
    except ModvaultError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    ctx.call_on_close(service.close)
    return service
