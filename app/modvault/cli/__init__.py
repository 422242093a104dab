"""CLI package for modvault.

This package contains the Typer application and all subcommands.
"""

from modvault.cli.main import app

__all__ = ["app"]
