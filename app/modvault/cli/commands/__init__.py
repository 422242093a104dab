"""CLI commands for modvault.

This package contains all subcommand implementations.
"""

from modvault.cli.commands import config, conflicts, history, init, mods, profiles, scan, watch

__all__ = ["config", "conflicts", "history", "init", "mods", "profiles", "scan", "watch"]
