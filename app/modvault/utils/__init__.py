"""Utility modules for modvault.

This module exports commonly used utility functions.
"""

from modvault.utils.formatting import (
    console,
    create_mod_table,
    err_console,
    format_size,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from modvault.utils.shell import CommandResult, command_exists, run_command

__all__ = [
    "CommandResult",
    "command_exists",
    "console",
    "create_mod_table",
    "err_console",
    "format_size",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
    "run_command",
]
