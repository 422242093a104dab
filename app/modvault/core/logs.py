"""Logging setup for the command-line shell.

Library modules only create module-level loggers; handlers are installed
here, once, by the CLI entry point.
"""

import logging

from rich.logging import RichHandler

from modvault.utils.formatting import err_console


def configure_logging(verbose: bool = False) -> None:
    """Route log records to stderr through rich.

    Args:
        verbose: Log DEBUG and above instead of WARNING and above.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(
                console=err_console,
                show_path=verbose,
                rich_tracebacks=verbose,
                markup=False,
            )
        ],
        force=True,
    )
    # Third-party loggers stay at WARNING
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("watchdog").setLevel(logging.WARNING)
