"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from modvault.core.theme import get_theme

if TYPE_CHECKING:
    from modvault.mods.conflicts import ConflictFinding
    from modvault.mods.models import ModRecord, Profile
    from modvault.vcs.models import Snapshot


def _detect_color_system() -> str | None:
    """Return "truecolor" for interactive terminals, None to let Rich auto-detect."""
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())


def format_size(size_bytes: int) -> str:
    """Format a byte count for humans.

    Examples:
        >>> format_size(512)
        '512 B'
        >>> format_size(1536)
        '1.5 KB'
    """
    size = float(size_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{int(size)} B" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


def create_mod_table(title: str = "Mods") -> Table:
    """Create a pre-configured table for displaying mods.

    Args:
        title: Table title.

    Returns:
        Rich Table configured for mod display.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )
    table.add_column("", width=2, justify="center")
    table.add_column("ID", style="muted", no_wrap=True)
    table.add_column("Name", no_wrap=True)
    table.add_column("Category", style="text")
    table.add_column("Version", style="muted")
    table.add_column("Size", style="mod.size", justify="right")
    return table


def format_mod_row(record: ModRecord) -> tuple[str, str, str, str, str, str]:
    """Format a mod as a table row.

    Enabled mods get a filled circle, disabled ones an empty circle and
    muted styling.
    """
    if record.enabled:
        icon = "[mod.enabled]●[/]"
        name = f"[mod.name]{record.display_name}[/]"
    else:
        icon = "[mod.disabled]○[/]"
        name = f"[mod.disabled]{record.display_name}[/]"
    return (
        icon,
        record.id,
        name,
        record.category.value,
        record.version or "-",
        format_size(record.file_size_bytes),
    )


def create_conflict_table() -> Table:
    table = Table(
        title="Conflicts",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Severity", no_wrap=True)
    table.add_column("Kind", style="text", no_wrap=True)
    table.add_column("Mods", style="muted")
    table.add_column("Description", style="text")
    return table


def format_conflict_row(finding: ConflictFinding) -> tuple[str, str, str, str]:
    severity = finding.severity.value
    return (
        f"[severity.{severity}]{severity}[/]",
        finding.kind.value,
        ", ".join(finding.affected_mod_ids),
        finding.description,
    )


def create_history_table() -> Table:
    table = Table(
        title="Snapshots",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("ID", style="snapshot.id", no_wrap=True)
    table.add_column("Date", style="muted", no_wrap=True)
    table.add_column("Message", style="text")
    table.add_column("Files", justify="right", style="info")
    return table


def format_history_row(snapshot: Snapshot) -> tuple[str, str, str, str]:
    return (
        snapshot.short_id,
        snapshot.authored_at.strftime("%Y-%m-%d %H:%M"),
        snapshot.summary,
        str(len(snapshot.changed_paths)),
    )


def create_profile_table() -> Table:
    table = Table(
        title="Profiles",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("", width=2, justify="center")
    table.add_column("Name", style="mod.name", no_wrap=True)
    table.add_column("Mods", justify="right", style="info")
    table.add_column("Branch", style="muted")
    table.add_column("Last used", style="muted", no_wrap=True)
    table.add_column("Description", style="text")
    return table


def format_profile_row(profile: Profile) -> tuple[str, str, str, str, str, str]:
    """Format a profile as a table row; the active profile is marked."""
    return (
        "[mod.enabled]●[/]" if profile.active else "",
        profile.name,
        str(len(profile.mod_ids)),
        profile.branch or "",
        profile.last_used_at.strftime("%Y-%m-%d %H:%M") if profile.last_used_at else "never",
        profile.description or "",
    )


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
