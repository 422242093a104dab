"""Profile commands.

A profile is a named set of enabled mods. Applying one enables exactly
those mods and disables the rest, recording the switch as one snapshot.
"""

import json
from typing import Annotated

import typer

from modvault.cli.types import OutputFormat, open_service
from modvault.core.errors import ModvaultError
from modvault.utils.formatting import (
    console,
    create_profile_table,
    format_profile_row,
    print_error,
    print_info,
    print_success,
    print_warning,
)

app = typer.Typer(
    help="Save and apply named sets of enabled mods.",
    no_args_is_help=True,
)


@app.command("list")
def list_profiles(
    ctx: typer.Context,
    output_format: Annotated[
        OutputFormat,
        typer.Option("--format", "-f", help="Output format.", case_sensitive=False),
    ] = OutputFormat.TABLE,
) -> None:
    """List profiles; the active one is marked."""
    service = open_service(ctx)
    try:
        profiles = service.list_profiles()
    except ModvaultError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps([p.to_dict() for p in profiles]))
        return

    if not profiles:
        print_info("No profiles yet. Create one with 'modvault profiles create NAME'.")
        return

    table = create_profile_table()
    for profile in profiles:
        table.add_row(*format_profile_row(profile))
    console.print(table)


@app.command()
def create(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Profile name.")],
    mod_ids: Annotated[
        list[str] | None,
        typer.Option(
            "--mod",
            "-m",
            help="Mod id to include (repeatable). Defaults to all enabled mods.",
        ),
    ] = None,
    description: Annotated[
        str | None,
        typer.Option("--description", "-d", help="Free-text description."),
    ] = None,
    branch: Annotated[
        str | None,
        typer.Option("--branch", "-b", help="Branch to switch to when applying."),
    ] = None,
) -> None:
    """Create a profile from the enabled mods or an explicit list.

    Examples:
        modvault profiles create vanilla-plus
        modvault profiles create builds -m 3f2a9c01 -m 77b0e4d2 -b builds
    """
    service = open_service(ctx)
    try:
        profile = service.create_profile(
            name, mod_ids=mod_ids or None, description=description, branch=branch
        )
    except ModvaultError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Created profile {profile.name} with {len(profile.mod_ids)} mods")


@app.command()
def capture(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Profile to update.")],
) -> None:
    """Replace a profile's mods with the mods enabled right now."""
    service = open_service(ctx)
    try:
        profile = service.capture_profile(name)
    except ModvaultError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Profile {profile.name} now has {len(profile.mod_ids)} mods")


@app.command()
def apply(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Profile to apply.")],
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
) -> None:
    """Enable the profile's mods and disable every other mod."""
    service = open_service(ctx)
    try:
        result = service.apply_profile(name)
    except ModvaultError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if json_output:
        console.print_json(json.dumps(result.to_dict()))
        return

    if result.missing:
        print_warning(f"{len(result.missing)} mods in this profile are no longer installed.")
    if not result.changed:
        print_info(f"Profile {name} is already in place.")
        return
    print_success(
        f"Applied profile {name}: {len(result.enabled)} enabled, "
        f"{len(result.disabled)} disabled"
    )
    if result.snapshot is not None and result.snapshot.snapshot_id:
        console.print(f"[dim]Snapshot {result.snapshot.snapshot_id[:7]}[/dim]")


@app.command()
def delete(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Profile to delete.")],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Delete a profile. Its mods are left as they are."""
    if not yes and not typer.confirm(f"Delete profile {name}?"):
        print_info("Aborted.")
        raise typer.Exit(code=0)

    service = open_service(ctx)
    try:
        service.delete_profile(name)
    except ModvaultError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Deleted profile {name}")
