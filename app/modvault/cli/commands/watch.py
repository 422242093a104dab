"""Watch command implementation."""

import threading

import typer

from modvault.cli.types import open_service
from modvault.core.errors import ModvaultError
from modvault.mods.models import ScanReport
from modvault.utils.formatting import console, print_error, print_info

app = typer.Typer(
    help="Re-scan automatically when the mods directory changes.",
    invoke_without_command=True,
)


def _on_scan(report: ScanReport) -> None:
    if not report.changed:
        return
    console.print(
        f"[added]+{len(report.added)}[/] [changed]~{len(report.updated) + len(report.moved)}[/] "
        f"[removed]-{len(report.removed)}[/] ({len(report.records)} mods)"
    )


@app.callback(invoke_without_command=True)
def watch(ctx: typer.Context) -> None:
    """Watch the mods directory until interrupted with Ctrl+C."""
    service = open_service(ctx)
    try:
        service.scan()
        watcher = service.watch(_on_scan)
    except ModvaultError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_info(f"Watching {service.root} (Ctrl+C to stop)")
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        pass
    finally:
        watcher.stop()
    print_info("Stopped.")
