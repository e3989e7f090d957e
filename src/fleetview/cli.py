"""fleetview CLI - Typer-based entry point.

Supports:
  - fleetview parse export1.json export2.json          # Summary table
  - fleetview parse exports/*.json --mapping map.json  # Real location names
  - fleetview parse export.json --json                 # Dump canonical records
  - fleetview version
"""

import asyncio
import json
import logging
import signal
from collections import Counter
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from fleetview import __version__
from fleetview.core.cancellation import CancellationToken
from fleetview.core.exceptions import ConfigurationError, IngestError, ParseCancelledError
from fleetview.core.logging_config import setup_logging
from fleetview.core.settings import get_settings
from fleetview.ingest.lookups import load_location_mapping
from fleetview.ingest.sources import (
    InventorySourceContext,
    InventorySourceResult,
    LocalFileSource,
    SourceProgress,
)
from fleetview.models.device import DeviceRecord

logger = logging.getLogger(__name__)

console = Console(stderr=True)
app = typer.Typer(
    name="fleetview",
    help="Decode, normalize and summarize device inventory exports",
    no_args_is_help=True,
)


def _summary_table(title: str, counts: Counter) -> Table:
    table = Table(title=title, title_style="bold cyan")
    table.add_column("Value")
    table.add_column("Devices", justify="right")
    for value, count in counts.most_common():
        table.add_row(value, str(count))
    return table


def _render_summary(devices: list[DeviceRecord]) -> None:
    console.print(
        Panel(f"[bold cyan]{len(devices)}[/bold cyan] device record(s) parsed", border_style="cyan")
    )
    if not devices:
        return
    console.print(_summary_table("Category", Counter(d.category.value for d in devices)))
    console.print(_summary_table("Location", Counter(d.location for d in devices)))
    ready = sum(1 for d in devices if d.can_upgrade_to_win11)
    console.print(f"Windows 11 ready: [bold]{ready}[/bold] / {len(devices)}")


async def _load_with_interrupt(paths: list[str], ctx: InventorySourceContext) -> InventorySourceResult:
    """Load ``paths``, turning Ctrl-C into a cancellation of ``ctx.cancel_token``."""
    loop = asyncio.get_running_loop()
    installed = False
    if ctx.cancel_token is not None:
        try:
            loop.add_signal_handler(signal.SIGINT, ctx.cancel_token.cancel, "interrupted")
            installed = True
        except (NotImplementedError, RuntimeError) as e:
            # Windows event loops and non-main threads: Ctrl-C raises KeyboardInterrupt instead
            logger.debug(f"SIGINT handler not installed: {e}")

    try:
        return await LocalFileSource().load(paths, ctx)
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


@app.command()
def parse(
    files: list[Path] = typer.Argument(..., help="Inventory JSON exports", exists=True, dir_okay=False),
    mapping: Path | None = typer.Option(
        None, "--mapping", "-m", help="Location mapping file (genericToReal / ipRangeMapping)"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print canonical records as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Parse inventory exports into canonical device records."""
    settings = get_settings()
    setup_logging(verbose=verbose, log_file=settings.log_file or None, log_level=settings.log_level)

    try:
        location_mapping = load_location_mapping(mapping or settings.location_mapping_file or None)
    except ConfigurationError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(1) from None

    def on_progress(progress: SourceProgress) -> None:
        console.print(f"[dim]({progress.processed}/{progress.total})[/dim] {progress.file_name}")

    token = CancellationToken()
    ctx = InventorySourceContext(
        cancel_token=token, progress=on_progress, location_mapping=location_mapping
    )

    try:
        result = asyncio.run(_load_with_interrupt([str(f) for f in files], ctx))
    except (KeyboardInterrupt, ParseCancelledError):
        console.print("[yellow]Parsing cancelled[/yellow]")
        raise typer.Exit(130) from None
    except IngestError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(1) from None

    if as_json:
        typer.echo(json.dumps([d.to_dict() for d in result.devices], indent=2, ensure_ascii=False))
    else:
        _render_summary(result.devices)


@app.command()
def version() -> None:
    """Show fleetview version."""
    console.print(Panel(f"[bold cyan]fleetview v{__version__}[/bold cyan]", border_style="cyan"))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
