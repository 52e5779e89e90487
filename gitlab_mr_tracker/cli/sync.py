"""CLI commands for refreshing tracked merge requests."""

import asyncio

import typer

from ..errors import TrackerError
from .options import DATA_DIR_OPTION, console, fail, get_manager


def refresh(data_dir: str | None = DATA_DIR_OPTION) -> None:
    """Refresh tracked merge requests and discover new ones for watched accounts."""
    manager = get_manager(data_dir)
    before = len(manager.merge_requests)

    try:
        snapshot = asyncio.run(manager.refresh())
    except (TrackerError, ValueError) as e:
        raise fail(e)

    if snapshot is None:
        console.print("❌ Refresh failed, previous data kept. See log for details.")
        raise typer.Exit(1)

    console.print(
        f"✨ Refreshed: {len(snapshot)} merge requests tracked (was {before})"
    )


def watch(
    interval: int | None = typer.Option(
        None,
        "--interval",
        "-n",
        help="Seconds between refreshes (defaults to the configured interval)",
    ),
    cycles: int | None = typer.Option(
        None, "--cycles", help="Stop after this many refreshes"
    ),
    data_dir: str | None = DATA_DIR_OPTION,
) -> None:
    """Refresh periodically until interrupted."""
    manager = get_manager(data_dir)
    effective = interval or manager.config.auto_refresh_interval
    console.print(f"👀 Refreshing every {effective} seconds (Ctrl+C to stop)")

    try:
        completed = asyncio.run(manager.watch(interval, max_cycles=cycles))
    except (TrackerError, ValueError) as e:
        raise fail(e)
    except KeyboardInterrupt:
        console.print("Stopped.")
        return

    console.print(f"✨ Completed {completed} refresh cycles")
