"""Shared CLI option definitions and helpers."""

import typer
from rich.console import Console

from ..errors import ConfigError, ParseError, RemoteError
from ..storage.manager import StorageManager
from ..tracking.manager import TrackerManager

console = Console()

DATA_DIR_OPTION = typer.Option(
    None,
    "--data-dir",
    "-d",
    help="Storage directory (defaults to MR_TRACKER_DATA_DIR or data/mr_tracker)",
)

MR_ID_ARGUMENT = typer.Argument(
    ..., help="Merge request id (its URL, as shown by 'mr-tracker list')"
)


def get_manager(data_dir: str | None) -> TrackerManager:
    """Build a TrackerManager over the selected storage directory."""
    return TrackerManager(StorageManager(data_dir))


def describe_error(error: Exception) -> str:
    """User-facing message for a failed tracker operation."""
    if isinstance(error, RemoteError):
        if error.status_code == 401:
            return "Invalid or expired access token. Please check your configuration."
        if error.status_code == 404:
            return "Merge request not found or you do not have access."
        return str(error)
    if isinstance(error, (ConfigError, ParseError)):
        return str(error)
    return str(error) or type(error).__name__


def fail(error: Exception) -> typer.Exit:
    """Print an error and return the Exit to raise."""
    console.print(f"❌ Error: {describe_error(error)}")
    return typer.Exit(1)
