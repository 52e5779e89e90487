"""CLI commands for viewing and changing tracker configuration."""

from typing import Any

import typer
from pydantic import ValidationError
from rich.table import Table

from ..config import TrackerConfig
from ..tracking.models import MRStatus
from .options import DATA_DIR_OPTION, console, get_manager

app = typer.Typer(help="View and change tracker configuration")


def _mask_token(token: str) -> str:
    if not token:
        return "(not set)"
    if len(token) <= 8:
        return "*" * len(token)
    return f"{token[:4]}{'*' * (len(token) - 8)}{token[-4:]}"


@app.command()
def show(data_dir: str | None = DATA_DIR_OPTION) -> None:
    """Show the effective configuration."""
    manager = get_manager(data_dir)
    config = manager.config

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("GitLab Host", config.gitlab_host)
    table.add_row("Access Token", _mask_token(config.access_token))
    table.add_row("My Account", config.my_account or "(not set)")
    table.add_row("Team Accounts", ", ".join(config.team_accounts) or "(none)")
    table.add_row(
        "Fetch Window", f"{config.fetch_time_value} {config.fetch_time_unit}"
    )
    table.add_row("Include Closed MRs", "yes" if config.fetch_closed_mrs else "no")
    table.add_row("Auto Refresh", f"{config.auto_refresh_interval} seconds")

    filters = manager.storage.get_status_filters()
    table.add_row(
        "Visible Statuses",
        ", ".join(status.value for status, visible in filters.items() if visible),
    )

    console.print(table)

    stats = manager.storage.get_storage_stats()
    console.print(f"📁 Storage location: {stats['storage_path']}")


@app.command(name="set")
def set_config(
    host: str | None = typer.Option(None, "--host", help="GitLab instance URL"),
    token: str | None = typer.Option(
        None, "--token", help="GitLab personal access token"
    ),
    my_account: str | None = typer.Option(
        None, "--my-account", help="Your GitLab username"
    ),
    team_accounts: list[str] | None = typer.Option(
        None,
        "--team-account",
        help="Teammate username (can be used multiple times, replaces the list)",
    ),
    fetch_unit: str | None = typer.Option(
        None, "--fetch-unit", help="Discovery window unit: days or weeks"
    ),
    fetch_value: int | None = typer.Option(
        None, "--fetch-value", help="Discovery window size"
    ),
    include_closed: bool | None = typer.Option(
        None,
        "--include-closed/--exclude-closed",
        help="Whether closed merge requests are discovered",
    ),
    refresh_interval: int | None = typer.Option(
        None, "--refresh-interval", help="Seconds between automatic refreshes"
    ),
    data_dir: str | None = DATA_DIR_OPTION,
) -> None:
    """Update configuration values; unspecified settings are kept."""
    manager = get_manager(data_dir)

    updates: dict[str, Any] = {}
    if host is not None:
        updates["gitlab_host"] = host
    if token is not None:
        updates["access_token"] = token
    if my_account is not None:
        updates["my_account"] = my_account
    if team_accounts is not None:
        updates["team_accounts"] = team_accounts
    if fetch_unit is not None:
        updates["fetch_time_unit"] = fetch_unit
    if fetch_value is not None:
        updates["fetch_time_value"] = fetch_value
    if include_closed is not None:
        updates["fetch_closed_mrs"] = include_closed
    if refresh_interval is not None:
        updates["auto_refresh_interval"] = refresh_interval

    if not updates:
        console.print("Nothing to update. See 'mr-tracker config set --help'.")
        return

    try:
        config = TrackerConfig.model_validate(
            {**manager.stored_config.model_dump(), **updates}
        )
    except ValidationError as e:
        console.print(f"❌ Invalid configuration: {e}")
        raise typer.Exit(1)

    manager.save_config(config)
    console.print(f"✅ Updated {', '.join(sorted(updates))}")


@app.command()
def status_filter(
    status: MRStatus = typer.Argument(..., help="Status to show or hide"),
    visible: bool = typer.Option(
        True, "--show/--hide", help="Whether the status is listed"
    ),
    data_dir: str | None = DATA_DIR_OPTION,
) -> None:
    """Show or hide merge requests with a given status in 'mr-tracker list'."""
    get_manager(data_dir).set_status_visibility(status, visible)
    state = "shown" if visible else "hidden"
    console.print(f"✅ {status.value} merge requests will be {state}")
