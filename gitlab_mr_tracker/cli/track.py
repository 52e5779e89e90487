"""CLI commands for managing tracked merge requests."""

import asyncio

import typer
from rich.table import Table

from ..errors import TrackerError
from ..tracking.models import MRStatus, TrackedMergeRequest
from ..utils.date_parser import format_time_ago
from .options import DATA_DIR_OPTION, MR_ID_ARGUMENT, console, fail, get_manager

STATUS_STYLES = {
    MRStatus.NEW: "white",
    MRStatus.COMMENTED: "yellow",
    MRStatus.APPROVED: "green",
    MRStatus.REJECTED: "red",
    MRStatus.MERGED: "magenta",
}


def split_repository_path(repository: str) -> tuple[str, str]:
    """Split 'group/sub/project' into ('group/sub/', 'project')."""
    namespace, slash, project = repository.rpartition("/")
    return (f"{namespace}{slash}", project)


def add(
    url: str = typer.Argument(..., help="Merge request URL"),
    data_dir: str | None = DATA_DIR_OPTION,
) -> None:
    """Start tracking a merge request.

    Example:
        mr-tracker add https://gitlab.com/group/project/-/merge_requests/42
    """
    manager = get_manager(data_dir)
    try:
        merge_request = asyncio.run(manager.add_merge_request(url))
    except (TrackerError, ValueError) as e:
        raise fail(e)

    console.print(
        f"✅ Tracking !{merge_request.iid} {merge_request.title} "
        f"([{STATUS_STYLES[merge_request.status]}]{merge_request.status.value}[/])"
    )


def remove(
    mr_id: str = MR_ID_ARGUMENT,
    data_dir: str | None = DATA_DIR_OPTION,
) -> None:
    """Stop tracking a merge request."""
    manager = get_manager(data_dir)
    if not manager.remove_merge_request(mr_id):
        console.print(f"❌ Error: {mr_id} is not tracked")
        raise typer.Exit(1)
    console.print(f"🗑️  Removed {mr_id}")


def hide(
    mr_id: str = MR_ID_ARGUMENT,
    data_dir: str | None = DATA_DIR_OPTION,
) -> None:
    """Hide a merge request from the list."""
    if get_manager(data_dir).hide(mr_id):
        console.print(f"🙈 Hidden {mr_id}")
    else:
        console.print(f"{mr_id} is already hidden")


def unhide(
    mr_id: str = MR_ID_ARGUMENT,
    data_dir: str | None = DATA_DIR_OPTION,
) -> None:
    """Show a previously hidden merge request again."""
    if get_manager(data_dir).unhide(mr_id):
        console.print(f"👀 Unhidden {mr_id}")
    else:
        console.print(f"{mr_id} is not hidden")


def read(
    mr_id: str = MR_ID_ARGUMENT,
    data_dir: str | None = DATA_DIR_OPTION,
) -> None:
    """Mark a merge request's activity as read."""
    get_manager(data_dir).mark_as_read(mr_id)
    console.print(f"✔️  Marked {mr_id} as read")


def _build_table(
    title: str, merge_requests: list[TrackedMergeRequest], unread: set[str]
) -> Table:
    table = Table(title=title)
    table.add_column("MR", style="cyan")
    table.add_column("Repository", style="blue")
    table.add_column("Title", style="white")
    table.add_column("Author", style="green")
    table.add_column("Status")
    table.add_column("Reviewers", style="yellow")
    table.add_column("Approvers", style="green")
    table.add_column("Created", justify="right")

    for mr in merge_requests:
        namespace, project = split_repository_path(mr.repository)
        marker = "● " if mr.id in unread else ""
        style = STATUS_STYLES[mr.status]
        table.add_row(
            f"!{mr.iid}",
            f"[dim]{namespace}[/dim]{project}",
            f"{marker}{mr.title[:50] + '...' if len(mr.title) > 50 else mr.title}",
            mr.author.username,
            f"[{style}]{mr.status.value}[/] {format_time_ago(mr.status_updated_at)}",
            ", ".join(person.username for person in mr.reviewers) or "-",
            ", ".join(person.username for person in mr.approvers) or "-",
            format_time_ago(mr.created_at),
        )
    return table


def list_merge_requests(
    status: list[MRStatus] | None = typer.Option(
        None,
        "--status",
        "-s",
        help="Only show these statuses (can be used multiple times)",
    ),
    show_hidden: bool = typer.Option(
        False, "--show-hidden", help="Include hidden merge requests"
    ),
    data_dir: str | None = DATA_DIR_OPTION,
) -> None:
    """List tracked merge requests grouped by author."""
    manager = get_manager(data_dir)
    grouped = manager.categorized(show_hidden=show_hidden)
    unread = manager.new_activity_ids()

    sections = [
        ("My Merge Requests", grouped.my),
        ("Team Merge Requests", grouped.team),
        ("Other Merge Requests", grouped.other),
    ]

    shown = 0
    for title, merge_requests in sections:
        if status:
            merge_requests = [mr for mr in merge_requests if mr.status in status]
        if not merge_requests:
            continue
        shown += len(merge_requests)
        console.print(_build_table(title, merge_requests, unread))

    if shown == 0:
        console.print("No merge requests tracked yet. Use 'mr-tracker add URL'.")
        return

    last_updated = manager.storage.get_last_updated()
    console.print(f"🕒 Last updated: {format_time_ago(last_updated)}")
