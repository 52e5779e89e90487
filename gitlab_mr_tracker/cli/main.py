"""Main CLI entry point."""

import logging

import typer
from dotenv import load_dotenv
from rich.logging import RichHandler

from . import settings
from .options import console
from .sync import refresh, watch
from .track import add, hide, list_merge_requests, read, remove, unhide

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="mr-tracker",
    help="Track the review status of GitLab merge requests",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def configure_logging(verbose: bool) -> None:
    """Route log records through rich, WARNING and above unless verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show debug logging"
    ),
) -> None:
    """Track the review status of GitLab merge requests."""
    configure_logging(verbose)


# All commands including main command support -h shorthand via context_settings


app.command(name="add", context_settings={"help_option_names": ["-h", "--help"]})(add)
app.command(name="remove", context_settings={"help_option_names": ["-h", "--help"]})(
    remove
)
app.command(name="hide", context_settings={"help_option_names": ["-h", "--help"]})(
    hide
)
app.command(name="unhide", context_settings={"help_option_names": ["-h", "--help"]})(
    unhide
)
app.command(name="read", context_settings={"help_option_names": ["-h", "--help"]})(
    read
)
app.command(name="list", context_settings={"help_option_names": ["-h", "--help"]})(
    list_merge_requests
)
app.command(name="refresh", context_settings={"help_option_names": ["-h", "--help"]})(
    refresh
)
app.command(name="watch", context_settings={"help_option_names": ["-h", "--help"]})(
    watch
)
app.add_typer(settings.app, name="config")


@app.command(context_settings={"help_option_names": ["-h", "--help"]})
def version() -> None:
    """Show version information."""
    from gitlab_mr_tracker import __version__

    console.print(f"GitLab MR Tracker v{__version__}")


if __name__ == "__main__":
    app()
