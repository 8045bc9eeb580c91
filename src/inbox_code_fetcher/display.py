"""Rich-based display and logging setup for Inbox Code Fetcher."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.status import Status

from .errors import CodeTimeoutError, StoreConnectionError
from .models import ConnectionCheck, RetrievalOutcome

console = Console(stderr=True)

_SOURCE_LABELS = {
    "subject": "subject line",
    "text": "plain-text body",
    "html": "HTML body",
    "html_clean": "HTML body (cleaned)",
}


def setup_logging(verbose: bool = False) -> None:
    """Route package logs through a RichHandler on the shared console."""
    handler = RichHandler(
        console=console,
        rich_tracebacks=True,
        show_time=True,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    package_logger = logging.getLogger("inbox_code_fetcher")
    package_logger.handlers.clear()
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    package_logger.propagate = False


def create_status(target: str, max_wait: float) -> Status:
    """Spinner shown while a session is polling."""
    return console.status(
        f"[bold blue]Waiting up to {max_wait:g}s for a code sent to {target}...",
        spinner="dots",
    )


def display_code_result(outcome: RetrievalOutcome) -> None:
    """Display a found code and where it came from."""
    source = _SOURCE_LABELS.get(outcome.source, outcome.source or "unknown")
    lines = [
        f"[bold]Code:[/bold] [bold green]{outcome.code}[/bold green]",
        f"[bold]Folder:[/bold] {outcome.folder}",
        f"[bold]Found in:[/bold] {source}",
        f"[bold]Elapsed:[/bold] {outcome.elapsed:.1f}s",
    ]
    console.print(Panel("\n".join(lines), title="Verification Code"))


def display_failure(error: Exception) -> None:
    """Display a terminal retrieval error."""
    if isinstance(error, CodeTimeoutError):
        title = "Timed Out"
    elif isinstance(error, StoreConnectionError):
        title = "Connection Failed"
    else:
        title = "Error"
    console.print(Panel(f"[red]{error}[/red]", title=title))


def display_connection_check(check: ConnectionCheck) -> None:
    if check.success:
        console.print(f"[green]{check.message}[/green]")
    else:
        console.print(f"[red]Connection check failed:[/red] {check.message}")
