"""Rich console utilities for styled reconcile output.

This module is the logging surface of the package. Every message can be
scoped to a seed, which matters because reconciles for different seeds
interleave on the same terminal.
"""

from collections.abc import Generator
from contextlib import contextmanager

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table
from rich.theme import Theme

_THEME = Theme(
    {
        "info": "cyan",
        "success": "green",
        "warning": "yellow",
        "error": "red bold",
        "highlight": "cyan bold",
        "muted": "dim",
        "seed": "magenta",
    }
)

# Shared console instance
console = Console(theme=_THEME)


def _scoped(message: str, seed: str | None) -> str:
    if seed is None:
        return message
    return f"[seed]\\[{seed}][/seed] {message}"


def info(message: str, *, seed: str | None = None) -> None:
    """Print an informational message.

    Args:
        message: The message to display.
        seed: Optional seed name the message belongs to.

    """
    console.print(f"[info]ℹ[/info] {_scoped(message, seed)}")


def success(message: str, *, seed: str | None = None) -> None:
    """Print a success message."""
    console.print(f"[success]✓[/success] {_scoped(message, seed)}")


def warning(message: str, *, seed: str | None = None) -> None:
    """Print a warning message."""
    console.print(f"[warning]⚠[/warning] {_scoped(message, seed)}")


def error(message: str, *, seed: str | None = None) -> None:
    """Print an error message."""
    console.print(f"[error]✗[/error] {_scoped(message, seed)}")


def action(message: str, *, seed: str | None = None) -> None:
    """Print an action/progress message."""
    console.print(f"[info]→[/info] {_scoped(message, seed)}")


def step(message: str, *, seed: str | None = None) -> None:
    """Print a sub-step message."""
    console.print(f"[muted]•[/muted] {_scoped(message, seed)}")


def highlight(text: str) -> str:
    """Return text wrapped in highlight markup.

    Args:
        text: The text to highlight.

    Returns:
        Text wrapped in Rich markup for highlighting.

    """
    return f"[highlight]{text}[/highlight]"


@contextmanager
def spinner(message: str) -> Generator[None, None, None]:
    """Display a spinner while performing an operation.

    Args:
        message: The status message to display.

    Yields:
        None

    """
    with console.status(f"[info]{message}[/info]", spinner="dots"):
        yield


def create_task_progress() -> Progress:
    """Create a progress bar for reconciling several seeds.

    Returns:
        A configured Progress instance for batch operations.

    """
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TextColumn("[muted]{task.completed}/{task.total}[/muted]"),
        console=console,
    )


def summary_panel(title: str, items: dict[str, str]) -> None:
    """Print a summary panel with key-value pairs.

    Args:
        title: Title for the panel.
        items: Dictionary of label -> value pairs to display.

    """
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold")
    table.add_column(style="cyan")

    for label, value in items.items():
        table.add_row(f"{label}:", value)

    console.print(Panel(table, title=f"[bold]{title}[/bold]", border_style="green"))
