"""User-facing progress feedback for CLI operations.

- Progress bar only on a TTY and past a size threshold
- Single line status messages with a style marker
- Plain iteration in non-TTY runs (CI, pipes)

Usage::

    from jarpatch.core.progress import progress, status

    for info in progress(entries, desc="Remapping", unit="entries"):
        process(info)

    status("Build complete", style="success")  # ✓ Build complete
"""

from __future__ import annotations

import sys
from collections.abc import Iterable, Iterator
from typing import TypeVar

from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn

from jarpatch.core.logging import get_logger

# Threshold for showing progress bar
_PROGRESS_THRESHOLD = 100

T = TypeVar("T")

_console = Console(stderr=True)

_STYLES = {
    "success": "[green]✓[/green] ",
    "error": "[red]✗[/red] ",
    "warning": "[yellow]![/yellow] ",
    "info": "  ",
    "none": "",
}


def _is_tty() -> bool:
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


def get_console() -> Console:
    """Get the shared Rich console instance."""
    return _console


def status(message: str, *, style: str = "info", indent: int = 0) -> None:
    """Print a styled status message to stderr."""
    prefix = _STYLES.get(style, "")
    _console.print(f"{' ' * indent}{prefix}{message}", highlight=False)
    get_logger("progress").debug("status", message=message, style=style)


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    """``pluralize(1, "patch", "patches")`` -> ``"1 patch"``."""
    if plural is None:
        plural = singular + "s"
    return f"{count} {singular if count == 1 else plural}"


def progress(
    iterable: Iterable[T],
    *,
    desc: str | None = None,
    total: int | None = None,
    unit: str = "entries",
) -> Iterator[T]:
    """Wrap an iterable with a transient progress bar on a TTY past the threshold."""
    if total is None:
        try:
            total = len(iterable)  # type: ignore[arg-type]
        except TypeError:
            total = None

    if not (_is_tty() and total is not None and total > _PROGRESS_THRESHOLD):
        yield from iterable
        return

    with Progress(
        TextColumn("    {task.description}:"),
        BarColumn(bar_width=25, style="cyan", complete_style="cyan"),
        TaskProgressColumn(),
        TextColumn("{task.completed}/{task.total} {task.fields[unit]}"),
        console=_console,
        transient=True,
    ) as pbar:
        task_id = pbar.add_task(desc or "Processing", total=total, unit=unit)
        for item in iterable:
            yield item
            pbar.advance(task_id)
