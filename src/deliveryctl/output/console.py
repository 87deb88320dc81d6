"""Rich Console factory and theme for deliveryctl output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract. In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

DELIVERY_THEME = Theme(
    {
        "dlv.ok": "bold green",
        "dlv.error": "bold red",
        "dlv.warning": "bold yellow",
        "dlv.op": "bold cyan",
        "dlv.key": "dim",
        "dlv.id": "bold blue",
        "dlv.money": "magenta",
        "dlv.status.completed": "green",
        "dlv.status.cancelled": "red",
        "dlv.status.failed": "red",
        "dlv.status.pending": "yellow",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer."""
    return Console(
        file=StringIO(),
        theme=DELIVERY_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_status(status: str) -> str:
    """Return the Rich style name for an order or payment status."""
    style = f"dlv.status.{status}"
    return style if style in DELIVERY_THEME.styles else ""
