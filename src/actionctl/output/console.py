"""Rich Console factory and theme for actionctl output.

Consoles render into a StringIO buffer so renderers keep a plain
``-> str`` contract. Without a TTY (tests, pipes) Rich drops color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

ACTION_THEME = Theme(
    {
        "act.ok": "bold green",
        "act.error": "bold red",
        "act.kind": "bold magenta",
        "act.action": "bold cyan",
        "act.key": "dim",
        "act.id": "bold blue",
        "act.hint": "italic yellow",
        "act.trace": "dim",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer."""
    return Console(
        file=StringIO(),
        theme=ACTION_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()
