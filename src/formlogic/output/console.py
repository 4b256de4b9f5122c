"""Rich console and theme for human-readable output.

Renderers draw into a StringIO so they return strings; where the text
goes (stdout or stderr) is decided by ``AppContext.emit``. Colour follows
the process's real stdout, so CliRunner and pipes get plain text.
"""

from __future__ import annotations

import sys
from io import StringIO

from rich.console import Console
from rich.theme import Theme

WIDTH = 120

FORMLOGIC_THEME = Theme(
    {
        # status lines
        "fl.ok": "bold green",
        "fl.error": "bold red",
        "fl.warning": "bold yellow",
        "fl.op": "bold cyan",
        # key: value lines
        "fl.key": "dim",
        "fl.id": "bold blue",
        "fl.path": "dim",
        "fl.name": "bold",
        # field-state cells
        "fl.on": "green",
        "fl.off": "dim",
        "fl.override": "magenta",
    }
)


def create_console(*, width: int = WIDTH) -> Console:
    return Console(
        file=StringIO(),
        theme=FORMLOGIC_THEME,
        force_terminal=sys.stdout.isatty(),
        highlight=False,
        width=width,
    )


def get_output(console: Console) -> str:
    """Everything printed to a console from :func:`create_console`."""
    buffer = console.file
    if not isinstance(buffer, StringIO):
        raise TypeError("console does not render to a buffer")
    return buffer.getvalue()


def flag_markup(value: bool) -> str:
    """Markup for a yes/no cell in a field-state table."""
    return "[fl.on]yes[/fl.on]" if value else "[fl.off]no[/fl.off]"
