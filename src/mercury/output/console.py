"""Rich consoles and the mercury colour theme.

Renderers print into a console backed by StringIO and hand back the text,
so Click stays in charge of writing to stdout or stderr. Rich drops colour
codes when the real stream is not a terminal.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

DEFAULT_WIDTH = 120

# Lower bounds for score colouring, best first.
SCORE_BANDS = ((0.9, "mercury.score.high"), (0.7, "mercury.score.mid"))

MERCURY_THEME = Theme(
    {
        "mercury.ok": "bold green",
        "mercury.error": "bold red",
        "mercury.warning": "bold yellow",
        "mercury.op": "bold cyan",
        "mercury.key": "dim",
        "mercury.id": "bold blue",
        "mercury.name": "bold",
        "mercury.yes": "green",
        "mercury.no": "red",
        "mercury.score.high": "bold magenta",
        "mercury.score.mid": "magenta",
        "mercury.score.low": "dim magenta",
        "mercury.state.friends": "green",
        "mercury.state.invite_sent": "yellow",
        "mercury.state.invite_received": "cyan",
        "mercury.state.none": "dim",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """A themed console writing to an in-memory buffer."""
    return Console(
        file=StringIO(),
        theme=MERCURY_THEME,
        no_color=no_color,
        highlight=False,
        width=width or DEFAULT_WIDTH,
    )


def get_output(console: Console) -> str:
    """Text written so far to a console from :func:`create_console`."""
    buffer = console.file
    if not isinstance(buffer, StringIO):
        msg = "console was not created by create_console()"
        raise TypeError(msg)
    return buffer.getvalue()


def style_for_state(state: str) -> str:
    """Theme style for a relation state (``friends``, ``invite_sent``, ...)."""
    return f"mercury.state.{state}" if state else ""


def style_for_score(score: float) -> str:
    """Theme style for a search score in ``[0, 1]``."""
    for floor, style in SCORE_BANDS:
        if score >= floor:
            return style
    return "mercury.score.low"
