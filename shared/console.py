"""
Sectview Console Interface
===========================

Rich console wrapper shared by the sectview renderers and the CLI error
boundary.  Anything that may contain file or section names is printed
with markup disabled so that ``[`` in a name is never interpreted.

References:
    - Rich library: https://github.com/Textualize/rich
"""

from __future__ import annotations

from typing import Any, Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

_SECTVIEW_THEME = Theme(
    {
        "sectview.rule": "bold cyan",
        "sectview.success": "bold green",
        "sectview.warning": "bold yellow",
        "sectview.error": "bold red",
    }
)


class SectviewConsole:
    """Themed output channel on stdout (default) or stderr.

    Usage::

        out = SectviewConsole()
        out.raw(render_plain(layout))

        err = SectviewConsole(stderr=True)
        err.error("This is not an ELF file")

    Args:
        stderr: Write to standard error instead of standard output.
        file:   Explicit text stream, overrides *stderr*.
    """

    def __init__(self, *, stderr: bool = False, file: Any = None) -> None:
        self._console = Console(
            theme=_SECTVIEW_THEME,
            stderr=stderr,
            file=file,
            highlight=False,
        )

    # ------------------------------------------------------------------ #
    #  Status lines
    # ------------------------------------------------------------------ #

    def _status(self, tag: str, message: str, **kwargs: Any) -> None:
        self._console.print(f"[sectview.{tag}]{tag}:[/sectview.{tag}] ", end="", markup=True)
        self._console.print(message, markup=False, **kwargs)

    def success(self, message: str) -> None:
        self._status("success", message)

    def warning(self, message: str) -> None:
        self._status("warning", message)

    def error(self, message: str) -> None:
        """Print ``error: <message>`` as a single unwrapped line."""
        self._status("error", message, soft_wrap=True)

    # ------------------------------------------------------------------ #
    #  Layout
    # ------------------------------------------------------------------ #

    def section(self, title: str) -> None:
        self._console.rule(Text(f" {title} "), style="sectview.rule")

    def table(
        self,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        *,
        justify: Sequence[str] = (),
        styles: Sequence[str] = (),
    ) -> None:
        """Print a table; every cell is stringified and rendered literally."""
        tbl = Table(border_style="cyan", header_style="bold", padding=(0, 1))
        for idx, name in enumerate(columns):
            tbl.add_column(
                name,
                justify=justify[idx] if idx < len(justify) else "left",  # type: ignore[arg-type]
                style=styles[idx] if idx < len(styles) else "",
            )
        for row in rows:
            tbl.add_row(*(Text(str(cell)) for cell in row))
        self._console.print(tbl)

    def raw(self, text: str) -> None:
        """Write *text* verbatim: no markup, highlighting or wrapping."""
        self._console.print(text, markup=False, highlight=False, emoji=False, soft_wrap=True)

    def print(self, *args: Any, **kwargs: Any) -> None:
        """Proxy to :meth:`rich.console.Console.print`."""
        self._console.print(*args, **kwargs)

    def blank(self) -> None:
        self._console.print()
