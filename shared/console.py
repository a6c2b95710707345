"""
Tether Console Interface
=========================

Rich-powered console abstraction giving the CLI one consistent
presentation layer: section rules, severity-coloured messages and tables.

References:
    - Rich library: https://github.com/Textualize/rich
"""

from __future__ import annotations

from typing import Any, Sequence

from rich.console import Console
from rich.table import Table
from rich.theme import Theme

_TETHER_THEME = Theme(
    {
        "tether.section": "bold bright_magenta",
        "tether.success": "bold green",
        "tether.warning": "bold yellow",
        "tether.error": "bold red",
        "tether.info": "bold bright_blue",
        "tether.dim": "dim white",
        "tether.highlight": "bold bright_white",
    }
)


class TetherConsole:
    """Console wrapper used by the CLI and output renderers.

    Usage::

        con = TetherConsole()
        con.section("Imports")
        con.success("Loaded 12 libraries")

    Args:
        quiet:  Suppress all output (library / test mode).
        record: Enable Rich recording so output can be exported.
        width:  Fixed console width; ``None`` lets Rich detect it.
    """

    def __init__(
        self, *, quiet: bool = False, record: bool = False, width: int | None = None
    ) -> None:
        self._console = Console(
            theme=_TETHER_THEME,
            quiet=quiet,
            record=record,
            highlight=False,
            width=width,
        )

    @property
    def rich(self) -> Console:
        """Direct access to the underlying Rich Console instance."""
        return self._console

    def section(self, title: str) -> None:
        self._console.rule(f"  {title}  ", style="tether.section", characters="─")
        self._console.print()

    # ------------------------------------------------------------------ #
    #  Message helpers
    # ------------------------------------------------------------------ #

    def success(self, message: str) -> None:
        self._console.print(f"[tether.success][✔] SUCCESS:[/tether.success] {message}")

    def warning(self, message: str) -> None:
        self._console.print(f"[tether.warning][⚠] WARNING:[/tether.warning] {message}")

    def error(self, message: str) -> None:
        self._console.print(f"[tether.error][✘] ERROR:[/tether.error] {message}")

    def info(self, message: str) -> None:
        self._console.print(f"[tether.info][ℹ] INFO:[/tether.info] {message}")

    # ------------------------------------------------------------------ #
    #  Tables
    # ------------------------------------------------------------------ #

    def table(
        self,
        title: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        *,
        caption: str | None = None,
        styles: Sequence[str] | None = None,
    ) -> None:
        """Render a styled Rich table; every cell is stringified."""
        tbl = Table(
            title=title,
            caption=caption,
            border_style="bright_cyan",
            header_style="bold bright_magenta",
            show_lines=False,
            padding=(0, 1),
        )
        for idx, col_name in enumerate(columns):
            style = styles[idx] if styles and idx < len(styles) else ""
            tbl.add_column(col_name, style=style)

        for row in rows:
            tbl.add_row(*(str(cell) for cell in row))

        self._console.print(tbl)

    # ------------------------------------------------------------------ #
    #  Utility
    # ------------------------------------------------------------------ #

    def blank(self, count: int = 1) -> None:
        for _ in range(count):
            self._console.print()

    def divider(self, style: str = "dim") -> None:
        self._console.rule(style=style)

    def export_text(self) -> str:
        """Return recorded output as plain text (requires ``record=True``)."""
        return self._console.export_text()
