"""
Tether Console Output
======================

Rich terminal display for import resolution results: an image summary
panel, one table per imported library and a table of skipped thunk
entries when any were recorded.
"""

from __future__ import annotations

from datetime import datetime, timezone

from rich.panel import Panel
from rich.table import Table

from shared.console import TetherConsole

from tether.core.models import (
    ByName,
    ImageInfo,
    ImportReport,
    ThunkDiagnostic,
    symbol_sort_key,
)


def _format_timestamp(ts: int) -> str:
    if ts == 0:
        return "-"
    try:
        return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
    except (OSError, ValueError, OverflowError):
        return f"0x{ts:08x}"


class ImportConsoleOutput:
    """Render an :class:`ImportReport` to the terminal.

    Usage::

        ImportConsoleOutput().display(report)
    """

    def __init__(self, console: TetherConsole | None = None) -> None:
        self._console: TetherConsole = console or TetherConsole()

    def display(self, report: ImportReport) -> None:
        self._console.section("Tether -- PE Import Resolution")
        self.display_header(report.path, report.info)

        if report.imports:
            self.display_imports(report)
        else:
            self._console.info("Image imports nothing.")

        if report.diagnostics:
            self.display_diagnostics(report.diagnostics)

        self._console.divider()

    def display_header(self, path: str, info: ImageInfo) -> None:
        lines: list[str] = []
        if path:
            lines.append(f"[bold]File:[/bold]       {path}")
        lines.extend([
            f"[bold]Format:[/bold]     {info.format} ({info.bits}-bit)",
            f"[bold]Machine:[/bold]    {info.arch} (0x{info.machine:04x})",
            f"[bold]Type:[/bold]       {'DLL' if info.is_dll else 'Executable'}",
            f"[bold]Image Base:[/bold] 0x{info.image_base:x}",
            f"[bold]Sections:[/bold]   {info.number_of_sections}",
            f"[bold]Linked:[/bold]     {_format_timestamp(info.time_date_stamp)}",
        ])
        panel = Panel(
            "\n".join(lines),
            title="[bold bright_cyan]Image Information[/bold bright_cyan]",
            border_style="bright_cyan",
            padding=(1, 2),
        )
        self._console.rich.print(panel)
        self._console.blank()

    def display_imports(self, report: ImportReport) -> None:
        self._console.section(
            f"Imports ({report.library_count} libraries, {report.symbol_count} symbols)"
        )
        for library in sorted(report.imports, key=str.lower):
            symbols = sorted(report.imports[library], key=symbol_sort_key)
            tbl = Table(
                title=f"[bold]{library}[/bold]",
                title_justify="left",
                border_style="bright_cyan",
                header_style="bold bright_magenta",
                padding=(0, 1),
            )
            tbl.add_column("Kind", width=8)
            tbl.add_column("Symbol")
            for sym in symbols:
                if isinstance(sym, ByName):
                    tbl.add_row("name", sym.name)
                else:
                    tbl.add_row("[yellow]ordinal[/yellow]", str(sym.ordinal))
            self._console.rich.print(tbl)
            self._console.blank()

    def display_diagnostics(self, diagnostics: list[ThunkDiagnostic]) -> None:
        self._console.section(f"Skipped Thunk Entries ({len(diagnostics)})")
        self._console.table(
            "",
            ["Library", "Entry", "Value", "Error", "Detail"],
            [
                (
                    d.library,
                    "array" if d.index is None else d.index,
                    f"0x{d.value:x}",
                    d.kind,
                    d.message,
                )
                for d in diagnostics
            ],
            styles=["bold", "dim", "", "bold red", ""],
        )
        self._console.blank()
