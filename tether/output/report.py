"""
Tether Report Generator
========================

Writes import resolution results as structured JSON for machine
consumption and downstream pipelines.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from tether import __version__
from tether.core.models import ImportReport, symbol_sort_key


class ImportReportGenerator:
    """Generate JSON reports from :class:`ImportReport` values.

    Usage::

        ImportReportGenerator().generate_json(report, "out/imports.json")
    """

    def build(self, report: ImportReport) -> dict[str, Any]:
        """Build the JSON-ready report dictionary.

        Symbols are emitted in a stable order (names, then ordinals) so
        that two reports of the same image compare equal as text.
        """
        data = report.model_dump(mode="json", exclude={"imports"})
        data["imports"] = {
            library: [
                sym.model_dump(mode="json")
                for sym in sorted(report.imports[library], key=symbol_sort_key)
            ]
            for library in sorted(report.imports)
        }
        return {
            "report_type": "tether_import_resolution",
            "version": __version__,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "result": data,
        }

    def generate_json(self, report: ImportReport, output_path: str | Path) -> str:
        """Write the report to *output_path* and return its absolute path."""
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.build(report), f, indent=2, ensure_ascii=False, default=str)

        return str(path.resolve())
