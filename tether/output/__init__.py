"""Terminal and JSON renderers for import reports."""

from tether.output.console import ImportConsoleOutput
from tether.output.report import ImportReportGenerator

__all__ = ["ImportConsoleOutput", "ImportReportGenerator"]
