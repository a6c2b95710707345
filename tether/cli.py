"""
Tether CLI -- PE Import Resolution
===================================

Click-based command-line interface.

Usage::

    # Rich table output
    tether /path/to/image.exe

    # JSON to stdout
    tether /path/to/image.dll --json

    # Write a JSON report
    tether /path/to/image.dll --output reports/imports.json

    # Custom configuration and debug logging
    tether image.exe --config tether.toml --verbose

References:
    - Click documentation: https://click.palletsprojects.com/
"""

from __future__ import annotations

import json
import sys

import click
from rich.markup import escape

from shared.config import TetherConfig
from shared.console import TetherConsole
from shared.logger import TetherLogger

from tether.core.engine import TetherEngine
from tether.core.errors import LoadError
from tether.output.console import ImportConsoleOutput
from tether.output.report import ImportReportGenerator


@click.command("tether")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--json", "json_output",
    is_flag=True,
    default=False,
    help="Print the import report as JSON to stdout.",
)
@click.option(
    "--output", "-o",
    "output_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write a JSON report to this path.",
)
@click.option(
    "--config", "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="TOML configuration file.",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    default=False,
    help="Enable debug logging.",
)
def tether_cli(
    path: str,
    json_output: bool,
    output_path: str | None,
    config_path: str | None,
    verbose: bool,
) -> None:
    """Resolve the import table of a Windows PE image.

    PATH is the executable or DLL to inspect.

    Examples:

    \b
        tether notepad.exe
        tether kernel32.dll --json
    """
    console = TetherConsole()

    try:
        config = TetherConfig.load(config_path)
    except (OSError, ValueError) as exc:
        console.error(f"Invalid configuration: {escape(str(exc))}")
        sys.exit(1)

    settings = config.global_settings
    logger = TetherLogger(
        "tether",
        log_level="DEBUG" if verbose or settings.debug else settings.log_level,
        log_file=settings.log_file,
        json_logs=settings.log_json,
        console_output=not json_output,
    )
    engine = TetherEngine(config=config, logger=logger)

    try:
        report = engine.analyze_file(path)
    except KeyboardInterrupt:
        console.warning("Interrupted by user.")
        sys.exit(130)
    except (LoadError, OSError) as exc:
        console.error(f"Load failed: {escape(str(exc))}")
        sys.exit(1)

    generator = ImportReportGenerator()

    if json_output:
        click.echo(json.dumps(generator.build(report), indent=2, default=str))
    else:
        ImportConsoleOutput(console=console).display(report)

    if output_path:
        written = generator.generate_json(report, output_path)
        if not json_output:
            console.success(f"JSON report saved: {written}")


def main() -> None:
    """Entry point for the ``tether`` console script."""
    tether_cli()


if __name__ == "__main__":
    main()
