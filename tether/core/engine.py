"""
Tether Analysis Engine
=======================

Reads a PE file from disk under the configured size budget and runs the
in-memory loader over it.  The loader itself never touches the
filesystem; this is the collaborator that supplies its buffer.
"""

from __future__ import annotations

from pathlib import Path

from shared.config import TetherConfig
from shared.logger import TetherLogger

from tether.core.errors import ImageTooLargeError, LoadError
from tether.core.image import PeImage
from tether.core.models import ImportReport
from tether.parsers.limits import LoaderLimits


class TetherEngine:
    """File-level entry point for import resolution.

    Usage::

        engine = TetherEngine()
        report = engine.analyze_file("C:/Windows/System32/notepad.exe")
        print(report.library_count)

    Args:
        config: Tether configuration.  Defaults are used if not provided.
        logger: Logger instance.  Defaults to an unconfigured ``tether.engine``
                logger that propagates to the package logger.
    """

    def __init__(
        self,
        config: TetherConfig | None = None,
        logger: TetherLogger | None = None,
    ) -> None:
        self._config: TetherConfig = config or TetherConfig()
        self._logger: TetherLogger = logger or TetherLogger(
            "engine", configure=False
        )
        loader = self._config.loader
        self._limits = LoaderLimits(
            max_descriptors=loader.max_descriptors,
            max_thunks=loader.max_thunks,
            max_name_length=loader.max_name_length,
        )

    @property
    def limits(self) -> LoaderLimits:
        return self._limits

    def analyze_file(self, file_path: str | Path) -> ImportReport:
        """Load *file_path* and resolve its imports.

        Raises:
            FileNotFoundError: The path does not exist.
            ImageTooLargeError: The file exceeds ``loader.max_file_size``.
            LoadError: The image is malformed (see :mod:`tether.core.errors`).
        """
        path = Path(file_path)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {file_path}")

        file_size = path.stat().st_size
        max_size = self._config.loader.max_file_size
        if file_size > max_size:
            raise ImageTooLargeError(
                f"File too large: {file_size:,} bytes (max: {max_size:,} bytes)"
            )

        self._logger.info(f"Starting import resolution of {path}")
        with self._logger.operation("load"), self._logger.timed(f"load {path.name}"):
            try:
                report = self.analyze_data(path.read_bytes())
            except LoadError as exc:
                self._logger.error(
                    "Cannot load %s: %s", path.name, exc, kind=exc.kind, offset=exc.offset
                )
                raise

        report.path = str(path.resolve())
        self._logger.info(
            " | ".join([
                f"{report.info.format} {report.info.arch}",
                f"Libraries: {report.library_count}",
                f"Symbols: {report.symbol_count}",
                f"Skipped entries: {len(report.diagnostics)}",
            ])
        )
        return report

    def analyze_data(self, data: bytes | bytearray) -> ImportReport:
        """Resolve imports of an image already held in memory."""
        return PeImage(data, limits=self._limits, logger=self._logger).load()
