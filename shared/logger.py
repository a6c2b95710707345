"""
Tether Structured Logger
=========================

Provides :class:`TetherLogger`, a logging facade that emits human-friendly
Rich console output and, optionally, machine-parseable JSON lines to a
rotating log file.

Loggers live under the ``tether`` namespace.  A logger bound to the
component ``"tether"`` configures the package root, so module-level
``logging.getLogger(__name__)`` loggers inside :mod:`tether` propagate
into its handlers.

References:
    - Python logging HOWTO. https://docs.python.org/3/howto/logging.html
    - Rich library. https://github.com/Textualize/rich
"""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

_ROOT_NAME = "tether"

_LOG_THEME = Theme(
    {
        "log.level.debug": "dim cyan",
        "log.level.info": "bold bright_blue",
        "log.level.warning": "bold yellow",
        "log.level.error": "bold red",
        "log.level.critical": "bold white on red",
    }
)


# ========================== JSON Formatter =================================


class _JSONFormatter(logging.Formatter):
    """Emit each log record as a single-line JSON object.

    Output fields::

        {
          "timestamp": "...",
          "level": "WARNING",
          "logger": "tether.image",
          "message": "...",
          "component": "image",
          "operation": "load",
          "extra": { ... },
          "exc_info": "..."
        }
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for attr in ("component", "operation"):
            val = getattr(record, attr, None)
            if val is not None:
                entry[attr] = val

        extra = getattr(record, "tether_extra", None)
        if extra is not None:
            entry["extra"] = extra

        if record.exc_info and record.exc_info[1] is not None:
            entry["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


def _console_handler(level: str) -> RichHandler:
    return RichHandler(
        level=level,
        console=Console(theme=_LOG_THEME, stderr=True),
        show_path=False,
        show_time=True,
        rich_tracebacks=True,
        tracebacks_show_locals=False,
        markup=False,
    )


# ========================== TetherLogger ===================================


class TetherLogger:
    """Context-aware logger bound to one Tether component.

    Usage::

        log = TetherLogger("tether", log_file="tether.log", json_logs=True)
        with log.operation("load"):
            log.debug("Resolving %s", library)
        with log.timed("import resolution"):
            report = image.load()

    Args:
        component:      Component name; ``"tether"`` binds the package root.
        log_level:      Minimum severity (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file:       Rotating log file path; ``None`` disables file logging.
        json_logs:      Emit JSON lines to the file instead of plain text.
        max_bytes:      Log-file size before rotation (default 10 MiB).
        backup_count:   Rotated files to keep.
        console_output: Attach a Rich stderr handler.
        configure:      Install level and handlers.  ``False`` binds to the
                        stdlib logger as-is, so records propagate to
                        whatever the application configured on ``tether``.
    """

    def __init__(
        self,
        component: str,
        *,
        log_level: str = "INFO",
        log_file: str | Path | None = None,
        json_logs: bool = False,
        max_bytes: int = 10_485_760,
        backup_count: int = 5,
        console_output: bool = True,
        configure: bool = True,
    ) -> None:
        self._component = component
        self._operation: str | None = None

        name = _ROOT_NAME if component == _ROOT_NAME else f"{_ROOT_NAME}.{component}"
        self._logger = logging.getLogger(name)
        if not configure:
            return

        level = getattr(logging, log_level.upper(), logging.INFO)
        self._logger.setLevel(level)
        self._logger.propagate = False

        # Re-instantiation replaces handlers; release their streams first.
        for handler in list(self._logger.handlers):
            self._logger.removeHandler(handler)
            handler.close()

        if console_output:
            self._logger.addHandler(_console_handler(logging.getLevelName(level)))

        if log_file is not None:
            file_path = Path(log_file)
            file_path.parent.mkdir(parents=True, exist_ok=True)
            fh = RotatingFileHandler(
                filename=str(file_path),
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
            fh.setLevel(level)
            if json_logs:
                fh.setFormatter(_JSONFormatter())
            else:
                fh.setFormatter(
                    logging.Formatter(
                        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                        datefmt="%Y-%m-%dT%H:%M:%S%z",
                    )
                )
            self._logger.addHandler(fh)

        if not self._logger.handlers:
            self._logger.addHandler(logging.NullHandler())

    # ------------------------------------------------------------------ #
    #  Operation scope
    # ------------------------------------------------------------------ #

    class _OperationContext:
        """Temporarily binds an operation name to every record."""

        def __init__(self, parent: TetherLogger, operation: str) -> None:
            self._parent = parent
            self._operation = operation
            self._prev: str | None = None

        def __enter__(self) -> TetherLogger:
            self._prev = self._parent._operation
            self._parent._operation = self._operation
            return self._parent

        def __exit__(self, *exc: Any) -> None:
            self._parent._operation = self._prev

    def operation(self, name: str) -> _OperationContext:
        return self._OperationContext(self, name)

    # ------------------------------------------------------------------ #
    #  Log methods
    # ------------------------------------------------------------------ #

    def _enrich(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        """Move non-logging keyword arguments into ``tether_extra``."""
        extra = kwargs.pop("extra", {}) or {}
        standard_keys = {"exc_info", "stack_info", "stacklevel"}
        tether_extra = {
            key: kwargs.pop(key) for key in list(kwargs) if key not in standard_keys
        }

        extra["component"] = self._component
        extra["operation"] = self._operation
        if tether_extra:
            extra["tether_extra"] = tether_extra

        kwargs["extra"] = extra
        return kwargs

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._logger.debug(msg, *args, **self._enrich(kwargs))

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._logger.info(msg, *args, **self._enrich(kwargs))

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._logger.warning(msg, *args, **self._enrich(kwargs))

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._logger.error(msg, *args, **self._enrich(kwargs))

    # ------------------------------------------------------------------ #
    #  Timing helper
    # ------------------------------------------------------------------ #

    class _TimingContext:
        """Logs start at DEBUG and completion with elapsed time at INFO."""

        def __init__(self, logger_inst: TetherLogger, label: str) -> None:
            self._logger = logger_inst
            self._label = label
            self._start: float = 0.0

        def __enter__(self) -> TetherLogger._TimingContext:
            self._start = time.perf_counter()
            self._logger.debug("Started: %s", self._label)
            return self

        def __exit__(self, *exc: Any) -> None:
            self._logger.info(
                "Completed: %s (%.3f sec)", self._label, self.elapsed
            )

        @property
        def elapsed(self) -> float:
            return time.perf_counter() - self._start

    def timed(self, label: str) -> _TimingContext:
        return self._TimingContext(self, label)

    # ------------------------------------------------------------------ #
    #  Properties
    # ------------------------------------------------------------------ #

    @property
    def underlying(self) -> logging.Logger:
        """Direct access to the stdlib :class:`logging.Logger`."""
        return self._logger
