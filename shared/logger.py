"""
Sectview Structured Logger
===========================

Provides :class:`SectviewLogger`, the logging facade every sectview
component writes through.  Records carry the emitting *component* and,
while a parse is running, the current *phase* (``detect_class``,
``read_header``, ``resolve_sections``).

Two sinks are available:

    - a Rich console handler, always on stderr so that section tables
      written to stdout stay clean;
    - an optional rotating log file, either plain text or one JSON
      object per line.

References:
    - Python logging HOWTO. https://docs.python.org/3/howto/logging.html
    - Rich library. https://github.com/Textualize/rich
"""

from __future__ import annotations

import json
import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterator

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

_LOG_THEME = Theme(
    {
        "log.level.debug": "dim white",
        "log.level.info": "bright_blue",
        "log.level.warning": "bold yellow",
        "log.level.error": "bold red",
    }
)

_TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [%(phase)s] %(message)s"

# Keyword arguments forwarded to logging.Logger.log as-is.
_LOGGING_KWARGS = frozenset({"exc_info", "stack_info", "stacklevel"})


# ========================== File formatters ================================


class _JSONLineFormatter(logging.Formatter):
    """One JSON object per record.

    Keys: ``timestamp``, ``level``, ``logger``, ``message``, ``component``,
    plus ``phase``, ``extra`` and ``exc_info`` when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict[str, Any] = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "component": getattr(record, "component", None),
        }
        phase = getattr(record, "phase", None)
        if phase:
            payload["phase"] = phase
        fields = getattr(record, "sectview_extra", None)
        if fields:
            payload["extra"] = fields
        if record.exc_info and record.exc_info[1] is not None:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class _TextFormatter(logging.Formatter):
    """Plain-text lines; records logged outside a phase show ``[-]``."""

    def __init__(self) -> None:
        super().__init__(fmt=_TEXT_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")

    def format(self, record: logging.LogRecord) -> str:
        if not getattr(record, "phase", None):
            record.phase = "-"
        return super().format(record)


def _stderr_handler(level: int) -> RichHandler:
    return RichHandler(
        level=level,
        console=Console(theme=_LOG_THEME, stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )


def _file_handler(
    path: str | Path, level: int, json_logs: bool, max_bytes: int, backup_count: int
) -> RotatingFileHandler:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        str(target), maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(_JSONLineFormatter() if json_logs else _TextFormatter())
    return handler


# ========================== SectviewLogger =================================


class SectviewLogger:
    """Component-bound logger with a phase scope and a timer.

    Usage::

        log = SectviewLogger("parser", log_file="sectview.jsonl", json_logs=True)
        with log.phase("read_header"):
            log.debug("e_shnum=%d", 29)
        log.warning("Entry size larger than expected", declared=72)

    Keyword arguments that :meth:`logging.Logger.log` does not know are
    collected into the record's ``extra`` mapping (JSON file output only).

    Args:
        component:       Name of the emitting component (logger ``sectview.<component>``).
        log_level:       Minimum severity name.
        log_file:        Rotating log file path; ``None`` disables file logging.
        json_logs:       Write JSON lines instead of plain text to the file.
        max_bytes:       Rotation threshold for the log file.
        backup_count:    Rotated files to keep.
        console_output:  Attach the Rich stderr handler.
    """

    def __init__(
        self,
        component: str,
        *,
        log_level: str = "WARNING",
        log_file: str | Path | None = None,
        json_logs: bool = False,
        max_bytes: int = 5 * 1024 * 1024,
        backup_count: int = 3,
        console_output: bool = True,
    ) -> None:
        self._component = component
        self._phase: str | None = None

        level = logging.getLevelName(log_level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

        self._logger = logging.getLogger(f"sectview.{component}")
        self._logger.setLevel(level)
        self._logger.propagate = False
        # Re-creating a logger for the same component replaces its sinks.
        self._logger.handlers.clear()

        if console_output:
            self._logger.addHandler(_stderr_handler(level))
        if log_file:
            self._logger.addHandler(
                _file_handler(log_file, level, json_logs, max_bytes, backup_count)
            )

    @classmethod
    def from_config(cls, component: str, settings: Any, *, verbose: bool = False) -> SectviewLogger:
        """Build a logger from a :class:`shared.config.GlobalConfig`."""
        return cls(
            component,
            log_level="DEBUG" if verbose or settings.debug else settings.log_level,
            log_file=settings.log_file or None,
            json_logs=settings.log_json,
        )

    # ------------------------------------------------------------------ #
    #  Scopes
    # ------------------------------------------------------------------ #

    @contextmanager
    def phase(self, name: str) -> Iterator[SectviewLogger]:
        """Tag every record logged inside the block with ``phase=name``."""
        outer, self._phase = self._phase, name
        try:
            yield self
        finally:
            self._phase = outer

    @contextmanager
    def timed(self, label: str) -> Iterator[None]:
        """Log start and finish of *label* at DEBUG, with elapsed seconds.

        Usage::

            with log.timed("parse /bin/ls"):
                layout = parser.parse(fh)
        """
        start = time.perf_counter()
        self.debug("Started: %s", label)
        try:
            yield
        finally:
            self.debug("Finished: %s (%.3f sec)", label, time.perf_counter() - start)

    # ------------------------------------------------------------------ #
    #  Log methods
    # ------------------------------------------------------------------ #

    def _log(self, level: int, msg: str, args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        passthrough = {k: kwargs.pop(k) for k in list(kwargs) if k in _LOGGING_KWARGS}
        extra: dict[str, Any] = {"component": self._component, "phase": self._phase}
        if kwargs:
            extra["sectview_extra"] = kwargs
        passthrough.setdefault("stacklevel", 3)
        self._logger.log(level, msg, *args, extra=extra, **passthrough)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, args, kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, args, kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, args, kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, args, kwargs)

    # ------------------------------------------------------------------ #
    #  Properties
    # ------------------------------------------------------------------ #

    @property
    def component(self) -> str:
        return self._component

    @property
    def underlying(self) -> logging.Logger:
        """The wrapped stdlib :class:`logging.Logger`."""
        return self._logger
