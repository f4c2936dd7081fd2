"""
Sectview Engine
================

Opens a file, runs the ELF section-table parser over it, and returns the
resulting :class:`SectionLayout`.  The file handle is scoped to the call
and released on every exit path, including parse failures.
"""

from __future__ import annotations

from pathlib import Path

from shared.config import SectviewConfig
from shared.logger import SectviewLogger

from sectview.core.errors import IoError
from sectview.core.models import SectionLayout
from sectview.parsers.elf_parser import ELFSectionParser


class SectviewEngine:
    """Reads the section layout of binaries on disk.

    Usage::

        engine = SectviewEngine()
        layout = engine.analyze("/usr/bin/ls")
        print(len(layout.sections))
    """

    def __init__(
        self,
        config: SectviewConfig | None = None,
        logger: SectviewLogger | None = None,
    ) -> None:
        """Initialise the engine.

        Args:
            config: Sectview configuration.  Defaults are used if not provided.
            logger: Logger instance.  A new one is created if not provided.
        """
        self._config: SectviewConfig = config or SectviewConfig()
        self._logger: SectviewLogger = logger or SectviewLogger.from_config(
            "engine", self._config.global_settings
        )
        self._parser = ELFSectionParser(self._config.parser, self._logger)

    def analyze(self, file_path: str | Path) -> SectionLayout:
        """Parse the section layout of *file_path*.

        Raises:
            IoError: The file cannot be opened or read.
            FormatError: Any other parse failure.
        """
        path = str(file_path)
        try:
            fh = open(path, "rb")
        except OSError as exc:
            raise IoError(f"Could not open file: {path} ({exc.strerror or exc})") from exc

        with fh, self._logger.timed(f"parse {path}"):
            layout = self._parser.parse(fh, path=path)

        self._logger.info(
            "%s: %d sections (%s, %s-endian)",
            path,
            len(layout.sections),
            layout.header.elf_class.value,
            layout.header.endian,
        )
        return layout
