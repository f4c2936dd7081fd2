"""
Sectview Configuration Management
==================================

Centralized configuration for the sectview tool using Python dataclasses
and TOML-based persistence.

Configuration is kept separate from code: every tunable that the parser,
renderers or logger consult lives here and can be overridden from a
``sectview.toml`` file.

References:
    - PEP 681 -- Data Class Transforms (2022).
    - TOML v1.0.0 Specification. https://toml.io/en/v1.0.0
"""

from __future__ import annotations

import sys
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


# ---------------------------------------------------------------------------
# Default configuration file path relative to the project root
# ---------------------------------------------------------------------------
_DEFAULT_CONFIG_PATH: Path = Path(__file__).resolve().parent.parent / "sectview.toml"


# ========================== Component Configs ==============================


@dataclass(frozen=False, slots=True)
class ParserConfig:
    """Configuration for the ELF section-table parser.

    Controls how strictly untrusted header values are validated before
    they are used to size reads and allocations.
    """

    strict_entry_size: bool = True
    enforce_section_bounds: bool = True
    max_string_table_size: int = 67_108_864  # 64 MiB


@dataclass(frozen=False, slots=True)
class OutputConfig:
    """Configuration for result rendering."""

    output_format: str = "plain"
    include_null_section: bool = False
    pic_max_height: float = 1024.0


# =========================== Global Settings ===============================


@dataclass(frozen=False, slots=True)
class GlobalConfig:
    """Global settings: logging verbosity and log destinations."""

    log_level: str = "WARNING"
    log_file: str = ""
    log_json: bool = False
    debug: bool = False
    version: str = "1.0.0"


# =========================== Master Config =================================


@dataclass(frozen=False, slots=True)
class SectviewConfig:
    """All sectview settings, one attribute per TOML table.

    ``sectview.toml`` layout::

        [global]
        log_level = "INFO"
        log_file = "sectview.jsonl"
        log_json = true

        [parser]
        strict_entry_size = true
        enforce_section_bounds = true
        max_string_table_size = 67108864

        [output]
        output_format = "table"
        include_null_section = false
    """

    global_settings: GlobalConfig = field(default_factory=GlobalConfig)
    parser: ParserConfig = field(default_factory=ParserConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    @classmethod
    def load(cls, path: str | Path | None = None) -> SectviewConfig:
        """Read settings from *path*, or from ``sectview.toml`` at the project root.

        Absent tables and keys keep their defaults and unknown keys are
        ignored.  A missing default file yields pure defaults.

        Raises:
            FileNotFoundError: An explicitly given *path* does not exist.
            tomllib.TOMLDecodeError: The file is not valid TOML (a
                :class:`ValueError` subclass).
        """
        config_path = _DEFAULT_CONFIG_PATH if path is None else Path(path)
        if not config_path.is_file():
            if path is None:
                return cls()
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with config_path.open("rb") as fh:
            raw: dict[str, Any] = tomllib.load(fh)

        return cls(
            global_settings=_from_table(GlobalConfig, raw.get("global", {})),
            parser=_from_table(ParserConfig, raw.get("parser", {})),
            output=_from_table(OutputConfig, raw.get("output", {})),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _from_table(section_cls: type, table: dict[str, Any]) -> Any:
    known = {f.name for f in fields(section_cls)}
    return section_cls(**{k: v for k, v in table.items() if k in known})
