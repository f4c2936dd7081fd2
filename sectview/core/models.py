"""
Sectview Data Models
=====================

Pydantic-based data models for the section layout produced by the ELF
section-table parser.

References:
    - TIS Committee. (1995). Executable and Linkable Format (ELF) Specification.
    - Pydantic v2 documentation. https://docs.pydantic.dev/latest/
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, Field


class ElfClass(str, enum.Enum):
    """Word width declared by the identification block's class byte."""
    ELF32 = "elf32"
    ELF64 = "elf64"

    @property
    def bits(self) -> int:
        return 32 if self is ElfClass.ELF32 else 64


# Section types this tool names when rendering; everything else is shown numerically.
SHT_NULL: int = 0
SHT_PROGBITS: int = 1
SHT_SYMTAB: int = 2
SHT_STRTAB: int = 3
SHT_RELA: int = 4
SHT_HASH: int = 5
SHT_DYNAMIC: int = 6
SHT_NOTE: int = 7
SHT_NOBITS: int = 8
SHT_REL: int = 9
SHT_DYNSYM: int = 11
SHT_INIT_ARRAY: int = 14
SHT_FINI_ARRAY: int = 15

_SHT_NAMES: dict[int, str] = {
    SHT_NULL: "NULL",
    SHT_PROGBITS: "PROGBITS",
    SHT_SYMTAB: "SYMTAB",
    SHT_STRTAB: "STRTAB",
    SHT_RELA: "RELA",
    SHT_HASH: "HASH",
    SHT_DYNAMIC: "DYNAMIC",
    SHT_NOTE: "NOTE",
    SHT_NOBITS: "NOBITS",
    SHT_REL: "REL",
    SHT_DYNSYM: "DYNSYM",
    SHT_INIT_ARRAY: "INIT_ARRAY",
    SHT_FINI_ARRAY: "FINI_ARRAY",
}


# ---------------------------------------------------------------------------
# Section descriptor
# ---------------------------------------------------------------------------

class SectionDescriptor(BaseModel):
    """One entry of the section-header table, with its resolved name.

    Attributes:
        index: Position in the on-disk section-header table.
        name: Name resolved from the section-name string table.
        offset: File offset of the section contents in bytes.
        size: Section size in bytes.
        type: Raw ``sh_type`` value.
    """
    index: int = Field(default=0, ge=0)
    name: str = ""
    offset: int = Field(default=0, ge=0)
    size: int = Field(default=0, ge=0)
    type: int = Field(default=SHT_PROGBITS, ge=0)

    @property
    def type_name(self) -> str:
        return _SHT_NAMES.get(self.type, f"0x{self.type:x}")

    @property
    def occupies_file(self) -> bool:
        """``False`` for ``SHT_NOBITS`` sections such as ``.bss``."""
        return self.type != SHT_NOBITS


# ---------------------------------------------------------------------------
# File header
# ---------------------------------------------------------------------------

class ElfHeaderInfo(BaseModel):
    """File-header fields needed to locate and name the sections.

    Attributes:
        elf_class: Word width of every multi-width field.
        endian: Byte order (``"little"`` or ``"big"``).
        elf_type: ``e_type`` (informational).
        machine: ``e_machine`` (informational).
        section_count: ``e_shnum``.
        section_header_entry_size: ``e_shentsize``.
        section_header_table_offset: ``e_shoff``.
        string_table_section_index: ``e_shstrndx``.
    """
    elf_class: ElfClass = ElfClass.ELF64
    endian: str = "little"
    elf_type: int = 0
    machine: int = 0
    section_count: int = Field(default=0, ge=0)
    section_header_entry_size: int = Field(default=0, ge=0)
    section_header_table_offset: int = Field(default=0, ge=0)
    string_table_section_index: int = Field(default=0, ge=0)


# ---------------------------------------------------------------------------
# Aggregate result
# ---------------------------------------------------------------------------

class SectionLayout(BaseModel):
    """Complete result of one parse: header facts plus every section.

    ``sections`` is index-aligned with the on-disk section-header table;
    entry 0 is the reserved null section.

    Attributes:
        path: Filesystem path of the source, empty for in-memory input.
        file_size: Total length of the source in bytes.
        header: Parsed file-header fields.
        sections: Every section descriptor in table order.
    """
    path: str = ""
    file_size: int = 0
    header: ElfHeaderInfo = Field(default_factory=ElfHeaderInfo)
    sections: list[SectionDescriptor] = Field(default_factory=list)

    def visible_sections(self, include_null: bool = False) -> list[SectionDescriptor]:
        """Sections in table order, without entry 0 unless *include_null*."""
        if include_null:
            return list(self.sections)
        return self.sections[1:]
