"""
ELF Structure Layouts
======================

Width-conditioned field access for the two ELF structures sectview reads:
the file header (``Elf32_Ehdr`` / ``Elf64_Ehdr``) and the section header
(``Elf32_Shdr`` / ``Elf64_Shdr``).

Each structure is described once per word width as a table of
``field name -> (byte offset, struct code)``.  A :class:`WidthContext`
picks the table for the active class and byte order and decodes any
field from a raw byte slice into a plain Python ``int``, so everything
downstream of the accessor is width-agnostic.

References:
    - TIS Committee. (1995). Tool Interface Standard (TIS) Executable and
      Linkable Format (ELF) Specification, Version 1.2.
    - Linux man page: elf(5).
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from sectview.core.errors import TruncatedRead
from sectview.core.models import ElfClass


# ---------------------------------------------------------------------------
# Identification block
# ---------------------------------------------------------------------------

ELF_MAGIC: bytes = b"\x7fELF"
EI_NIDENT: int = 16
EI_CLASS: int = 4
EI_DATA: int = 5

ELFCLASSNONE: int = 0
ELFCLASS32: int = 1
ELFCLASS64: int = 2

ELFDATANONE: int = 0
ELFDATA2LSB: int = 1  # Little-endian
ELFDATA2MSB: int = 2  # Big-endian


# ---------------------------------------------------------------------------
# Field tables
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class _Field:
    offset: int
    code: str

    @property
    def width(self) -> int:
        return struct.calcsize(f"<{self.code}")


@dataclass(frozen=True, slots=True)
class StructLayout:
    """Byte layout of one ELF structure at one word width.

    Attributes:
        name: C type name, used in diagnostics.
        size: Total structure size in bytes.
        fields: Field name to :class:`_Field` mapping.
    """
    name: str
    size: int
    fields: dict[str, _Field]

    def read(self, raw: bytes | memoryview, field: str, byte_order: str) -> int:
        """Decode *field* from *raw* as an unsigned integer.

        Raises:
            KeyError: *field* is not part of this layout.
            TruncatedRead: *raw* is too short to contain the field.
        """
        spec = self.fields[field]
        end = spec.offset + spec.width
        if end > len(raw):
            raise TruncatedRead(
                f"{self.name}.{field}",
                offset=spec.offset,
                expected=spec.width,
                available=max(len(raw) - spec.offset, 0),
            )
        (value,) = struct.unpack_from(f"{byte_order}{spec.code}", raw, spec.offset)
        return value


# Elf32_Ehdr: 52 bytes
_EHDR32 = StructLayout(
    name="Elf32_Ehdr",
    size=52,
    fields={
        "e_type": _Field(16, "H"),
        "e_machine": _Field(18, "H"),
        "e_shoff": _Field(32, "I"),
        "e_shentsize": _Field(46, "H"),
        "e_shnum": _Field(48, "H"),
        "e_shstrndx": _Field(50, "H"),
    },
)

# Elf64_Ehdr: 64 bytes
_EHDR64 = StructLayout(
    name="Elf64_Ehdr",
    size=64,
    fields={
        "e_type": _Field(16, "H"),
        "e_machine": _Field(18, "H"),
        "e_shoff": _Field(40, "Q"),
        "e_shentsize": _Field(58, "H"),
        "e_shnum": _Field(60, "H"),
        "e_shstrndx": _Field(62, "H"),
    },
)

# Elf32_Shdr: 40 bytes
_SHDR32 = StructLayout(
    name="Elf32_Shdr",
    size=40,
    fields={
        "sh_name": _Field(0, "I"),
        "sh_type": _Field(4, "I"),
        "sh_offset": _Field(16, "I"),
        "sh_size": _Field(20, "I"),
    },
)

# Elf64_Shdr: 64 bytes
_SHDR64 = StructLayout(
    name="Elf64_Shdr",
    size=64,
    fields={
        "sh_name": _Field(0, "I"),
        "sh_type": _Field(4, "I"),
        "sh_offset": _Field(24, "Q"),
        "sh_size": _Field(32, "Q"),
    },
)

_LAYOUTS: dict[ElfClass, tuple[StructLayout, StructLayout]] = {
    ElfClass.ELF32: (_EHDR32, _SHDR32),
    ElfClass.ELF64: (_EHDR64, _SHDR64),
}


# ---------------------------------------------------------------------------
# Width context
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class WidthContext:
    """Class and byte order selected for a single parse.

    Usage::

        ctx = WidthContext(ElfClass.ELF64)
        shoff = ctx.header_field(raw_header, "e_shoff")
        size = ctx.section_field(raw_entry, "sh_size")
    """
    elf_class: ElfClass
    byte_order: str = "<"

    @property
    def header(self) -> StructLayout:
        return _LAYOUTS[self.elf_class][0]

    @property
    def section_header(self) -> StructLayout:
        return _LAYOUTS[self.elf_class][1]

    @property
    def endian(self) -> str:
        return "little" if self.byte_order == "<" else "big"

    def header_field(self, raw: bytes | memoryview, field: str) -> int:
        return self.header.read(raw, field, self.byte_order)

    def section_field(self, raw: bytes | memoryview, field: str) -> int:
        return self.section_header.read(raw, field, self.byte_order)


def class_from_byte(class_byte: int) -> ElfClass | None:
    """Map an ``EI_CLASS`` value to :class:`ElfClass`, or ``None``."""
    if class_byte == ELFCLASS32:
        return ElfClass.ELF32
    if class_byte == ELFCLASS64:
        return ElfClass.ELF64
    return None


def byte_order_from_byte(data_byte: int) -> str:
    """Map an ``EI_DATA`` value to a :mod:`struct` byte-order prefix.

    Anything other than ``ELFDATA2MSB`` reads as little-endian.
    """
    return ">" if data_byte == ELFDATA2MSB else "<"
