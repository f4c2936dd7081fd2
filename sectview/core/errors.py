"""
Sectview Parse Errors
======================

Exception hierarchy raised by the ELF section-table parser.  Every parse
failure is terminal for that parse call; callers catch
:class:`FormatError` (or a specific subclass) and decide how to report.
"""

from __future__ import annotations

from typing import ClassVar


class FormatError(Exception):
    """Base class for every failure detected while reading a binary.

    Attributes:
        kind: Stable identifier for the failure category.
        offset: File offset the failure relates to, when known.
    """

    kind: ClassVar[str] = "FormatError"

    def __init__(self, message: str, *, offset: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.offset = offset

    def __str__(self) -> str:
        return self.message


class NotAnExpectedBinary(FormatError):
    """The identification block does not start with the ELF magic."""

    kind = "NotAnExpectedBinary"


class UnsupportedWordWidth(FormatError):
    """The class byte is neither ELFCLASS32 nor ELFCLASS64."""

    kind = "UnsupportedWordWidth"

    def __init__(self, class_byte: int) -> None:
        super().__init__(f"Unknown binary word-size (class byte {class_byte})", offset=4)
        self.class_byte = class_byte


class TruncatedRead(FormatError):
    """Fewer bytes are available than a structure declares."""

    kind = "TruncatedRead"

    def __init__(self, what: str, *, offset: int, expected: int, available: int) -> None:
        super().__init__(
            f"Could not read {what}: needed {expected} bytes at offset "
            f"0x{offset:x}, only {available} available",
            offset=offset,
        )
        self.expected = expected
        self.available = available


class InvalidStringTableIndex(FormatError):
    """The section-name string table index is outside the section table."""

    kind = "InvalidStringTableIndex"

    def __init__(self, index: int, section_count: int) -> None:
        super().__init__(
            f"String table section index {index} is out of range "
            f"(file declares {section_count} sections)"
        )
        self.index = index
        self.section_count = section_count


class InconsistentEntrySize(FormatError):
    """The declared section-header entry size does not fit the word width."""

    kind = "InconsistentEntrySize"

    def __init__(self, declared: int, expected: int) -> None:
        super().__init__(
            f"Section header entry size is {declared} bytes, expected {expected}"
        )
        self.declared = declared
        self.expected = expected


class NameOffsetOutOfRange(FormatError):
    """A section's name offset points past the end of the string table."""

    kind = "NameOffsetOutOfRange"

    def __init__(self, name_offset: int, table_size: int, *, section_index: int | None = None) -> None:
        where = f"section {section_index}" if section_index is not None else "name"
        super().__init__(
            f"Name offset {name_offset} of {where} is outside the "
            f"{table_size}-byte string table"
        )
        self.name_offset = name_offset
        self.table_size = table_size
        self.section_index = section_index


class SectionOutOfRange(FormatError):
    """A section claims bytes beyond the end of the file."""

    kind = "SectionOutOfRange"

    def __init__(self, index: int, offset: int, size: int, file_size: int) -> None:
        super().__init__(
            f"Section {index} spans 0x{offset:x}..0x{offset + size:x}, "
            f"past the end of the {file_size}-byte file",
            offset=offset,
        )
        self.index = index
        self.size = size
        self.file_size = file_size


class AllocationFailure(FormatError):
    """A declared buffer size cannot be satisfied."""

    kind = "AllocationFailure"


class IoError(FormatError):
    """The underlying byte source is unavailable or unreadable."""

    kind = "IoError"


__all__ = [
    "FormatError",
    "NotAnExpectedBinary",
    "UnsupportedWordWidth",
    "TruncatedRead",
    "InvalidStringTableIndex",
    "InconsistentEntrySize",
    "NameOffsetOutOfRange",
    "SectionOutOfRange",
    "AllocationFailure",
    "IoError",
]
