"""
ELF Section Table Parser
=========================

Manual struct-based reader for the section layout of an Executable and
Linkable Format (ELF) file.  Both 32-bit (ELF32) and 64-bit (ELF64)
variants, in either byte order, are supported.

The parse runs in three stages, each depending on the one before:

    1. Class detection -- verify the magic and pick the word width.
    2. Header reading -- re-read the full file header at that width.
    3. Section table resolution -- load the section-name string table,
       read every section-header entry in on-disk order, and resolve
       each entry's name.

Every size, count and offset taken from the file is treated as untrusted
and checked against the length of the source before it drives a seek or
an allocation.  Failures raise a :class:`~sectview.core.errors.FormatError`
subclass; nothing is returned for a parse that fails part-way.

References:
    - TIS Committee. (1995). Tool Interface Standard (TIS) Executable and
      Linkable Format (ELF) Specification, Version 1.2.
    - System V Application Binary Interface, Edition 4.1.
    - Linux man page: elf(5).
"""

from __future__ import annotations

import io
import os
from contextlib import nullcontext
from dataclasses import dataclass
from typing import BinaryIO, ContextManager, Union

from shared.config import ParserConfig
from shared.logger import SectviewLogger

from sectview.core.errors import (
    AllocationFailure,
    InconsistentEntrySize,
    InvalidStringTableIndex,
    IoError,
    NameOffsetOutOfRange,
    NotAnExpectedBinary,
    SectionOutOfRange,
    TruncatedRead,
    UnsupportedWordWidth,
)
from sectview.core.models import (
    ElfHeaderInfo,
    SectionDescriptor,
    SectionLayout,
    SHT_NOBITS,
)
from sectview.parsers.layout import (
    EI_CLASS,
    EI_DATA,
    EI_NIDENT,
    ELF_MAGIC,
    WidthContext,
    byte_order_from_byte,
    class_from_byte,
)


Source = Union[bytes, bytearray, memoryview, BinaryIO]


# ---------------------------------------------------------------------------
# Byte source
# ---------------------------------------------------------------------------

class ByteSource:
    """Seekable binary stream with a known length and bounds-checked reads.

    Args:
        stream: Binary file object supporting ``seek`` and ``read``.
    """

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        try:
            self.size: int = stream.seek(0, os.SEEK_END)
        except OSError as exc:
            raise IoError(f"Could not determine input length: {exc}") from exc

    @classmethod
    def wrap(cls, source: Source) -> ByteSource:
        """Accept raw bytes or an already-open binary stream."""
        if isinstance(source, (bytes, bytearray, memoryview)):
            return cls(io.BytesIO(bytes(source)))
        return cls(source)

    def read_at(self, offset: int, size: int, what: str) -> bytes:
        """Read exactly *size* bytes at *offset*.

        Raises:
            TruncatedRead: The range extends past the end of the source.
            AllocationFailure: The buffer could not be allocated.
            IoError: The underlying stream failed.
        """
        available = max(self.size - offset, 0)
        if size > available:
            raise TruncatedRead(what, offset=offset, expected=size, available=available)
        try:
            self._stream.seek(offset)
            data = self._stream.read(size)
        except MemoryError as exc:
            raise AllocationFailure(
                f"Could not allocate {size} bytes for {what}", offset=offset
            ) from exc
        except OSError as exc:
            raise IoError(f"Error reading {what} from input file: {exc}") from exc
        if len(data) != size:
            raise TruncatedRead(what, offset=offset, expected=size, available=len(data))
        return data


# ---------------------------------------------------------------------------
# Stage 1: class detection
# ---------------------------------------------------------------------------

def detect_class(source: ByteSource) -> WidthContext:
    """Read the identification block and select the field layout.

    Raises:
        NotAnExpectedBinary: The leading bytes are not the ELF magic.
        TruncatedRead: The file ends inside the identification block.
        UnsupportedWordWidth: The class byte is not ELFCLASS32/ELFCLASS64.
    """
    ident = source.read_at(0, min(EI_NIDENT, source.size), "identification block")

    # A short file that is still a prefix of the magic counts as truncated.
    if not ident.startswith(ELF_MAGIC) and not ELF_MAGIC.startswith(ident):
        raise NotAnExpectedBinary("This is not an ELF file", offset=0)
    if len(ident) < EI_NIDENT:
        raise TruncatedRead(
            "identification block",
            offset=0,
            expected=EI_NIDENT,
            available=len(ident),
        )

    elf_class = class_from_byte(ident[EI_CLASS])
    if elf_class is None:
        raise UnsupportedWordWidth(ident[EI_CLASS])
    return WidthContext(elf_class, byte_order_from_byte(ident[EI_DATA]))


# ---------------------------------------------------------------------------
# Stage 2: header reading
# ---------------------------------------------------------------------------

def read_header(
    source: ByteSource,
    ctx: WidthContext,
    *,
    strict_entry_size: bool = True,
    logger: SectviewLogger | None = None,
) -> ElfHeaderInfo:
    """Read the full file header at the width selected by *ctx*.

    The string-table index and entry-size checks only apply when the
    header declares at least one section.

    Raises:
        TruncatedRead: The file is shorter than the header.
        InvalidStringTableIndex: ``e_shstrndx >= e_shnum``.
        InconsistentEntrySize: ``e_shentsize`` does not match the width
            (in lenient mode only a *smaller* size is rejected).
    """
    raw = source.read_at(0, ctx.header.size, ctx.header.name)
    header = ElfHeaderInfo(
        elf_class=ctx.elf_class,
        endian=ctx.endian,
        elf_type=ctx.header_field(raw, "e_type"),
        machine=ctx.header_field(raw, "e_machine"),
        section_count=ctx.header_field(raw, "e_shnum"),
        section_header_entry_size=ctx.header_field(raw, "e_shentsize"),
        section_header_table_offset=ctx.header_field(raw, "e_shoff"),
        string_table_section_index=ctx.header_field(raw, "e_shstrndx"),
    )
    if header.section_count == 0:
        return header

    if header.string_table_section_index >= header.section_count:
        raise InvalidStringTableIndex(
            header.string_table_section_index, header.section_count
        )

    expected = ctx.section_header.size
    declared = header.section_header_entry_size
    if declared != expected:
        if strict_entry_size or declared < expected:
            raise InconsistentEntrySize(declared, expected)
        if logger is not None:
            logger.warning(
                "Section header entry size is %d bytes, expected %d; "
                "reading the leading %d bytes of each entry",
                declared, expected, expected,
            )
    return header


# ---------------------------------------------------------------------------
# Stage 3: section table resolution
# ---------------------------------------------------------------------------

def resolve_name(
    table: bytes,
    name_offset: int,
    *,
    section_index: int | None = None,
) -> str:
    """Return the NUL-terminated string starting at *name_offset*.

    The string runs to the first NUL byte or the end of *table*,
    whichever comes first.

    Raises:
        NameOffsetOutOfRange: ``name_offset >= len(table)``.
    """
    if name_offset < 0 or name_offset >= len(table):
        raise NameOffsetOutOfRange(name_offset, len(table), section_index=section_index)
    end = table.find(b"\x00", name_offset)
    if end == -1:
        end = len(table)
    return table[name_offset:end].decode("utf-8", errors="replace")


@dataclass(frozen=True, slots=True)
class _RawEntry:
    """Width-independent view of one section-header entry."""
    name_offset: int
    type: int
    offset: int
    size: int


class SectionTableResolver:
    """Reads the section-header table and resolves section names.

    One instance serves exactly one parse.

    Args:
        source: The byte source being parsed.
        ctx: Width context from :func:`detect_class`.
        header: File header from :func:`read_header`.
        config: Parser limits and checks.
        logger: Optional logger for per-phase debug output.
    """

    def __init__(
        self,
        source: ByteSource,
        ctx: WidthContext,
        header: ElfHeaderInfo,
        config: ParserConfig | None = None,
        logger: SectviewLogger | None = None,
    ) -> None:
        self._source = source
        self._ctx = ctx
        self._header = header
        self._config = config or ParserConfig()
        self._logger = logger

    # ------------------------------------------------------------------ #
    #  Public interface
    # ------------------------------------------------------------------ #

    def resolve(self) -> list[SectionDescriptor]:
        """Run all three phases and return descriptors in table order."""
        if self._header.section_count == 0:
            return []

        self._check_table_bounds()
        table = self.load_string_table()
        entries = self.read_entries()

        sections: list[SectionDescriptor] = []
        for index, entry in enumerate(entries):
            name = resolve_name(table, entry.name_offset, section_index=index)
            self._check_section_bounds(index, entry)
            sections.append(SectionDescriptor(
                index=index,
                name=name,
                offset=entry.offset,
                size=entry.size,
                type=entry.type,
            ))
        return sections

    def load_string_table(self) -> bytes:
        """Read the contents of the section-name string table section.

        Raises:
            AllocationFailure: The declared size exceeds the configured cap.
            TruncatedRead: The declared range extends past end of file.
        """
        h = self._header
        entry_offset = (
            h.section_header_table_offset
            + h.string_table_section_index * h.section_header_entry_size
        )
        entry = self._decode_entry(
            self._source.read_at(
                entry_offset,
                h.section_header_entry_size,
                "string table section header",
            )
        )
        if entry.size > self._config.max_string_table_size:
            raise AllocationFailure(
                f"Could not allocate enough memory to store the string table "
                f"({entry.size} bytes declared, limit "
                f"{self._config.max_string_table_size})",
                offset=entry.offset,
            )
        self._debug(
            "String table: section %d, %d bytes at 0x%x",
            h.string_table_section_index, entry.size, entry.offset,
        )
        return self._source.read_at(entry.offset, entry.size, "string table")

    def read_entries(self) -> list[_RawEntry]:
        """Read every section-header entry in on-disk order."""
        h = self._header
        stride = h.section_header_entry_size
        raw_table = memoryview(self._source.read_at(
            h.section_header_table_offset,
            h.section_count * stride,
            "section header table",
        ))
        self._debug(
            "Section header table: %d entries of %d bytes at 0x%x",
            h.section_count, stride, h.section_header_table_offset,
        )
        return [
            self._decode_entry(raw_table[i * stride:(i + 1) * stride])
            for i in range(h.section_count)
        ]

    # ------------------------------------------------------------------ #
    #  Internal helpers
    # ------------------------------------------------------------------ #

    def _decode_entry(self, raw: bytes | memoryview) -> _RawEntry:
        ctx = self._ctx
        return _RawEntry(
            name_offset=ctx.section_field(raw, "sh_name"),
            type=ctx.section_field(raw, "sh_type"),
            offset=ctx.section_field(raw, "sh_offset"),
            size=ctx.section_field(raw, "sh_size"),
        )

    def _check_table_bounds(self) -> None:
        h = self._header
        table_size = h.section_count * h.section_header_entry_size
        available = max(self._source.size - h.section_header_table_offset, 0)
        if table_size > available:
            raise TruncatedRead(
                "section header table",
                offset=h.section_header_table_offset,
                expected=table_size,
                available=available,
            )

    def _check_section_bounds(self, index: int, entry: _RawEntry) -> None:
        if not self._config.enforce_section_bounds or entry.type == SHT_NOBITS:
            return
        if entry.offset + entry.size > self._source.size:
            raise SectionOutOfRange(index, entry.offset, entry.size, self._source.size)

    def _debug(self, msg: str, *args: object) -> None:
        if self._logger is not None:
            self._logger.debug(msg, *args)


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

class ELFSectionParser:
    """Turns the bytes of an ELF file into its section layout.

    The parser holds only immutable configuration, so a single instance
    may be shared between threads; every call to :meth:`parse` works on
    its own source and buffers.

    Usage::

        parser = ELFSectionParser()
        with open("/bin/ls", "rb") as fh:
            layout = parser.parse(fh)
        for section in layout.visible_sections():
            print(section.name, hex(section.offset), section.size)
    """

    def __init__(
        self,
        config: ParserConfig | None = None,
        logger: SectviewLogger | None = None,
    ) -> None:
        self._config: ParserConfig = config or ParserConfig()
        self._logger = logger

    def parse(self, source: Source, *, path: str = "") -> SectionLayout:
        """Parse *source* (bytes or a seekable binary stream).

        Raises:
            FormatError: Any subclass, at the first violation found.
        """
        src = ByteSource.wrap(source)

        with self._phase("detect_class"):
            ctx = detect_class(src)
        with self._phase("read_header"):
            header = read_header(
                src, ctx,
                strict_entry_size=self._config.strict_entry_size,
                logger=self._logger,
            )
        if self._logger is not None:
            self._logger.debug(
                "%s %s-endian, %d sections",
                ctx.elf_class.value, ctx.endian, header.section_count,
            )
        with self._phase("resolve_sections"):
            sections = SectionTableResolver(
                src, ctx, header, self._config, self._logger
            ).resolve()

        return SectionLayout(
            path=path,
            file_size=src.size,
            header=header,
            sections=sections,
        )

    def _phase(self, name: str) -> ContextManager[object]:
        if self._logger is None:
            return nullcontext()
        return self._logger.phase(name)


def parse_sections(
    source: Source,
    config: ParserConfig | None = None,
    logger: SectviewLogger | None = None,
) -> SectionLayout:
    """Convenience wrapper: ``ELFSectionParser(config, logger).parse(source)``."""
    return ELFSectionParser(config, logger).parse(source)
