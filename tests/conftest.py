"""Shared fixtures: synthetic ELF images built from a section list."""

import struct

import pytest

SHT_NULL = 0
SHT_PROGBITS = 1
SHT_STRTAB = 3
SHT_NOBITS = 8


def _align(value, boundary):
    return (value + boundary - 1) // boundary * boundary


def build_elf(
    sections=(),
    *,
    bits=64,
    endian="little",
    magic=b"\x7fELF",
    class_byte=None,
    strtab_index=None,
    shnum=None,
    shstrndx=None,
    shentsize=None,
    shoff=None,
    name_offsets=None,
    truncate=None,
):
    """Build an ELF image.

    ``sections`` holds ``(name, offset, size)`` or ``(name, offset, size, type)``
    tuples; the null section is prepended automatically.  Unless
    ``strtab_index`` names an existing section to carry the section-name
    string table, a trailing ``.shstrtab`` section is appended and its
    contents are placed right after the file header.  Header fields can be
    overridden to produce malformed images; ``truncate`` cuts the result.
    """
    bo = "<" if endian == "little" else ">"
    ehsize, entsize = (64, 64) if bits == 64 else (52, 40)

    entries = [("", 0, 0, SHT_NULL)]
    for sec in sections:
        entries.append(tuple(sec) if len(sec) == 4 else (*sec, SHT_PROGBITS))

    own_table = strtab_index is None
    if own_table:
        entries.append((".shstrtab", 0, 0, SHT_STRTAB))
        strtab_index = len(entries) - 1

    table = bytearray(b"\x00")
    name_offs = []
    for name, *_ in entries:
        if not name:
            name_offs.append(0)
            continue
        name_offs.append(len(table))
        table += name.encode() + b"\x00"
    for idx, off in (name_offsets or {}).items():
        name_offs[idx] = off

    if own_table:
        table_offset = ehsize
        entries[strtab_index] = (".shstrtab", table_offset, len(table), SHT_STRTAB)
    else:
        _, table_offset, table_size, _ = entries[strtab_index]
        assert table_size >= len(table), "carrier section too small for names"
        table = table.ljust(table_size, b"\x00")

    stride = entsize if shentsize is None else max(entsize, shentsize)
    table_start = _align(ehsize + (len(table) if own_table else 0), 8)
    end = table_start + len(entries) * stride
    data_end = max(
        (off + size for _, off, size, typ in entries if typ != SHT_NOBITS),
        default=0,
    )
    buf = bytearray(max(end, data_end))

    ident = magic + bytes([
        class_byte if class_byte is not None else (1 if bits == 32 else 2),
        1 if endian == "little" else 2,
        1,
    ])
    ident = ident.ljust(16, b"\x00")[:16]

    fields = (
        ident,
        2,                                   # e_type: ET_EXEC
        62 if bits == 64 else 3,             # e_machine
        1,                                   # e_version
        0, 0,                                # e_entry, e_phoff
        table_start if shoff is None else shoff,
        0,                                   # e_flags
        ehsize,
        0, 0,                                # e_phentsize, e_phnum
        entsize if shentsize is None else shentsize,
        len(entries) if shnum is None else shnum,
        strtab_index if shstrndx is None else shstrndx,
    )
    if bits == 64:
        struct.pack_into(f"{bo}16sHHIQQQIHHHHHH", buf, 0, *fields)
    else:
        struct.pack_into(f"{bo}16sHHIIIIIHHHHHH", buf, 0, *fields)

    buf[table_offset:table_offset + len(table)] = table

    for i, (_, off, size, typ) in enumerate(entries):
        pos = table_start + i * stride
        if bits == 64:
            struct.pack_into(
                f"{bo}IIQQQQIIQQ", buf, pos, name_offs[i], typ, 0, 0, off, size, 0, 0, 1, 0
            )
        else:
            struct.pack_into(
                f"{bo}10I", buf, pos, name_offs[i], typ, 0, 0, off, size, 0, 0, 1, 0
            )

    data = bytes(buf)
    return data[:truncate] if truncate is not None else data


@pytest.fixture
def make_elf():
    """Factory fixture around :func:`build_elf`."""
    return build_elf


@pytest.fixture
def sample_sections():
    """The classic two-section layout: .text then .data."""
    return [(".text", 0x1000, 0x200), (".data", 0x1200, 0x50)]


@pytest.fixture
def elf_file(tmp_path, make_elf, sample_sections):
    """A 64-bit little-endian ELF image written to disk."""
    path = tmp_path / "sample.elf"
    path.write_bytes(make_elf(sample_sections))
    return path
