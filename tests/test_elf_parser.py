import io
from concurrent.futures import ThreadPoolExecutor

import pytest

from shared.config import ParserConfig
from sectview.core.errors import (
    AllocationFailure,
    FormatError,
    InconsistentEntrySize,
    InvalidStringTableIndex,
    IoError,
    NameOffsetOutOfRange,
    NotAnExpectedBinary,
    SectionOutOfRange,
    TruncatedRead,
    UnsupportedWordWidth,
)
from sectview.core.models import SHT_NOBITS, SHT_STRTAB, ElfClass
from sectview.parsers import elf_parser
from sectview.parsers.elf_parser import ELFSectionParser, parse_sections, resolve_name


# ---valid layouts--------------------------------------------------------------------------------

def test_three_section_64bit_layout(make_elf, sample_sections):
    """null + .text + .data, with the names stored inside .data itself"""
    layout = parse_sections(make_elf(sample_sections, strtab_index=2))

    assert layout.header.elf_class is ElfClass.ELF64
    assert layout.header.section_count == 3
    assert len(layout.sections) == 3

    visible = layout.visible_sections()
    assert [(s.name, s.offset, s.size) for s in visible] == [
        (".text", 0x1000, 0x200),
        (".data", 0x1200, 0x50),
    ]


@pytest.mark.parametrize("bits,expected_class", [(32, ElfClass.ELF32), (64, ElfClass.ELF64)])
@pytest.mark.parametrize("endian", ["little", "big"])
def test_count_and_order_match_table(make_elf, bits, expected_class, endian):
    """Descriptor count equals e_shnum and order follows the on-disk table"""
    sections = [
        (".text", 0x2000, 0x100),
        (".rodata", 0x1000, 0x40),
        (".data", 0x3000, 0x8),
        (".bss", 0x3008, 0x1000, SHT_NOBITS),
    ]
    layout = parse_sections(make_elf(sections, bits=bits, endian=endian))

    assert layout.header.elf_class is expected_class
    assert layout.header.endian == endian
    assert len(layout.sections) == layout.header.section_count == 6
    assert [s.index for s in layout.sections] == list(range(6))
    assert [s.name for s in layout.sections] == [
        "", ".text", ".rodata", ".data", ".bss", ".shstrtab",
    ]
    assert layout.sections[2].offset == 0x1000
    assert layout.sections[5].type == SHT_STRTAB


def test_zero_sections_32bit(make_elf):
    """A header declaring no sections parses to an empty sequence"""
    layout = parse_sections(make_elf(bits=32, shnum=0, shoff=0))
    assert layout.sections == []
    assert layout.visible_sections() == []


def test_zero_sections_header_only(make_elf):
    """Nothing beyond the 52-byte header is needed when e_shnum is 0"""
    image = make_elf(bits=32, shnum=0, shoff=0, truncate=52)
    assert parse_sections(image).sections == []


def test_null_section_is_first(make_elf, sample_sections):
    layout = parse_sections(make_elf(sample_sections))
    null = layout.sections[0]
    assert (null.name, null.offset, null.size) == ("", 0, 0)
    assert layout.visible_sections(include_null=True)[0] is null


def test_nobits_section_may_extend_past_eof(make_elf):
    """.bss occupies no file space, so its range is not checked"""
    image = make_elf([(".bss", 0x8000, 0x100000, SHT_NOBITS)])
    layout = parse_sections(image)
    assert len(image) < 0x8000
    assert layout.sections[1].name == ".bss"
    assert not layout.sections[1].occupies_file


def test_parse_from_open_file(tmp_path, make_elf, sample_sections):
    path = tmp_path / "a.out"
    path.write_bytes(make_elf(sample_sections, bits=32))
    with open(path, "rb") as fh:
        layout = ELFSectionParser().parse(fh, path=str(path))
    assert layout.path == str(path)
    assert layout.file_size == path.stat().st_size
    assert [s.name for s in layout.visible_sections()] == [".text", ".data", ".shstrtab"]


def test_parse_from_bytearray(make_elf, sample_sections):
    layout = parse_sections(bytearray(make_elf(sample_sections)))
    assert layout.sections[1].name == ".text"


def test_concurrent_parses_are_independent(make_elf):
    images = [
        make_elf([(f".s{i}", 0x1000, 0x10 * (i + 1))], bits=32 if i % 2 else 64)
        for i in range(8)
    ]
    parser = ELFSectionParser()
    with ThreadPoolExecutor(max_workers=4) as pool:
        layouts = list(pool.map(parser.parse, images))
    for i, layout in enumerate(layouts):
        assert layout.sections[1].name == f".s{i}"
        assert layout.sections[1].size == 0x10 * (i + 1)


# ---class detection--------------------------------------------------------------------------------

@pytest.mark.parametrize("data", [
    b"MZ\x90\x00" + b"\x00" * 60,
    b"\x7fELG" + b"\x02" * 60,
    b"MZ",
    b"hello, this is plain text",
])
def test_bad_magic(data):
    with pytest.raises(NotAnExpectedBinary):
        parse_sections(data)


def test_bad_magic_from_builder(make_elf, sample_sections):
    with pytest.raises(NotAnExpectedBinary):
        parse_sections(make_elf(sample_sections, magic=b"\x7fEFL"))


@pytest.mark.parametrize("class_byte", [0, 3, 0xFF])
def test_unsupported_class_byte(make_elf, sample_sections, class_byte):
    with pytest.raises(UnsupportedWordWidth) as excinfo:
        parse_sections(make_elf(sample_sections, class_byte=class_byte))
    assert excinfo.value.class_byte == class_byte


# ---header reading--------------------------------------------------------------------------------

@pytest.mark.parametrize("bits,cut", [(64, 0), (64, 3), (64, 10), (64, 40), (64, 63), (32, 16), (32, 51)])
def test_truncated_header(make_elf, sample_sections, bits, cut):
    with pytest.raises(TruncatedRead):
        parse_sections(make_elf(sample_sections, bits=bits, truncate=cut))


def test_string_table_index_out_of_range(make_elf, sample_sections, monkeypatch):
    """Rejected before any name is resolved"""
    def fail(*args, **kwargs):
        raise AssertionError("name resolution attempted")

    monkeypatch.setattr(elf_parser, "resolve_name", fail)
    with pytest.raises(InvalidStringTableIndex) as excinfo:
        parse_sections(make_elf(sample_sections, shstrndx=4))
    assert excinfo.value.index == 4
    assert excinfo.value.section_count == 4


@pytest.mark.parametrize("bits,declared", [(64, 40), (64, 72), (32, 64), (32, 36)])
def test_entry_size_mismatch_strict(make_elf, sample_sections, bits, declared):
    with pytest.raises(InconsistentEntrySize) as excinfo:
        parse_sections(make_elf(sample_sections, bits=bits, shentsize=declared))
    assert excinfo.value.declared == declared


def test_entry_size_larger_accepted_when_lenient(make_elf, sample_sections):
    image = make_elf(sample_sections, bits=32, shentsize=48)
    layout = parse_sections(image, ParserConfig(strict_entry_size=False))
    assert [(s.name, s.offset, s.size) for s in layout.visible_sections()][:2] == [
        (".text", 0x1000, 0x200),
        (".data", 0x1200, 0x50),
    ]


def test_entry_size_smaller_rejected_when_lenient(make_elf, sample_sections):
    image = make_elf(sample_sections, shentsize=32)
    with pytest.raises(InconsistentEntrySize):
        parse_sections(image, ParserConfig(strict_entry_size=False))


# ---section table resolution--------------------------------------------------------------------------------

def test_section_table_past_eof(make_elf, sample_sections):
    with pytest.raises(TruncatedRead):
        parse_sections(make_elf(sample_sections, shoff=0x100000))


def test_string_table_past_eof(make_elf, sample_sections):
    """Names live in .data at 0x1200..0x1250; cut the file inside it"""
    image = make_elf(sample_sections, strtab_index=2, truncate=0x1210)
    with pytest.raises(TruncatedRead):
        parse_sections(image)


def test_string_table_over_allocation_limit(make_elf, sample_sections):
    with pytest.raises(AllocationFailure):
        parse_sections(make_elf(sample_sections), ParserConfig(max_string_table_size=8))


def test_name_offset_equal_to_table_length(make_elf):
    table_length = len(b"\x00.text\x00.shstrtab\x00")
    image = make_elf([(".text", 0x1000, 0x10)], name_offsets={1: table_length})
    with pytest.raises(NameOffsetOutOfRange) as excinfo:
        parse_sections(image)
    assert excinfo.value.name_offset == table_length
    assert excinfo.value.table_size == table_length
    assert excinfo.value.section_index == 1


def test_name_offset_on_final_nul_is_empty(make_elf):
    table_length = len(b"\x00.text\x00.shstrtab\x00")
    image = make_elf([(".text", 0x1000, 0x10)], name_offsets={1: table_length - 1})
    assert parse_sections(image).sections[1].name == ""


def test_name_offset_inside_another_name(make_elf):
    """Suffix sharing: an offset into '.rela.text' yields '.text'"""
    image = make_elf(
        [(".rela.text", 0x1000, 0x10), (".text", 0x1010, 0x10)],
        name_offsets={2: 1 + len(".rela")},
    )
    layout = parse_sections(image)
    assert layout.sections[2].name == ".text"


def test_section_past_eof_rejected(make_elf):
    image = make_elf([(".text", 0x1000, 0x200)], truncate=0x1100)
    with pytest.raises(SectionOutOfRange) as excinfo:
        parse_sections(image)
    assert excinfo.value.index == 1
    assert excinfo.value.file_size == 0x1100


def test_section_past_eof_allowed_without_bounds_check(make_elf):
    image = make_elf([(".text", 0x1000, 0x200)], truncate=0x1100)
    layout = parse_sections(image, ParserConfig(enforce_section_bounds=False))
    assert layout.sections[1].size == 0x200


# ---resolve_name--------------------------------------------------------------------------------

def test_resolve_name_is_pure():
    table = b"\x00.text\x00.data\x00"
    first = resolve_name(table, 1)
    assert first == ".text"
    assert resolve_name(table, 1) == first
    assert table == b"\x00.text\x00.data\x00"


def test_resolve_name_without_terminator_stops_at_end():
    assert resolve_name(b"\x00.comment", 1) == ".comment"


@pytest.mark.parametrize("offset", [5, 6, 100, -1])
def test_resolve_name_out_of_range(offset):
    with pytest.raises(NameOffsetOutOfRange):
        resolve_name(b"\x00abc\x00", offset)


# ---io errors--------------------------------------------------------------------------------

class _FailingStream(io.BytesIO):
    def read(self, *args):
        raise OSError(5, "Input/output error")


def test_unreadable_stream(make_elf, sample_sections):
    with pytest.raises(IoError):
        parse_sections(_FailingStream(make_elf(sample_sections)))


def test_all_errors_share_a_base(make_elf):
    with pytest.raises(FormatError) as excinfo:
        parse_sections(b"not an elf")
    assert excinfo.value.kind == "NotAnExpectedBinary"
