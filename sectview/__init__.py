"""
Sectview -- ELF Section Layout Viewer
======================================

Reads an ELF object, executable or shared library and reports where each
section lives in the file: its name, byte offset and byte size, in
section-header-table order.

Capabilities:
    - ELF32 and ELF64, little- and big-endian
    - Bounds-checked parsing of untrusted headers
    - Plain, Rich table, JSON and pic (gpic) output

References:
    - TIS Committee. (1995). ELF Specification, Version 1.2.
"""

__version__ = "1.0.0"

from sectview.core.errors import FormatError
from sectview.core.models import ElfClass, SectionDescriptor, SectionLayout
from sectview.parsers.elf_parser import ELFSectionParser, parse_sections

__all__ = [
    "ELFSectionParser",
    "ElfClass",
    "FormatError",
    "SectionDescriptor",
    "SectionLayout",
    "parse_sections",
]
