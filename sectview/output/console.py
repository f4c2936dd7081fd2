"""
Sectview Console Output
========================

Terminal renderers for a parsed :class:`SectionLayout`:

    - ``plain``: the classic fixed-width offset/size/name table.
    - ``table``: a colour Rich table with section index and type.

Both omit the reserved null section (index 0) unless asked to include it,
and never reorder sections.
"""

from __future__ import annotations

from shared.console import SectviewConsole

from sectview.core.models import SectionDescriptor, SectionLayout


_PLAIN_HEADER = "+ Offset          Bytes +"
_PLAIN_BORDER = "+-----------------------+"


def format_plain_row(section: SectionDescriptor) -> str:
    """Format one row of the fixed-width table."""
    address = f"0x{section.offset:x}"
    return f"| {address:<8} {section.size:>11}B | <-- {section.name}"


def render_plain(layout: SectionLayout, include_null: bool = False) -> str:
    """Render *layout* as the fixed-width text table.

    Example::

        + Offset          Bytes +
        +-----------------------+
        | 0x1000           512B | <-- .text
        | 0x1200            80B | <-- .data
        +-----------------------+
    """
    lines = [_PLAIN_HEADER, _PLAIN_BORDER]
    lines.extend(
        format_plain_row(sec) for sec in layout.visible_sections(include_null)
    )
    lines.append(_PLAIN_BORDER)
    return "\n".join(lines)


class SectviewConsoleOutput:
    """Writes section layouts to a :class:`SectviewConsole`.

    Usage::

        output = SectviewConsoleOutput()
        output.display(layout, style="table")
    """

    def __init__(self, console: SectviewConsole | None = None) -> None:
        self._console: SectviewConsole = console or SectviewConsole()

    def display(
        self,
        layout: SectionLayout,
        style: str = "plain",
        include_null: bool = False,
    ) -> None:
        if style == "table":
            self.display_table(layout, include_null)
        else:
            self._console.raw(render_plain(layout, include_null))

    def display_table(self, layout: SectionLayout, include_null: bool = False) -> None:
        """Display a Rich table preceded by a one-line header summary."""
        h = layout.header
        title = layout.path or "<memory>"
        self._console.section(title)
        self._console.print(
            f"[bold]{h.elf_class.value.upper()}[/bold] {h.endian}-endian, "
            f"{h.section_count} sections, "
            f"table at 0x{h.section_header_table_offset:x}, "
            f"names in section {h.string_table_section_index}",
            markup=True,
        )
        self._console.blank()

        rows = [
            (
                sec.index,
                sec.name or "<unnamed>",
                f"0x{sec.offset:x}",
                f"{sec.size:,}",
                sec.type_name,
            )
            for sec in layout.visible_sections(include_null)
        ]
        self._console.table(
            ["#", "Name", "Offset", "Size", "Type"],
            rows,
            justify=["right", "left", "right", "right", "left"],
            styles=["dim", "bold", "", "", "bright_cyan"],
        )
