"""
Sectview Report Generator
==========================

Machine- and document-oriented renderings of a :class:`SectionLayout`:

    - JSON: a structured report for downstream tooling.
    - pic:  a troff ``pic`` (gpic) diagram that stacks one box per
      section, each box's height proportional to the section's share of
      the total size.

References:
    - Kernighan, B. W. (1991). PIC -- A Graphics Language for Typesetting.
      Bell Laboratories Computing Science Technical Report 116.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from sectview import __version__
from sectview.core.models import SectionLayout


class SectviewReportGenerator:
    """Builds JSON reports and pic diagrams from section layouts.

    Usage::

        gen = SectviewReportGenerator()
        print(gen.render_json(layout))
        gen.generate_json(layout, "sections.json")
    """

    def __init__(self, include_null: bool = False, pic_max_height: float = 1024.0) -> None:
        self._include_null = include_null
        self._pic_max_height = pic_max_height

    # ------------------------------------------------------------------ #
    #  JSON
    # ------------------------------------------------------------------ #

    def build_report(self, layout: SectionLayout) -> dict[str, Any]:
        """Return the report as a plain dictionary."""
        h = layout.header
        return {
            "report_type": "sectview_section_layout",
            "version": __version__,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "file": {
                "path": layout.path,
                "size": layout.file_size,
            },
            "header": {
                "class": h.elf_class.value,
                "endian": h.endian,
                "type": h.elf_type,
                "machine": h.machine,
                "section_count": h.section_count,
                "section_header_entry_size": h.section_header_entry_size,
                "section_header_table_offset": h.section_header_table_offset,
                "string_table_section_index": h.string_table_section_index,
            },
            "sections": [
                {
                    "index": s.index,
                    "name": s.name,
                    "offset": s.offset,
                    "size": s.size,
                    "type": s.type_name,
                }
                for s in layout.visible_sections(self._include_null)
            ],
        }

    def render_json(self, layout: SectionLayout) -> str:
        return json.dumps(self.build_report(layout), indent=2)

    def generate_json(self, layout: SectionLayout, output_path: str | Path) -> str:
        """Write the JSON report to *output_path*.

        Returns:
            The absolute path of the generated report.
        """
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render_json(layout) + "\n", encoding="utf-8")
        return str(path.resolve())

    # ------------------------------------------------------------------ #
    #  pic
    # ------------------------------------------------------------------ #

    def render_pic(self, layout: SectionLayout) -> str:
        """Render a gpic box diagram, top to bottom in table order."""
        sections = layout.visible_sections(self._include_null)
        total = sum(s.size for s in sections)

        lines = [".PS", "down"]
        for sec in sections:
            height = int(sec.size / total * self._pic_max_height) if total else 0
            name = sec.name.replace("\\", "\\\\").replace('"', '\\"')
            lines.append(f'box height {height} "{name}"')
        lines.append(".PE")
        return "\n".join(lines)
