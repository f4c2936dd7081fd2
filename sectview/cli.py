"""
Sectview CLI -- ELF Section Layout Viewer
==========================================

Click-based command-line interface.  This module is the only place that
turns parse failures into process exit codes: every
:class:`~sectview.core.errors.FormatError` is reported as a single line
on standard error followed by exit status 1, and nothing is written to
standard output for a failed parse.

Usage::

    # Classic fixed-width table
    sectview /usr/bin/ls

    # Rich table including the null section
    sectview /usr/bin/ls --format table --include-null

    # JSON to stdout, or to a file
    sectview /usr/bin/ls --format json
    sectview /usr/bin/ls --output sections.json

    # pic diagram for groff
    sectview /usr/bin/ls --format pic | groff -p -Tps > sections.ps

References:
    - Click documentation: https://click.palletsprojects.com/
"""

from __future__ import annotations

import sys

import click

from shared.config import SectviewConfig
from shared.console import SectviewConsole
from shared.logger import SectviewLogger

from sectview import __version__
from sectview.core.engine import SectviewEngine
from sectview.core.errors import FormatError
from sectview.output.console import SectviewConsoleOutput
from sectview.output.report import SectviewReportGenerator


_USAGE_DETAIL = "  <obj | exec | lib>: path to the ELF binary to examine"


@click.command("sectview", context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("paths", nargs=-1, metavar="<obj or exec>")
@click.option(
    "--format", "-f",
    "output_format",
    type=click.Choice(["plain", "table", "json", "pic"], case_sensitive=False),
    default=None,
    help="Output format.  Default: plain (or the configured format).",
)
@click.option(
    "--include-null",
    is_flag=True,
    default=False,
    help="Also show section 0, the reserved null section.",
)
@click.option(
    "--lenient",
    is_flag=True,
    default=False,
    help="Accept section header entries larger than the standard size.",
)
@click.option(
    "--no-bounds-check",
    is_flag=True,
    default=False,
    help="Do not reject sections that extend past the end of the file.",
)
@click.option(
    "--output", "-o",
    "output_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Also write a JSON report to this path.",
)
@click.option(
    "--config", "-c",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="TOML configuration file.",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    default=False,
    help="Enable debug logging on stderr.",
)
@click.version_option(__version__, prog_name="sectview")
@click.pass_context
def sectview_cli(
    ctx: click.Context,
    paths: tuple[str, ...],
    output_format: str | None,
    include_null: bool,
    lenient: bool,
    no_bounds_check: bool,
    output_path: str | None,
    config_path: str | None,
    verbose: bool,
) -> None:
    """Display the section layout of an ELF file.

    Prints each section's file offset, size in bytes and name, in
    section-header-table order.
    """
    if len(paths) != 1:
        click.echo(ctx.get_usage())
        click.echo(_USAGE_DETAIL)
        ctx.exit(0)

    err_console = SectviewConsole(stderr=True)

    try:
        config = SectviewConfig.load(config_path)
    except (OSError, ValueError) as exc:
        err_console.error(f"Could not load configuration: {exc}")
        sys.exit(1)

    if lenient:
        config.parser.strict_entry_size = False
    if no_bounds_check:
        config.parser.enforce_section_bounds = False
    include_null = include_null or config.output.include_null_section
    output_format = (output_format or config.output.output_format).lower()

    logger = SectviewLogger.from_config("cli", config.global_settings, verbose=verbose)
    engine = SectviewEngine(config=config, logger=logger)

    try:
        layout = engine.analyze(paths[0])
    except FormatError as exc:
        logger.debug("Parse failed: %s", exc.kind)
        err_console.error(str(exc))
        sys.exit(1)
    except KeyboardInterrupt:
        err_console.warning("Interrupted by user.")
        sys.exit(130)

    report = SectviewReportGenerator(
        include_null=include_null,
        pic_max_height=config.output.pic_max_height,
    )
    if output_format == "json":
        click.echo(report.render_json(layout))
    elif output_format == "pic":
        click.echo(report.render_pic(layout))
    else:
        SectviewConsoleOutput(SectviewConsole()).display(
            layout, style=output_format, include_null=include_null
        )

    if output_path:
        try:
            written = report.generate_json(layout, output_path)
        except OSError as exc:
            err_console.error(f"Could not write report: {exc}")
            sys.exit(1)
        err_console.success(f"JSON report saved: {written}")


# ---------------------------------------------------------------------------
# Module entry point
# ---------------------------------------------------------------------------

def main() -> None:
    """Entry point for the ``sectview`` script and ``python -m sectview``."""
    sectview_cli()


if __name__ == "__main__":
    main()
