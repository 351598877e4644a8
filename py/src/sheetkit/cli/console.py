from dataclasses import dataclass

from rich.console import Console
from rich.style import Style
from rich.table import Table

from sheetkit.io.xlsx.spec import SpecPartitionReport


@dataclass(frozen=True, slots=True)
class SpecCliTheme:
    h1: str = "#7C3AED"
    h2: str = "#00FFFF"
    warn: str = "#FACC15"


class CliHeadings:
    def __init__(
        self, *, console: Console | None = None, theme: SpecCliTheme | None = None
    ):
        self.console = console or Console()
        self.theme = theme or SpecCliTheme()

    def h1(self, text: str) -> None:
        self.console.rule(
            f"[bold]{text}[/bold]",
            style=Style(color=self.theme.h1, bold=True),
            characters="=",
        )

    def h2(self, text: str) -> None:
        self.console.rule(text, style=Style(color=self.theme.h2), characters="─")


def render_partition_report(
    report: SpecPartitionReport, *, headings: CliHeadings
) -> None:
    """Print one row per segment, then totals and warnings."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("File")
    table.add_column("Sheet")
    table.add_column("Rows", justify="right")
    table.add_column("Row range")
    table.add_column("Flushes", justify="right")
    for _seg in report.segments:
        table.add_row(
            str(_seg.idx_segment),
            str(_seg.file_out),
            _seg.sheet_name,
            f"{_seg.n_rows:,}",
            f"[{_seg.row_start_inclusive:,}, {_seg.row_end_exclusive:,})",
            str(_seg.n_flushes),
        )

    headings.h2("Segments")
    headings.console.print(table)
    headings.console.print(
        f"{report.n_rows_total:,} rows in {report.n_segments} segment(s), "
        f"{report.n_flushes} flush(es)"
    )
    for _msg in report.warnings:
        headings.console.print(f"[{headings.theme.warn}]warning:[/] {_msg}")
