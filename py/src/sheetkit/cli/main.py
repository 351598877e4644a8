"""``sheetkit`` command line.

``sheetkit split`` streams a CSV/TSV/Parquet file into a partitioned
spreadsheet output: sheets of one ``.xlsx`` workbook, or numbered ``.xlsx`` /
``.csv`` files.

Exit codes: ``0`` success, ``1`` write failure, ``2`` usage error.
"""

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

import polars as pl
from loguru import logger
from rich.console import Console
from rich_argparse import ArgumentDefaultsRichHelpFormatter, RawTextRichHelpFormatter

from sheetkit.io.xlsx.conf import DEFAULT_PARTITIONED_WRITE_OPTIONS
from sheetkit.io.xlsx.errors import SegmentWriteError, WriteCancelledError
from sheetkit.io.xlsx.spec import EnumOutputMode, SpecPartitionedWriteOptions
from sheetkit.io.xlsx.writer import write_partitioned

from .console import CliHeadings, render_partition_report

N_EXIT_OK = 0
N_EXIT_WRITE_FAILED = 1
N_EXIT_USAGE = 2

TUP_INPUT_SUFFIXES_TEXT = (".csv", ".tsv", ".txt")


class SmartFormatter(ArgumentDefaultsRichHelpFormatter, RawTextRichHelpFormatter):
    """
    Keep manual newlines/indentation AND show (default: ...) in help.
    """

    pass


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sheetkit",
        description="Spreadsheet tooling for datasets too large for one sheet.",
        formatter_class=SmartFormatter,
    )
    cls_sub = parser.add_subparsers(title="commands", dest="command", required=True)

    cfg_defaults = DEFAULT_PARTITIONED_WRITE_OPTIONS
    p_split = cls_sub.add_parser(
        "split",
        help="Split a large table into bounded spreadsheet segments.",
        description=(
            "Stream INPUT into segments of at most --rows-per-segment data rows.\n"
            "  sheets: one workbook, one sheet per segment (<sheet>_<idx>)\n"
            "  files:  one file per segment (<stem>_<idx><suffix>)"
        ),
        formatter_class=SmartFormatter,
    )
    p_split.add_argument("input", type=Path, help="Input .csv, .tsv, .txt or .parquet file.")
    p_split.add_argument(
        "-o",
        "--output",
        type=Path,
        required=True,
        help="Output .xlsx (sheets or files mode) or .csv (files mode).",
    )
    p_split.add_argument(
        "--rows-per-segment",
        type=int,
        default=cfg_defaults.rows_per_segment_max,
        help="Data rows per segment, header excluded.",
    )
    p_split.add_argument(
        "--batch-size",
        type=int,
        default=cfg_defaults.size_batch,
        help="Rows written between two flushes.",
    )
    p_split.add_argument(
        "--mode",
        choices=[_m.value for _m in EnumOutputMode],
        default=cfg_defaults.mode.value,
        help="Segments as sheets of one workbook, or as separate files.",
    )
    p_split.add_argument(
        "--sheet-name",
        default=cfg_defaults.sheet_name_base,
        help="Base sheet name.",
    )
    p_split.add_argument(
        "--separator",
        default=None,
        help="Input field separator. Defaults to tab for .tsv and ',' otherwise.",
    )
    p_split.add_argument(
        "--workers",
        type=int,
        default=cfg_defaults.n_workers_encode,
        help="Encoding threads; 1 encodes on the writer thread.",
    )
    p_split.add_argument(
        "--no-header",
        action="store_true",
        help="Do not repeat the column names at the top of each segment.",
    )
    p_split.add_argument(
        "--keep-numeric-text",
        action="store_true",
        help="Write numeric-looking text as text instead of numbers.",
    )
    p_split.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR"],
        help="Log level for messages on stderr.",
    )
    return parser


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def scan_input(file_in: Path, *, separator: str | None = None) -> pl.LazyFrame:
    """
    Lazily scan a tabular input file.

    Delimited text is read with every column as a string so literals such as
    ``000123`` reach the writer untouched.
    """
    c_suffix = file_in.suffix.lower()
    if c_suffix in TUP_INPUT_SUFFIXES_TEXT:
        c_separator = separator or ("\t" if c_suffix == ".tsv" else ",")
        return pl.scan_csv(file_in, separator=c_separator, infer_schema=False)
    if c_suffix == ".parquet":
        return pl.scan_parquet(file_in)
    raise ValueError(
        f"Unsupported input file type: {c_suffix or '<none>'!r}. "
        f"Expected one of {', '.join((*TUP_INPUT_SUFFIXES_TEXT, '.parquet'))}."
    )


def run_split(args: argparse.Namespace, *, console: Console | None = None) -> int:
    headings = CliHeadings(console=console)
    if not args.input.is_file():
        logger.error(f"Input file not found: {args.input}")
        return N_EXIT_USAGE

    try:
        cfg_options = SpecPartitionedWriteOptions(
            rows_per_segment_max=args.rows_per_segment,
            size_batch=args.batch_size,
            mode=EnumOutputMode(args.mode),
            sheet_name_base=args.sheet_name,
            if_numeric_text_as_number=not args.keep_numeric_text,
            n_workers_encode=args.workers,
        )
        cfg_options.validate()
        lf = scan_input(args.input, separator=args.separator)
        headings.h1(f"sheetkit split: {args.input.name}")
        report = write_partitioned(
            lf,
            args.output,
            if_write_header=not args.no_header,
            options=cfg_options,
        )
    except (SegmentWriteError, WriteCancelledError) as exc:
        logger.error(str(exc))
        return N_EXIT_WRITE_FAILED
    except ValueError as exc:
        logger.error(str(exc))
        return N_EXIT_USAGE

    render_partition_report(report, headings=headings)
    return N_EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    if args.command == "split":
        return run_split(args)
    parser.error(f"Unknown command: {args.command}")
    return N_EXIT_USAGE


if __name__ == "__main__":
    raise SystemExit(main())
