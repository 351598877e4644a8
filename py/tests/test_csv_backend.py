from __future__ import annotations

import csv
import datetime as dt
import sys
from pathlib import Path

import pytest

# Ensure src-layout imports work when running tests from repo checkout.
SRC_DIR = Path(__file__).resolve().parents[1] / "src"
sys.path.insert(0, str(SRC_DIR))

from sheetkit.io.csv import CsvBackend, format_cell_text  # noqa: E402
from sheetkit.io.xlsx import PartitionedXlsxWriter, write_partitioned  # noqa: E402
from sheetkit.io.xlsx.document import resolve_backend  # noqa: E402
from sheetkit.io.xlsx.encoder import encode_value  # noqa: E402


def _read_csv(path_file: Path, *, separator: str = ",") -> list[list[str]]:
    with open(path_file, newline="", encoding="utf-8") as fh:
        return list(csv.reader(fh, delimiter=separator))


def test_csv_segments_are_numbered_files(tmp_path: Path) -> None:
    report = write_partitioned(
        [(f"r{_i}", _i) for _i in range(5)],
        tmp_path / "rows.csv",
        header=("id", "n"),
        mode="files",
        rows_per_segment_max=2,
    )

    assert report.files_out == tuple(tmp_path / f"rows_{_i}.csv" for _i in (1, 2, 3))
    assert _read_csv(tmp_path / "rows_1.csv") == [["id", "n"], ["r0", "0"], ["r1", "1"]]
    assert _read_csv(tmp_path / "rows_3.csv") == [["id", "n"], ["r4", "4"]]


def test_fields_with_separator_quote_or_newline_are_quoted(tmp_path: Path) -> None:
    tup_row = ("a,b", 'say "hi"', "two\nlines", "000123", None, True)
    write_partitioned(
        [tup_row],
        tmp_path / "tricky.csv",
        mode="files",
        if_write_header=False,
        rows_per_segment_max=10,
    )

    assert _read_csv(tmp_path / "tricky_1.csv") == [
        ["a,b", 'say "hi"', "two\nlines", "000123", "", "TRUE"]
    ]


def test_tsv_output_uses_tab_separator(tmp_path: Path) -> None:
    write_partitioned(
        [("a\tb", "c")],
        tmp_path / "rows.tsv",
        mode="files",
        if_write_header=False,
    )
    assert _read_csv(tmp_path / "rows_1.tsv", separator="\t") == [["a\tb", "c"]]


def test_csv_backend_refuses_sheets_mode(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="files"):
        PartitionedXlsxWriter(tmp_path / "rows.csv")


def test_csv_backend_needs_a_single_character_separator() -> None:
    with pytest.raises(ValueError, match="separator"):
        CsvBackend(separator="||")


def test_resolve_backend_by_suffix(tmp_path: Path) -> None:
    assert isinstance(resolve_backend(tmp_path / "x.csv"), CsvBackend)
    assert resolve_backend(tmp_path / "x.tsv").separator == "\t"
    with pytest.raises(ValueError, match="Unsupported"):
        resolve_backend(tmp_path / "x.json")


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (3.0, "3"),
        (2.5, "2.5"),
        (False, "FALSE"),
        (dt.datetime(2024, 1, 2, 3, 4, 5), "2024-01-02 03:04:05"),
        (dt.date(2024, 1, 2), "2024-01-02"),
        ("-0012.50", "-0012.50"),
        (float("inf"), "Inf"),
    ],
)
def test_format_cell_text(value: object, expected: str) -> None:
    assert format_cell_text(encode_value(value)) == expected
