from __future__ import annotations

import datetime as dt
import sys
from pathlib import Path

import polars as pl
import pytest
import xlsxwriter

# Ensure src-layout imports work when running tests from repo checkout.
SRC_DIR = Path(__file__).resolve().parents[1] / "src"
sys.path.insert(0, str(SRC_DIR))

from sheetkit.io.xlsx import (  # noqa: E402
    PartitionedXlsxWriter,
    SegmentWriteError,
    SpecPartitionedWriteOptions,
    count_rows,
    list_sheet_names,
    read_row,
    read_rows,
    write_partitioned,
)
from sheetkit.io.xlsx.conf import N_NROWS_XLSX_MAX  # noqa: E402
from sheetkit.io.xlsx.document import XlsxBackend, XlsxSheet  # noqa: E402
from sheetkit.io.xlsx.encoder import encode_row  # noqa: E402
from sheetkit.io.xlsx.reader import render_cell_value  # noqa: E402


def _list_names(path_dir: Path) -> list[str]:
    return sorted(_p.name for _p in path_dir.iterdir())


def test_literal_text_survives_round_trip(tmp_path: Path) -> None:
    path_file_out = tmp_path / "literals.xlsx"
    tup_header = ("code", "amount", "big", "ratio", "flag", "day", "blank", "text", "n")
    l_rows = [
        (
            "000123",
            "-0012.50",
            "12345678901234567890",
            float("nan"),
            True,
            dt.date(2024, 1, 2),
            None,
            "plain",
            7,
        )
    ]
    write_partitioned(
        l_rows, path_file_out, header=tup_header, sheet_name_base="Data"
    )

    l_rows_read = read_rows(path_file_out, "Data_1")
    assert l_rows_read[0] == tup_header
    assert l_rows_read[1] == (
        "000123",
        "-0012.50",
        "12345678901234567890",
        "NaN",
        True,
        dt.datetime(2024, 1, 2),
        None,
        "plain",
        7,
    )


def test_non_ascii_digit_text_survives_round_trip(tmp_path: Path) -> None:
    path_file_out = tmp_path / "digits.xlsx"
    write_partitioned(
        [("\u0661\u0662\u0663", "000123")], path_file_out, if_write_header=False
    )

    assert read_rows(path_file_out, "Sheet_1") == [("\u0661\u0662\u0663", "000123")]
    assert read_row(path_file_out, "Sheet_1", 0, if_render_literals=False) == (
        "\u0661\u0662\u0663",
        123,
    )


def test_raw_read_exposes_the_stored_number(tmp_path: Path) -> None:
    path_file_out = tmp_path / "raw.xlsx"
    write_partitioned([("000123",)], path_file_out, if_write_header=False)

    assert read_row(path_file_out, "Sheet_1", 0) == ("000123",)
    assert read_row(path_file_out, "Sheet_1", 0, if_render_literals=False) == (123,)


def test_numeric_text_kept_as_text_when_disabled(tmp_path: Path) -> None:
    path_file_out = tmp_path / "as_text.xlsx"
    write_partitioned(
        [("000123",)],
        path_file_out,
        if_write_header=False,
        if_numeric_text_as_number=False,
    )
    assert read_row(path_file_out, "Sheet_1", 0, if_render_literals=False) == (
        "000123",
    )


def test_sheets_mode_splits_into_named_sheets(tmp_path: Path) -> None:
    path_file_out = tmp_path / "big.xlsx"
    l_rows = [(f"r{_i}", _i) for _i in range(25)]

    report = write_partitioned(
        l_rows,
        path_file_out,
        header=("id", "n"),
        rows_per_segment_max=10,
        size_batch=4,
        sheet_name_base="Data",
    )

    assert report.n_segments == 3
    assert list_sheet_names(path_file_out) == ["Data_1", "Data_2", "Data_3"]
    assert [count_rows(path_file_out, _s) for _s in ("Data_1", "Data_2", "Data_3")] == [
        11,
        11,
        6,
    ]
    assert read_row(path_file_out, "Data_3", 0) == ("id", "n")
    assert read_row(path_file_out, "Data_3", 5) == ("r24", 24)
    assert _list_names(tmp_path) == ["big.xlsx"]


def test_files_mode_writes_numbered_workbooks(tmp_path: Path) -> None:
    path_file_out = tmp_path / "part.xlsx"
    report = write_partitioned(
        [(_i,) for _i in range(20)],
        path_file_out,
        header=("n",),
        mode="files",
        rows_per_segment_max=10,
        sheet_name_base="Data",
    )

    assert report.files_out == (tmp_path / "part_1.xlsx", tmp_path / "part_2.xlsx")
    assert _list_names(tmp_path) == ["part_1.xlsx", "part_2.xlsx"]
    for _path in report.files_out:
        assert list_sheet_names(_path) == ["Data"]
        assert count_rows(_path, "Data") == 11
    assert read_row(tmp_path / "part_2.xlsx", "Data", 1) == (10,)


def test_polars_frames_supply_header_and_rows(tmp_path: Path) -> None:
    df = pl.DataFrame({"id": ["001", "002", "003"], "v": [1.5, 2.0, None]})

    path_file_eager = tmp_path / "eager.xlsx"
    write_partitioned(df, path_file_eager, rows_per_segment_max=2)
    assert read_rows(path_file_eager, "Sheet_1") == [
        ("id", "v"),
        ("001", 1.5),
        ("002", 2),
    ]
    assert read_rows(path_file_eager, "Sheet_2") == [("id", "v"), ("003", None)]

    path_file_lazy = tmp_path / "lazy.xlsx"
    write_partitioned(df.lazy(), path_file_lazy, rows_per_segment_max=2)
    assert read_rows(path_file_lazy, "Sheet_2") == read_rows(path_file_eager, "Sheet_2")


def test_flush_failure_keeps_earlier_files(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    fn_flush = XlsxSheet.flush
    l_calls: list[int] = []

    def _flush_failing_fifth(self: XlsxSheet) -> None:
        l_calls.append(1)
        if len(l_calls) == 5:
            raise OSError("No space left on device")
        fn_flush(self)

    monkeypatch.setattr(XlsxSheet, "flush", _flush_failing_fifth)

    with pytest.raises(SegmentWriteError) as exc_info:
        write_partitioned(
            [(_i,) for _i in range(35)],
            tmp_path / "part.xlsx",
            mode="files",
            rows_per_segment_max=10,
            size_batch=5,
        )

    assert exc_info.value.idx_segment == 3
    assert exc_info.value.n_row_offset == 20
    assert _list_names(tmp_path) == ["part_1.xlsx", "part_2.xlsx"]
    assert count_rows(tmp_path / "part_2.xlsx", "Sheet") == 11


def test_flush_failure_in_sheets_mode_leaves_no_workbook(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    def _flush_failing(self: XlsxSheet) -> None:
        raise OSError("No space left on device")

    monkeypatch.setattr(XlsxSheet, "flush", _flush_failing)

    with pytest.raises(SegmentWriteError):
        write_partitioned(
            [(_i,) for _i in range(30)],
            tmp_path / "big.xlsx",
            rows_per_segment_max=10,
            size_batch=5,
        )
    assert _list_names(tmp_path) == []


def test_workbook_write_failure_in_sheets_mode_names_the_segment(
    tmp_path: Path,
) -> None:
    path_file_out = tmp_path / "taken.xlsx"
    path_file_out.mkdir()

    with pytest.raises(SegmentWriteError) as exc_info:
        write_partitioned(
            [(_i,) for _i in range(15)], path_file_out, rows_per_segment_max=10
        )

    assert exc_info.value.idx_segment == 2
    assert exc_info.value.n_row_offset == 10
    assert exc_info.value.n_row_failed == 15
    assert _list_names(tmp_path) == ["taken.xlsx"]
    assert list(path_file_out.iterdir()) == []


def test_discard_drops_row_files_without_serializing(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    l_stores: list[int] = []
    monkeypatch.setattr(
        xlsxwriter.Workbook, "_store_workbook", lambda self: l_stores.append(1)
    )
    document = XlsxBackend().open_document(tmp_path / "dropped.xlsx")
    sheet = document.add_sheet("Data")
    sheet.append_row(encode_row(("a", 1)))
    sheet.flush()
    path_row_data = Path(sheet.ws.row_data_filename)
    assert path_row_data.exists()

    document.discard()

    assert l_stores == []
    assert not path_row_data.exists()
    assert _list_names(tmp_path) == []


def test_capacity_above_sheet_limit_creates_nothing(tmp_path: Path) -> None:
    path_file_out = tmp_path / "never.xlsx"
    with pytest.raises(ValueError, match="format limit"):
        write_partitioned(
            [("a",)],
            path_file_out,
            header=("h",),
            rows_per_segment_max=N_NROWS_XLSX_MAX,
        )
    assert _list_names(tmp_path) == []


def test_legacy_xls_output_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match=".xls"):
        PartitionedXlsxWriter(tmp_path / "old.xls")


def test_sheets_mode_accepts_several_datasets(tmp_path: Path) -> None:
    path_file_out = tmp_path / "multi.xlsx"
    with PartitionedXlsxWriter(
        path_file_out, options=SpecPartitionedWriteOptions(rows_per_segment_max=5)
    ) as xf:
        xf.write([("a",)] * 7, header=("x",), sheet_name="A")
        xf.write([("b",)] * 2, header=("y",), sheet_name="B")

    assert [_r.n_segments for _r in xf.report()] == [2, 1]
    assert list_sheet_names(path_file_out) == ["A_1", "A_2", "B_1"]


def test_files_mode_accepts_a_single_dataset(tmp_path: Path) -> None:
    with PartitionedXlsxWriter(
        tmp_path / "part.xlsx",
        options=SpecPartitionedWriteOptions(mode="files", rows_per_segment_max=5),
    ) as xf:
        xf.write([("a",)])
        with pytest.raises(RuntimeError):
            xf.write([("b",)])


def test_lookups_on_missing_sheets_and_rows_are_absent(tmp_path: Path) -> None:
    path_file_out = tmp_path / "small.xlsx"
    write_partitioned([("a",)], path_file_out, header=("h",))

    assert read_rows(path_file_out, "Nope") == []
    assert read_row(path_file_out, "Nope", 0) is None
    assert count_rows(path_file_out, "Nope") == 0
    assert read_row(path_file_out, "Sheet_1", 99) is None
    assert read_row(path_file_out, "Sheet_1", -1) is None
    assert read_rows(path_file_out) == [("h",), ("a",)]


@pytest.mark.parametrize(
    ("value", "num_format", "expected"),
    [
        (123, "000000", "000123"),
        (-12.5, "0000.00", "-0012.50"),
        (30, "00", "30"),
        (1.5, "General", 1.5),
        ("x", "000", "x"),
        (True, "000", True),
        (None, "000", None),
    ],
)
def test_render_cell_value(value: object, num_format: str, expected: object) -> None:
    assert render_cell_value(value, num_format) == expected
