"""Read-back of produced workbooks.

Workbooks are opened with ``openpyxl`` in read-only mode, so rows are
streamed the same way they were written. Numeric cells carrying a
literal-preserving number format (``000123``, ``0000.00``) come back as the
text they display, which is the text the caller originally handed in.

Lookups never raise for a missing sheet or row: they return ``None``, an
empty list or ``0``.
"""

import itertools
import os
import re
from collections.abc import Iterator
from contextlib import closing
from pathlib import Path
from typing import Any

from openpyxl import load_workbook
from openpyxl.workbook.workbook import Workbook
from openpyxl.worksheet._read_only import ReadOnlyWorksheet

from .conf import C_NUM_FORMAT_TEXT

RE_LITERAL_NUM_FORMAT = re.compile(r"^(0+)(?:\.(0+))?$")


def render_cell_value(value: Any, num_format: str | None) -> Any:
    """Return the display text for literal-formatted numbers, ``value`` otherwise."""
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        return value
    if num_format == C_NUM_FORMAT_TEXT:
        return str(value)
    m = RE_LITERAL_NUM_FORMAT.match(num_format or "")
    if m is None:
        return value

    n_digits_int = len(m.group(1))
    n_digits_frac = len(m.group(2) or "")
    c_int, _, c_frac = f"{abs(value):.{n_digits_frac}f}".partition(".")
    c_text = c_int.zfill(n_digits_int) + (f".{c_frac}" if n_digits_frac else "")
    return f"-{c_text}" if value < 0 else c_text


def _open_workbook(file_in: os.PathLike[str] | str) -> Workbook:
    return load_workbook(Path(file_in), read_only=True, data_only=False)


def _select_worksheet(wb: Workbook, sheet_name: str | None) -> ReadOnlyWorksheet | None:
    if sheet_name is None:
        return wb.worksheets[0] if wb.worksheets else None
    if sheet_name not in wb.sheetnames:
        return None
    return wb[sheet_name]


def list_sheet_names(file_in: os.PathLike[str] | str) -> list[str]:
    wb = _open_workbook(file_in)
    try:
        return list(wb.sheetnames)
    finally:
        wb.close()


def iter_rows(
    file_in: os.PathLike[str] | str,
    sheet_name: str | None = None,
    *,
    if_render_literals: bool = True,
) -> Iterator[tuple[Any, ...]]:
    """
    Stream the rows of ``sheet_name`` (first sheet when ``None``).

    A missing sheet yields nothing. With ``if_render_literals`` numbers in a
    literal-preserving format come back as their display text.
    """
    wb = _open_workbook(file_in)
    try:
        ws = _select_worksheet(wb, sheet_name)
        if ws is None:
            return
        for _row in ws.iter_rows():
            if if_render_literals:
                yield tuple(
                    render_cell_value(_cell.value, getattr(_cell, "number_format", None))
                    for _cell in _row
                )
            else:
                yield tuple(_cell.value for _cell in _row)
    finally:
        wb.close()


def read_rows(
    file_in: os.PathLike[str] | str,
    sheet_name: str | None = None,
    *,
    n_rows_max: int | None = None,
    if_render_literals: bool = True,
) -> list[tuple[Any, ...]]:
    with closing(
        iter_rows(file_in, sheet_name, if_render_literals=if_render_literals)
    ) as iter_sheet_rows:
        return list(itertools.islice(iter_sheet_rows, n_rows_max))


def read_row(
    file_in: os.PathLike[str] | str,
    sheet_name: str | None,
    idx_row: int,
    *,
    if_render_literals: bool = True,
) -> tuple[Any, ...] | None:
    """Row ``idx_row`` (0-based, header included) or ``None`` when absent."""
    if idx_row < 0:
        return None
    with closing(
        iter_rows(file_in, sheet_name, if_render_literals=if_render_literals)
    ) as iter_sheet_rows:
        return next(itertools.islice(iter_sheet_rows, idx_row, None), None)


def count_rows(file_in: os.PathLike[str] | str, sheet_name: str | None = None) -> int:
    """Physical rows in the sheet, header included; ``0`` for a missing sheet."""
    return sum(1 for _ in iter_rows(file_in, sheet_name, if_render_literals=False))
