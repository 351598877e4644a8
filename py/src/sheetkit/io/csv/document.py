"""CSV document backend for partitioned writes (one file per segment).

Fields containing the separator, the quote character or a line break are
quoted, so every segment file parses back into the same cells.
"""

import csv
import datetime as dt
from collections.abc import Sequence
from contextlib import suppress
from dataclasses import dataclass
from pathlib import Path
from typing import IO, ClassVar

from sheetkit.io.xlsx.spec import EnumCellKind, SpecEncodedCell

# A CSV file has no structural row ceiling; use a large bound for validation.
N_NROWS_CSV_MAX = 2**62


def format_cell_text(cell: SpecEncodedCell) -> str:
    if cell.literal is not None:
        return cell.literal
    match cell.kind:
        case EnumCellKind.BLANK:
            return ""
        case EnumCellKind.BOOLEAN:
            return "TRUE" if cell.value else "FALSE"
        case EnumCellKind.NUMBER:
            n_value = float(cell.value)
            return str(int(n_value)) if n_value.is_integer() else repr(n_value)
        case EnumCellKind.TIMESTAMP:
            cfg_moment = cell.value
            if isinstance(cfg_moment, dt.datetime):
                return cfg_moment.isoformat(sep=" ")
            return cfg_moment.isoformat()
        case _:
            return str(cell.value)


class CsvSheet:
    def __init__(self, fh: IO[str], *, separator: str):
        self._fh = fh
        self._writer = csv.writer(
            fh, delimiter=separator, quoting=csv.QUOTE_MINIMAL, lineterminator="\n"
        )

    def append_row(
        self, cells: Sequence[SpecEncodedCell], *, if_header: bool = False
    ) -> None:
        self._writer.writerow([format_cell_text(_cell) for _cell in cells])

    def flush(self) -> None:
        self._fh.flush()


class CsvDocument:
    def __init__(self, file_out: Path, *, separator: str, encoding: str):
        self.file_out = Path(file_out)
        self.separator = separator
        self._fh = open(self.file_out, "w", encoding=encoding, newline="")
        self._sheet: CsvSheet | None = None

    def add_sheet(self, name: str) -> CsvSheet:
        if self._sheet is not None:
            raise ValueError("A CSV document holds exactly one sheet.")
        self._sheet = CsvSheet(self._fh, separator=self.separator)
        return self._sheet

    def close(self) -> None:
        self._fh.close()

    def discard(self) -> None:
        with suppress(OSError):
            self._fh.close()
        self.file_out.unlink(missing_ok=True)


@dataclass(frozen=True, slots=True)
class CsvBackend:
    suffix: ClassVar[str] = ".csv"
    n_rows_sheet_max: ClassVar[int] = N_NROWS_CSV_MAX
    if_supports_sheets: ClassVar[bool] = False

    separator: str = ","
    encoding: str = "utf-8"

    def __post_init__(self) -> None:
        if len(self.separator) != 1:
            raise ValueError(
                f"separator must be a single character, got {self.separator!r}."
            )

    def open_document(self, file_out: Path) -> CsvDocument:
        return CsvDocument(file_out, separator=self.separator, encoding=self.encoding)
