"""Document model boundary.

The partitioned writer never talks to a spreadsheet library directly; it goes
through the three small protocols below. :class:`XlsxBackend` implements them
on top of ``xlsxwriter`` in constant-memory mode, where every completed row is
streamed to a per-sheet temp file instead of being kept in memory.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Protocol

import xlsxwriter
import xlsxwriter.exceptions
import xlsxwriter.format
import xlsxwriter.worksheet

from .conf import DEFAULT_XLSX_FORMATS, N_NCOLS_XLSX_MAX, N_NROWS_XLSX_MAX
from .spec import EnumCellKind, SpecCellFormat, SpecEncodedCell


################################################################################
# #region DocumentProtocols
class SheetSink(Protocol):
    def append_row(
        self, cells: Sequence[SpecEncodedCell], *, if_header: bool = False
    ) -> None: ...

    def flush(self) -> None:
        """Push buffered rows to backing storage; raises ``OSError`` on failure."""
        ...


class Document(Protocol):
    def add_sheet(self, name: str) -> SheetSink: ...

    def close(self) -> None:
        """Serialize the document to its file."""
        ...

    def discard(self) -> None:
        """Release resources without producing a usable file."""
        ...


class DocumentBackend(Protocol):
    suffix: ClassVar[str]
    n_rows_sheet_max: ClassVar[int]
    if_supports_sheets: ClassVar[bool]

    def open_document(self, file_out: Path) -> Document: ...


# #endregion
################################################################################
# #region XlsxDocument
class XlsxSheet:
    """
    Append-only view of one worksheet.

    Rows are placed at an explicit cursor owned by this object; nothing is
    looked up or lazily created by index.
    """

    def __init__(
        self,
        ws: xlsxwriter.worksheet.Worksheet,
        *,
        document: "XlsxDocument",
    ):
        self.ws = ws
        self._document = document
        self._n_row_next = 0

    def append_row(
        self, cells: Sequence[SpecEncodedCell], *, if_header: bool = False
    ) -> None:
        if len(cells) > N_NCOLS_XLSX_MAX:
            raise ValueError(
                f"Row has {len(cells)} cells; xlsx supports at most {N_NCOLS_XLSX_MAX} columns."
            )
        if self._n_row_next >= N_NROWS_XLSX_MAX:
            raise ValueError(
                f"Sheet {self.ws.name!r} is full ({N_NROWS_XLSX_MAX} rows)."
            )
        n_row = self._n_row_next
        for _col_idx, _cell in enumerate(cells):
            self._write_cell(n_row, _col_idx, _cell, if_header=if_header)
        if if_header and n_row == 0:
            self.ws.freeze_panes(1, 0)
        self._n_row_next += 1

    def _write_cell(
        self, row: int, col: int, cell: SpecEncodedCell, *, if_header: bool
    ) -> None:
        cfg_fmt = self._document.derive_cell_format(cell, if_header=if_header)
        match cell.kind:
            case EnumCellKind.BLANK:
                if cfg_fmt is not None:
                    self.ws.write_blank(row, col, None, cfg_fmt)
            case EnumCellKind.TEXT:
                self.ws.write_string(row, col, cell.value, cfg_fmt)
            case EnumCellKind.NUMBER:
                self.ws.write_number(row, col, cell.value, cfg_fmt)
            case EnumCellKind.BOOLEAN:
                self.ws.write_boolean(row, col, cell.value, cfg_fmt)
            case EnumCellKind.TIMESTAMP:
                self.ws.write_datetime(row, col, cell.value, cfg_fmt)
            case EnumCellKind.FORMULA:
                self.ws.write_formula(row, col, cell.value, cfg_fmt)
            case _:
                self.ws.write_string(row, col, str(cell.value), cfg_fmt)

    def flush(self) -> None:
        # constant_memory: completed rows already sit in the sheet's temp file
        # buffer; push that buffer to the OS.
        fh = getattr(self.ws, "row_data_fh", None)
        if fh is not None and not fh.closed:
            fh.flush()


class XlsxDocument:
    def __init__(
        self,
        file_out: Path,
        *,
        fmt_base: SpecCellFormat,
        fmt_header: SpecCellFormat,
    ):
        self.file_out = Path(file_out)
        self.wb = xlsxwriter.Workbook(
            self.file_out.as_posix(),
            {
                "constant_memory": True,
                # NaN/Inf are converted to text by the encoder.
                "nan_inf_to_errors": False,
                "remove_timezone": True,
            },
        )
        self.fmt_base = fmt_base
        self.fmt_header = fmt_header
        self._format_cache: dict[SpecCellFormat, xlsxwriter.format.Format] = {}

    def _create_format_cached(self, spec: SpecCellFormat) -> xlsxwriter.format.Format:
        fmt = self._format_cache.get(spec)
        if fmt is None:
            fmt = self.wb.add_format(spec.to_xlsxwriter())
            self._format_cache[spec] = fmt
        return fmt

    def derive_cell_format(
        self, cell: SpecEncodedCell, *, if_header: bool
    ) -> xlsxwriter.format.Format | None:
        if if_header:
            return self._create_format_cached(self.fmt_header)
        if cell.num_format is None:
            return None
        return self._create_format_cached(
            self.fmt_base.with_(num_format=cell.num_format)
        )

    def add_sheet(self, name: str) -> XlsxSheet:
        return XlsxSheet(self.wb.add_worksheet(name), document=self)

    def close(self) -> None:
        try:
            self.wb.close()
        except xlsxwriter.exceptions.FileCreateError as exc:
            raise OSError(f"Cannot write workbook {self.file_out}: {exc}") from exc

    def discard(self) -> None:
        # drop the constant-memory row files; the workbook is never serialized
        self.wb.fileclosed = True
        for _ws in self.wb.worksheets():
            fh = getattr(_ws, "row_data_fh", None)
            if fh is not None and not fh.closed:
                fh.close()
            c_filename = getattr(_ws, "row_data_filename", None)
            if c_filename:
                Path(c_filename).unlink(missing_ok=True)
        self.file_out.unlink(missing_ok=True)


@dataclass(frozen=True, slots=True)
class XlsxBackend:
    suffix: ClassVar[str] = ".xlsx"
    n_rows_sheet_max: ClassVar[int] = N_NROWS_XLSX_MAX
    if_supports_sheets: ClassVar[bool] = True

    fmt_base: SpecCellFormat = field(default_factory=lambda: DEFAULT_XLSX_FORMATS["base"])
    fmt_header: SpecCellFormat = field(
        default_factory=lambda: DEFAULT_XLSX_FORMATS["header"]
    )

    def open_document(self, file_out: Path) -> XlsxDocument:
        return XlsxDocument(
            file_out, fmt_base=self.fmt_base, fmt_header=self.fmt_header
        )


def resolve_backend(file_out: Path, backend: Any | None = None) -> DocumentBackend:
    """Pick the document backend from the output suffix unless one is given."""
    if backend is not None:
        return backend
    match Path(file_out).suffix.lower():
        case ".xlsx":
            return XlsxBackend()
        case ".csv" | ".tsv" | ".txt":
            from sheetkit.io.csv.document import CsvBackend

            return CsvBackend(
                separator="\t" if Path(file_out).suffix.lower() == ".tsv" else ","
            )
        case ".xls":
            raise ValueError(
                "Legacy .xls output is not supported; write .xlsx instead."
            )
        case c_suffix:
            raise ValueError(f"Unsupported output file type: {c_suffix or '<none>'!r}.")


# #endregion
################################################################################
