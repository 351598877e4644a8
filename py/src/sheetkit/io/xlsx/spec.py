# "Facts/Results/Plans" produced while partitioning datasets into spreadsheet segments.

import datetime as dt
from dataclasses import dataclass, field, replace
from enum import StrEnum
from pathlib import Path
from typing import Any, TypeAlias


################################################################################
# #region CellValueSpecification
@dataclass(frozen=True, slots=True)
class CellText:
    text: str


@dataclass(frozen=True, slots=True)
class CellNumber:
    number: float


@dataclass(frozen=True, slots=True)
class CellBoolean:
    flag: bool


@dataclass(frozen=True, slots=True)
class CellTimestamp:
    moment: dt.datetime | dt.date | dt.time


@dataclass(frozen=True, slots=True)
class CellFormula:
    # stored without evaluation; leading "=" optional
    formula: str


@dataclass(frozen=True, slots=True)
class CellBlank:
    pass


TypeCellValue: TypeAlias = (
    CellText | CellNumber | CellBoolean | CellTimestamp | CellFormula | CellBlank
)


class EnumCellKind(StrEnum):
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    FORMULA = "formula"
    BLANK = "blank"


@dataclass(frozen=True, slots=True)
class SpecEncodedCell:
    """
    Native cell representation handed to a document backend.

    ``literal`` keeps the caller's original text when the cell value was
    converted from it (numeric-looking text), so text-based backends can
    reproduce it exactly.
    """

    kind: EnumCellKind
    value: Any = None
    num_format: str | None = None
    literal: str | None = None


# #endregion
################################################################################
# #region CellFormatSpecification
@dataclass(frozen=True, slots=True)
class SpecCellFormat:
    # field names follow xlsxwriter format property keys
    font_name: str | None = None
    font_size: int | None = None
    bold: bool | None = None
    italic: bool | None = None

    align: str | None = None
    valign: str | None = None
    border: int | None = None
    text_wrap: bool | None = None

    num_format: str | None = None
    bg_color: str | None = None
    font_color: str | None = None

    def with_(self, **kwargs: Any) -> "SpecCellFormat":
        return replace(self, **kwargs)

    def to_xlsxwriter(self) -> dict[str, Any]:
        return {
            k: getattr(self, k)
            for k in self.__dataclass_fields__
            if getattr(self, k) is not None
        }


# #endregion
################################################################################
# #region SegmentSpecification
class EnumOutputMode(StrEnum):
    SHEETS = "sheets"  # one file, one sheet per segment
    FILES = "files"  # one file (with one sheet) per segment


class EnumSegmentState(StrEnum):
    EMPTY = "empty"
    OPEN = "open"
    FINALIZED = "finalized"
    ABORTED = "aborted"


@dataclass(frozen=True, slots=True)
class SpecSegmentPlan:
    idx_segment: int  # 1-based
    row_start_inclusive: int  # in source dataset rows
    row_end_exclusive: int

    @property
    def n_rows(self) -> int:
        return self.row_end_exclusive - self.row_start_inclusive


@dataclass(frozen=True, slots=True)
class SpecSegmentName:
    sheet_name: str
    file_out: Path


@dataclass(frozen=True, slots=True)
class SpecSegmentResult:
    idx_segment: int
    sheet_name: str
    file_out: Path
    row_start_inclusive: int
    row_end_exclusive: int
    n_flushes: int
    if_has_header: bool

    @property
    def n_rows(self) -> int:
        return self.row_end_exclusive - self.row_start_inclusive


# #endregion
################################################################################
# #region WriteOptions
@dataclass(frozen=True, slots=True)
class SpecPartitionedWriteOptions:
    """
    Tunables of a partitioned write.

    Attributes:
        rows_per_segment_max: Data rows per segment, header excluded. Must
            not exceed the active format's rows-per-sheet ceiling minus the
            header row.
        size_batch: Data rows written between two explicit flushes.
        mode: Sheets in one workbook, or one workbook per segment.
        sheet_name_base: Base for sheet names (``<base>_<idx>`` in sheets
            mode, ``<base>`` in files mode).
        if_numeric_text_as_number: Write numeric-looking text as numbers with
            a literal-preserving display format. ``False`` keeps it as text.
        n_workers_encode: ``1`` encodes on the caller's thread; more spreads
            encoding over a thread pool while appends stay single-owner.
        size_chunk_encode: Rows per encoding task in the parallel path.
    """

    rows_per_segment_max: int = 1_000_000
    size_batch: int = 1_000
    mode: EnumOutputMode = EnumOutputMode.SHEETS
    sheet_name_base: str = "Sheet"
    if_numeric_text_as_number: bool = True
    n_workers_encode: int = 1
    size_chunk_encode: int = 1_000

    def validate(self) -> None:
        if self.rows_per_segment_max <= 0:
            raise ValueError(
                f"rows_per_segment_max must be >= 1, got {self.rows_per_segment_max}."
            )
        if self.size_batch <= 0:
            raise ValueError(f"size_batch must be >= 1, got {self.size_batch}.")
        if self.n_workers_encode <= 0:
            raise ValueError(
                f"n_workers_encode must be >= 1, got {self.n_workers_encode}."
            )
        if self.size_chunk_encode <= 0:
            raise ValueError(
                f"size_chunk_encode must be >= 1, got {self.size_chunk_encode}."
            )


# #endregion
################################################################################
# #region ReportSpecification
@dataclass(slots=True)
class SpecPartitionReport:
    segments: list[SpecSegmentResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    n_rows_total: int = 0

    def warn(self, msg: str) -> None:
        self.warnings.append(str(msg))

    @property
    def n_segments(self) -> int:
        return len(self.segments)

    @property
    def n_flushes(self) -> int:
        return sum(_seg.n_flushes for _seg in self.segments)

    @property
    def files_out(self) -> tuple[Path, ...]:
        return tuple(dict.fromkeys(_seg.file_out for _seg in self.segments))


# #endregion
################################################################################
