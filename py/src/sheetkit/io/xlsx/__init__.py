from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sheetkit._optional_deps import import_optional_attr

__all__ = [
    "PartitionedXlsxWriter",
    "write_partitioned",
    "StreamWriter",
    "SegmentAssembler",
    "XlsxBackend",
    "SegmentWriteError",
    "WriteCancelledError",
    "SpecCellFormat",
    "SpecPartitionedWriteOptions",
    "SpecPartitionReport",
    "SpecSegmentResult",
    "EnumOutputMode",
    "list_sheet_names",
    "iter_rows",
    "read_rows",
    "read_row",
    "count_rows",
]

if TYPE_CHECKING:
    from .assembler import SegmentAssembler
    from .document import XlsxBackend
    from .errors import SegmentWriteError, WriteCancelledError
    from .reader import count_rows, iter_rows, list_sheet_names, read_row, read_rows
    from .spec import (
        EnumOutputMode,
        SpecCellFormat,
        SpecPartitionedWriteOptions,
        SpecPartitionReport,
        SpecSegmentResult,
    )
    from .stream import StreamWriter
    from .writer import PartitionedXlsxWriter, write_partitioned

_ATTRS_SPEC = {
    "SpecCellFormat",
    "SpecPartitionedWriteOptions",
    "SpecPartitionReport",
    "SpecSegmentResult",
    "EnumOutputMode",
}
_ATTRS_ERRORS = {"SegmentWriteError", "WriteCancelledError"}
_ATTRS_READER = {"list_sheet_names", "iter_rows", "read_rows", "read_row", "count_rows"}


def __getattr__(name: str) -> Any:
    if name in _ATTRS_SPEC:
        return import_optional_attr(
            module_name=".spec",
            attr_name=name,
            package=__name__,
            feature="sheetkit.io.xlsx",
            extras=("xlsx",),
            required_modules=(),
        )
    if name in _ATTRS_ERRORS:
        return import_optional_attr(
            module_name=".errors",
            attr_name=name,
            package=__name__,
            feature="sheetkit.io.xlsx",
            extras=("xlsx",),
            required_modules=(),
        )
    if name in {"PartitionedXlsxWriter", "write_partitioned"}:
        return import_optional_attr(
            module_name=".writer",
            attr_name=name,
            package=__name__,
            feature="sheetkit.io.xlsx",
            extras=("xlsx",),
            required_modules=("xlsxwriter", "polars"),
        )
    if name == "StreamWriter":
        return import_optional_attr(
            module_name=".stream",
            attr_name=name,
            package=__name__,
            feature="sheetkit.io.xlsx",
            extras=("xlsx",),
            required_modules=("xlsxwriter",),
        )
    if name == "SegmentAssembler":
        return import_optional_attr(
            module_name=".assembler",
            attr_name=name,
            package=__name__,
            feature="sheetkit.io.xlsx",
            extras=("xlsx",),
            required_modules=("xlsxwriter",),
        )
    if name == "XlsxBackend":
        return import_optional_attr(
            module_name=".document",
            attr_name=name,
            package=__name__,
            feature="sheetkit.io.xlsx",
            extras=("xlsx",),
            required_modules=("xlsxwriter",),
        )
    if name in _ATTRS_READER:
        return import_optional_attr(
            module_name=".reader",
            attr_name=name,
            package=__name__,
            feature="sheetkit.io.xlsx.reader",
            extras=("xlsx",),
            required_modules=("openpyxl",),
        )
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
