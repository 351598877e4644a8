"""Row encoder: dynamically-typed Python values -> native cell representation.

Raw values are classified into the :data:`TypeCellValue` tagged union once, at
the boundary, and every later decision is an exhaustive ``match`` over the
variants. Encoding never fails: anything unrecognized degrades to its text.
"""

import datetime as dt
import decimal
import math
import numbers
from collections.abc import Iterable
from typing import Any, assert_never

from .conf import (
    C_NUM_FORMAT_DATE,
    C_NUM_FORMAT_DATETIME,
    C_NUM_FORMAT_TEXT,
    C_NUM_FORMAT_TIME,
    N_DIGITS_DOUBLE_SAFE,
    RE_NUMERIC_TEXT,
)
from .spec import (
    CellBlank,
    CellBoolean,
    CellFormula,
    CellNumber,
    CellText,
    CellTimestamp,
    EnumCellKind,
    SpecEncodedCell,
    TypeCellValue,
)

_TUP_CELL_VARIANTS = (
    CellText,
    CellNumber,
    CellBoolean,
    CellTimestamp,
    CellFormula,
    CellBlank,
)
_CELL_BLANK = SpecEncodedCell(kind=EnumCellKind.BLANK)


################################################################################
# #region ValueClassification
def classify_value(value: Any) -> TypeCellValue:
    if isinstance(value, _TUP_CELL_VARIANTS):
        return value
    if value is None:
        return CellBlank()
    # bool before numbers: bool is an Integral
    if isinstance(value, bool):
        return CellBoolean(flag=value)
    if isinstance(value, (numbers.Real, decimal.Decimal)):
        try:
            return CellNumber(number=float(value))
        except (TypeError, ValueError, OverflowError):
            return CellText(text=str(value))
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return CellTimestamp(moment=value)
    if isinstance(value, str):
        return CellText(text=value)
    return CellText(text=str(value))


# #endregion
################################################################################
# #region CellEncoding
def convert_nan_inf_to_str(x: float) -> str:
    if math.isnan(x):
        return "NaN"
    if math.isinf(x):
        return "Inf" if x > 0 else "-Inf"
    raise ValueError("Input is neither NaN nor Inf.")


def derive_literal_format(text: str) -> str:
    """
    Build a number format whose rendering reproduces ``text`` exactly.

    Examples:
        >>> derive_literal_format("000123")
        '000000'
        >>> derive_literal_format("-0012.50")
        '0000.00'
    """
    c_int_part, _, c_frac_part = text.lstrip("-").partition(".")
    c_format = "0" * len(c_int_part)
    if c_frac_part:
        c_format += "." + "0" * len(c_frac_part)
    return c_format


def _count_significant_digits(text: str) -> int:
    c_digits = text.lstrip("-").replace(".", "").lstrip("0")
    return len(c_digits)


def _encode_text(text: str, *, if_numeric_text_as_number: bool) -> SpecEncodedCell:
    if not RE_NUMERIC_TEXT.fullmatch(text):
        return SpecEncodedCell(kind=EnumCellKind.TEXT, value=text)

    n_value = float(text)
    b_keep_as_text = (
        not if_numeric_text_as_number
        or _count_significant_digits(text) > N_DIGITS_DOUBLE_SAFE
        # "-0" / "-0.00" would render without its sign
        or (n_value == 0 and text.startswith("-"))
    )
    if b_keep_as_text:
        return SpecEncodedCell(
            kind=EnumCellKind.TEXT,
            value=text,
            num_format=C_NUM_FORMAT_TEXT,
            literal=text,
        )
    return SpecEncodedCell(
        kind=EnumCellKind.NUMBER,
        value=n_value,
        num_format=derive_literal_format(text),
        literal=text,
    )


def _encode_timestamp(moment: dt.datetime | dt.date | dt.time) -> SpecEncodedCell:
    # datetime before date: datetime is a date
    if isinstance(moment, dt.datetime):
        c_format = C_NUM_FORMAT_DATETIME
    elif isinstance(moment, dt.date):
        c_format = C_NUM_FORMAT_DATE
    else:
        c_format = C_NUM_FORMAT_TIME
    return SpecEncodedCell(
        kind=EnumCellKind.TIMESTAMP, value=moment, num_format=c_format
    )


def encode_value(
    value: Any, *, if_numeric_text_as_number: bool = True
) -> SpecEncodedCell:
    match classify_value(value):
        case CellBlank():
            return _CELL_BLANK
        case CellText(text=c_text):
            return _encode_text(
                c_text, if_numeric_text_as_number=if_numeric_text_as_number
            )
        case CellNumber(number=n_number):
            if not math.isfinite(n_number):
                return SpecEncodedCell(
                    kind=EnumCellKind.TEXT, value=convert_nan_inf_to_str(n_number)
                )
            return SpecEncodedCell(kind=EnumCellKind.NUMBER, value=n_number)
        case CellBoolean(flag=b_flag):
            return SpecEncodedCell(kind=EnumCellKind.BOOLEAN, value=b_flag)
        case CellTimestamp(moment=cfg_moment):
            return _encode_timestamp(cfg_moment)
        case CellFormula(formula=c_formula):
            c_formula = c_formula if c_formula.startswith("=") else f"={c_formula}"
            return SpecEncodedCell(kind=EnumCellKind.FORMULA, value=c_formula)
        case unreachable:
            assert_never(unreachable)


def encode_row(
    row: Iterable[Any], *, if_numeric_text_as_number: bool = True
) -> tuple[SpecEncodedCell, ...]:
    return tuple(
        encode_value(_val, if_numeric_text_as_number=if_numeric_text_as_number)
        for _val in row
    )


# #endregion
################################################################################
