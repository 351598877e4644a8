import re
from collections.abc import Mapping
from types import MappingProxyType
from typing import Literal

from .spec import SpecCellFormat, SpecPartitionedWriteOptions

# Structural ceilings of the document formats (rows include any header row).
N_NROWS_XLSX_MAX = 1_048_576
N_NROWS_XLS_MAX = 65_536  # legacy binary format; reference only, never written
N_NCOLS_XLSX_MAX = 16_384
N_LEN_SHEET_NAME_MAX = 31
TUP_SHEET_NAME_ILLEGAL = ("*", ":", "?", "/", "\\", "[", "]")

N_SIZE_BATCH_DEFAULT = 1_000
N_DIGITS_DOUBLE_SAFE = 15

# Text that looks like a plain ASCII integer/decimal literal, e.g. "00123", "-4.50".
RE_NUMERIC_TEXT = re.compile(r"-?[0-9]+(\.[0-9]+)?")

C_NUM_FORMAT_TEXT = "@"
C_NUM_FORMAT_DATETIME = "yyyy-mm-dd hh:mm:ss"
C_NUM_FORMAT_DATE = "yyyy-mm-dd"
C_NUM_FORMAT_TIME = "hh:mm:ss"

# Strategy/Preference/Adjustable Parameters for partitioned writes.

LIT_FMT_KEYS = Literal["base", "header"]
_cls_base_fmt_spec = SpecCellFormat(font_name="Calibri", font_size=11)

# Cell-level number formats from the encoder are layered on top of "base".
DEFAULT_XLSX_FORMATS: Mapping[LIT_FMT_KEYS, SpecCellFormat] = MappingProxyType(
    {
        "base": _cls_base_fmt_spec,
        "header": _cls_base_fmt_spec.with_(
            bold=True, align="center", border=1, num_format=C_NUM_FORMAT_TEXT
        ),
    }
)

DEFAULT_PARTITIONED_WRITE_OPTIONS = SpecPartitionedWriteOptions()
