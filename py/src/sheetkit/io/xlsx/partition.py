import itertools
import math
from collections.abc import Iterator
from pathlib import Path

from .conf import N_LEN_SHEET_NAME_MAX, N_NROWS_XLSX_MAX, TUP_SHEET_NAME_ILLEGAL
from .spec import EnumOutputMode, SpecSegmentName, SpecSegmentPlan

################################################################################
# #region CapacityValidation


def validate_segment_capacity(
    *,
    rows_per_segment_max: int,
    if_has_header: bool,
    n_rows_sheet_max: int = N_NROWS_XLSX_MAX,
) -> None:
    """
    Fail fast on a capacity the target format cannot hold.

    Args:
        rows_per_segment_max: Data rows per segment, header excluded.
        if_has_header: Whether every segment starts with a header row.
        n_rows_sheet_max: Rows-per-sheet ceiling of the active format
            (1,048,576 for ``.xlsx``; 65,536 for legacy ``.xls``).

    Raises:
        ValueError: If the capacity is < 1 or the capacity plus header row
            exceeds the format ceiling.
    """
    if rows_per_segment_max <= 0:
        raise ValueError(
            f"rows_per_segment_max must be >= 1, got {rows_per_segment_max}."
        )
    n_rows_header = 1 if if_has_header else 0
    if rows_per_segment_max + n_rows_header > n_rows_sheet_max:
        raise ValueError(
            f"rows_per_segment_max={rows_per_segment_max} plus {n_rows_header} "
            f"header row(s) exceeds the format limit of {n_rows_sheet_max} rows per sheet."
        )


# #endregion
################################################################################
# #region SegmentPlanning


def calculate_segment_count(n_rows_total: int, rows_per_segment_max: int) -> int:
    if rows_per_segment_max <= 0:
        raise ValueError(
            f"rows_per_segment_max must be >= 1, got {rows_per_segment_max}."
        )
    if n_rows_total < 0:
        raise ValueError(f"n_rows_total must be >= 0, got {n_rows_total}.")
    # at least one segment, so a header-only output still exists
    return max(1, math.ceil(n_rows_total / rows_per_segment_max))


def plan_segments(
    *,
    n_rows_total: int,
    rows_per_segment_max: int,
    if_has_header: bool,
    n_rows_sheet_max: int = N_NROWS_XLSX_MAX,
) -> list[SpecSegmentPlan]:
    """
    Map dataset row ranges onto 1-based segments.

    Every segment covers exactly ``rows_per_segment_max`` rows except the
    last, which takes the remainder. An exact multiple never yields a trailing
    empty segment; zero rows yield one empty (header-only) segment.

    Examples:
        >>> [(p.idx_segment, p.n_rows) for p in plan_segments(
        ...     n_rows_total=5, rows_per_segment_max=2, if_has_header=True)]
        [(1, 2), (2, 2), (3, 1)]
    """
    validate_segment_capacity(
        rows_per_segment_max=rows_per_segment_max,
        if_has_header=if_has_header,
        n_rows_sheet_max=n_rows_sheet_max,
    )
    return _build_segment_plans(n_rows_total, rows_per_segment_max)


def _build_segment_plans(
    n_rows_total: int, rows_per_segment_max: int
) -> list[SpecSegmentPlan]:
    n_segments = calculate_segment_count(n_rows_total, rows_per_segment_max)

    l_plans: list[SpecSegmentPlan] = []
    for _idx_0based in range(n_segments):
        n_row_start = _idx_0based * rows_per_segment_max
        n_row_end = min(n_rows_total, n_row_start + rows_per_segment_max)
        l_plans.append(
            SpecSegmentPlan(
                idx_segment=_idx_0based + 1,
                row_start_inclusive=n_row_start,
                row_end_exclusive=n_row_end,
            )
        )
    return l_plans


def generate_segment_windows(
    rows_per_segment_max: int, n_rows_total: int | None = None
) -> Iterator[SpecSegmentPlan]:
    """
    Yield segment windows lazily.

    With a known total this is :func:`plan_segments`. With an unknown total
    windows are open-ended at full capacity; the consumer stops pulling once
    the dataset is exhausted, and the last window's actual end is whatever
    row count it received.
    """
    if rows_per_segment_max <= 0:
        raise ValueError(
            f"rows_per_segment_max must be >= 1, got {rows_per_segment_max}."
        )
    if n_rows_total is not None:
        yield from _build_segment_plans(n_rows_total, rows_per_segment_max)
        return

    for _idx_segment in itertools.count(1):
        n_row_start = (_idx_segment - 1) * rows_per_segment_max
        yield SpecSegmentPlan(
            idx_segment=_idx_segment,
            row_start_inclusive=n_row_start,
            row_end_exclusive=n_row_start + rows_per_segment_max,
        )


# #endregion
################################################################################
# #region SegmentNaming


def sanitize_sheet_name(name: str, *, replace_to: str = "_") -> str:
    for ch in TUP_SHEET_NAME_ILLEGAL:
        name = name.replace(ch, replace_to)
    name = name.strip() or "Sheet"
    return name[:N_LEN_SHEET_NAME_MAX]


def create_sheet_identifier(base_name: str, idx_segment: int) -> str:
    c_suffix = f"_{idx_segment}"
    n_len_base_max = N_LEN_SHEET_NAME_MAX - len(c_suffix)
    return f"{base_name[: max(1, n_len_base_max)]}{c_suffix}"


def create_file_identifier(file_out: Path, idx_segment: int) -> Path:
    # <baseName>_<segmentIndex>.<ext>
    return file_out.with_name(f"{file_out.stem}_{idx_segment}{file_out.suffix}")


def derive_segment_name(
    *,
    idx_segment: int,
    mode: EnumOutputMode,
    file_out: Path,
    sheet_name_base: str,
) -> SpecSegmentName:
    c_sheet_base = sanitize_sheet_name(sheet_name_base)
    match mode:
        case EnumOutputMode.SHEETS:
            return SpecSegmentName(
                sheet_name=create_sheet_identifier(c_sheet_base, idx_segment),
                file_out=file_out,
            )
        case EnumOutputMode.FILES:
            return SpecSegmentName(
                sheet_name=c_sheet_base,
                file_out=create_file_identifier(file_out, idx_segment),
            )
        case _:
            raise ValueError(f"Unknown output mode: {mode!r}")


# #endregion
################################################################################
