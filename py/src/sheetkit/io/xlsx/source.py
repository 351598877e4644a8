from collections.abc import Iterable, Iterator, Sequence, Sized
from dataclasses import dataclass
from typing import Any

import polars as pl


@dataclass(frozen=True, slots=True)
class SpecRowSource:
    rows: Iterable[Sequence[Any]]
    n_rows_total: int | None  # None: single-pass iterable of unknown length
    header: tuple[str, ...] | None  # column names, when the source has them


def calculate_frame_chunk_size(*, width_df: int) -> int:
    """
    Rows pulled from a DataFrame per slice.

    Wider frames use smaller slices so a slice stays roughly the same size in
    memory, narrow frames use larger ones.
    """
    if width_df >= 8_000:
        return 1_000
    if width_df >= 2_000:
        return 2_000
    return 10_000


def generate_frame_rows(
    df: pl.DataFrame, size_rows_chunk: int
) -> Iterator[tuple[Any, ...]]:
    n_rows_total = df.height
    n_row_cursor = 0
    while n_row_cursor < n_rows_total:
        n_rows_per_chunk = min(size_rows_chunk, n_rows_total - n_row_cursor)
        yield from df.slice(offset=n_row_cursor, length=n_rows_per_chunk).iter_rows()
        n_row_cursor += n_rows_per_chunk


def generate_lazy_rows(
    lf: pl.LazyFrame, size_rows_chunk: int, n_rows_total: int
) -> Iterator[tuple[Any, ...]]:
    # only one slice is ever collected at a time
    n_row_cursor = 0
    while n_row_cursor < n_rows_total:
        n_rows_per_chunk = min(size_rows_chunk, n_rows_total - n_row_cursor)
        yield from lf.slice(n_row_cursor, n_rows_per_chunk).collect().iter_rows()
        n_row_cursor += n_rows_per_chunk


def convert_to_row_source(data: Any) -> SpecRowSource:
    """
    Wrap a dataset as a lazily consumed row source.

    Accepts a ``polars.DataFrame`` or ``polars.LazyFrame`` (column names
    become the header), any sized sequence of rows, or any iterable of rows
    (length unknown, consumed once).
    """
    if isinstance(data, pl.DataFrame):
        return SpecRowSource(
            rows=generate_frame_rows(
                data, calculate_frame_chunk_size(width_df=data.width)
            ),
            n_rows_total=data.height,
            header=tuple(data.columns),
        )
    if isinstance(data, pl.LazyFrame):
        l_colnames = data.collect_schema().names()
        n_rows_total = int(data.select(pl.len()).collect().item())
        return SpecRowSource(
            rows=generate_lazy_rows(
                data,
                calculate_frame_chunk_size(width_df=len(l_colnames)),
                n_rows_total,
            ),
            n_rows_total=n_rows_total,
            header=tuple(l_colnames),
        )
    if isinstance(data, (str, bytes)) or not isinstance(data, Iterable):
        raise TypeError(
            f"Dataset must be an iterable of rows or a polars frame, got {type(data).__name__}."
        )
    return SpecRowSource(
        rows=data,
        n_rows_total=len(data) if isinstance(data, Sized) else None,
        header=None,
    )
