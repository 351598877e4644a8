import threading
from collections.abc import Generator, Iterable, Sequence
from functools import partial
from typing import Any

from loguru import logger

from .assembler import SegmentAssembler, SegmentHandle
from .conf import N_SIZE_BATCH_DEFAULT
from .encoder import encode_row
from .errors import SegmentWriteError, WriteCancelledError
from .parallel import TypeEncodedRow, generate_encoded_rows_parallel
from .partition import generate_segment_windows, validate_segment_capacity
from .spec import SpecEncodedCell, SpecPartitionReport, SpecSegmentPlan

_EXHAUSTED: Any = object()


class StreamWriter:
    """
    Stream a dataset into consecutive bounded segments.

    Rows are pulled strictly in order, encoded, and appended to the open
    segment. After every ``size_batch`` data rows the segment is flushed to
    backing storage; a final flush covers any trailing partial batch. When a
    segment reaches ``rows_per_segment_max`` it is finalized and the next one
    is opened only once another row actually exists, so an exact multiple of
    the capacity never leaves a trailing empty segment. An empty dataset
    still produces one (header-only) segment.

    Any failure aborts the open segment and propagates; segments already
    finalized are kept. ``OSError`` is re-raised as :class:`SegmentWriteError`
    carrying the segment index and row offsets.

    Args:
        assembler: Owner of segment lifecycle and naming.
        rows_per_segment_max: Data rows per segment, header excluded.
        size_batch: Data rows between two explicit flushes.
        sheet_name_base: Base name handed to the assembler for every segment.
        header: Optional header row, written first in every segment.
        if_numeric_text_as_number: See :func:`encode_value`.
        n_workers_encode: ``> 1`` encodes on a thread pool; appends stay on
            the calling thread.
        size_chunk_encode: Rows per encoding task in the parallel path.
        cancel_event: Checked between segments and between batches.
    """

    def __init__(
        self,
        assembler: SegmentAssembler,
        *,
        rows_per_segment_max: int,
        size_batch: int = N_SIZE_BATCH_DEFAULT,
        sheet_name_base: str = "Sheet",
        header: Sequence[Any] | None = None,
        if_numeric_text_as_number: bool = True,
        n_workers_encode: int = 1,
        size_chunk_encode: int = 1_000,
        cancel_event: threading.Event | None = None,
    ):
        if size_batch <= 0:
            raise ValueError(f"size_batch must be >= 1, got {size_batch}.")
        if n_workers_encode <= 0:
            raise ValueError(f"n_workers_encode must be >= 1, got {n_workers_encode}.")
        validate_segment_capacity(
            rows_per_segment_max=rows_per_segment_max,
            if_has_header=bool(header),
            n_rows_sheet_max=assembler.backend.n_rows_sheet_max,
        )
        self.assembler = assembler
        self.rows_per_segment_max = rows_per_segment_max
        self.size_batch = size_batch
        self.sheet_name_base = sheet_name_base
        # header text stays text, even "2024"
        self.header_cells: tuple[SpecEncodedCell, ...] | None = (
            encode_row(header, if_numeric_text_as_number=False) if header else None
        )
        self.if_numeric_text_as_number = if_numeric_text_as_number
        self.n_workers_encode = n_workers_encode
        self.size_chunk_encode = size_chunk_encode
        self.cancel_event = cancel_event

    def _generate_encoded_rows(
        self, rows: Iterable[Sequence[Any]]
    ) -> Generator[TypeEncodedRow, None, None]:
        fn_encode = partial(
            encode_row, if_numeric_text_as_number=self.if_numeric_text_as_number
        )
        if self.n_workers_encode == 1:
            yield from map(fn_encode, rows)
            return
        yield from generate_encoded_rows_parallel(
            rows,
            encode=fn_encode,
            n_workers=self.n_workers_encode,
            size_chunk=self.size_chunk_encode,
        )

    def _check_cancelled(self, *, idx_segment: int, n_row_offset: int) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise WriteCancelledError(idx_segment=idx_segment, n_row_offset=n_row_offset)

    def _fill_segment(
        self,
        cls_handle: SegmentHandle,
        iter_encoded: Generator[TypeEncodedRow, None, None],
        row_next: Any,
    ) -> Any:
        """Append rows until the window is full or the data runs out; return the look-ahead row."""
        n_rows_window = cls_handle.plan.n_rows
        while row_next is not _EXHAUSTED and cls_handle.n_rows_data < n_rows_window:
            cls_handle.append_row(row_next)
            if cls_handle.n_rows_unflushed >= self.size_batch:
                cls_handle.flush()
                logger.debug(
                    f"Flushed segment {cls_handle.plan.idx_segment}: "
                    f"{cls_handle.n_rows_data} rows (flush #{cls_handle.n_flushes})"
                )
                self._check_cancelled(
                    idx_segment=cls_handle.plan.idx_segment,
                    n_row_offset=cls_handle.n_row_offset_next,
                )
            row_next = next(iter_encoded, _EXHAUSTED)
        return row_next

    def write(
        self,
        rows: Iterable[Sequence[Any]],
        *,
        n_rows_total: int | None = None,
    ) -> SpecPartitionReport:
        """
        Write ``rows`` and return the per-segment report.

        Args:
            rows: Dataset rows; consumed once.
            n_rows_total: Row count when known up front. It fixes the
                partition plan; the dataset must not yield more rows.

        Raises:
            SegmentWriteError: On an I/O failure in any segment.
            WriteCancelledError: When ``cancel_event`` is set mid-write.
            ValueError: If the dataset yields more rows than ``n_rows_total``.
        """
        report = SpecPartitionReport()
        iter_encoded = self._generate_encoded_rows(rows)
        cls_plan: SpecSegmentPlan | None = None
        cls_handle: SegmentHandle | None = None
        n_row_offset = 0

        try:
            row_next = next(iter_encoded, _EXHAUSTED)
            for cls_plan in generate_segment_windows(
                self.rows_per_segment_max, n_rows_total
            ):
                self._check_cancelled(
                    idx_segment=cls_plan.idx_segment, n_row_offset=n_row_offset
                )
                cls_handle = self.assembler.open_segment(
                    cls_plan,
                    sheet_name_base=self.sheet_name_base,
                    header=self.header_cells,
                )
                row_next = self._fill_segment(cls_handle, iter_encoded, row_next)
                n_row_offset = cls_handle.n_row_offset_next
                report.segments.append(self.assembler.finalize(cls_handle))
                cls_handle = None
                if row_next is _EXHAUSTED:
                    break

            if row_next is not _EXHAUSTED:
                raise ValueError(
                    f"Dataset yielded more rows than n_rows_total={n_rows_total}."
                )
        except OSError as exc:
            self.assembler.abort(cls_handle)
            n_idx_segment = cls_plan.idx_segment if cls_plan is not None else 1
            n_row_start = cls_plan.row_start_inclusive if cls_plan is not None else 0
            n_row_failed = (
                cls_handle.n_row_offset_next if cls_handle is not None else n_row_offset
            )
            raise SegmentWriteError(
                f"I/O failure while writing segment: {exc}",
                idx_segment=n_idx_segment,
                n_row_offset=n_row_start,
                n_row_failed=n_row_failed,
            ) from exc
        except BaseException:
            self.assembler.abort(cls_handle)
            raise
        finally:
            iter_encoded.close()

        report.n_rows_total = n_row_offset
        if n_rows_total is not None and n_row_offset != n_rows_total:
            report.warn(
                f"Dataset yielded {n_row_offset} rows, fewer than n_rows_total={n_rows_total}."
            )
        for _msg in report.warnings:
            logger.warning(_msg)
        logger.success(
            f"Partitioned write done: {report.n_rows_total} rows in "
            f"{report.n_segments} segment(s), {report.n_flushes} flush(es)."
        )
        return report
