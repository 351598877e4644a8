import os
import threading
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path
from types import TracebackType
from typing import Any, Self

from .assembler import SegmentAssembler
from .conf import DEFAULT_PARTITIONED_WRITE_OPTIONS
from .document import DocumentBackend, resolve_backend
from .source import convert_to_row_source
from .spec import EnumOutputMode, SpecPartitionedWriteOptions, SpecPartitionReport
from .stream import StreamWriter


class PartitionedXlsxWriter:
    """
    Write datasets too large for one sheet as a series of bounded segments.

    Each dataset handed to :meth:`write` is split into segments of at most
    ``options.rows_per_segment_max`` data rows. Segments become sheets of one
    workbook (``mode="sheets"``) or separate files named
    ``<stem>_<idx><suffix>`` (``mode="files"``). Rows are streamed; memory
    stays bounded by the batch size whatever the dataset size. It can be used
    directly or as a context manager::

        from sheetkit.io.xlsx import PartitionedXlsxWriter, SpecPartitionedWriteOptions

        with PartitionedXlsxWriter(
            "big.xlsx",
            options=SpecPartitionedWriteOptions(rows_per_segment_max=500_000),
        ) as xf:
            xf.write(df, sheet_name="Data")

    Parameters
    ----------
    file_out:
        Target ``.xlsx`` (or ``.csv``/``.tsv``/``.txt`` in files mode). In
        files mode this is the base for the numbered segment files. Existing
        segment files are overwritten; higher-numbered files from an earlier,
        longer run are not removed (a warning is logged when one is found).
    options:
        Partitioning and encoding tunables. Validated on construction.
    backend:
        Document model override. By default picked from ``file_out``'s suffix.
    """

    def __init__(
        self,
        file_out: os.PathLike[str] | str,
        *,
        options: SpecPartitionedWriteOptions | None = None,
        backend: DocumentBackend | None = None,
    ):
        self.file_out = Path(file_out)
        cfg_options = DEFAULT_PARTITIONED_WRITE_OPTIONS if options is None else options
        self.options = replace(cfg_options, mode=EnumOutputMode(cfg_options.mode))
        self.options.validate()
        self.backend = resolve_backend(self.file_out, backend)
        self.assembler = SegmentAssembler(
            self.file_out, mode=self.options.mode, backend=self.backend
        )
        self._reports: list[SpecPartitionReport] = []
        self._n_writes = 0

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self, exc_type: type | None, exc: BaseException | None, tb: TracebackType | None
    ) -> None:
        self.close()

    def close(self) -> None:
        self.assembler.close()

    def report(self) -> tuple[SpecPartitionReport, ...]:
        return tuple(self._reports)

    def write(
        self,
        data: Any,
        *,
        header: Sequence[Any] | None = None,
        if_write_header: bool = True,
        sheet_name: str | None = None,
        n_rows_total: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> Self:
        """
        Stream one dataset into segments.

        Parameters
        ----------
        data:
            ``polars.DataFrame``/``LazyFrame``, a sequence of rows, or any
            iterable of rows (consumed once).
        header:
            Header row replicated at the top of every segment. Defaults to the
            frame's column names; plain iterables have none.
        if_write_header:
            ``False`` suppresses the header even when one is available.
        sheet_name:
            Base sheet name for this dataset; defaults to
            ``options.sheet_name_base``.
        n_rows_total:
            Row count of a plain iterable when known, so the partition plan is
            fixed up front. Taken from the data when it is sized.
        cancel_event:
            Set from another thread to stop between batches.

        Raises
        ------
        ValueError
            Invalid capacity for the output format, raised before any output
            is created.
        SegmentWriteError
            I/O failure; the failing segment is aborted.
        WriteCancelledError
            ``cancel_event`` was set.
        """
        if self.options.mode is EnumOutputMode.FILES and self._n_writes > 0:
            raise RuntimeError(
                "Files mode names segment files after the target path; use one writer per dataset."
            )

        cls_source = convert_to_row_source(data)
        tup_header: tuple[Any, ...] | None = None
        if if_write_header:
            tup_header = tuple(header) if header is not None else cls_source.header

        writer_stream = StreamWriter(
            self.assembler,
            rows_per_segment_max=self.options.rows_per_segment_max,
            size_batch=self.options.size_batch,
            sheet_name_base=(
                self.options.sheet_name_base if sheet_name is None else sheet_name
            ),
            header=tup_header,
            if_numeric_text_as_number=self.options.if_numeric_text_as_number,
            n_workers_encode=self.options.n_workers_encode,
            size_chunk_encode=self.options.size_chunk_encode,
            cancel_event=cancel_event,
        )
        self._n_writes += 1
        report = writer_stream.write(
            cls_source.rows,
            n_rows_total=(
                cls_source.n_rows_total if n_rows_total is None else n_rows_total
            ),
        )
        self._reports.append(report)
        return self


def write_partitioned(
    data: Any,
    file_out: os.PathLike[str] | str,
    *,
    header: Sequence[Any] | None = None,
    if_write_header: bool = True,
    options: SpecPartitionedWriteOptions | None = None,
    backend: DocumentBackend | None = None,
    cancel_event: threading.Event | None = None,
    **kwargs: Any,
) -> SpecPartitionReport:
    """
    One-shot partitioned write of ``data`` to ``file_out``.

    Keyword arguments beyond the explicit ones override fields of
    ``options`` (e.g. ``rows_per_segment_max=50_000, mode="files"``).
    """
    cfg_options = DEFAULT_PARTITIONED_WRITE_OPTIONS if options is None else options
    if kwargs:
        cfg_options = replace(cfg_options, **kwargs)

    with PartitionedXlsxWriter(file_out, options=cfg_options, backend=backend) as xf:
        xf.write(
            data,
            header=header,
            if_write_header=if_write_header,
            cancel_event=cancel_event,
        )
    return xf.report()[0]
