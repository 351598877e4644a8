"""Parallel row encoding with a single-owner writer.

Encoding is pure, so chunks of rows are encoded on a thread pool. Appending
is not: the consumer of :func:`generate_encoded_rows_parallel` (the stream
writer, on the caller's thread) is the only code that touches the open
segment. Workers hand finished chunks back over a queue; the consumer keeps a
reorder buffer keyed by chunk index and releases rows strictly in dataset
order, whatever order the chunks finish in.
"""

import itertools
import queue
from collections.abc import Callable, Iterable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any, NamedTuple

from loguru import logger

from .spec import SpecEncodedCell

TypeEncodedRow = tuple[SpecEncodedCell, ...]


class SpecEncodedChunk(NamedTuple):
    idx_chunk: int
    rows: list[TypeEncodedRow] | None
    error: BaseException | None


def generate_row_chunks(
    rows: Iterable[Sequence[Any]], size_rows_chunk: int
) -> Iterator[tuple[int, list[Sequence[Any]]]]:
    """Yield ``(idx_chunk, rows)`` slices of at most ``size_rows_chunk`` rows."""
    if size_rows_chunk <= 0:
        raise ValueError(f"size_rows_chunk must be >= 1, got {size_rows_chunk}.")
    iter_rows = iter(rows)
    for _idx_chunk in itertools.count():
        l_chunk = list(itertools.islice(iter_rows, size_rows_chunk))
        if not l_chunk:
            return
        yield _idx_chunk, l_chunk


def generate_encoded_rows_parallel(
    rows: Iterable[Sequence[Any]],
    *,
    encode: Callable[[Sequence[Any]], TypeEncodedRow],
    n_workers: int,
    size_chunk: int,
) -> Iterator[TypeEncodedRow]:
    """
    Encode ``rows`` on ``n_workers`` threads and yield them in input order.

    At most ``2 * n_workers`` chunks are pulled from ``rows`` but not yet
    yielded, which bounds memory regardless of dataset size. The source
    iterator is only advanced on the consuming thread. A worker failure is
    re-raised to the consumer.
    """
    if n_workers < 1:
        raise ValueError(f"n_workers must be >= 1, got {n_workers}")

    q_done: queue.Queue[SpecEncodedChunk] = queue.Queue()
    dict_reorder: dict[int, list[TypeEncodedRow]] = {}
    n_chunks_in_flight_max = 2 * n_workers

    def _encode_chunk(idx_chunk: int, l_rows: list[Sequence[Any]]) -> None:
        try:
            q_done.put(SpecEncodedChunk(idx_chunk, [encode(_r) for _r in l_rows], None))
        except BaseException as exc:  # handed to the consumer and re-raised there
            q_done.put(SpecEncodedChunk(idx_chunk, None, exc))

    iter_chunks = generate_row_chunks(rows, size_chunk)
    n_submitted = 0
    n_idx_next = 0
    b_exhausted = False

    cls_executor = ThreadPoolExecutor(
        max_workers=n_workers, thread_name_prefix="sheetkit-encode"
    )
    logger.debug(f"Parallel encoding: workers={n_workers}, chunk={size_chunk} rows")
    try:
        while True:
            while not b_exhausted and n_submitted - n_idx_next < n_chunks_in_flight_max:
                cfg_chunk = next(iter_chunks, None)
                if cfg_chunk is None:
                    b_exhausted = True
                    break
                cls_executor.submit(_encode_chunk, *cfg_chunk)
                n_submitted += 1

            if b_exhausted and n_idx_next == n_submitted:
                return

            cls_chunk = q_done.get()
            if cls_chunk.error is not None:
                raise cls_chunk.error
            assert cls_chunk.rows is not None
            dict_reorder[cls_chunk.idx_chunk] = cls_chunk.rows

            while n_idx_next in dict_reorder:
                yield from dict_reorder.pop(n_idx_next)
                n_idx_next += 1
    finally:
        cls_executor.shutdown(wait=True, cancel_futures=True)
