class SegmentWriteError(OSError):
    """
    An I/O failure while writing a segment.

    The whole partitioned write is aborted. Segments finalized before the
    failure stay on disk; the failing segment's partial output is removed.

    Attributes:
        idx_segment: 1-based ordinal of the segment being written.
        n_row_offset: 0-based dataset offset at which the failed segment
            starts. In files mode every earlier row sits in a finalized
            segment file, so this is where a resumed write picks up.
        n_row_failed: 0-based dataset offset of the first row that had not
            been appended when the failure occurred.
    """

    def __init__(
        self,
        message: str,
        *,
        idx_segment: int,
        n_row_offset: int,
        n_row_failed: int,
    ):
        super().__init__(message)
        self.idx_segment = idx_segment
        self.n_row_offset = n_row_offset
        self.n_row_failed = n_row_failed

    def __str__(self) -> str:
        return (
            f"{self.args[0]} (segment={self.idx_segment}, "
            f"row_offset={self.n_row_offset}, failed_at_row={self.n_row_failed})"
        )


class WriteCancelledError(RuntimeError):
    def __init__(self, *, idx_segment: int, n_row_offset: int):
        super().__init__(
            f"Partitioned write cancelled at segment {idx_segment}, "
            f"row offset {n_row_offset}."
        )
        self.idx_segment = idx_segment
        self.n_row_offset = n_row_offset
