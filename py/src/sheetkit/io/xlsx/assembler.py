import os
import threading
import uuid
from collections.abc import Sequence
from contextlib import suppress
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from .conf import N_LEN_SHEET_NAME_MAX
from .document import Document, DocumentBackend, SheetSink
from .errors import SegmentWriteError
from .partition import create_file_identifier, derive_segment_name
from .spec import (
    EnumOutputMode,
    EnumSegmentState,
    SpecEncodedCell,
    SpecSegmentName,
    SpecSegmentPlan,
    SpecSegmentResult,
)


def _derive_temp_path(file_out: Path) -> Path:
    # same directory, so the final os.replace is an atomic rename
    return file_out.with_name(
        f".{file_out.stem}.{uuid.uuid4().hex[:8]}.tmp{file_out.suffix}"
    )


@dataclass(slots=True)
class SegmentHandle:
    """Open, append-only window onto one segment."""

    plan: SpecSegmentPlan
    name: SpecSegmentName
    sheet: SheetSink
    if_has_header: bool
    state: EnumSegmentState = EnumSegmentState.EMPTY
    n_rows_data: int = 0
    n_rows_unflushed: int = 0
    n_flushes: int = 0

    @property
    def n_row_offset_next(self) -> int:
        return self.plan.row_start_inclusive + self.n_rows_data

    def append_row(self, cells: Sequence[SpecEncodedCell]) -> None:
        if self.state is not EnumSegmentState.OPEN:
            raise RuntimeError(
                f"Segment {self.plan.idx_segment} is {self.state}; appends need an open segment."
            )
        self.sheet.append_row(cells)
        self.n_rows_data += 1
        self.n_rows_unflushed += 1

    def flush(self) -> bool:
        if self.n_rows_unflushed == 0:
            return False
        self.sheet.flush()
        self.n_flushes += 1
        self.n_rows_unflushed = 0
        return True


class SegmentAssembler:
    """
    Owns segment lifecycle: naming, opening, finalizing and aborting.

    Every segment moves through ``EMPTY -> OPEN -> FINALIZED`` (or
    ``ABORTED``), one segment at a time. In ``files`` mode each segment is its
    own document, written to a temp file next to the target and moved into
    place on finalize; the document is dropped before the next one opens. In
    ``sheets`` mode all segments are sheets of one shared document which is
    serialized, the same way, by :meth:`close`.

    Args:
        file_out: Target file (``sheets``) or base name for the numbered
            segment files (``files``: ``<stem>_<idx><suffix>``).
        mode: Output strategy, fixed for the assembler's lifetime.
        backend: Document model used to create documents.
    """

    def __init__(
        self,
        file_out: os.PathLike[str] | str,
        *,
        mode: EnumOutputMode,
        backend: DocumentBackend,
    ):
        self.file_out = Path(file_out)
        self.mode = EnumOutputMode(mode)
        self.backend = backend
        if self.mode is EnumOutputMode.SHEETS and not backend.if_supports_sheets:
            raise ValueError(
                f"{type(backend).__name__} holds one sheet per file; use mode='files'."
            )

        self._lock = threading.Lock()
        self._handle_open: SegmentHandle | None = None
        self._document_open: Document | None = None
        self._path_tmp_open: Path | None = None
        self._document_shared: Document | None = None
        self._path_tmp_shared: Path | None = None
        self._existing_sheet_names: set[str] = set()
        self._results: list[SpecSegmentResult] = []
        self._if_closed = False

    @property
    def results(self) -> tuple[SpecSegmentResult, ...]:
        return tuple(self._results)

    def _create_unique_sheet_name(self, name: str) -> str:
        if name not in self._existing_sheet_names:
            self._existing_sheet_names.add(name)
            return name

        # deterministic bump: name__2, name__3 ...
        c_base_name = name[: max(1, N_LEN_SHEET_NAME_MAX - 3)]
        i = 2
        c_candidate_name = f"{c_base_name}__{i}"[:N_LEN_SHEET_NAME_MAX]
        while c_candidate_name in self._existing_sheet_names:
            i += 1
            c_candidate_name = f"{c_base_name}__{i}"[:N_LEN_SHEET_NAME_MAX]
        self._existing_sheet_names.add(c_candidate_name)
        return c_candidate_name

    def _open_shared_document(self) -> Document:
        if self._document_shared is None:
            self.file_out.parent.mkdir(parents=True, exist_ok=True)
            self._path_tmp_shared = _derive_temp_path(self.file_out)
            self._document_shared = self.backend.open_document(self._path_tmp_shared)
        return self._document_shared

    def open_segment(
        self,
        plan: SpecSegmentPlan,
        *,
        sheet_name_base: str,
        header: Sequence[SpecEncodedCell] | None = None,
    ) -> SegmentHandle:
        with self._lock:
            if self._if_closed:
                raise RuntimeError("Assembler is closed.")
            if self._handle_open is not None:
                raise RuntimeError(
                    f"Segment {self._handle_open.plan.idx_segment} is still open."
                )

            cls_name = derive_segment_name(
                idx_segment=plan.idx_segment,
                mode=self.mode,
                file_out=self.file_out,
                sheet_name_base=sheet_name_base,
            )
            if self.mode is EnumOutputMode.SHEETS:
                cls_name = SpecSegmentName(
                    sheet_name=self._create_unique_sheet_name(cls_name.sheet_name),
                    file_out=cls_name.file_out,
                )
                cfg_document = self._open_shared_document()
            else:
                cls_name.file_out.parent.mkdir(parents=True, exist_ok=True)
                if cls_name.file_out.exists():
                    logger.warning(f"Overwriting existing segment file {cls_name.file_out}")
                self._path_tmp_open = _derive_temp_path(cls_name.file_out)
                cfg_document = self.backend.open_document(self._path_tmp_open)
                self._document_open = cfg_document

            cls_handle = SegmentHandle(
                plan=plan,
                name=cls_name,
                sheet=cfg_document.add_sheet(cls_name.sheet_name),
                if_has_header=bool(header),
            )
            if header:
                cls_handle.sheet.append_row(header, if_header=True)
            cls_handle.state = EnumSegmentState.OPEN
            self._handle_open = cls_handle

        logger.debug(
            f"Open segment {plan.idx_segment}: sheet={cls_name.sheet_name!r} file={cls_name.file_out}"
        )
        return cls_handle

    def finalize(self, handle: SegmentHandle) -> SpecSegmentResult:
        """
        Make ``handle`` durable and immutable.

        In ``files`` mode the segment file exists under its final name when
        this returns. Raises ``RuntimeError`` for a segment that is not open.
        """
        with self._lock:
            if handle.state is not EnumSegmentState.OPEN or handle is not self._handle_open:
                raise RuntimeError(
                    f"Segment {handle.plan.idx_segment} is {handle.state}; only an open segment can be finalized."
                )
            handle.flush()
            if self.mode is EnumOutputMode.FILES:
                assert self._document_open is not None and self._path_tmp_open is not None
                self._document_open.close()
                os.replace(self._path_tmp_open, handle.name.file_out)
                self._document_open = None
                self._path_tmp_open = None

            handle.state = EnumSegmentState.FINALIZED
            self._handle_open = None
            cls_result = SpecSegmentResult(
                idx_segment=handle.plan.idx_segment,
                sheet_name=handle.name.sheet_name,
                file_out=handle.name.file_out,
                row_start_inclusive=handle.plan.row_start_inclusive,
                row_end_exclusive=handle.n_row_offset_next,
                n_flushes=handle.n_flushes,
                if_has_header=handle.if_has_header,
            )
            self._results.append(cls_result)

        logger.info(
            f"Finalized segment {cls_result.idx_segment}: {cls_result.n_rows} rows "
            f"-> {cls_result.file_out} [{cls_result.sheet_name}]"
        )
        return cls_result

    def abort(self, handle: SegmentHandle | None = None) -> None:
        """
        Drop the open segment without producing output for it.

        In ``sheets`` mode the shared document cannot lose a single sheet, so
        the whole document is discarded.
        """
        with self._lock:
            cls_handle = self._handle_open if handle is None else handle
            if cls_handle is not None and cls_handle.state is EnumSegmentState.OPEN:
                cls_handle.state = EnumSegmentState.ABORTED
                logger.error(
                    f"Aborted segment {cls_handle.plan.idx_segment} at row offset {cls_handle.n_row_offset_next}."
                )
            self._handle_open = None

            if self._document_open is not None:
                self._document_open.discard()
            if self._path_tmp_open is not None:
                self._path_tmp_open.unlink(missing_ok=True)
            self._document_open = None
            self._path_tmp_open = None

            if self.mode is EnumOutputMode.SHEETS:
                self._discard_shared_document()

    def _discard_shared_document(self) -> None:
        if self._document_shared is not None:
            self._document_shared.discard()
        if self._path_tmp_shared is not None:
            self._path_tmp_shared.unlink(missing_ok=True)
        self._document_shared = None
        self._path_tmp_shared = None
        self._if_closed = True

    def close(self) -> None:
        """
        Serialize the shared document (``sheets`` mode) and release everything.

        Raises:
            SegmentWriteError: If the shared document cannot be written. No
                workbook is left behind; the error points at the last segment.
        """
        with self._lock:
            if self._if_closed:
                return
            if self._handle_open is not None:
                raise RuntimeError(
                    f"Segment {self._handle_open.plan.idx_segment} is still open; finalize or abort it first."
                )
            self._if_closed = True
            if self.mode is EnumOutputMode.FILES:
                self._warn_stale_segment_file()
            if self._document_shared is None:
                return
            assert self._path_tmp_shared is not None
            try:
                self._document_shared.close()
                os.replace(self._path_tmp_shared, self.file_out)
            except OSError as exc:
                with suppress(OSError):
                    self._document_shared.discard()
                self._path_tmp_shared.unlink(missing_ok=True)
                cls_result_last = self._results[-1] if self._results else None
                logger.error(f"Failed to write workbook {self.file_out}: {exc}")
                raise SegmentWriteError(
                    f"I/O failure while writing workbook {self.file_out}: {exc}",
                    idx_segment=cls_result_last.idx_segment if cls_result_last else 1,
                    n_row_offset=(
                        cls_result_last.row_start_inclusive if cls_result_last else 0
                    ),
                    n_row_failed=(
                        cls_result_last.row_end_exclusive if cls_result_last else 0
                    ),
                ) from exc
            finally:
                self._document_shared = None
                self._path_tmp_shared = None
        logger.info(f"Wrote workbook {self.file_out}")

    def _warn_stale_segment_file(self) -> None:
        # left over from an earlier, longer run into the same base name
        if not self._results:
            return
        file_next = create_file_identifier(
            self.file_out, self._results[-1].idx_segment + 1
        )
        if file_next.exists():
            logger.warning(
                f"Stale segment file {file_next} from an earlier write sits next to "
                f"the {len(self._results)} segment file(s) just written."
            )
