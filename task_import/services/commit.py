from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, date, datetime
from typing import Any

from ..logging.error_log import ErrorLogBuffer
from ..models.commit_result import CommitResult, PersistedTask
from ..models.error_record import COMMIT_FAILED, PRECONDITION_FAILED, ErrorRecord
from ..models.staged_record import StagedRecord
from ..store.base import Parent, StoreError, TaskStore
from .normalizer import validate_record
from .progress import ProgressTracker

"""Commit engine: persist the operator-approved records under one parent.

1. preconditions (no I/O for the records yet): parent id given and known,
   at least one record, every record has projectName / pages / rate
2. under store.commit_lock(): read the existing task count E and write the
   records one at a time in original order with slNo = E+1, E+2, ...
3. the first failed write aborts the loop; earlier writes stay persisted
   (no compensating rollback) and CommitError names the failing row

Re-running a partially failed import creates duplicates for the rows that
were already written.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "PreconditionError",
    "CommitError",
    "to_timestamp",
    "build_task_document",
    "commit",
]


class PreconditionError(Exception):
    """Commit refused before any record was written."""

    def __init__(self, message: str, original_index: int | None = None) -> None:
        super().__init__(message)
        self.original_index = original_index


class CommitError(Exception):
    """A record write failed; `committed` earlier records remain persisted."""

    def __init__(self, original_index: int, reason: str, committed: list[PersistedTask]) -> None:
        self.original_index = original_index
        self.reason = reason
        self.committed = committed
        super().__init__(
            f"row #{self.row_number} failed to persist: {reason} "
            f"({len(committed)} earlier record(s) were committed)"
        )

    @property
    def row_number(self) -> int:
        return self.original_index + 1


def to_timestamp(d: date) -> str:
    """Persisted timestamp format: midnight UTC, millisecond precision."""
    return datetime(d.year, d.month, d.day, tzinfo=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_task_document(staged: StagedRecord, parent: Parent, sl_no: int) -> dict[str, Any]:
    rec = staged.record
    return {
        "slNo": sl_no,
        "clientId": parent.id,
        "clientName": parent.name,
        "projectName": rec.project_name,
        "pages": rec.pages,
        "rate": rec.rate,
        "total": rec.total,
        "amountPaid": 0,
        "workStatus": rec.work_status.value,
        "paymentStatus": rec.payment_status.value,
        "acceptedDate": to_timestamp(rec.accepted_date),
        "submissionDate": to_timestamp(rec.submission_date),
        "notes": rec.notes or "",
        "assigneeId": "",
        "assigneeName": "",
        "projectFileLink": "",
        "outputFileLink": "",
    }


def _check_preconditions(
    store: TaskStore, parent_id: str | None, records: Sequence[StagedRecord]
) -> Parent:
    if not parent_id or not str(parent_id).strip():
        raise PreconditionError("no parent selected: choose the client the tasks belong to")
    if not records:
        raise PreconditionError("no records selected: select at least one record to import")
    for staged in records:
        ok, reason = validate_record(staged.record)
        if not ok:
            raise PreconditionError(
                f"row #{staged.row_number} cannot be imported: {reason}; fix or deselect it",
                original_index=staged.original_index,
            )
    try:
        parent = store.get_parent(parent_id)
    except StoreError as e:
        raise PreconditionError(f"could not look up parent {parent_id!r}: {e}") from e
    if parent is None:
        raise PreconditionError(f"parent {parent_id!r} not found")
    return parent


def commit(
    store: TaskStore,
    parent_id: str | None,
    records: Sequence[StagedRecord],
    *,
    error_log: ErrorLogBuffer | None = None,
    source: str = "<import>",
    show_progress: bool = True,
) -> CommitResult:
    """Persist `records` under `parent_id`.

    Raises:
        PreconditionError: nothing was written
        CommitError: the write of one record failed; see .committed
    """
    start_time = datetime.now(UTC)
    ordered = sorted(records, key=lambda r: r.original_index)
    try:
        parent = _check_preconditions(store, parent_id, ordered)
    except PreconditionError as e:
        if error_log is not None:
            row = e.original_index + 1 if e.original_index is not None else -1
            error_log.append(ErrorRecord.create(source, row, PRECONDITION_FAILED, str(e)))
        raise

    committed: list[PersistedTask] = []
    with store.commit_lock():
        existing = store.count_existing_tasks()
        logger.debug(f"existing tasks={existing}; first slNo={existing + 1}")
        with ProgressTracker(len(ordered), description="Importing tasks", enabled=show_progress) as progress:
            for offset, staged in enumerate(ordered, start=1):
                document = build_task_document(staged, parent, existing + offset)
                try:
                    committed.append(store.create_task(document))
                except StoreError as e:
                    logger.error(f"row #{staged.row_number} ({staged.record.project_name!r}) failed: {e}")
                    if error_log is not None:
                        error_log.append(
                            ErrorRecord.create(source, staged.row_number, COMMIT_FAILED, str(e))
                        )
                    raise CommitError(staged.original_index, str(e), committed) from e
                progress.advance(staged.record.project_name)

    end_time = datetime.now(UTC)
    logger.info(f"committed {len(committed)} task(s) to parent {parent.id} ({parent.name})")
    return CommitResult(
        parent_id=parent.id,
        committed=len(committed),
        start_time=start_time,
        end_time=end_time,
        tasks=committed,
    )
