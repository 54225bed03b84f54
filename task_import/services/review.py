from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from ..models.staged_record import StagedRecord
from ..models.task_record import ImportDefaults, NormalizationResult
from .normalizer import apply_patch, validate_record

"""Staged review store.

ReviewSession is the operator's in-memory working set between "preview" and
"commit". It is owned by the caller and passed explicitly; there is no module
level state. All operations are synchronous and do no I/O.

Validity is computed once at normalization time. update() does not touch it;
revalidate() recomputes it on explicit request and leaves `selected` alone.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "ReviewSession",
    "SessionCounts",
    "UnknownRecordError",
]


class UnknownRecordError(KeyError):
    """Raised when an id is not (or no longer) part of the session."""


@dataclass(frozen=True)
class SessionCounts:
    total: int
    valid: int
    invalid: int
    selected: int


class ReviewSession:
    """Operator-editable working set of StagedRecords.

    Records keep insertion (= source) order; ids are random and only
    meaningful inside this session.
    """

    def __init__(self, defaults: ImportDefaults | None = None) -> None:
        self._defaults = defaults or ImportDefaults()
        self._records: dict[str, StagedRecord] = {}

    @property
    def defaults(self) -> ImportDefaults:
        return self._defaults

    def set_defaults(self, defaults: ImportDefaults) -> None:
        """Replace the session defaults. Already staged records are not re-normalized."""
        self._defaults = defaults

    def stage(self, results: Iterable[NormalizationResult]) -> list[StagedRecord]:
        """Replace the working set with freshly normalized records.

        original_index follows input order; selected starts equal to is_valid.
        """
        self._records = {}
        staged: list[StagedRecord] = []
        for index, res in enumerate(results):
            rec = StagedRecord(
                id=uuid.uuid4().hex,
                original_index=index,
                record=res.record,
                is_valid=res.is_valid,
                selected=res.is_valid,
                reason=res.reason,
                warnings=res.warnings,
            )
            self._records[rec.id] = rec
            staged.append(rec)
        logger.debug(f"staged {len(staged)} records")
        return staged

    def _get(self, record_id: str) -> StagedRecord:
        try:
            return self._records[record_id]
        except KeyError:
            raise UnknownRecordError(record_id) from None

    def get(self, record_id: str) -> StagedRecord:
        return self._get(record_id)

    def find_by_row(self, row_number: int) -> StagedRecord:
        """Look a record up by its 1-based source row number."""
        for rec in self._records.values():
            if rec.row_number == row_number:
                return rec
        raise UnknownRecordError(f"row #{row_number}")

    def records(self) -> list[StagedRecord]:
        return list(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def toggle_selection(self, record_id: str) -> bool:
        rec = self._get(record_id)
        rec.selected = not rec.selected
        return rec.selected

    def set_selected(self, record_id: str, selected: bool) -> None:
        self._get(record_id).selected = selected

    def select_all(self) -> None:
        for rec in self._records.values():
            rec.selected = True

    def deselect_all(self) -> None:
        for rec in self._records.values():
            rec.selected = False

    def update(self, record_id: str, patch: Mapping[str, Any]) -> StagedRecord:
        """Apply an operator edit without re-running validation."""
        rec = self._get(record_id)
        rec.record = apply_patch(rec.record, patch)
        return rec

    def revalidate(self, record_id: str) -> bool:
        """Recompute is_valid/reason from the record's current values."""
        rec = self._get(record_id)
        rec.is_valid, rec.reason = validate_record(rec.record)
        return rec.is_valid

    def remove(self, record_id: str) -> StagedRecord:
        """Drop a record; survivors keep their original_index."""
        rec = self._get(record_id)
        del self._records[record_id]
        return rec

    def selected(self) -> list[StagedRecord]:
        """Selected records in original order."""
        return sorted((r for r in self._records.values() if r.selected), key=lambda r: r.original_index)

    def counts(self) -> SessionCounts:
        recs = self._records.values()
        valid = sum(1 for r in recs if r.is_valid)
        return SessionCounts(
            total=len(self._records),
            valid=valid,
            invalid=len(self._records) - valid,
            selected=sum(1 for r in recs if r.selected),
        )

    def clear(self) -> None:
        self._records = {}

    def snapshot(self) -> list[StagedRecord]:
        """Detached copies, safe to hand to code that must not mutate the session."""
        return [replace(r) for r in self._records.values()]
