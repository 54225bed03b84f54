from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

"""Task record models for the bulk task import pipeline.

PartialRecord  -> Column Mapper output (raw cell values, not yet typed)
CanonicalRecord -> Normalizer output (typed, defaults applied)
NormalizationResult -> CanonicalRecord + validity verdict

Canonical field identifiers (camelCase) are the names used by JSON input,
the sample documents and the persisted task documents.
"""

__all__ = [
    "WorkStatus",
    "PaymentStatus",
    "ImportDefaults",
    "CANONICAL_FIELDS",
    "FIELD_ATTRS",
    "PartialRecord",
    "CanonicalRecord",
    "NormalizationResult",
]


class WorkStatus(Enum):
    """Work progress of a task. Values are the persisted strings."""
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


class PaymentStatus(Enum):
    """Payment state of a task. Values are the persisted strings."""
    UNPAID = "Unpaid"
    PAID = "Paid"
    PARTIALLY_PAID = "Partial"


# canonical field id -> python attribute name
FIELD_ATTRS: dict[str, str] = {
    "projectName": "project_name",
    "pages": "pages",
    "rate": "rate",
    "workStatus": "work_status",
    "paymentStatus": "payment_status",
    "notes": "notes",
    "acceptedDate": "accepted_date",
    "submissionDate": "submission_date",
}

CANONICAL_FIELDS: tuple[str, ...] = tuple(FIELD_ATTRS)


@dataclass(frozen=True)
class ImportDefaults:
    """Operator supplied defaults, applied only at normalization time."""
    rate: float | None = None  # None -> rate が無い行は invalid
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    work_status: WorkStatus = WorkStatus.PENDING
    submission_offset_days: int = 14


@dataclass(frozen=True)
class PartialRecord:
    """Best-effort mapping of one source row onto the canonical fields.

    Values are whatever the source held (strings for CSV, any JSON scalar for
    JSON input); None means the field was absent.
    """
    values: dict[str, Any]  # canonical field id -> raw value
    raw_source: dict[str, Any] = field(default_factory=dict)
    unmapped_columns: tuple[str, ...] = ()

    def get(self, field_id: str) -> Any:
        return self.values.get(field_id)


@dataclass(frozen=True)
class CanonicalRecord:
    """Typed task candidate. pages/rate are None when unparseable."""
    project_name: str
    pages: int | None
    rate: float | None
    work_status: WorkStatus
    payment_status: PaymentStatus
    accepted_date: date
    submission_date: date
    notes: str | None = None
    raw_source: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def total(self) -> float | None:
        if self.pages is None or self.rate is None:
            return None
        return self.pages * self.rate


@dataclass(frozen=True)
class NormalizationResult:
    record: CanonicalRecord
    is_valid: bool
    reason: str | None = None  # 最初に失敗したフィールドの説明
    warnings: tuple[str, ...] = ()
    rate_defaulted: bool = False
