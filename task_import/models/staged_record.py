from __future__ import annotations

from dataclasses import dataclass

from .task_record import CanonicalRecord

"""StagedRecord model: one operator-reviewable row of the review session."""

__all__ = [
    "StagedRecord",
]


@dataclass
class StagedRecord:
    """CanonicalRecord wrapped with review-session state.

    Unlike the other models this one is mutable: the review session flips
    `selected` and swaps `record` when the operator edits a field.
    `original_index` is 0-based and never changes once staged.
    """
    id: str  # session-local id, not a persistence key
    original_index: int
    record: CanonicalRecord
    is_valid: bool
    selected: bool
    reason: str | None = None
    warnings: tuple[str, ...] = ()

    @property
    def row_number(self) -> int:
        """1-based row number shown to the operator."""
        return self.original_index + 1
