from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

"""Commit result models."""

__all__ = [
    "PersistedTask",
    "CommitResult",
]


@dataclass(frozen=True)
class PersistedTask:
    """A task as returned by the store after creation."""
    id: str
    sl_no: int
    document: dict[str, Any]


@dataclass(frozen=True)
class CommitResult:
    """Outcome of a fully successful commit."""
    parent_id: str
    committed: int
    start_time: datetime
    end_time: datetime
    tasks: list[PersistedTask] = field(default_factory=list)

    @property
    def elapsed_seconds(self) -> float:
        return (self.end_time - self.start_time).total_seconds()

    @property
    def sl_numbers(self) -> list[int]:
        return [t.sl_no for t in self.tasks]
