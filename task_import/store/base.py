from __future__ import annotations

from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Any, Protocol

from ..models.commit_result import PersistedTask

"""Persistence collaborator interface.

The import pipeline only needs four things from the document store: the
parent (client) list, one parent lookup, the existing task count for slNo
numbering and a single-task create. commit_lock() serializes concurrent
importers around the count-then-create loop.
"""

__all__ = [
    "Parent",
    "StoreError",
    "TaskStore",
]


class StoreError(Exception):
    """Raised by store implementations when a read or write fails."""


@dataclass(frozen=True)
class Parent:
    """Client record that imported tasks are attached to."""
    id: str
    name: str


class TaskStore(Protocol):
    def list_parents(self) -> list[Parent]: ...

    def get_parent(self, parent_id: str) -> Parent | None: ...

    def count_existing_tasks(self) -> int: ...

    def create_task(self, document: dict[str, Any]) -> PersistedTask: ...

    def commit_lock(self) -> AbstractContextManager[None]: ...
