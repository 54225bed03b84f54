from __future__ import annotations

import threading
import uuid
from collections.abc import Callable, Iterable
from contextlib import contextmanager
from typing import Any, Iterator

from ..models.commit_result import PersistedTask
from .base import Parent, StoreError

"""In-memory task store (mock mode when no database is configured, and tests)."""


class InMemoryTaskStore:
    """Dict backed TaskStore.

    fail_on: optional predicate over the task document; when it returns True
    create_task raises StoreError instead of storing (used to simulate write
    failures).
    """

    def __init__(
        self,
        parents: Iterable[Parent] = (),
        tasks: Iterable[dict[str, Any]] = (),
        fail_on: Callable[[dict[str, Any]], bool] | None = None,
    ) -> None:
        self._parents = {p.id: p for p in parents}
        self.tasks: list[dict[str, Any]] = [dict(t) for t in tasks]
        self.fail_on = fail_on
        self._lock = threading.Lock()

    def list_parents(self) -> list[Parent]:
        return sorted(self._parents.values(), key=lambda p: p.name.casefold())

    def get_parent(self, parent_id: str) -> Parent | None:
        return self._parents.get(parent_id)

    def count_existing_tasks(self) -> int:
        return len(self.tasks)

    def create_task(self, document: dict[str, Any]) -> PersistedTask:
        if self.fail_on is not None and self.fail_on(document):
            raise StoreError(f"write rejected for task {document.get('projectName')!r}")
        stored = dict(document, id=uuid.uuid4().hex)
        self.tasks.append(stored)
        return PersistedTask(id=stored["id"], sl_no=stored["slNo"], document=stored)

    @contextmanager
    def commit_lock(self) -> Iterator[None]:
        with self._lock:
            yield
