from __future__ import annotations

import importlib.util
import time
from datetime import date
from pathlib import Path

import pytest

from task_import.models.task_record import ImportDefaults
from task_import.services.commit import commit
from task_import.services.pipeline import preview_file
from task_import.services.review import ReviewSession
from task_import.store.base import Parent
from task_import.store.memory import InMemoryTaskStore

"""Throughput check: generated task export -> preview -> commit (memory store).

Time limits are lenient so CI stays green on slow runners; they catch accidental
quadratic behaviour rather than measure the machine.
"""

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "gen_task_dataset.py"
ROWS = 2_000


def _load_generator():
    spec = importlib.util.spec_from_file_location("gen_task_dataset", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.mark.perf
def test_generated_export_preview_and_commit(tmp_path: Path):
    gen = _load_generator()
    path = tmp_path / "tasks.csv"
    gen.write_dataset(path, gen.generate_task_frame(ROWS, invalid_ratio=0.05, seed=1))

    session = ReviewSession(ImportDefaults(rate=100))
    start = time.perf_counter()
    staged = preview_file(session, path, today=date(2024, 3, 1))
    preview_elapsed = time.perf_counter() - start

    assert len(staged) == ROWS
    counts = session.counts()
    assert 0 < counts.invalid < ROWS * 0.1
    assert counts.selected == counts.valid
    assert all(r.reason.startswith("pages") for r in staged if not r.is_valid)
    assert preview_elapsed < 30, f"preview too slow: {preview_elapsed:.2f}s"

    store = InMemoryTaskStore(parents=[Parent("c1", "Acme")])
    start = time.perf_counter()
    result = commit(store, "c1", session.selected(), show_progress=False)
    commit_elapsed = time.perf_counter() - start

    assert result.sl_numbers == list(range(1, counts.valid + 1))
    assert commit_elapsed < 10, f"commit too slow: {commit_elapsed:.2f}s"


@pytest.mark.perf
def test_generated_xlsx_export_is_readable(tmp_path: Path):
    gen = _load_generator()
    path = tmp_path / "tasks.xlsx"
    gen.write_dataset(path, gen.generate_task_frame(200, invalid_ratio=0.0, seed=3))
    session = ReviewSession()
    staged = preview_file(session, path, today=date(2024, 3, 1))
    assert len(staged) == 200
    assert session.counts().invalid == 0
    assert staged[0].record.rate is not None
