from __future__ import annotations

from datetime import UTC, datetime

import pytest

from task_import.models.commit_result import CommitResult, PersistedTask
from task_import.services.review import SessionCounts
from task_import.services.summary import (
    format_seconds,
    render_commit_summary,
    render_failure_summary,
    render_preview_summary,
)


@pytest.mark.parametrize(
    "value, expected",
    [(0, "0"), (2.0, "2"), (1.5, "1.5"), (0.1234, "0.123"), (0.000123, "0.000123")],
)
def test_format_seconds(value: float, expected: str):
    assert format_seconds(value) == expected


def test_render_preview_summary():
    line = render_preview_summary(SessionCounts(total=10, valid=8, invalid=2, selected=7))
    assert line == "SUMMARY rows=10 valid=8 invalid=2 selected=7"


def test_render_commit_summary():
    start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=UTC)
    end = datetime(2024, 1, 1, 10, 0, 1, 500000, tzinfo=UTC)
    result = CommitResult(
        parent_id="client-1",
        committed=2,
        start_time=start,
        end_time=end,
        tasks=[PersistedTask("a", 6, {}), PersistedTask("b", 7, {})],
    )
    assert render_commit_summary(result, 2) == (
        "SUMMARY committed=2/2 parent=client-1 first_sl_no=6 last_sl_no=7 elapsed_sec=1.5"
    )


def test_render_commit_summary_without_tasks():
    now = datetime(2024, 1, 1, tzinfo=UTC)
    result = CommitResult(parent_id="c", committed=0, start_time=now, end_time=now)
    assert render_commit_summary(result, 0) == (
        "SUMMARY committed=0/0 parent=c first_sl_no=- last_sl_no=- elapsed_sec=0"
    )


def test_render_failure_summary():
    assert render_failure_summary(1, 3, "client-1", 2) == "SUMMARY committed=1/3 parent=client-1 failed_row=2"
