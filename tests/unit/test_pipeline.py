from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from task_import.logging.error_log import ErrorLogBuffer
from task_import.models.error_record import INVALID_ROW, PARSE_ERROR
from task_import.models.task_record import ImportDefaults, PaymentStatus
from task_import.services.column_mapper import ColumnMapper, build_synonym_table
from task_import.services.commit import CommitError
from task_import.services.pipeline import commit_session, preview_file, preview_text
from task_import.services.review import ReviewSession
from task_import.store.base import Parent
from task_import.store.memory import InMemoryTaskStore
from task_import.tabular.reader import HeaderError

TODAY = date(2024, 3, 1)


def test_preview_csv_export(scenario_csv: str):
    session = ReviewSession()
    staged = preview_text(session, scenario_csv, today=TODAY)
    assert len(staged) == 3
    assert all(r.is_valid and r.selected for r in staged)
    first = staged[0].record
    assert first.project_name == "Website Redesign"
    assert first.total == 1200
    assert first.work_status.value == "In Progress"
    assert first.accepted_date == date(2024, 1, 15)


def test_preview_applies_session_default_rate():
    session = ReviewSession(ImportDefaults(rate=100))
    staged = preview_text(session, "Task Name,Count\nLogo,3\n", today=TODAY)
    rec = staged[0]
    assert rec.is_valid
    assert rec.record.rate == 100
    assert rec.record.total == 300


def test_preview_invalid_row_is_staged_deselected_and_logged():
    session = ReviewSession()
    error_log = ErrorLogBuffer()
    staged = preview_text(
        session,
        "Project,Pages,Rate\nFlyer,abc,50\nPoster,2,40\n",
        source="paste",
        error_log=error_log,
        today=TODAY,
    )
    assert [r.is_valid for r in staged] == [False, True]
    assert [r.selected for r in staged] == [False, True]
    assert staged[0].reason.startswith("pages")
    rec = error_log.records[0]
    assert (rec.error_type, rec.row, rec.field, rec.source) == (INVALID_ROW, 1, "pages", "paste")


def test_preview_parse_error_keeps_previous_working_set(scenario_csv: str):
    session = ReviewSession()
    preview_text(session, scenario_csv, today=TODAY)
    error_log = ErrorLogBuffer()
    with pytest.raises(HeaderError):
        preview_text(session, "   ", error_log=error_log)
    assert len(session) == 3
    assert error_log.records[0].error_type == PARSE_ERROR
    assert error_log.records[0].row == -1


def test_preview_json_uses_canonical_keys():
    session = ReviewSession()
    text = json.dumps([{"projectName": "A", "pages": 5, "rate": 100, "paymentStatus": "Paid"}])
    staged = preview_text(session, text, "json", today=TODAY)
    assert staged[0].record.payment_status is PaymentStatus.PAID
    assert staged[0].record.total == 500


def test_preview_uses_custom_mapper():
    session = ReviewSession(ImportDefaults(rate=10))
    mapper = ColumnMapper(build_synonym_table({"projectName": ["Job"]}))
    staged = preview_text(session, "Job,Pages\nBrochure,4\n", mapper=mapper, today=TODAY)
    assert staged[0].record.project_name == "Brochure"


def test_preview_file(csv_file: Path):
    session = ReviewSession()
    staged = preview_file(session, csv_file, today=TODAY)
    assert [r.record.project_name for r in staged] == ["Website Redesign", "Logo Design", "Mobile App UI"]


def test_json_import_commits_with_next_sl_numbers(store: InMemoryTaskStore):
    session = ReviewSession()
    text = json.dumps(
        [
            {"projectName": "Website Redesign", "pages": 8, "rate": 150},
            {"projectName": "Logo Design", "pages": 3, "rate": 200},
        ]
    )
    preview_text(session, text, "json", today=TODAY)
    result = commit_session(session, store, "client-1", show_progress=False)
    assert result.sl_numbers == [6, 7]
    assert [t.document["total"] for t in result.tasks] == [1200, 600]
    assert len(session) == 0


def test_failed_commit_keeps_session(parent: Parent):
    store = InMemoryTaskStore(parents=[parent], fail_on=lambda doc: doc["projectName"] == "Logo Design")
    session = ReviewSession()
    preview_text(session, "Title,Pages,Rate\nWebsite,8,150\nLogo Design,3,200\nApp,12,120\n", today=TODAY)
    with pytest.raises(CommitError):
        commit_session(session, store, parent.id, show_progress=False)
    assert len(session) == 3
    assert len(store.tasks) == 1
