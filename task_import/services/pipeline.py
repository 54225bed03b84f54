from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import date
from pathlib import Path
from typing import Any

from ..logging.error_log import ErrorLogBuffer
from ..models.commit_result import CommitResult
from ..models.error_record import INVALID_ROW, PARSE_ERROR, ErrorRecord
from ..models.staged_record import StagedRecord
from ..models.task_record import NormalizationResult
from ..store.base import TaskStore
from ..tabular.reader import ParseError, parse_csv, parse_json, read_source_file
from .column_mapper import ColumnMapper, partial_from_json
from .commit import commit
from .normalizer import normalize_all
from .review import ReviewSession

"""Import pipeline orchestration.

preview: raw text/file -> (CSV) Tabular Parser -> Column Mapper
         (JSON) canonical keys taken as-is
         -> Normalizer -> ReviewSession.stage
commit:  ReviewSession.selected() -> Commit Engine -> session cleared

Parse errors abort before anything is staged (the previous working set is
kept). Invalid rows are staged deselected and recorded in the error log.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "normalize_rows",
    "preview_text",
    "preview_file",
    "commit_session",
]


def normalize_rows(
    rows: Iterable[Mapping[str, Any]],
    kind: str,
    session: ReviewSession,
    *,
    mapper: ColumnMapper | None = None,
    today: date | None = None,
) -> list[NormalizationResult]:
    """Map (tabular input only) and normalize rows with the session defaults."""
    if kind == "json":
        partials = [partial_from_json(r) for r in rows]
    else:
        mapper = mapper or ColumnMapper()
        partials = mapper.map_rows(rows)
    return normalize_all(partials, session.defaults, today=today)


def _stage(
    session: ReviewSession,
    results: list[NormalizationResult],
    source: str,
    error_log: ErrorLogBuffer | None,
) -> list[StagedRecord]:
    staged = session.stage(results)
    for rec in staged:
        for w in rec.warnings:
            logger.debug(f"{source} row #{rec.row_number}: {w}")
        if not rec.is_valid:
            logger.warning(f"{source} row #{rec.row_number} invalid: {rec.reason}")
            if error_log is not None:
                field = (rec.reason or "").split(" ", 1)[0]
                error_log.append(
                    ErrorRecord.create(source, rec.row_number, INVALID_ROW, rec.reason or "", field=field)
                )
    counts = session.counts()
    logger.info(f"{source}: staged {counts.total} record(s), {counts.valid} valid, {counts.invalid} invalid")
    return staged


def _log_parse_error(error_log: ErrorLogBuffer | None, source: str, e: ParseError) -> None:
    logger.error(f"{source}: {e}")
    if error_log is not None:
        error_log.append(ErrorRecord.create(source, -1, PARSE_ERROR, str(e)))


def preview_text(
    session: ReviewSession,
    text: str,
    kind: str = "csv",
    *,
    mapper: ColumnMapper | None = None,
    source: str = "<input>",
    error_log: ErrorLogBuffer | None = None,
    today: date | None = None,
) -> list[StagedRecord]:
    """Stage pasted CSV or JSON text into the session.

    Raises:
        ParseError: header missing / JSON malformed; the session is unchanged
    """
    try:
        rows = parse_json(text) if kind == "json" else parse_csv(text)
    except ParseError as e:
        _log_parse_error(error_log, source, e)
        raise
    results = normalize_rows(rows, kind, session, mapper=mapper, today=today)
    return _stage(session, results, source, error_log)


def preview_file(
    session: ReviewSession,
    path: Path,
    kind: str | None = None,
    *,
    mapper: ColumnMapper | None = None,
    error_log: ErrorLogBuffer | None = None,
    today: date | None = None,
) -> list[StagedRecord]:
    """Stage an uploaded .csv/.txt/.json/.xlsx file into the session."""
    try:
        doc = read_source_file(path, kind)
    except ParseError as e:
        _log_parse_error(error_log, path.name, e)
        raise
    results = normalize_rows(doc.rows, doc.kind, session, mapper=mapper, today=today)
    return _stage(session, results, doc.name, error_log)


def commit_session(
    session: ReviewSession,
    store: TaskStore,
    parent_id: str | None,
    *,
    error_log: ErrorLogBuffer | None = None,
    source: str = "<import>",
    show_progress: bool = True,
) -> CommitResult:
    """Commit the selected records; the session is discarded only on full success."""
    result = commit(
        store,
        parent_id,
        session.selected(),
        error_log=error_log,
        source=source,
        show_progress=show_progress,
    )
    session.clear()
    return result
