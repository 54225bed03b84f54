from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from ..models.task_record import CANONICAL_FIELDS, PartialRecord

"""Column mapper: arbitrary source headers -> canonical task fields.

The synonym table is plain data (canonical field -> ordered header labels)
so it can be listed, extended from config and tested on its own. Header
labels are compared after `header_key()` folding: case, whitespace and
punctuation are ignored ("Project Name", "project_name" and "projectName"
all fold to "projectname").

Column precedence for one field is the header order: the left-most matching
column with a non-blank cell wins; when every matching cell is blank the
left-most column still supplies the (blank) value. A column is never used for
two fields. The mapper never rejects a row.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_SYNONYMS",
    "header_key",
    "build_synonym_table",
    "ColumnMapper",
    "map_row",
    "partial_from_json",
]

DEFAULT_SYNONYMS: dict[str, tuple[str, ...]] = {
    "projectName": ("projectName", "Project Name", "Project", "Task Name", "Task", "Title", "Name"),
    "pages": ("pages", "Page Count", "Pages Count", "No of Pages", "Count"),
    "rate": ("rate", "Rate Per Page", "Price", "Cost"),
    "workStatus": ("workStatus", "Work Status", "Status", "Progress"),
    "paymentStatus": ("paymentStatus", "Payment Status", "Payment", "Paid"),
    "notes": ("notes", "Note", "Description", "Details", "Remarks", "Comments"),
    "acceptedDate": ("acceptedDate", "Accepted Date", "Start Date", "Accepted", "Created", "Created Time"),
    "submissionDate": ("submissionDate", "Submission Date", "Due Date", "Due", "Deadline"),
}

_NON_ALNUM = re.compile(r"[\W_]+", re.UNICODE)


def header_key(label: str) -> str:
    """Fold a header label for comparison (case, whitespace, punctuation)."""
    return _NON_ALNUM.sub("", str(label)).casefold()


def build_synonym_table(
    extra: Mapping[str, Iterable[str]] | None = None,
) -> dict[str, tuple[str, ...]]:
    """Built-in synonyms with config supplied labels appended (built-ins keep priority)."""
    table = {f: tuple(labels) for f, labels in DEFAULT_SYNONYMS.items()}
    for field_id, labels in (extra or {}).items():
        if field_id not in table:
            raise ValueError(f"unknown canonical field in column_synonyms: {field_id}")
        known = {header_key(s) for s in table[field_id]}
        added = tuple(s for s in labels if header_key(s) not in known)
        table[field_id] = table[field_id] + added

    # 同じ見出しが複数フィールドに割り当てられていないこと
    owner: dict[str, str] = {}
    for field_id, labels in table.items():
        for s in labels:
            k = header_key(s)
            if k in owner and owner[k] != field_id:
                raise ValueError(f"header label '{s}' is mapped to both {owner[k]} and {field_id}")
            owner[k] = field_id
    return table


class ColumnMapper:
    """Maps RawRows onto canonical fields using a synonym table.

    The header -> field resolution is cached per distinct header tuple, so a
    whole CSV costs one resolution. Mapping is pure: the same row always
    yields an equal PartialRecord.
    """

    def __init__(self, synonyms: Mapping[str, Iterable[str]] | None = None) -> None:
        table = build_synonym_table() if synonyms is None else {f: tuple(v) for f, v in synonyms.items()}
        self.synonyms: dict[str, tuple[str, ...]] = table
        self._lookup: dict[str, str] = {}
        for field_id in CANONICAL_FIELDS:
            for s in table.get(field_id, ()):
                self._lookup.setdefault(header_key(s), field_id)
        self._resolved: dict[tuple[str, ...], tuple[dict[str, list[str]], tuple[str, ...]]] = {}

    def resolve_columns(self, columns: Iterable[str]) -> tuple[dict[str, list[str]], tuple[str, ...]]:
        """Return (field -> matching columns in header order, unmapped columns)."""
        cols = tuple(columns)
        cached = self._resolved.get(cols)
        if cached is not None:
            return cached
        matches: dict[str, list[str]] = {}
        unmapped: list[str] = []
        for col in cols:
            field_id = self._lookup.get(header_key(col))
            if field_id is None:
                unmapped.append(col)
            else:
                matches.setdefault(field_id, []).append(col)
        result = (matches, tuple(unmapped))
        self._resolved[cols] = result
        if unmapped:
            logger.debug(f"unmapped columns kept in raw source only: {list(unmapped)}")
        return result

    def map_row(self, row: Mapping[str, Any]) -> PartialRecord:
        matches, unmapped = self.resolve_columns(row.keys())
        values: dict[str, Any] = {}
        for field_id, cols in matches.items():
            chosen = row[cols[0]]
            for col in cols:
                v = row[col]
                if v is not None and str(v).strip() != "":
                    chosen = v
                    break
            values[field_id] = chosen
        return PartialRecord(values=values, raw_source=dict(row), unmapped_columns=unmapped)

    def map_rows(self, rows: Iterable[Mapping[str, Any]]) -> list[PartialRecord]:
        return [self.map_row(r) for r in rows]


_default_mapper: ColumnMapper | None = None


def map_row(row: Mapping[str, Any]) -> PartialRecord:
    """Map one row with the built-in synonym table."""
    global _default_mapper
    if _default_mapper is None:
        _default_mapper = ColumnMapper()
    return _default_mapper.map_row(row)


def partial_from_json(obj: Mapping[str, Any]) -> PartialRecord:
    """JSON input already uses canonical keys; no synonym lookup is done."""
    values = {f: obj[f] for f in CANONICAL_FIELDS if f in obj}
    unmapped = tuple(k for k in obj if k not in values)
    return PartialRecord(values=values, raw_source=dict(obj), unmapped_columns=unmapped)
