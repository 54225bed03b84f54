from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the structured error log.

One JSON Lines record per rejected row, failed write or aborted source.
row=-1 marks source-level errors where no row applies (e.g. empty header).
The key set is fixed; see task_import/logging/error_log_schema.json.
"""

__all__ = [
    "ErrorRecord",
    "INVALID_ROW",
    "PARSE_ERROR",
    "PRECONDITION_FAILED",
    "COMMIT_FAILED",
]

INVALID_ROW = "INVALID_ROW"
PARSE_ERROR = "PARSE_ERROR"
PRECONDITION_FAILED = "PRECONDITION_FAILED"
COMMIT_FAILED = "COMMIT_FAILED"


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        source: Import source label (file name or "<stdin>")
        row: 1-based source row number, -1 when unknown
        field: Canonical field involved, "" when not field specific
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human readable description
    """
    timestamp: str
    source: str
    row: int
    field: str
    error_type: str
    message: str

    @staticmethod
    def create(source: str, row: int, error_type: str, message: str, field: str = "") -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            source=source,
            row=row,
            field=field,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
