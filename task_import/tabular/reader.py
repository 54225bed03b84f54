from __future__ import annotations

import io
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd
from pandas.errors import EmptyDataError, ParserError

"""Tabular parser: CSV text / source files -> ordered RawRow mappings.

- first non-empty line is the header row
- standard CSV quoting (double-quote escaping, quoted commas and newlines)
- a line with broken quoting is kept with its quote characters as text
- short rows are padded with "", extra trailing cells are dropped
- blank lines and rows whose cells are all blank are skipped
- only a missing/empty header is fatal (HeaderError)

pandas does the tokenizing (python engine, every cell read as str) and the
header row is applied afterwards, as with the spreadsheet reader it grew from.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "RawRow",
    "ParseError",
    "HeaderError",
    "SourceDocument",
    "parse_csv",
    "parse_json",
    "read_source_file",
    "SUPPORTED_SUFFIXES",
]

RawRow = dict[str, str]

SUPPORTED_SUFFIXES = {".csv": "csv", ".txt": "csv", ".json": "json", ".xlsx": "xlsx"}


class ParseError(Exception):
    """Raised when an import source cannot be turned into rows at all."""


class HeaderError(ParseError):
    """Raised when the header line is missing or empty."""


@dataclass(frozen=True)
class SourceDocument:
    """Rows read from a file, tagged with the path that produced them."""
    name: str
    kind: str  # csv | json | xlsx
    rows: list[dict[str, Any]]


def _read_frame(text: str, **kwargs: Any) -> pd.DataFrame:
    return pd.read_csv(
        io.StringIO(text),
        header=None,
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
        engine="python",
        **kwargs,
    )


def _scan_record(text: str, pos: int) -> tuple[int, bool]:
    """Find where the record starting at pos ends.

    Returns (end, ok): end is the index of the terminating newline (or len(text)),
    ok is False when a quoted field never closes or is followed by stray text.
    """
    n = len(text)
    i = pos
    field_start = True
    while i < n:
        ch = text[i]
        if field_start and ch == '"':
            i += 1
            while True:
                j = text.find('"', i)
                if j == -1:
                    return n, False
                if j + 1 < n and text[j + 1] == '"':
                    i = j + 2
                    continue
                i = j + 1
                break
            if i < n and text[i] not in ",\r\n":
                return i, False
            field_start = False
            continue
        if ch == ",":
            field_start = True
        elif ch == "\n":
            return i, True
        else:
            field_start = False
        i += 1
    return n, True


def _literal_line(line: str) -> str:
    """Re-quote a line cell by cell so its quote characters are read as plain text."""
    cells = line.rstrip("\r").split(",")
    return ",".join('"' + c.replace('"', '""') + '"' for c in cells)


def _repair_quoting(text: str) -> str:
    """Rewrite records with broken quoting so the tokenizer keeps them.

    A record whose quoted field never closes, or has text after its closing
    quote, falls back to its own physical line split on commas with the quotes
    kept as text. The following lines are read normally.
    """
    if '"' not in text:
        return text
    out: list[str] = []
    pos, n = 0, len(text)
    while pos < n:
        end, ok = _scan_record(text, pos)
        if ok:
            out.append(text[pos:end])
        else:
            nl = text.find("\n", pos)
            end = n if nl == -1 else nl
            line = text[pos:end]
            logger.warning(f"malformed quoting, line read as plain text: {line[:60]!r}")
            out.append(_literal_line(line))
        pos = end + 1
    return "\n".join(out)


def _header_labels(values: list[Any]) -> list[str]:
    """Trim header cells, name blank ones and suffix duplicates (left-most keeps the plain name)."""
    labels: list[str] = []
    seen: dict[str, int] = {}
    for i, v in enumerate(values):
        label = "" if v is None or (isinstance(v, float) and pd.isna(v)) else str(v).strip()
        if not label:
            label = f"Unnamed: {i}"
        if label in seen:
            seen[label] += 1
            label = f"{label}.{seen[label]}"
        else:
            seen[label] = 0
        labels.append(label)
    return labels


def _frame_to_rows(df: pd.DataFrame) -> list[RawRow]:
    """Apply the first frame row as header to the remaining rows."""
    if df.shape[0] < 1:
        raise HeaderError("cannot parse: header row is missing")
    header_cells = df.iloc[0].tolist()
    if all(str(c).strip() == "" for c in header_cells if not pd.isna(c)):
        raise HeaderError("cannot parse: header row is empty")
    columns = _header_labels(header_cells)

    data_part = df.iloc[1:].fillna("")
    rows: list[RawRow] = []
    for _, raw in data_part.iterrows():
        cells = ["" if pd.isna(v) else str(v) for v in raw.tolist()]
        if all(c.strip() == "" for c in cells):
            continue
        row: RawRow = {}
        for i, col in enumerate(columns):
            row[col] = cells[i] if i < len(cells) else ""
        rows.append(row)
    return rows


def parse_csv(csv_text: str) -> list[RawRow]:
    """Parse CSV text into RawRows in file order.

    Raises:
        HeaderError: the text is empty or its first non-empty line holds no labels
        ParseError: the tokenizer gave up on input it should always accept
    """
    if csv_text is None:
        raise HeaderError("cannot parse: no CSV data")
    text = csv_text.lstrip("\ufeff").lstrip()
    if not text:
        raise HeaderError("cannot parse: no CSV data")
    text = _repair_quoting(text)

    try:
        head = _read_frame(text, nrows=1)
    except EmptyDataError as e:
        raise HeaderError("cannot parse: header row is missing") from e
    except ParserError as e:
        raise ParseError(f"cannot parse: {e}") from e
    width = head.shape[1]

    try:
        # 列数超過の行は末尾を切り捨てる
        df = _read_frame(text, on_bad_lines=lambda fields: fields[:width])
    except ParserError as e:
        raise ParseError(f"cannot parse: {e}") from e
    return _frame_to_rows(df)


def parse_json(json_text: str) -> list[dict[str, Any]]:
    """Parse a JSON array of objects (canonical-ish field names).

    Raises:
        ParseError: not valid JSON, not an array, or an element is not an object
    """
    if json_text is None or not json_text.strip():
        raise ParseError("cannot parse: no JSON data")
    try:
        data = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise ParseError(f"cannot parse: invalid JSON ({e.msg} at line {e.lineno})") from e
    if not isinstance(data, list):
        raise ParseError("cannot parse: JSON data must be an array of tasks")
    for i, item in enumerate(data):
        if not isinstance(item, dict):
            raise ParseError(f"cannot parse: task {i + 1} is not a JSON object")
    return data


def read_xlsx(path: Path) -> list[RawRow]:
    """First sheet of a workbook, first row as header, every cell as str."""
    try:
        df = pd.read_excel(path, sheet_name=0, header=None, dtype=str, keep_default_na=False)
    except (OSError, ValueError) as e:
        raise ParseError(f"cannot parse: {path.name}: {e}") from e
    # ヘッダより前の空行を除去
    start = 0
    while start < df.shape[0] and all(str(v).strip() == "" for v in df.iloc[start].tolist()):
        start += 1
    return _frame_to_rows(df.iloc[start:])


def read_source_file(path: Path, kind: str | None = None) -> SourceDocument:
    """Read an uploaded file into rows. kind overrides suffix detection."""
    kind = kind or SUPPORTED_SUFFIXES.get(path.suffix.lower())
    if kind is None:
        raise ParseError(
            f"cannot parse: unsupported file type '{path.suffix}' (expected one of {sorted(SUPPORTED_SUFFIXES)})"
        )
    if not path.exists():
        raise ParseError(f"cannot parse: file not found: {path}")

    if kind == "xlsx":
        return SourceDocument(name=path.name, kind=kind, rows=read_xlsx(path))
    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(f"cannot parse: {path.name}: {e}") from e
    if kind == "json":
        return SourceDocument(name=path.name, kind=kind, rows=parse_json(text))
    return SourceDocument(name=path.name, kind="csv", rows=parse_csv(text))
