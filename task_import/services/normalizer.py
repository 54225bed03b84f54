from __future__ import annotations

import logging
import math
import re
import warnings
from collections.abc import Iterable, Mapping
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Any

import pandas as pd

from ..models.task_record import (
    FIELD_ATTRS,
    CanonicalRecord,
    ImportDefaults,
    NormalizationResult,
    PartialRecord,
    PaymentStatus,
    WorkStatus,
)

"""Field normalizer & validator.

Turns a PartialRecord into a typed CanonicalRecord and a validity verdict.
The bias is toward importing: enums and dates always fall back to defaults,
only projectName / pages / rate can make a record invalid, and a single bad
row never raises.

A record is invalid iff
    projectName is blank, or
    pages is missing / not a positive whole number, or
    rate is missing / not positive AND no positive default rate is set.
`reason` names the first failing field in that order.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "parse_number",
    "coerce_pages",
    "coerce_rate",
    "match_work_status",
    "match_payment_status",
    "coerce_work_status",
    "coerce_payment_status",
    "coerce_date",
    "normalize",
    "normalize_all",
    "validate_record",
    "apply_patch",
    "summary_row_warning",
]

_CURRENCY = re.compile(r"(₹|\$|€|£|¥|\binr\b|\busd\b|\beur\b|\bgbp\b|\brs\.?)", re.IGNORECASE)
_NUMBER = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")

# 集計行らしい projectName (警告のみ、isValid には影響しない)
SUMMARY_ROW_PATTERNS = (
    "grand total", "subtotal", "sub total", "total", "sum", "amount received",
    "amount paid", "balance", "summary", "invoice", "receipt",
)

_WORK_KEYWORDS: tuple[tuple[WorkStatus, tuple[str, ...]], ...] = (
    (WorkStatus.IN_PROGRESS, ("progress", "working", "active", "ongoing", "doing")),
    (WorkStatus.COMPLETED, ("complete", "done", "finished", "delivered", "submitted")),
    (WorkStatus.PENDING, ("pending", "todo", "to do", "not started", "new", "backlog")),
)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip() == ""


def _fold(value: Any) -> str:
    return re.sub(r"[\s_\-]+", " ", str(value)).strip().casefold()


def parse_number(value: Any) -> float | int | None:
    """Parse a numeric-looking value; None when it is not a finite number.

    Accepts ints/floats and strings with surrounding whitespace, currency
    symbols or codes and thousands separators ("₹1,200.50", " 8 ", "$150").
    Integral results come back as int.
    """
    if isinstance(value, bool) or _is_blank(value):
        return None
    if isinstance(value, (int, float)):
        num = float(value)
    else:
        s = _CURRENCY.sub("", str(value)).replace(",", "").replace(" ", "").strip()
        if not _NUMBER.match(s):
            return None
        num = float(s)
    if not math.isfinite(num):
        return None
    return int(num) if num.is_integer() else num


def coerce_pages(value: Any) -> tuple[int | None, str | None]:
    """Return (pages, problem). pages is None whenever problem is set.

    A fractional count is truncated to its whole part (2.5 -> 2).
    """
    if _is_blank(value):
        return None, "pages is missing"
    num = parse_number(value)
    if num is None or int(num) < 1:
        return None, f"pages is not a positive whole number: {value!r}"
    return int(num), None


def coerce_rate(value: Any) -> tuple[float | int | None, str | None]:
    if _is_blank(value):
        return None, "rate is missing"
    num = parse_number(value)
    if num is None or num <= 0:
        return None, f"rate is not a positive number: {value!r}"
    return num, None


def match_work_status(value: Any) -> WorkStatus | None:
    """Exact value/name match first, then keyword match; None when unknown."""
    if isinstance(value, WorkStatus):
        return value
    if _is_blank(value):
        return None
    folded = _fold(value)
    for status in WorkStatus:
        if folded in (_fold(status.value), _fold(status.name), status.value.replace(" ", "").casefold()):
            return status
    for status, keywords in _WORK_KEYWORDS:
        if any(k in folded for k in keywords):
            return status
    return None


def coerce_work_status(value: Any, default: WorkStatus = WorkStatus.PENDING) -> WorkStatus:
    """Map free-text status onto WorkStatus; unknown values give `default`."""
    return match_work_status(value) or default


def match_payment_status(value: Any) -> PaymentStatus | None:
    if isinstance(value, PaymentStatus):
        return value
    if isinstance(value, bool):
        return PaymentStatus.PAID if value else PaymentStatus.UNPAID
    if _is_blank(value):
        return None
    folded = _fold(value)
    if "partial" in folded:
        return PaymentStatus.PARTIALLY_PAID
    if folded in ("unpaid", "not paid", "due", "pending", "no", "false", "outstanding"):
        return PaymentStatus.UNPAID
    if folded in ("paid", "yes", "true", "received", "settled", "fully paid"):
        return PaymentStatus.PAID
    return None


def coerce_payment_status(value: Any, default: PaymentStatus = PaymentStatus.UNPAID) -> PaymentStatus:
    """Map free-text payment state onto PaymentStatus; unknown values give `default`."""
    return match_payment_status(value) or default


def coerce_date(value: Any) -> date | None:
    """Parse any reasonable date representation; None when unparseable."""
    if _is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        try:
            ts = pd.to_datetime(str(value).strip(), errors="coerce")
        except (ValueError, TypeError, OverflowError):
            return None
    if ts is None or pd.isna(ts):
        return None
    return ts.date()


def summary_row_warning(project_name: str) -> str | None:
    """Warn about rows that look like totals/footers rather than tasks."""
    name = project_name.strip()
    if not name:
        return None
    if parse_number(name) is not None:
        return f"projectName {name!r} is only a number; possibly a totals row"
    lowered = name.casefold()
    for pattern in SUMMARY_ROW_PATTERNS:
        if re.search(rf"\b{re.escape(pattern)}\b", lowered):
            return f"projectName {name!r} looks like a summary row ({pattern})"
    return None


def _text(value: Any) -> str:
    if _is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def normalize(
    partial: PartialRecord | Mapping[str, Any],
    defaults: ImportDefaults | None = None,
    *,
    today: date | None = None,
) -> NormalizationResult:
    """Normalize and validate one record. Never raises for bad field values."""
    defaults = defaults or ImportDefaults()
    if not isinstance(partial, PartialRecord):
        partial = PartialRecord(values=dict(partial), raw_source=dict(partial))
    today = today or date.today()
    problems: list[str] = []
    notes_: list[str] = []

    project_name = _text(partial.get("projectName"))
    if not project_name:
        problems.append("projectName is missing")
    else:
        w = summary_row_warning(project_name)
        if w:
            notes_.append(w)

    raw_pages = partial.get("pages")
    pages, pages_problem = coerce_pages(raw_pages)
    if pages_problem:
        problems.append(pages_problem)
    elif parse_number(raw_pages) != pages:
        notes_.append(f"pages {raw_pages!r} is not a whole number; truncated to {pages}")

    rate, rate_problem = coerce_rate(partial.get("rate"))
    rate_defaulted = False
    if rate_problem:
        if defaults.rate is not None and defaults.rate > 0:
            rate = parse_number(defaults.rate)
            rate_defaulted = True
            notes_.append(f"{rate_problem}; default rate {rate} applied")
        else:
            problems.append(f"{rate_problem} and no default rate is set")

    raw_work = partial.get("workStatus")
    work_status = match_work_status(raw_work)
    if work_status is None:
        work_status = defaults.work_status
        if not _is_blank(raw_work):
            notes_.append(f"workStatus {raw_work!r} not recognised; {work_status.value} used")

    raw_payment = partial.get("paymentStatus")
    payment_status = match_payment_status(raw_payment)
    if payment_status is None:
        payment_status = defaults.payment_status
        if not _is_blank(raw_payment):
            notes_.append(f"paymentStatus {raw_payment!r} not recognised; {payment_status.value} used")

    raw_accepted = partial.get("acceptedDate")
    accepted = coerce_date(raw_accepted)
    if accepted is None:
        if not _is_blank(raw_accepted):
            notes_.append(f"acceptedDate {raw_accepted!r} not recognised; import date used")
        accepted = today

    raw_submission = partial.get("submissionDate")
    submission = coerce_date(raw_submission)
    if submission is None:
        if not _is_blank(raw_submission):
            notes_.append(f"submissionDate {raw_submission!r} not recognised; defaulted")
        submission = accepted + timedelta(days=defaults.submission_offset_days)
    if submission < accepted:
        notes_.append("submissionDate is before acceptedDate")

    notes = _text(partial.get("notes")) or None

    record = CanonicalRecord(
        project_name=project_name,
        pages=pages,
        rate=rate,
        work_status=work_status,
        payment_status=payment_status,
        accepted_date=accepted,
        submission_date=submission,
        notes=notes,
        raw_source=dict(partial.raw_source),
    )
    is_valid = not problems
    return NormalizationResult(
        record=record,
        is_valid=is_valid,
        reason=problems[0] if problems else None,
        warnings=tuple(notes_),
        rate_defaulted=rate_defaulted,
    )


def normalize_all(
    partials: Iterable[PartialRecord | Mapping[str, Any]],
    defaults: ImportDefaults | None = None,
    *,
    today: date | None = None,
) -> list[NormalizationResult]:
    today = today or date.today()
    results = []
    for i, p in enumerate(partials):
        res = normalize(p, defaults, today=today)
        if not res.is_valid:
            logger.debug(f"row {i + 1} invalid: {res.reason}")
        results.append(res)
    return results


def validate_record(record: CanonicalRecord) -> tuple[bool, str | None]:
    """Re-check an already typed record (after operator edits)."""
    if not record.project_name.strip():
        return False, "projectName is missing"
    if record.pages is None or record.pages <= 0:
        return False, "pages is missing or not a positive whole number"
    if record.rate is None or record.rate <= 0:
        return False, "rate is missing or not positive"
    return True, None


def apply_patch(record: CanonicalRecord, patch: Mapping[str, Any]) -> CanonicalRecord:
    """Apply an operator edit. Keys may be canonical ids or attribute names.

    Values are coerced with the same rules as normalization; an unparseable
    pages/rate becomes None, an unrecognised status keeps the current one.
    """
    attrs = set(FIELD_ATTRS.values())
    changes: dict[str, Any] = {}
    for key, value in patch.items():
        attr = FIELD_ATTRS.get(key, key)
        if attr not in attrs:
            raise KeyError(f"unknown task field: {key}")
        if attr == "project_name":
            changes[attr] = _text(value)
        elif attr == "pages":
            changes[attr] = coerce_pages(value)[0]
        elif attr == "rate":
            changes[attr] = coerce_rate(value)[0]
        elif attr == "work_status":
            changes[attr] = coerce_work_status(value, record.work_status)
        elif attr == "payment_status":
            changes[attr] = coerce_payment_status(value, record.payment_status)
        elif attr in ("accepted_date", "submission_date"):
            changes[attr] = coerce_date(value) or getattr(record, attr)
        else:
            changes[attr] = _text(value) or None
    return replace(record, **changes)
