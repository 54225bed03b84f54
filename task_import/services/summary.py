from __future__ import annotations

from ..models.commit_result import CommitResult
from .review import SessionCounts

"""SUMMARY line rendering for preview and commit runs.

Formats:
    SUMMARY rows={n} valid={v} invalid={i} selected={s}
    SUMMARY committed={c}/{n} parent={id} first_sl_no={a} last_sl_no={b} elapsed_sec={e}
    SUMMARY committed={c}/{n} parent={id} failed_row={r}
"""

__all__ = [
    "format_seconds",
    "render_preview_summary",
    "render_commit_summary",
    "render_failure_summary",
]


def format_seconds(value: float) -> str:
    """Integral values without decimals, tiny values without scientific notation."""
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_preview_summary(counts: SessionCounts) -> str:
    return (
        f"SUMMARY rows={counts.total} "
        f"valid={counts.valid} "
        f"invalid={counts.invalid} "
        f"selected={counts.selected}"
    )


def render_commit_summary(result: CommitResult, requested: int) -> str:
    sl = result.sl_numbers
    first = sl[0] if sl else "-"
    last = sl[-1] if sl else "-"
    return (
        f"SUMMARY committed={result.committed}/{requested} "
        f"parent={result.parent_id} "
        f"first_sl_no={first} "
        f"last_sl_no={last} "
        f"elapsed_sec={format_seconds(result.elapsed_seconds)}"
    )


def render_failure_summary(committed: int, requested: int, parent_id: str, failed_row: int) -> str:
    return (
        f"SUMMARY committed={committed}/{requested} "
        f"parent={parent_id} "
        f"failed_row={failed_row}"
    )
