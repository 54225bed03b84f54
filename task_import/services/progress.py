from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display for the commit loop with tqdm (TTY only).

- single tqdm instance per commit, disabled when stdout is not a TTY so CI
  logs and piped output do not fill up with control sequences
- the current task name is shown as the bar description
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """True if stdout is a TTY and progress should be displayed."""
    return sys.stdout.isatty()


class ProgressTracker:
    """Record-level progress bar for committing staged tasks."""

    def __init__(self, total: int, *, description: str = "Importing tasks", enabled: bool = True) -> None:
        self.total = total
        self.description = description
        self.done = 0

        self.enabled = enabled and is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total,
                desc=description,
                unit="task",
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def advance(self, label: str | None = None) -> None:
        """Mark one record as written."""
        self.done += 1
        if self.enabled and self.pbar is not None:
            if label:
                self.pbar.set_postfix_str(label[:30])
            self.pbar.update(1)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
