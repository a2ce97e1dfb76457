from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Row progress display with tqdm (TTY only).

A single bar per upload. In non-TTY environments (CI, piped output) no bar is
created so the LABEL lines on stdout stay clean.
"""

__all__ = [
    "RowProgress",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class RowProgress:
    """Progress over the rows of one upload.

    Keeps registered / failed counters even when the bar is disabled, so callers
    can read them back for logging.
    """

    def __init__(self, total_rows: int, *, description: str = "Ingesting rows", enabled: bool | None = None) -> None:
        self.total_rows = total_rows
        self.description = description
        self.registered = 0
        self.failed = 0

        self.enabled = is_tty_enabled() if enabled is None else enabled
        self.pbar: TqdmType[Any] | None
        if self.enabled and total_rows > 0:
            self.pbar = tqdm(
                total=total_rows,
                desc=description,
                unit="row",
                leave=True,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def advance(self, ok: bool) -> None:
        if ok:
            self.registered += 1
        else:
            self.failed += 1
        if self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_postfix(ok=self.registered, failed=self.failed)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> RowProgress:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
