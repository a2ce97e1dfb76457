from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .outcome import FailureCode

"""Result models for one batch ingestion run.

IngestionResult partitions the input rows: every row is in exactly one of
registered / failed, each bucket keeps the input order.
"""

__all__ = [
    "RowFailure",
    "IngestionResult",
]


@dataclass(frozen=True)
class RowFailure:
    """Failure detail kept beside the shaped ``failed`` entry (error log input)."""
    row_number: int
    code: FailureCode
    reason: str


@dataclass(frozen=True)
class IngestionResult:
    """Aggregated outcome of one upload (SUMMARY + response body source)."""
    kind: str
    registered: list[dict[str, Any]]  # row fields + "response"
    failed: list[dict[str, Any]]  # row fields + "error"
    start_time: datetime
    end_time: datetime
    failures: list[RowFailure] = field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return len(self.registered) + len(self.failed)

    @property
    def elapsed_seconds(self) -> float:
        return (self.end_time - self.start_time).total_seconds()

    @property
    def throughput_rows_per_sec(self) -> float:
        elapsed = self.elapsed_seconds
        if elapsed <= 0:
            return 0.0
        return self.total_rows / elapsed

    def as_message(self) -> dict[str, list[dict[str, Any]]]:
        return {"registered": self.registered, "failed": self.failed}
