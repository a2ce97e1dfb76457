from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord
from ..models.ingestion_result import RowFailure

"""Error log for rejected rows and rejected batches.

Records are buffered during a run and written on flush() as JSON Lines to
`logs/errors-YYYYMMDD-HHMMSS.log` (UTC). The file is created on the first
flush that has something to write; later flushes in the same run append to it.
"""

__all__ = [
    "BATCH_ROW",
    "ErrorLogBuffer",
    "ErrorRecord",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"

# row value for failures that reject a whole upload
BATCH_ROW = -1


class ErrorLogBuffer:
    """Per-run buffer of ErrorRecords, serial use only."""

    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir or LOGS_DIR

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def record_row(self, source: str, kind: str, failure: RowFailure) -> None:
        self.append(ErrorRecord.create(source, kind, failure.row_number, failure.code.value, failure.reason))

    def record_batch(self, source: str, kind: str, message: str) -> None:
        self.append(ErrorRecord.create(source, kind, BATCH_ROW, "BATCH_REJECTED", message))

    def counts_by_kind(self) -> dict[str, int]:
        """Buffered records per kind, in first-seen order."""
        return dict(Counter(r.kind for r in self._records))

    def __len__(self) -> int:
        return len(self._records)

    def flush(self) -> Path | None:
        """Write and clear the buffer. Returns the log path, or None if nothing was buffered."""
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            f.writelines(r.to_json_line() + "\n" for r in self._records)
        self._records.clear()
        return fp
