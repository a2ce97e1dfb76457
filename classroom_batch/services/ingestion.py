from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from ..db.documents import Database
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import kind_logger
from ..models.config_models import EmptyFilePolicy, IngestionSettings
from ..models.ingestion_result import IngestionResult, RowFailure
from ..models.outcome import FailureCode, Registered, Rejected, RowOutcome
from ..models.row_record import RowRecord
from .errors import BatchRejected
from .progress import RowProgress
from .row_schemas import validate_row

"""Batch ingestion engine.

Flow for one upload:
1. Empty input -> per-kind policy (reject with 400 or vacuous success)
2. Numeric cells are rendered as text, then the optional per-kind prepare step
   (e.g. teacher rows get role=teacher)
3. Optional batch pre-check gate over all rows; any failure rejects the batch
4. Sequential loop in input order: row schema, then the domain operation
5. Shape each row into registered (+response) or failed (+error), echoing the
   row as it was sent

Exceptions raised by an operation (driver errors, bugs) are not caught here.
"""

__all__ = [
    "EMPTY_FILE_MESSAGE",
    "IngestionKind",
    "RowOperation",
    "ingest_rows",
]

EMPTY_FILE_MESSAGE = "CSV file is empty or has no valid data"

RowOperation = Callable[[Database, RowRecord], RowOutcome]
PreCheck = Callable[[Sequence[RowRecord], IngestionSettings], "str | None"]


@dataclass(frozen=True)
class IngestionKind:
    name: str
    operation: RowOperation
    empty_file: EmptyFilePolicy = EmptyFilePolicy.REJECT
    prepare: Callable[[RowRecord], RowRecord] | None = None
    precheck: PreCheck | None = None

    def normalize(self, row: RowRecord) -> RowRecord:
        row = row.as_text()
        return self.prepare(row) if self.prepare else row


def _reject_batch(
    kind: IngestionKind,
    source: str,
    message: str,
    error_log: ErrorLogBuffer | None,
    details: dict | None = None,
) -> BatchRejected:
    kind_logger(__name__, kind.name).error(f"batch rejected ({source}): {message}")
    if error_log is not None:
        error_log.record_batch(source, kind.name, message)
    return BatchRejected(message, details)


def _apply(kind: IngestionKind, row: RowRecord, db: Database) -> RowOutcome:
    reason = validate_row(kind.name, row)
    if reason is not None:
        return Rejected(reason, FailureCode.INVALID_ROW)
    return kind.operation(db, row)


def ingest_rows(
    kind: IngestionKind,
    rows: Sequence[RowRecord],
    db: Database,
    settings: IngestionSettings | None = None,
    *,
    source: str = "<upload>",
    error_log: ErrorLogBuffer | None = None,
    show_progress: bool | None = None,
) -> IngestionResult:
    """Apply ``kind.operation`` to every row and partition the outcomes.

    Raises:
        BatchRejected: empty input under the reject policy, or the pre-check gate failed.
    """
    settings = settings or IngestionSettings()
    log = kind_logger(__name__, kind.name)
    start = datetime.now(UTC)

    if not rows:
        policy = settings.empty_file.get(kind.name, kind.empty_file)
        if policy is EmptyFilePolicy.REJECT:
            raise _reject_batch(
                kind, source, EMPTY_FILE_MESSAGE, error_log, details={"registered": [], "failed": []}
            )
        log.info(f"empty input accepted ({source})")
        return IngestionResult(kind=kind.name, registered=[], failed=[], start_time=start, end_time=datetime.now(UTC))

    prepared = [kind.normalize(r) for r in rows]

    if kind.precheck is not None:
        reason = kind.precheck(prepared, settings)
        if reason is not None:
            raise _reject_batch(kind, source, reason, error_log)

    registered: list[dict] = []
    failed: list[dict] = []
    failures: list[RowFailure] = []
    with RowProgress(len(prepared), description=f"{kind.name} rows", enabled=show_progress) as progress:
        for original, row in zip(rows, prepared, strict=True):
            outcome = _apply(kind, row, db)
            if isinstance(outcome, Registered):
                registered.append(original.annotated("response", outcome.message))
                log.debug(f"row {row.row_number} ok: {outcome.message}")
            else:
                failure = RowFailure(row.row_number, outcome.code, outcome.reason)
                failed.append(original.annotated("error", outcome.reason))
                failures.append(failure)
                log.warning(f"row {failure.row_number} {failure.code.value}: {failure.reason}")
                if error_log is not None:
                    error_log.record_row(source, kind.name, failure)
            progress.advance(outcome.ok)

    return IngestionResult(
        kind=kind.name,
        registered=registered,
        failed=failed,
        start_time=start,
        end_time=datetime.now(UTC),
        failures=failures,
    )
