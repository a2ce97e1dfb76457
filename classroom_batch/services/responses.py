from __future__ import annotations

import json
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from ..db.documents import Database
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import IngestionSettings
from ..models.ingestion_result import IngestionResult
from ..models.roster_result import MemberAddResult, MemberDeleteResult
from ..models.row_record import RowRecord
from .errors import BatchRejected, ClassNotFound
from .ingestion import ingest_rows
from .kinds import get_kind
from .roster import add_members, find_class, parse_member_list, remove_members

"""Response envelope and transport adapters.

Every request ends as {"status": "Success" | "Error", "message": ...} with an
HTTP-style code: 200 processed (even when every unit failed), 400 batch-level
rejection, 404 class not found, 500 anything unexpected (logged with traceback).
"""

__all__ = [
    "INTERNAL_ERROR_MESSAGE",
    "Response",
    "add_members_request",
    "dispatch",
    "ingest_upload",
    "remove_members_request",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")

INTERNAL_ERROR_MESSAGE = "Internal server error"


@dataclass(frozen=True)
class Response:
    status_code: int
    body: dict[str, Any]

    @staticmethod
    def success(message: Any) -> Response:
        return Response(200, {"status": "Success", "message": message})

    @staticmethod
    def error(status_code: int, message: Any) -> Response:
        return Response(status_code, {"status": "Error", "message": message})

    @property
    def ok(self) -> bool:
        return self.status_code == 200

    def to_json(self) -> str:
        return json.dumps(self.body, ensure_ascii=False, default=str)


def dispatch(action: Callable[[], T]) -> tuple[Response, T | None]:
    """Run one request and map its outcome onto the envelope."""
    try:
        result = action()
    except BatchRejected as e:
        return Response.error(e.status_code, e.payload()), None
    except ClassNotFound as e:
        return Response.error(e.status_code, e.message), None
    except Exception:
        logger.exception("unexpected failure while handling request")
        return Response.error(500, INTERNAL_ERROR_MESSAGE), None
    return Response.success(result.as_message()), result


def ingest_upload(
    kind_name: str,
    rows: Sequence[RowRecord],
    db: Database,
    settings: IngestionSettings | None = None,
    *,
    source: str = "<upload>",
    error_log: ErrorLogBuffer | None = None,
    show_progress: bool | None = None,
) -> tuple[Response, IngestionResult | None]:
    kind = get_kind(kind_name)
    return dispatch(
        lambda: ingest_rows(
            kind, rows, db, settings, source=source, error_log=error_log, show_progress=show_progress
        )
    )


def add_members_request(db: Database, class_id: str | None, raw_members: Any) -> tuple[Response, MemberAddResult | None]:
    def action() -> MemberAddResult:
        # malformed lists are refused before any lookup
        identifiers = parse_member_list(raw_members)
        return add_members(db, find_class(db.classes, class_id), identifiers)

    return dispatch(action)


def remove_members_request(
    db: Database, class_id: str | None, raw_members: Any
) -> tuple[Response, MemberDeleteResult | None]:
    def action() -> MemberDeleteResult:
        identifiers = parse_member_list(raw_members)
        return remove_members(db, find_class(db.classes, class_id), identifiers)

    return dispatch(action)
