from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from ..db.documents import Database, DuplicateKeyError
from ..models.config_models import EmptyFilePolicy, IngestionSettings
from ..models.outcome import FailureCode, Registered, Rejected, RowOutcome
from ..models.row_record import RowRecord
from .ingestion import IngestionKind

"""Per-row domain operations and the ingestion kind registry.

Each operation performs its lookups, then at most one save. Expected business
failures come back as Rejected; anything the store raises besides
DuplicateKeyError propagates.
"""

__all__ = [
    "KINDS",
    "STATUS_FORMAT_MESSAGE",
    "add_score",
    "add_semester",
    "add_status",
    "add_subject",
    "get_kind",
    "register_student",
    "register_teacher",
    "status_precheck",
]

STATUS_FORMAT_MESSAGE = "File contains an invalid status. Check the format (must not be empty, must not be too long)"

# Columns never persisted on a user document
_USER_EXCLUDED = ("password",)

_KEY_LABELS = {"vnu_id": "VNU-ID", "email": "Email"}


def _to_number(value: str | int | float) -> int | float:
    if isinstance(value, (int, float)):
        return value
    return float(value) if "." in value else int(value)


def _register_user(db: Database, row: RowRecord, role: str) -> RowOutcome:
    vnu_id = row.get("vnu_id")
    if db.users.find_one({"vnu_id": vnu_id}) is not None:
        return Rejected("VNU-ID is already registered by someone", FailureCode.ALREADY_EXISTS)

    doc: dict[str, Any] = {k: v for k, v in row.values.items() if k not in _USER_EXCLUDED}
    doc["role"] = row.get("role") or role
    try:
        db.users.save(doc)
    except DuplicateKeyError as e:
        label = _KEY_LABELS.get(e.key or "", "Account")
        return Rejected(f"{label} is already registered by someone", FailureCode.DUPLICATE_KEY)
    return Registered(f"Registered {vnu_id}")


def register_student(db: Database, row: RowRecord) -> RowOutcome:
    return _register_user(db, row, "student")


def register_teacher(db: Database, row: RowRecord) -> RowOutcome:
    return _register_user(db, row, "teacher")


def add_subject(db: Database, row: RowRecord) -> RowOutcome:
    code = row.get("subject_code")
    name = row.get("subject_name")
    credits = int(row.get("credits_number"))
    try:
        db.subjects.save({"subject_code": code, "subject_name": name, "credits_number": credits})
    except DuplicateKeyError:
        return Rejected("Subject code or subject name existed", FailureCode.DUPLICATE_KEY)
    return Registered(f"Added {code} -> {name} -> {credits}")


def add_semester(db: Database, row: RowRecord) -> RowOutcome:
    semester_id = row.get("semester_id")
    name = row.get("semester_name")
    try:
        db.semesters.save({"semester_id": semester_id, "semester_name": name})
    except DuplicateKeyError:
        return Rejected("Semester code already exists", FailureCode.DUPLICATE_KEY)
    return Registered(f"Added semester {semester_id}: {name}")


def _scores_table_for(db: Database, user: dict[str, Any]) -> dict[str, Any]:
    table = db.scores_tables.find_one({"user_ref": user["_id"]})
    if table is None:
        # created together with its first entry, so still one save per row
        table = {"user_ref": user["_id"], "vnu_id": user.get("vnu_id"), "scores": [], "status": []}
    table.setdefault("scores", [])
    table.setdefault("status", [])
    return table


def _save_scores_table(db: Database, table: dict[str, Any]) -> Rejected | None:
    try:
        db.scores_tables.save(table)
    except DuplicateKeyError:
        return Rejected("Scores table was created by another upload, retry the row", FailureCode.DUPLICATE_KEY)
    return None


def add_score(db: Database, row: RowRecord) -> RowOutcome:
    vnu_id = row.get("vnu_id")
    code = row.get("subject_code")
    semester_id = row.get("semester_id")
    score_text = row.get("score")

    user = db.users.find_one({"vnu_id": vnu_id})
    if user is None:
        return Rejected(f"Could not find VNU-ID {vnu_id}", FailureCode.NOT_FOUND)
    subject = db.subjects.find_one({"subject_code": code})
    if subject is None:
        return Rejected(f"Subject not found: {code}", FailureCode.NOT_FOUND)
    semester = db.semesters.find_one({"semester_id": semester_id})
    if semester is None:
        return Rejected(f"Semester not found: {semester_id}", FailureCode.NOT_FOUND)

    table = _scores_table_for(db, user)
    if any(entry.get("subject_ref") == subject["_id"] for entry in table["scores"]):
        return Rejected("A score for this subject already exists in the scores table", FailureCode.ALREADY_EXISTS)
    table["scores"].append(
        {
            "subject_ref": subject["_id"],
            "subject_code": code,
            "semester_ref": semester["_id"],
            "semester_id": semester_id,
            "score": _to_number(score_text),
        }
    )
    rejected = _save_scores_table(db, table)
    if rejected is not None:
        return rejected
    return Registered(f"Added {code} = {score_text} to scores table of {vnu_id}")


def add_status(db: Database, row: RowRecord) -> RowOutcome:
    vnu_id = row.get("vnu_id")
    user = db.users.find_one({"vnu_id": vnu_id})
    if user is None:
        return Rejected(f"No student found with VNU-ID: {vnu_id}", FailureCode.NOT_FOUND)

    table = _scores_table_for(db, user)
    table["status"].extend(s.strip() for s in str(row.get("status")).split(",") if s.strip())
    rejected = _save_scores_table(db, table)
    if rejected is not None:
        return rejected
    return Registered("Status added")


def status_precheck(rows: Sequence[RowRecord], settings: IngestionSettings) -> str | None:
    """Every status must be non-blank and at most status_max_length characters."""
    for row in rows:
        text = str(row.get("status") or "").strip()
        if not text or len(text) > settings.status_max_length:
            return STATUS_FORMAT_MESSAGE
    return None


def _as_teacher(row: RowRecord) -> RowRecord:
    return row.with_values(role="teacher")


KINDS: dict[str, IngestionKind] = {
    "student": IngestionKind("student", register_student),
    "teacher": IngestionKind("teacher", register_teacher, prepare=_as_teacher),
    "subject": IngestionKind("subject", add_subject),
    "semester": IngestionKind("semester", add_semester, empty_file=EmptyFilePolicy.ACCEPT),
    "score": IngestionKind("score", add_score, empty_file=EmptyFilePolicy.ACCEPT),
    "status": IngestionKind("status", add_status, precheck=status_precheck),
}


def get_kind(name: str) -> IngestionKind:
    try:
        return KINDS[name]
    except KeyError:
        raise ValueError(f"unknown ingestion kind: {name}") from None
