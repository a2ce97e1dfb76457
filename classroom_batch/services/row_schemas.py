from __future__ import annotations

from typing import Any

from jsonschema import Draft7Validator
from jsonschema.exceptions import best_match

from ..models.row_record import RowRecord

"""Per-kind row schemas.

Rows reach validation as text (the engine renders numeric cells as strings), so
numeric columns are checked with patterns and converted by the operation.
Extra columns are allowed and carried through.
"""

__all__ = [
    "ROW_SCHEMAS",
    "validate_row",
]

_NON_EMPTY = {"type": "string", "minLength": 1}
_EMAIL = {"type": "string", "pattern": r"^[^@\s]+@[^@\s]+\.[^@\s]+$"}

_USER = {
    "type": "object",
    "required": ["vnu_id", "email", "name"],
    "properties": {
        "vnu_id": _NON_EMPTY,
        "email": _EMAIL,
        "name": _NON_EMPTY,
        "role": {"enum": ["student", "teacher"]},
    },
}

ROW_SCHEMAS: dict[str, dict[str, Any]] = {
    "student": _USER,
    "teacher": _USER,
    "subject": {
        "type": "object",
        "required": ["subject_code", "subject_name", "credits_number"],
        "properties": {
            "subject_code": _NON_EMPTY,
            "subject_name": _NON_EMPTY,
            "credits_number": {"type": "string", "pattern": r"^[1-9][0-9]*$"},
        },
    },
    "semester": {
        "type": "object",
        "required": ["semester_id", "semester_name"],
        "properties": {
            "semester_id": _NON_EMPTY,
            "semester_name": _NON_EMPTY,
        },
    },
    "score": {
        "type": "object",
        "required": ["vnu_id", "subject_code", "semester_id", "score"],
        "properties": {
            "vnu_id": _NON_EMPTY,
            "subject_code": _NON_EMPTY,
            "semester_id": _NON_EMPTY,
            # 0..10, optional decimals
            "score": {"type": "string", "pattern": r"^(10(\.0+)?|[0-9](\.[0-9]+)?)$"},
        },
    },
    "status": {
        "type": "object",
        "required": ["vnu_id", "status"],
        "properties": {
            "vnu_id": _NON_EMPTY,
            "status": {"type": "string"},
        },
    },
}

_VALIDATORS = {kind: Draft7Validator(schema) for kind, schema in ROW_SCHEMAS.items()}


def validate_row(kind: str, row: RowRecord) -> str | None:
    """Return a reason string when the row does not fit its kind, else None."""
    validator = _VALIDATORS.get(kind)
    if validator is None:
        return None
    error = best_match(validator.iter_errors(row.values))
    if error is None:
        return None
    column = ".".join(str(p) for p in error.absolute_path)
    if column:
        return f"Invalid value for {column}: {error.message}"
    return f"Invalid row: {error.message}"
