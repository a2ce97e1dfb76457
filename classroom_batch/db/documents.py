from __future__ import annotations

import uuid
from collections.abc import Mapping
from typing import Any, Protocol

"""Persistence collaborator contract.

Every store exposes named collections with find_one / find / save. A filter is a
mapping of field -> value (equality) or field -> {"$in": [...]}. "No record" is
None; a uniqueness rejection is DuplicateKeyError; anything else the driver
raises propagates unchanged.
"""

__all__ = [
    "COLLECTIONS",
    "UNIQUE_FIELDS",
    "Collection",
    "Database",
    "DuplicateKeyError",
    "matches",
    "new_id",
]

COLLECTIONS = ("users", "subjects", "semesters", "scores_tables", "classes")

# Natural keys guarded by unique indexes
UNIQUE_FIELDS: dict[str, tuple[str, ...]] = {
    "users": ("vnu_id", "email"),
    "subjects": ("subject_code", "subject_name"),
    "semesters": ("semester_id",),
    "scores_tables": ("user_ref",),
    "classes": ("class_id",),
}


class DuplicateKeyError(Exception):
    """save() rejected by a unique index."""

    def __init__(self, collection: str, key: str | None = None, value: Any = None) -> None:
        self.collection = collection
        self.key = key
        self.value = value
        where = f" {key}={value!r}" if key else ""
        super().__init__(f"duplicate key in {collection}{where}")


class Collection(Protocol):
    name: str

    def find_one(self, flt: Mapping[str, Any]) -> dict[str, Any] | None: ...

    def find(self, flt: Mapping[str, Any]) -> list[dict[str, Any]]: ...

    def save(self, document: dict[str, Any]) -> dict[str, Any]: ...


class Database(Protocol):
    users: Collection
    subjects: Collection
    semesters: Collection
    scores_tables: Collection
    classes: Collection


def new_id() -> str:
    return uuid.uuid4().hex


def matches(document: Mapping[str, Any], flt: Mapping[str, Any]) -> bool:
    for key, cond in flt.items():
        value = document.get(key)
        if isinstance(cond, Mapping) and "$in" in cond:
            # list membership uses ==, so unhashable candidates are fine
            if value is None or value not in list(cond["$in"]):
                return False
        elif value != cond:
            return False
    return True
