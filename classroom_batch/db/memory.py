from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from .documents import COLLECTIONS, UNIQUE_FIELDS, DuplicateKeyError, matches, new_id

"""In-process document store.

Backs --dry-run / DISABLE_DB_CONNECT=1 and the test suite. Enforces the same
unique keys as the PostgreSQL schema and records every call so tests can assert
on lookup batching and write counts.
"""

__all__ = [
    "MemoryCollection",
    "MemoryDatabase",
]


class MemoryCollection:
    def __init__(self, name: str, unique_fields: tuple[str, ...] = ()) -> None:
        self.name = name
        self.unique_fields = unique_fields
        self._docs: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, Any]] = []
        self.writes = 0  # successful saves only

    def __len__(self) -> int:
        return len(self._docs)

    def find_one(self, flt: Mapping[str, Any]) -> dict[str, Any] | None:
        self.calls.append(("find_one", dict(flt)))
        for doc in self._docs.values():
            if matches(doc, flt):
                return copy.deepcopy(doc)
        return None

    def find(self, flt: Mapping[str, Any]) -> list[dict[str, Any]]:
        self.calls.append(("find", dict(flt)))
        return [copy.deepcopy(d) for d in self._docs.values() if matches(d, flt)]

    def save(self, document: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(("save", document.get("_id")))
        doc_id = document.get("_id") or new_id()
        for key in self.unique_fields:
            value = document.get(key)
            if value is None:
                continue
            for other_id, other in self._docs.items():
                if other_id != doc_id and other.get(key) == value:
                    raise DuplicateKeyError(self.name, key, value)
        stored = copy.deepcopy(document)
        stored["_id"] = doc_id
        self._docs[doc_id] = stored
        self.writes += 1
        document["_id"] = doc_id
        return copy.deepcopy(stored)


class MemoryDatabase:
    def __init__(self) -> None:
        for name in COLLECTIONS:
            setattr(self, name, MemoryCollection(name, UNIQUE_FIELDS.get(name, ())))

    def reset_calls(self) -> None:
        for name in COLLECTIONS:
            collection = getattr(self, name)
            collection.calls.clear()
            collection.writes = 0
