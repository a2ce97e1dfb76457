from __future__ import annotations

from dataclasses import dataclass
from typing import Any

"""Roster reconciliation result models."""

__all__ = [
    "MemberAddResult",
    "MemberDeleteResult",
]


@dataclass(frozen=True)
class MemberAddResult:
    members: list[str]  # class member references after the write
    registered: list[dict[str, Any]]  # [{"email": ...}]
    failed: list[dict[str, Any]]  # [{"email": <identifier as sent>, "error": ...}]

    @property
    def requested(self) -> int:
        return len(self.registered) + len(self.failed)

    def as_message(self) -> dict[str, Any]:
        return {"members": self.members, "registered": self.registered, "failed": self.failed}


@dataclass(frozen=True)
class MemberDeleteResult:
    deleted: list[dict[str, Any]]  # removed member records
    failed: list[Any]  # identifiers that matched no current member
    members: list[str]  # remaining member references

    def as_message(self) -> dict[str, Any]:
        return {"deleted": self.deleted, "failed": self.failed}
