from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Tagged per-row outcomes returned by ingestion operations.

Operations return either Registered or Rejected. Anything that is neither (driver
errors, programming errors) is raised and propagates past the engine.
"""

__all__ = [
    "FailureCode",
    "Registered",
    "Rejected",
    "RowOutcome",
]


class FailureCode(Enum):
    """Recognized business-rule failure classes (error_type in the error log)."""
    NOT_FOUND = "NOT_FOUND"
    DUPLICATE_KEY = "DUPLICATE_KEY"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    INVALID_ROW = "INVALID_ROW"


@dataclass(frozen=True)
class Registered:
    message: str

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Rejected:
    reason: str
    code: FailureCode = FailureCode.INVALID_ROW

    @property
    def ok(self) -> bool:
        return False


RowOutcome = Registered | Rejected
