from __future__ import annotations

from typing import Any

"""Batch-level and precondition errors raised by the service layer.

Per-row business failures are never raised; they are Rejected outcomes.
"""

__all__ = [
    "BatchRejected",
    "ClassNotFound",
    "RosterPreconditionError",
]


class BatchRejected(Exception):
    """Whole input refused before any row was processed (HTTP 400, zero writes)."""

    status_code = 400

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def payload(self) -> Any:
        """Envelope message: the bare reason, or the reason beside extra keys."""
        if not self.details:
            return self.message
        return {"error": self.message, **self.details}


class RosterPreconditionError(Exception):
    """Class document unusable for reconciliation (missing member set)."""


class ClassNotFound(RosterPreconditionError):
    status_code = 404

    def __init__(self, class_id: str | None) -> None:
        super().__init__("Class not found")
        self.class_id = class_id
        self.message = "Class not found"
