from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""RowRecord model for the batch ingestion engine.

A RowRecord is one parsed line of an uploaded CSV file. The engine never mutates
it; response shaping builds a new dict with exactly one extra key.
"""

__all__ = [
    "RowRecord",
]


@dataclass(frozen=True)
class RowRecord:
    """Logical representation of a single CSV data row.

    The row_number refers to the source line (header = line 1, first data row = line 2).
    """
    row_number: int  # CSV line number
    values: dict[str, Any] = field(default_factory=dict)  # Column name -> value, header order

    def get(self, column: str, default: Any = None) -> Any:
        return self.values.get(column, default)

    def with_values(self, **extra: Any) -> RowRecord:
        """Return a copy with extra/overridden columns appended after the originals."""
        merged = dict(self.values)
        merged.update(extra)
        return RowRecord(row_number=self.row_number, values=merged)

    def annotated(self, key: str, text: Any) -> dict[str, Any]:
        """Original fields plus one annotation field (``response`` or ``error``)."""
        out = dict(self.values)
        out[key] = text
        return out

    def as_text(self) -> RowRecord:
        """Copy with numeric cells rendered as CSV text (20222 -> "20222", 9.5 -> "9.5")."""
        values = {
            k: str(v) if isinstance(v, (int, float)) and not isinstance(v, bool) else v
            for k, v in self.values.items()
        }
        return RowRecord(row_number=self.row_number, values=values)
