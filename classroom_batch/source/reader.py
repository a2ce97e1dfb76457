from __future__ import annotations

from pathlib import Path

import pandas as pd

from ..models.row_record import RowRecord

"""CSV row source.

Line 1 is the header, data starts on line 2. Cells are read as strings with
pandas NA conversion disabled so "NA" / "null" / "" survive unchanged; typing
is the job of the per-kind row schema.
"""

__all__ = [
    "RowSourceError",
    "read_csv_rows",
]


class RowSourceError(Exception):
    """Raised when the uploaded file cannot be read as CSV."""


def read_csv_rows(path: Path) -> list[RowRecord]:
    if not path.exists():
        raise RowSourceError(f"file not found: {path}")
    try:
        df = pd.read_csv(
            path,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=False,
            encoding="utf-8-sig",
        )
    except pd.errors.EmptyDataError:
        # no header at all
        return []
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise RowSourceError(f"malformed csv {path.name}: {e}") from e

    columns = [str(c).strip() for c in df.columns]
    rows: list[RowRecord] = []
    for idx, raw in enumerate(df.itertuples(index=False, name=None)):
        # short or blank lines pad with NaN even with keep_default_na=False
        cells = [("" if pd.isna(v) else str(v).strip()) for v in raw]
        if all(c == "" for c in cells):
            continue
        rows.append(RowRecord(row_number=idx + 2, values=dict(zip(columns, cells, strict=False))))
    return rows
