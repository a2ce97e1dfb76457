#!/usr/bin/env python3
"""Dataset generation script for performance testing.

Generates synthetic upload CSVs for one ingestion kind. Line 1 is the header,
data starts on line 2, matching what classroom_batch.source.reader expects.

Student / teacher files use VNU-IDs starting at --first-id; score and status
files reference the same ID range so they can be run after a student upload.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import numpy as np
import pandas as pd

KINDS = ("student", "teacher", "subject", "semester", "score", "status")


def generate_rows(kind: str, rows: int, first_id: int = 19020000, seed: int = 42) -> pd.DataFrame:
    """Build a DataFrame of ``rows`` synthetic rows for ``kind``."""
    rng = np.random.default_rng(seed)
    ids = [str(first_id + i) for i in range(rows)]

    if kind in ("student", "teacher"):
        return pd.DataFrame(
            {
                "vnu_id": ids,
                "email": [f"{i}@vnu.edu.vn" for i in ids],
                "name": [f"Student {i}" for i in ids],
                "date_of_birth": [f"200{rng.integers(0, 5)}-0{rng.integers(1, 9)}-1{rng.integers(0, 9)}" for _ in ids],
            }
        )
    if kind == "subject":
        return pd.DataFrame(
            {
                "subject_code": [f"INT{10000 + i}" for i in range(rows)],
                "subject_name": [f"Subject {i}" for i in range(rows)],
                "credits_number": rng.integers(1, 5, rows).astype(str),
            }
        )
    if kind == "semester":
        return pd.DataFrame(
            {
                "semester_id": [f"HK{100 + i}" for i in range(rows)],
                "semester_name": [f"Semester {i}" for i in range(rows)],
            }
        )
    if kind == "score":
        return pd.DataFrame(
            {
                "vnu_id": ids,
                "subject_code": "INT10000",
                "semester_id": "HK100",
                "score": np.round(rng.uniform(0, 10, rows), 1).astype(str),
            }
        )
    statuses = ["active", "on leave", "warning", "graduated"]
    return pd.DataFrame({"vnu_id": ids, "status": rng.choice(statuses, rows)})


def write_csv(output_path: Path, df: pd.DataFrame) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_path, index=False)
    print(f"Created CSV file: {output_path}")
    print(f"  Rows: {len(df)} (+ 1 header row)")
    print(f"  Columns: {', '.join(df.columns)}")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate synthetic CSV uploads for performance testing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s student uploads/students.csv --rows 1000
  %(prog)s score uploads/scores.csv --rows 1000 --first-id 19020000
        """,
    )
    parser.add_argument("kind", choices=KINDS)
    parser.add_argument("output", type=Path, help="Output CSV path")
    parser.add_argument("--rows", type=int, default=1_000, help="Number of data rows (default: 1,000)")
    parser.add_argument("--first-id", type=int, default=19020000, help="First VNU-ID (default: 19020000)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    args = parser.parse_args()

    if args.rows <= 0:
        print("Error: --rows must be positive", file=sys.stderr)
        return 1

    write_csv(args.output, generate_rows(args.kind, args.rows, args.first_id, args.seed))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
