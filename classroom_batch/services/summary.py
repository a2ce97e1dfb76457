from __future__ import annotations

from ..models.ingestion_result import IngestionResult

"""SUMMARY line rendering.

Format:
SUMMARY kind=<kind> rows=<n> registered=<r> failed=<f> elapsed_sec=<s> throughput_rps=<t>
"""

__all__ = [
    "render_ingestion_summary",
    "render_summary_line",
]


def _format_number(value: float) -> str:
    # integers without ".0", tiny values without scientific notation
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(kind: str, rows: int, registered: int, failed: int, elapsed_seconds: float) -> str:
    """Render the SUMMARY line for one upload or roster request.

    >>> render_summary_line("student", 4, 3, 1, 2.0)
    'SUMMARY kind=student rows=4 registered=3 failed=1 elapsed_sec=2 throughput_rps=2'
    """
    throughput = rows / elapsed_seconds if elapsed_seconds > 0 else 0.0
    return (
        f"SUMMARY kind={kind} "
        f"rows={rows} "
        f"registered={registered} "
        f"failed={failed} "
        f"elapsed_sec={_format_number(elapsed_seconds)} "
        f"throughput_rps={_format_number(throughput)}"
    )


def render_ingestion_summary(result: IngestionResult) -> str:
    return render_summary_line(
        result.kind,
        result.total_rows,
        len(result.registered),
        len(result.failed),
        result.elapsed_seconds,
    )
