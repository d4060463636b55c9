from __future__ import annotations

from listing_intake.models.processing_result import ProcessingResult

"""SUMMARY line rendering.

Format:
SUMMARY files={total} processed={p} error={e} rows={rows} success={s}
skipped={k} failed={f} elapsed_sec={elapsed}
"""

__all__ = [
    "render_summary_line",
    "format_seconds",
]


def format_seconds(value: float) -> str:
    """Integral values without a decimal point, tiny values without exponent."""
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return str(round(value, 3))


def render_summary_line(result: ProcessingResult) -> str:
    """Render the final SUMMARY line of an inbox pass.

    >>> from datetime import datetime, timezone
    >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
    >>> r = ProcessingResult(
    ...     processed_files=1, error_files=1, total_rows=5, success_rows=3,
    ...     skipped_rows=0, error_rows=2, start_time=t, end_time=t, elapsed_seconds=4.0,
    ... )
    >>> render_summary_line(r)
    'SUMMARY files=2 processed=1 error=1 rows=5 success=3 skipped=0 failed=2 elapsed_sec=4'
    """
    return (
        f"SUMMARY files={result.total_files} "
        f"processed={result.processed_files} "
        f"error={result.error_files} "
        f"rows={result.total_rows} "
        f"success={result.success_rows} "
        f"skipped={result.skipped_rows} "
        f"failed={result.error_rows} "
        f"elapsed_sec={format_seconds(result.elapsed_seconds)}"
    )
