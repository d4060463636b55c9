from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Run-level aggregates for an inbox pass, used for the SUMMARY line."""


@dataclass(frozen=True)
class FileStat:
    """Per-file statistics (internal helper for ProcessingResult)."""
    file_name: str
    routing: str  # processed / error
    success_rows: int
    error_rows: int
    elapsed_seconds: float


@dataclass(frozen=True)
class ProcessingResult:
    """Aggregated results of one ``process_inbox_files`` call."""
    processed_files: int
    error_files: int
    total_rows: int
    success_rows: int
    skipped_rows: int
    error_rows: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    file_stats: list[FileStat] | None = None

    @property
    def total_files(self) -> int:
        return self.processed_files + self.error_files
