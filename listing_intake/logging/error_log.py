from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime
from pathlib import Path

from listing_intake.models.error_record import ErrorRecord

"""Run-wide error log.

Every failed row and every file-level problem of an intake run becomes one
JSON Lines record (see ErrorRecord for the key set). Records are kept in
memory while the inbox is processed and written to
``logs/errors-YYYYMMDD-HHMMSS.log`` (UTC stamp of the first flush). A run
without errors leaves no file behind.
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """Collects error records of one run; ``flush`` appends them as JSON Lines.

    Submissions are processed one at a time, so the buffer is not locked.
    """

    def __init__(self, logs_dir: Path | None = None) -> None:
        """Initialize an empty buffer.

        Args:
            logs_dir: Target directory (default ``./logs``), created on first flush
        """
        self._logs_dir = logs_dir or LOGS_DIR
        self._pending: list[ErrorRecord] = []
        self._path: Path | None = None

    @property
    def file_path(self) -> Path:
        """Log file of this run; fixed (and its directory created) on first access."""
        if self._path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            self._path = self._logs_dir / f"errors-{datetime.now(UTC).strftime(TIMESTAMP_FMT)}.log"
        return self._path

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._pending)

    def append(self, record: ErrorRecord) -> None:
        self._pending.append(record)

    def count_by_type(self) -> dict[str, int]:
        """Pending records per ``error_type`` (e.g. ``{"VALIDATION_ERROR": 2}``)."""
        return dict(Counter(r.error_type for r in self._pending))

    def __len__(self) -> int:
        return len(self._pending)

    def flush(self) -> Path | None:
        """Append pending records to the run's log file.

        Returns:
            Path of the log file, or None when nothing was pending (no file is
            created in that case)
        """
        if not self._pending:
            return None
        path = self.file_path
        with path.open("a", encoding="utf-8") as f:
            f.writelines(r.to_json_line() + "\n" for r in self._pending)
        self._pending.clear()
        return path
