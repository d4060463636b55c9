from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

Row number -1 marks file-level errors (header problems, location listing
failures, unexpected exceptions) where no single row is to blame.
"""

__all__ = [
    "ErrorRecord",
    "FILE_LEVEL_ROW",
]

FILE_LEVEL_ROW = -1


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Submission file name
        row: 1-based row number in the submission grid, -1 for file-level errors
        store_code: Store code of the row ("" for file-level errors)
        error_type: Error classification in UPPER_SNAKE_CASE
        message: Human readable message (same text as the execution log)
    """
    timestamp: str
    file: str
    row: int
    store_code: str
    error_type: str
    message: str

    @staticmethod
    def create(
        file: str,
        row: int,
        error_type: str,
        message: str,
        store_code: str = "",
    ) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            row=row,
            store_code=store_code,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
