from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

"""Per-file run results: outcomes, log entries and the finalized summary."""

__all__ = [
    "Outcome",
    "RowOutcome",
    "LogEntry",
    "RunSummary",
]


class Outcome(Enum):
    SUCCESS = "SUCCESS"
    SKIP = "SKIP"
    ERROR = "ERROR"

    @property
    def label(self) -> str:
        return {"SUCCESS": "Success", "SKIP": "Skip", "ERROR": "Error"}[self.value]


@dataclass(frozen=True)
class RowOutcome:
    """Result of processing one row; row failures travel as values, not exceptions."""
    outcome: Outcome
    external_id: str = ""
    message: str = ""
    error_type: str = ""

    @staticmethod
    def success(external_id: str) -> RowOutcome:
        return RowOutcome(Outcome.SUCCESS, external_id=external_id)

    @staticmethod
    def error(message: str, error_type: str) -> RowOutcome:
        return RowOutcome(Outcome.ERROR, message=message, error_type=error_type)


@dataclass(frozen=True)
class LogEntry:
    """One line of the execution log (10 columns, see execution_log.LOG_COLUMNS)."""
    timestamp: datetime
    business_group_id: str
    business_group_name: str
    business_name: str
    store_code: str
    product_name: str
    outcome: Outcome
    external_id: str
    message: str
    source_file_name: str

    def to_cells(self, timestamp_format: str = "%Y/%m/%d %H:%M:%S") -> list[str]:
        return [
            self.timestamp.strftime(timestamp_format),
            self.business_group_id,
            self.business_group_name,
            self.business_name,
            self.store_code,
            self.product_name,
            self.outcome.label,
            self.external_id,
            self.message,
            self.source_file_name,
        ]


@dataclass(frozen=True)
class RunSummary:
    """Finalized counters of one run. ``success_rate`` is None when nothing was recorded."""
    total: int
    success: int
    skip: int
    error: int
    success_rate: int | None

    @property
    def success_rate_label(self) -> str:
        return "-" if self.success_rate is None else f"{self.success_rate}%"
