from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

"""Storage entries and the per-file processing outcome.

Routing lifecycle of a submission file: Inbox -> (Processed | Error).
"""

__all__ = [
    "MimeType",
    "StorageFile",
    "StorageFolder",
    "WorkFolders",
    "FileRoutingState",
    "FileOutcome",
]


class MimeType:
    GOOGLE_SHEETS = "application/vnd.google-apps.spreadsheet"
    GOOGLE_FOLDER = "application/vnd.google-apps.folder"
    XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    XLS = "application/vnd.ms-excel"
    CSV = "text/csv"
    TEXT = "text/plain"


@dataclass(frozen=True)
class StorageFile:
    id: str
    name: str
    mime_type: str


@dataclass(frozen=True)
class StorageFolder:
    id: str
    name: str


@dataclass(frozen=True)
class WorkFolders:
    inbox: StorageFolder
    processed: StorageFolder
    error: StorageFolder
    results: StorageFolder


class FileRoutingState(Enum):
    """Where a submission file ends up.

    - INBOX: not processed yet
    - PROCESSED: at least one row was published
    - ERROR: nothing was published, or the file could not be processed at all
    """
    INBOX = "inbox"
    PROCESSED = "processed"
    ERROR = "error"


@dataclass(frozen=True)
class FileOutcome:
    """Processing result for a single submission file."""
    file_id: str
    name: str
    routing: FileRoutingState
    start_time: datetime | None = None
    end_time: datetime | None = None
    attempted_rows: int = 0
    success_rows: int = 0
    skipped_rows: int = 0
    error_rows: int = 0
    log_url: str = ""
    error: str | None = None  # file-level failure reason
