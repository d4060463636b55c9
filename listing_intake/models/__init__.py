"""Domain models for the listing intake tool."""

from .error_record import ErrorRecord
from .exposure import Access, ExposureHandle, Permission, SharingState
from .processing_result import FileStat, ProcessingResult
from .run_result import LogEntry, Outcome, RowOutcome, RunSummary
from .source_file import (
    FileOutcome,
    FileRoutingState,
    MimeType,
    StorageFile,
    StorageFolder,
    WorkFolders,
)
from .store_config import MediaSyncResult, StoreConfig
from .submission import ParsedSubmission, SubmissionHeader, SubmissionRow

__all__ = [
    # Submission models
    "SubmissionHeader",
    "SubmissionRow",
    "ParsedSubmission",
    # Run / log models
    "Outcome",
    "RowOutcome",
    "LogEntry",
    "RunSummary",
    "ErrorRecord",
    "FileStat",
    "ProcessingResult",
    # Storage / exposure models
    "MimeType",
    "StorageFile",
    "StorageFolder",
    "WorkFolders",
    "FileRoutingState",
    "FileOutcome",
    "Access",
    "Permission",
    "SharingState",
    "ExposureHandle",
    # Media sync
    "StoreConfig",
    "MediaSyncResult",
]
