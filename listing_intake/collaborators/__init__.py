from .interfaces import DirectoryApi, SpreadsheetEngine, StorageService, TriggerService

__all__ = [
    "DirectoryApi",
    "SpreadsheetEngine",
    "StorageService",
    "TriggerService",
]
