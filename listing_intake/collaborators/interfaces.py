from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import Any

from listing_intake.models.exposure import SharingState
from listing_intake.models.source_file import StorageFile, StorageFolder

"""Interfaces of the external collaborators.

The intake services only talk to these abstract classes. Concrete
implementations live in ``listing_intake.google`` (REST clients) and
``listing_intake.services.triggers`` (crontab); tests substitute in-memory fakes.
"""

__all__ = [
    "StorageService",
    "SpreadsheetEngine",
    "DirectoryApi",
    "TriggerService",
]


class StorageService(ABC):
    """File/folder storage with sharing-permission primitives."""

    root_folder_id: str = "root"

    @abstractmethod
    def get_file(self, file_id: str) -> StorageFile:
        """Return file metadata; raises when the id is unknown."""

    @abstractmethod
    def get_folder(self, folder_id: str) -> StorageFolder:
        pass

    @abstractmethod
    def list_files(self, folder_id: str) -> Iterator[StorageFile]:
        """Iterate direct child files (not folders) of a folder."""

    @abstractmethod
    def find_folders(self, parent_id: str, name: str) -> list[StorageFolder]:
        pass

    @abstractmethod
    def find_files(self, parent_id: str, name: str) -> list[StorageFile]:
        pass

    @abstractmethod
    def create_folder(self, parent_id: str, name: str) -> StorageFolder:
        pass

    @abstractmethod
    def move(self, file_id: str, folder_id: str) -> None:
        pass

    @abstractmethod
    def get_sharing(self, file_id: str) -> SharingState:
        pass

    @abstractmethod
    def set_sharing(self, file_id: str, state: SharingState) -> None:
        pass

    @abstractmethod
    def read_text(self, file_id: str, encoding: str = "utf-8") -> str:
        pass

    @abstractmethod
    def convert_to_spreadsheet(self, file_id: str, name: str) -> str:
        """Create a native spreadsheet copy of a workbook; returns the copy's id."""

    @abstractmethod
    def trash(self, file_id: str) -> None:
        pass

    def get_or_create_folder(self, parent_id: str, name: str) -> StorageFolder:
        found = self.find_folders(parent_id, name)
        return found[0] if found else self.create_folder(parent_id, name)


class SpreadsheetEngine(ABC):
    """Spreadsheet documents addressed by id; rows/columns are 1-based."""

    @abstractmethod
    def get_values(self, spreadsheet_id: str, sheet: str | None = None) -> list[list[Any]]:
        """Return the used range of a sheet (first sheet when ``sheet`` is None)."""

    @abstractmethod
    def create(self, title: str, folder_id: str | None = None) -> str:
        """Create a spreadsheet (inside ``folder_id`` when given); returns its id."""

    @abstractmethod
    def url(self, spreadsheet_id: str) -> str:
        pass

    @abstractmethod
    def rename_sheet(self, spreadsheet_id: str, old_title: str | None, new_title: str) -> None:
        """Rename a sheet (the first one when ``old_title`` is None)."""

    @abstractmethod
    def insert_sheet(self, spreadsheet_id: str, title: str, index: int | None = None) -> None:
        pass

    @abstractmethod
    def set_values(
        self, spreadsheet_id: str, sheet: str, row: int, col: int, values: list[list[Any]]
    ) -> None:
        pass

    @abstractmethod
    def append_row(self, spreadsheet_id: str, sheet: str, values: list[Any]) -> int:
        """Append a row after the last used row; returns its row number."""

    @abstractmethod
    def set_style(
        self,
        spreadsheet_id: str,
        sheet: str,
        row: int,
        col: int,
        height: int = 1,
        width: int = 1,
        *,
        background: str | None = None,
        font_color: str | None = None,
        bold: bool | None = None,
    ) -> None:
        pass

    @abstractmethod
    def freeze_rows(self, spreadsheet_id: str, sheet: str, rows: int) -> None:
        pass

    def flush(self) -> None:
        """Commit pending writes. REST engines write eagerly, so this is a no-op by default."""


class DirectoryApi(ABC):
    """Business-directory REST API (accounts, locations, media, local posts)."""

    @abstractmethod
    def list_accounts(self) -> dict[str, Any]:
        pass

    @abstractmethod
    def list_locations(
        self, account_name: str, page_size: int = 100, page_token: str | None = None
    ) -> dict[str, Any]:
        pass

    @abstractmethod
    def list_media(self, account_name: str, location_name: str) -> dict[str, Any]:
        pass

    @abstractmethod
    def create_local_post(self, location_name: str, payload: dict[str, Any]) -> dict[str, Any]:
        pass

    @abstractmethod
    def upload_media(
        self, account_name: str, location_name: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        pass


class TriggerService(ABC):
    """Time-based triggers bound to a named entry point."""

    @abstractmethod
    def list_triggers(self) -> list[Any]:
        pass

    @abstractmethod
    def create_trigger(self, spec: Any) -> None:
        pass

    @abstractmethod
    def delete_triggers(self, entry_point: str) -> int:
        """Delete every trigger of ``entry_point``; returns how many were removed."""
