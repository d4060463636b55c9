from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

from listing_intake.collaborators.interfaces import StorageService
from listing_intake.google.api import GoogleApiClient
from listing_intake.models.exposure import Access, Permission, SharingState
from listing_intake.models.source_file import MimeType, StorageFile, StorageFolder

"""Google Drive v3 implementation of StorageService.

Sharing is modelled the way Drive exposes it: link sharing is a permission of
type ``anyone`` (or ``domain``) whose ``allowFileDiscovery`` flag separates
"anyone with the link" from "public on the web". Setting a sharing state
replaces those permissions; user/group permissions are never touched.
"""

logger = logging.getLogger(__name__)

_FILE_FIELDS = "id,name,mimeType"
_LINK_TYPES = ("anyone", "domain")

_ROLE_TO_PERMISSION = {
    "reader": Permission.VIEW,
    "commenter": Permission.COMMENT,
    "writer": Permission.EDIT,
    "fileOrganizer": Permission.EDIT,
    "organizer": Permission.EDIT,
}
_PERMISSION_TO_ROLE = {
    Permission.VIEW: "reader",
    Permission.COMMENT: "commenter",
    Permission.EDIT: "writer",
}


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


def sharing_from_permissions(permissions: list[dict[str, Any]]) -> SharingState:
    """Derive the link-sharing state from a Drive permission list."""
    by_type = {p.get("type"): p for p in permissions if p.get("type") in _LINK_TYPES}
    perm = by_type.get("anyone") or by_type.get("domain")
    if perm is None:
        return SharingState(Access.PRIVATE, Permission.NONE)

    discoverable = bool(perm.get("allowFileDiscovery"))
    if perm["type"] == "anyone":
        access = Access.ANYONE if discoverable else Access.ANYONE_WITH_LINK
    else:
        access = Access.DOMAIN if discoverable else Access.DOMAIN_WITH_LINK
    return SharingState(
        access,
        _ROLE_TO_PERMISSION.get(perm.get("role", ""), Permission.VIEW),
        domain=perm.get("domain"),
    )


def permission_body(state: SharingState) -> dict[str, Any] | None:
    """Drive permission resource for ``state``; None for private files."""
    if state.access is Access.PRIVATE or state.permission is Permission.NONE:
        return None
    body: dict[str, Any] = {
        "role": _PERMISSION_TO_ROLE[state.permission],
        "allowFileDiscovery": state.access in (Access.ANYONE, Access.DOMAIN),
    }
    if state.access in (Access.ANYONE, Access.ANYONE_WITH_LINK):
        body["type"] = "anyone"
    else:
        body["type"] = "domain"
        body["domain"] = state.domain
    return body


class DriveStorage(GoogleApiClient, StorageService):

    root_folder_id = "root"

    def get_file(self, file_id: str) -> StorageFile:
        data = self.request(
            "GET", f"files/{file_id}", "getFile",
            params={"fields": _FILE_FIELDS, "supportsAllDrives": "true"},
        )
        return StorageFile(id=data["id"], name=data.get("name", ""), mime_type=data.get("mimeType", ""))

    def get_folder(self, folder_id: str) -> StorageFolder:
        data = self.request(
            "GET", f"files/{folder_id}", "getFolder",
            params={"fields": _FILE_FIELDS, "supportsAllDrives": "true"},
        )
        return StorageFolder(id=data["id"], name=data.get("name", ""))

    def _search(self, query: str, context: str) -> Iterator[dict[str, Any]]:
        page_token: str | None = None
        while True:
            params: dict[str, Any] = {
                "q": query,
                "fields": f"nextPageToken,files({_FILE_FIELDS})",
                "pageSize": 1000,
                "supportsAllDrives": "true",
                "includeItemsFromAllDrives": "true",
            }
            if page_token:
                params["pageToken"] = page_token
            data = self.request("GET", "files", context, params=params)
            yield from data.get("files", [])
            page_token = data.get("nextPageToken")
            if not page_token:
                return

    def list_files(self, folder_id: str) -> Iterator[StorageFile]:
        query = (
            f"'{_quote(folder_id)}' in parents and trashed = false "
            f"and mimeType != '{MimeType.GOOGLE_FOLDER}'"
        )
        for f in self._search(query, "listFiles"):
            yield StorageFile(id=f["id"], name=f.get("name", ""), mime_type=f.get("mimeType", ""))

    def find_folders(self, parent_id: str, name: str) -> list[StorageFolder]:
        query = (
            f"'{_quote(parent_id)}' in parents and trashed = false "
            f"and mimeType = '{MimeType.GOOGLE_FOLDER}' and name = '{_quote(name)}'"
        )
        return [StorageFolder(id=f["id"], name=f.get("name", "")) for f in self._search(query, "findFolders")]

    def find_files(self, parent_id: str, name: str) -> list[StorageFile]:
        query = (
            f"'{_quote(parent_id)}' in parents and trashed = false "
            f"and mimeType != '{MimeType.GOOGLE_FOLDER}' and name = '{_quote(name)}'"
        )
        return [
            StorageFile(id=f["id"], name=f.get("name", ""), mime_type=f.get("mimeType", ""))
            for f in self._search(query, "findFiles")
        ]

    def create_folder(self, parent_id: str, name: str) -> StorageFolder:
        data = self.request(
            "POST", "files", "createFolder",
            params={"fields": _FILE_FIELDS, "supportsAllDrives": "true"},
            payload={"name": name, "mimeType": MimeType.GOOGLE_FOLDER, "parents": [parent_id]},
        )
        logger.info("created folder %s (id=%s)", name, data["id"])
        return StorageFolder(id=data["id"], name=data.get("name", name))

    def move(self, file_id: str, folder_id: str) -> None:
        current = self.request(
            "GET", f"files/{file_id}", "move",
            params={"fields": "parents", "supportsAllDrives": "true"},
        )
        self.request(
            "PATCH", f"files/{file_id}", "move",
            params={
                "addParents": folder_id,
                "removeParents": ",".join(current.get("parents", [])),
                "supportsAllDrives": "true",
            },
            payload={},
        )

    def _link_permissions(self, file_id: str) -> list[dict[str, Any]]:
        data = self.request(
            "GET", f"files/{file_id}/permissions", "getSharing",
            params={
                "fields": "permissions(id,type,role,domain,allowFileDiscovery)",
                "supportsAllDrives": "true",
            },
        )
        return [p for p in data.get("permissions", []) if p.get("type") in _LINK_TYPES]

    def get_sharing(self, file_id: str) -> SharingState:
        return sharing_from_permissions(self._link_permissions(file_id))

    def set_sharing(self, file_id: str, state: SharingState) -> None:
        for perm in self._link_permissions(file_id):
            self.request(
                "DELETE", f"files/{file_id}/permissions/{perm['id']}", "setSharing",
                params={"supportsAllDrives": "true"},
            )
        body = permission_body(state)
        if body is not None:
            self.request(
                "POST", f"files/{file_id}/permissions", "setSharing",
                params={"supportsAllDrives": "true"},
                payload=body,
            )

    def read_text(self, file_id: str, encoding: str = "utf-8") -> str:
        return self.request_text(
            "GET", f"files/{file_id}", "readText",
            params={"alt": "media", "supportsAllDrives": "true"},
            encoding=encoding,
        )

    def convert_to_spreadsheet(self, file_id: str, name: str) -> str:
        data = self.request(
            "POST", f"files/{file_id}/copy", "convert",
            params={"fields": "id", "supportsAllDrives": "true"},
            payload={"name": name, "mimeType": MimeType.GOOGLE_SHEETS},
        )
        return data["id"]

    def trash(self, file_id: str) -> None:
        self.request(
            "PATCH", f"files/{file_id}", "trash",
            params={"supportsAllDrives": "true"},
            payload={"trashed": True},
        )

    def create_spreadsheet(self, title: str, folder_id: str | None) -> str:
        """Create an empty native spreadsheet directly inside ``folder_id``."""
        payload: dict[str, Any] = {"name": title, "mimeType": MimeType.GOOGLE_SHEETS}
        if folder_id:
            payload["parents"] = [folder_id]
        data = self.request(
            "POST", "files", "createSpreadsheet",
            params={"fields": "id", "supportsAllDrives": "true"},
            payload=payload,
        )
        return data["id"]
