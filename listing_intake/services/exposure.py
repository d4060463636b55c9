from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from contextlib import contextmanager

from listing_intake.collaborators.interfaces import StorageService
from listing_intake.config.loader import DEFAULT_DOWNLOAD_URL_TEMPLATE
from listing_intake.models.exposure import PUBLIC_LINK_VIEW, ExposureHandle, SharingState
from listing_intake.models.source_file import StorageFile

"""Scoped exposure of private assets.

A remote API can only fetch an image by URL, so the asset is made readable by
anyone with the link for the duration of one call and then put back exactly
as it was:

    with manager.exposed(ref) as handle:
        post(handle.public_url if handle else None)

Asset references are resolved in this order:
1. a storage URL carrying the id (``...?id=<id>`` or ``.../d/<id>/...``)
2. a bare id
3. a ``folder/sub/name.jpg`` path walked from the root folder
"""

logger = logging.getLogger(__name__)

__all__ = [
    "AssetNotFoundError",
    "ExposureManager",
]

_URL_ID = re.compile(r"(?:id=|/d/)([a-zA-Z0-9_-]{25,})")
_BARE_ID = re.compile(r"^[a-zA-Z0-9_-]{25,}$")


class AssetNotFoundError(Exception):
    pass


class ExposureManager:

    def __init__(
        self,
        storage: StorageService,
        root_folder_id: str | None = None,
        download_url_template: str = DEFAULT_DOWNLOAD_URL_TEMPLATE,
    ) -> None:
        self._storage = storage
        self._root_folder_id = root_folder_id
        self._download_url_template = download_url_template

    def _file_by_id(self, file_id: str) -> StorageFile | None:
        try:
            return self._storage.get_file(file_id)
        except Exception as e:
            logger.debug("asset id lookup failed id=%s: %s", file_id, e)
            return None

    def _file_by_path(self, path: str) -> StorageFile | None:
        parts = [p.strip() for p in path.split("/") if p.strip()]
        if not parts:
            return None

        folder_id = self._root_folder_id or self._storage.root_folder_id
        for depth, name in enumerate(parts[:-1], start=1):
            folders = self._storage.find_folders(folder_id, name)
            if not folders:
                logger.info("folder not found: %s", "/".join(parts[:depth]))
                return None
            folder_id = folders[0].id

        files = self._storage.find_files(folder_id, parts[-1])
        if not files:
            logger.info("file not found: %s", path)
            return None
        return files[0]

    def resolve(self, asset_ref: str) -> StorageFile | None:
        """Find the asset behind ``asset_ref``; misses return None."""
        ref = asset_ref.strip()
        file: StorageFile | None = None

        match = _URL_ID.search(ref)
        if match:
            file = self._file_by_id(match.group(1))
        if file is None and _BARE_ID.match(ref):
            file = self._file_by_id(ref)
        if file is None:
            file = self._file_by_path(ref)
        return file

    def acquire(self, asset_ref: str) -> ExposureHandle:
        """Make the asset link-readable and return the handle needed to undo it.

        Raises:
            AssetNotFoundError: no resolution strategy matched
        """
        file = self.resolve(asset_ref)
        if file is None:
            raise AssetNotFoundError(f"image file not found: {asset_ref}")
        return self.acquire_file(file, asset_ref)

    def acquire_file(self, file: StorageFile, asset_ref: str | None = None) -> ExposureHandle:
        """Expose an already resolved file."""
        original = self._storage.get_sharing(file.id)
        try:
            self._storage.set_sharing(file.id, PUBLIC_LINK_VIEW)
        except Exception:
            # a partial change (link permission removed, new one not added) must not stick
            self._restore_state(file.id, original)
            raise

        public_url = self._download_url_template.format(file_id=file.id)
        logger.debug("exposed asset %s id=%s was=%s", asset_ref or file.name, file.id, original)
        return ExposureHandle(
            asset_ref=asset_ref or file.id, file_id=file.id, public_url=public_url, original=original
        )

    def _restore_state(self, file_id: str, original: SharingState) -> None:
        try:
            self._storage.set_sharing(file_id, original)
        except Exception as e:
            logger.warning(
                "failed to restore sharing id=%s to %s/%s: %s",
                file_id, original.access.value, original.permission.value, e,
            )

    def restore(self, handle: ExposureHandle | None) -> None:
        """Put the recorded sharing state back. Never raises."""
        if handle is None:
            return
        self._restore_state(handle.file_id, handle.original)

    @contextmanager
    def exposed(self, asset_ref: str) -> Iterator[ExposureHandle | None]:
        """Expose ``asset_ref`` for the body of the block; blank refs yield None."""
        if not asset_ref or not asset_ref.strip():
            yield None
            return
        handle = self.acquire(asset_ref)
        try:
            yield handle
        finally:
            self.restore(handle)

    @contextmanager
    def exposed_file(self, file: StorageFile) -> Iterator[ExposureHandle]:
        handle = self.acquire_file(file)
        try:
            yield handle
        finally:
            self.restore(handle)
