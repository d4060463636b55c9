from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from listing_intake.config.loader import IntakeConfig, resolve_timezone
from listing_intake.google.api import ApiError
from listing_intake.models.source_file import StorageFile
from listing_intake.models.store_config import MediaSyncResult, StoreColumn, StoreConfig
from listing_intake.services.exposure import ExposureManager
from listing_intake.services.locations import normalize_account_name
from listing_intake.services.orchestrator import IntakeServices

"""Store photo sync.

For every active store listed in the store configuration sheet, the image
files sitting directly in the store's folder are registered as location
photos, moved into an ``uploaded`` subfolder and written to the upload
history sheet. Each image is exposed only for the duration of its upload
request.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "MediaSyncError",
    "IMAGE_MIME_TYPES",
    "read_store_configs",
    "is_image_file",
    "build_media_item",
    "sync_store_media",
]

IMAGE_MIME_TYPES = frozenset({"image/jpeg", "image/png", "image/gif"})
LOCATION_PREFIX = "locations/"

HISTORY_RESULT_COL = 5
HISTORY_COLORS = {True: "#d9ead3", False: "#fce5cd"}
TIMESTAMP_FMT = "%Y/%m/%d %H:%M:%S"


class MediaSyncError(Exception):
    """Store configuration is unavailable; nothing was uploaded."""


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def read_store_configs(
    values: list[list[Any]], active_status: str, default_category: str
) -> list[StoreConfig]:
    """Active, complete stores from the raw sheet values (row 1 is the header)."""
    stores: list[StoreConfig] = []
    for offset, raw in enumerate(values[1:]):
        row_number = offset + 2
        cells = [_text(v) for v in raw] + [""] * (StoreColumn.WIDTH - len(raw))

        store_name = cells[StoreColumn.STORE_NAME]
        if not store_name:
            continue
        if cells[StoreColumn.STATUS] != active_status:
            continue

        account_id = cells[StoreColumn.ACCOUNT_ID]
        location_id = cells[StoreColumn.LOCATION_ID]
        folder_id = cells[StoreColumn.FOLDER_ID]
        if not (account_id and location_id and folder_id):
            logger.warning("store %s is incomplete (row %d), skipped", store_name, row_number)
            continue

        stores.append(StoreConfig(
            row_number=row_number,
            store_name=store_name,
            account_id=account_id,
            location_id=location_id,
            folder_id=folder_id,
            category=cells[StoreColumn.CATEGORY] or default_category,
        ))
    return stores


def is_image_file(file: StorageFile, allowed_extensions: tuple[str, ...]) -> bool:
    if file.mime_type in IMAGE_MIME_TYPES:
        return True
    name = file.name.lower()
    return any(name.endswith("." + ext) for ext in allowed_extensions)


def build_media_item(source_url: str, category: str) -> dict[str, Any]:
    return {
        "mediaFormat": "PHOTO",
        "locationAssociation": {"category": category},
        "sourceUrl": source_url,
    }


def _location_name(location_id: str) -> str:
    """``123`` / ``locations/123`` / ``accounts/1/locations/123`` -> ``locations/123``."""
    value = location_id.strip()
    if LOCATION_PREFIX in value:
        return value[value.index(LOCATION_PREFIX):]
    return LOCATION_PREFIX + value


class _StoreSync:

    def __init__(self, config: IntakeConfig, services: IntakeServices) -> None:
        self._cfg = config.media_sync
        self._delays = config.delays
        self._services = services
        self._tz = resolve_timezone(config.timezone)
        self._exposure = ExposureManager(
            services.storage, download_url_template=config.listing.download_url_template
        )

    def _now(self) -> str:
        return datetime.now(self._tz).strftime(TIMESTAMP_FMT)

    def _images(self, store: StoreConfig) -> list[StorageFile]:
        try:
            return [
                f for f in self._services.storage.list_files(store.folder_id)
                if is_image_file(f, self._cfg.allowed_extensions)
            ]
        except ApiError as e:
            logger.error("failed to read folder %s of %s: %s", store.folder_id, store.store_name, e)
            return []

    def _move_uploaded(self, file: StorageFile, store: StoreConfig) -> None:
        storage = self._services.storage
        try:
            target = storage.get_or_create_folder(store.folder_id, self._cfg.uploaded_folder_name)
            storage.move(file.id, target.id)
        except ApiError as e:
            logger.warning("failed to move %s to %s: %s", file.name, self._cfg.uploaded_folder_name, e)

    def _record_history(self, store: StoreConfig, file: StorageFile, ok: bool, message: str) -> None:
        engine = self._services.engine
        sid = self._cfg.spreadsheet_id
        try:
            row = engine.append_row(
                sid,
                self._cfg.history_sheet,
                [self._now(), store.store_name, file.name, file.id, "Success" if ok else "Error", message],
            )
            if row:
                engine.set_style(sid, self._cfg.history_sheet, row, HISTORY_RESULT_COL, background=HISTORY_COLORS[ok])
        except ApiError as e:
            logger.warning("failed to write upload history for %s: %s", file.name, e)

    def sync_store(self, store: StoreConfig) -> tuple[int, int]:
        images = self._images(store)
        if not images:
            logger.info("%s: no images to upload", store.store_name)
            return 0, 0

        logger.info("%s: %d images", store.store_name, len(images))
        account = normalize_account_name(store.account_id)
        location = _location_name(store.location_id)
        uploaded = failed = 0

        for file in images:
            try:
                with self._exposure.exposed_file(file) as handle:
                    self._services.directory.upload_media(
                        account, location, build_media_item(handle.public_url, store.category)
                    )
            except ApiError as e:
                logger.warning("upload failed: %s - %s", file.name, e)
                self._record_history(store, file, False, str(e))
                failed += 1
            else:
                logger.info("uploaded: %s", file.name)
                self._move_uploaded(file, store)
                self._record_history(store, file, True, "uploaded")
                uploaded += 1
            self._services.sleep(self._delays.between_images_sec)

        if uploaded or failed:
            try:
                self._services.engine.set_values(
                    self._cfg.spreadsheet_id,
                    self._cfg.store_config_sheet,
                    store.row_number,
                    StoreColumn.LAST_UPLOAD + 1,
                    [[self._now()]],
                )
            except ApiError as e:
                logger.warning("failed to update last upload of %s: %s", store.store_name, e)
        return uploaded, failed


def sync_store_media(
    config: IntakeConfig,
    services: IntakeServices,
    store_name: str | None = None,
) -> MediaSyncResult:
    """Upload pending photos of every active store (or only ``store_name``).

    Raises:
        MediaSyncError: no configuration spreadsheet, or its sheet is unreadable
    """
    cfg = config.media_sync
    if not cfg.spreadsheet_id:
        raise MediaSyncError("media_sync.spreadsheet_id is not configured")
    try:
        values = services.engine.get_values(cfg.spreadsheet_id, cfg.store_config_sheet)
    except ApiError as e:
        raise MediaSyncError(f"failed to read sheet '{cfg.store_config_sheet}': {e}") from e

    stores = read_store_configs(values, cfg.active_status, cfg.default_category)
    if store_name is not None:
        stores = [s for s in stores if s.store_name == store_name]
    if not stores:
        logger.info("no active stores to sync")
        return MediaSyncResult()

    logger.info("stores to sync: %d", len(stores))
    sync = _StoreSync(config, services)
    uploaded = failed = 0
    for idx, store in enumerate(stores):
        logger.info("--- store %d/%d: %s ---", idx + 1, len(stores), store.store_name)
        ok, ng = sync.sync_store(store)
        uploaded += ok
        failed += ng
        if idx < len(stores) - 1:
            services.sleep(config.delays.between_stores_sec)

    logger.info("media sync finished: uploaded=%d failed=%d", uploaded, failed)
    return MediaSyncResult(stores=len(stores), uploaded=uploaded, failed=failed)
