from __future__ import annotations

from dataclasses import replace

import pytest

from listing_intake.config.loader import IntakeConfig
from listing_intake.google.api import ApiError
from listing_intake.models.source_file import StorageFile
from listing_intake.services.media_sync import (
    MediaSyncError,
    build_media_item,
    is_image_file,
    read_store_configs,
    sync_store_media,
)
from listing_intake.services.orchestrator import IntakeServices
from tests.fakes import PRIVATE, FakeDirectory, FakeEngine, FakeStorage

HEADER = ["Store", "Account", "Location", "Folder", "Category", "Last upload", "Status"]


def test_read_store_configs_filters_rows():
    values = [
        HEADER,
        ["Shibuya", "111", "accounts/111/locations/22", "f-shibuya", "", "", "Active"],
        ["Closed", "111", "33", "f-closed", "", "", "Paused"],
        ["Broken", "111", "", "f-broken", "", "", "Active"],
        ["", "111", "44", "f-none", "", "", "Active"],
        ["Umeda", 222.0, 55.0, "f-umeda", "INTERIOR", "", "Active"],
    ]
    stores = read_store_configs(values, "Active", "ADDITIONAL")

    assert [(s.store_name, s.row_number) for s in stores] == [("Shibuya", 2), ("Umeda", 6)]
    assert stores[0].category == "ADDITIONAL"
    assert stores[1].category == "INTERIOR"
    assert (stores[1].account_id, stores[1].location_id) == ("222", "55")


def test_read_store_configs_short_rows():
    assert read_store_configs([HEADER, ["Shibuya", "111"]], "Active", "ADDITIONAL") == []


def test_is_image_file():
    exts = ("jpg", "jpeg", "png")
    assert is_image_file(StorageFile("1", "a.gif", "image/gif"), exts)
    assert is_image_file(StorageFile("2", "b.PNG", "application/octet-stream"), exts)
    assert not is_image_file(StorageFile("3", "notes.txt", "text/plain"), exts)


def test_build_media_item():
    assert build_media_item("https://x/1", "COVER") == {
        "mediaFormat": "PHOTO",
        "locationAssociation": {"category": "COVER"},
        "sourceUrl": "https://x/1",
    }


@pytest.fixture()
def store_setup(storage: FakeStorage, engine: FakeEngine):
    engine.add_sheet("store-config", [
        HEADER,
        ["Shibuya", "111", "accounts/111/locations/22", "f-shibuya", "", "", "Active"],
        ["Umeda", "accounts/222", "55", "f-umeda", "EXTERIOR", "", "Active"],
    ], sheet="Store Config")
    engine.add_sheet("store-config", [["Timestamp", "Store", "File", "File ID", "Result", "Message"]], sheet="Upload History")
    storage.add_folder("root", "Shibuya", folder_id="f-shibuya")
    storage.add_folder("root", "Umeda", folder_id="f-umeda")
    storage.add_file("f-shibuya", "front.jpg", "image/jpeg", file_id="img-front")
    storage.add_file("f-shibuya", "notes.txt", "text/plain", file_id="notes")
    storage.add_file("f-umeda", "inside.png", "image/png", file_id="img-inside")
    return storage, engine


def test_sync_uploads_moves_and_records(
    intake_config: IntakeConfig, services: IntakeServices, directory: FakeDirectory, store_setup, sleeps: list[float]
):
    storage, engine = store_setup

    result = sync_store_media(intake_config, services)

    assert (result.stores, result.uploaded, result.failed) == (2, 2, 0)
    assert [(a, loc) for a, loc, _ in directory.uploads] == [
        ("accounts/111", "locations/22"),
        ("accounts/222", "locations/55"),
    ]
    assert directory.uploads[0][2]["locationAssociation"]["category"] == "ADDITIONAL"
    assert directory.uploads[1][2]["locationAssociation"]["category"] == "EXTERIOR"
    assert "img-front" in directory.uploads[0][2]["sourceUrl"]

    uploaded = storage.find_folders("f-shibuya", "uploaded")
    assert uploaded and storage.parents["img-front"] == uploaded[0].id
    assert storage.parents["notes"] == "f-shibuya"
    assert storage.get_sharing("img-front") == PRIVATE

    history = engine.sheets["store-config"]["Upload History"]
    assert [row[4] for row in history[1:]] == ["Success", "Success"]
    last_upload = engine.sheets["store-config"]["Store Config"][1][5]
    assert last_upload != ""
    assert sleeps == [0.5, 1.0, 0.5]


def test_sync_records_failed_upload(
    intake_config: IntakeConfig, services: IntakeServices, directory: FakeDirectory, store_setup
):
    storage, engine = store_setup
    directory.upload_errors["img-front"] = ApiError("uploadMedia", 400, "Image too small")

    result = sync_store_media(intake_config, services)

    assert (result.uploaded, result.failed) == (1, 1)
    assert storage.parents["img-front"] == "f-shibuya"
    assert storage.get_sharing("img-front") == PRIVATE
    history = engine.sheets["store-config"]["Upload History"]
    assert history[1][4] == "Error"
    assert "Image too small" in history[1][5]


def test_sync_single_store(intake_config: IntakeConfig, services: IntakeServices, directory: FakeDirectory, store_setup):
    result = sync_store_media(intake_config, services, store_name="Umeda")
    assert result.stores == 1
    assert len(directory.uploads) == 1


def test_sync_without_spreadsheet_id(intake_config: IntakeConfig, services: IntakeServices):
    config = replace(intake_config, media_sync=replace(intake_config.media_sync, spreadsheet_id=None))
    with pytest.raises(MediaSyncError, match="spreadsheet_id"):
        sync_store_media(config, services)


def test_sync_unreadable_sheet(intake_config: IntakeConfig, services: IntakeServices):
    with pytest.raises(MediaSyncError, match="failed to read sheet"):
        sync_store_media(intake_config, services)
