from __future__ import annotations

import pytest

from listing_intake.google.api import ApiError
from listing_intake.services.locations import (
    DirectoryFetchError,
    LocationResolver,
    normalize_account_name,
    resolve_location,
)
from tests.fakes import FakeDirectory


def test_normalize_account_name():
    assert normalize_account_name("111") == "accounts/111"
    assert normalize_account_name(" accounts/111 ") == "accounts/111"
    assert normalize_account_name("") == ""


def test_build_location_map_walks_every_page():
    directory = FakeDirectory()
    directory.add_locations("accounts/111", *[str(1000 + i) for i in range(250)])

    location_map = LocationResolver(directory).build_location_map("111")

    assert len(location_map) == 250
    assert [token for _, token in directory.location_calls] == [None, "1", "2"]
    assert location_map["1000"] == "accounts/111/locations/1"
    assert location_map["1249"] == "accounts/111/locations/250"


def test_build_location_map_is_repeatable():
    directory = FakeDirectory()
    directory.add_locations("accounts/111", "1001", "1002")
    resolver = LocationResolver(directory)
    assert resolver.build_location_map("accounts/111") == resolver.build_location_map("accounts/111")


def test_locations_without_store_code_are_excluded():
    directory = FakeDirectory()
    directory.add_locations("accounts/111", "1001")
    directory.locations["accounts/111"].append({"name": "accounts/111/locations/99", "locationName": "HQ"})

    location_map = LocationResolver(directory).build_location_map("accounts/111")
    assert location_map == {"1001": "accounts/111/locations/1"}


def test_blank_account_fails_without_calls():
    directory = FakeDirectory()
    with pytest.raises(DirectoryFetchError) as e:
        LocationResolver(directory).build_location_map("  ")
    assert e.value.status == 0
    assert directory.location_calls == []


def test_page_failure_is_fatal():
    directory = FakeDirectory()
    directory.add_locations("accounts/111", *[str(i) for i in range(150)])
    directory.fail_page = 1

    with pytest.raises(DirectoryFetchError, match=r"page 2") as e:
        LocationResolver(directory).build_location_map("accounts/111")
    assert e.value.status == 503


def test_first_page_failure_keeps_status():
    directory = FakeDirectory()
    directory.list_error = ApiError("listLocations", 403, "The caller does not have permission")
    with pytest.raises(DirectoryFetchError) as e:
        LocationResolver(directory).build_location_map("accounts/111")
    assert e.value.status == 403
    assert "does not have permission" in str(e.value)


def test_resolve_location():
    assert resolve_location({"1001": "accounts/1/locations/1"}, "1001") == "accounts/1/locations/1"
    assert resolve_location({"1001": "accounts/1/locations/1"}, "9999") is None
