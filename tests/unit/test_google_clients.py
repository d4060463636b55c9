from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
import requests

from listing_intake.google.api import ApiError, GoogleApiClient, env_token_provider
from listing_intake.google.business_profile import BusinessProfileClient
from listing_intake.google.drive import DriveStorage, permission_body, sharing_from_permissions
from listing_intake.google.sheets import SheetsEngine, a1_range, column_letter, hex_to_rgb
from listing_intake.models.exposure import PUBLIC_LINK_VIEW, Access, Permission, SharingState


def _response(status: int = 200, body: object = None) -> MagicMock:
    text = body if isinstance(body, str) else (json.dumps(body) if body is not None else "")
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    resp.content = text.encode("utf-8")
    return resp


def _session(*responses: MagicMock) -> MagicMock:
    session = MagicMock()
    session.request.side_effect = list(responses)
    return session


def _token() -> str:
    return "tok"


class TestGoogleApiClient:

    def test_request_sends_bearer_json(self):
        session = _session(_response(200, {"ok": True}))
        client = GoogleApiClient("https://api.example/v1/", _token, timeout=5, session=session)

        assert client.request("POST", "/things", "createThing", payload={"a": 1}) == {"ok": True}

        method, url = session.request.call_args.args
        kwargs = session.request.call_args.kwargs
        assert (method, url) == ("POST", "https://api.example/v1/things")
        assert kwargs["headers"]["Authorization"] == "Bearer tok"
        assert json.loads(kwargs["data"]) == {"a": 1}
        assert kwargs["timeout"] == 5

    def test_empty_body_is_empty_dict(self):
        client = GoogleApiClient("https://api.example", _token, session=_session(_response(204, "")))
        assert client.request("DELETE", "x", "ctx") == {}

    def test_absolute_url_is_kept(self):
        session = _session(_response(200, {}))
        client = GoogleApiClient("https://api.example", _token, session=session)
        client.request("GET", "https://other.example/accounts", "ctx")
        assert session.request.call_args.args[1] == "https://other.example/accounts"

    def test_error_message_is_extracted(self):
        body = {"error": {"code": 404, "message": "Requested entity was not found."}}
        client = GoogleApiClient("https://api.example", _token, session=_session(_response(404, body)))
        with pytest.raises(ApiError) as e:
            client.request("GET", "x", "getFile")
        assert e.value.status == 404
        assert e.value.message == "Requested entity was not found."
        assert str(e.value) == "[getFile] HTTP 404: Requested entity was not found."

    def test_non_json_error_keeps_body(self):
        client = GoogleApiClient("https://api.example", _token, session=_session(_response(502, "Bad Gateway")))
        with pytest.raises(ApiError, match="HTTP 502: Bad Gateway"):
            client.request("GET", "x", "ctx")

    def test_transport_error_has_status_zero(self):
        session = MagicMock()
        session.request.side_effect = requests.ConnectionError("connection reset")
        client = GoogleApiClient("https://api.example", _token, session=session)
        with pytest.raises(ApiError) as e:
            client.request("GET", "x", "ctx")
        assert e.value.status == 0

    def test_non_json_success_body_is_api_error(self):
        client = GoogleApiClient("https://api.example", _token, session=_session(_response(200, "<html>ok</html>")))
        with pytest.raises(ApiError) as e:
            client.request("GET", "x", "ctx")
        assert e.value.status == 200
        assert e.value.message == "invalid JSON response"

    def test_request_text_decodes(self):
        client = GoogleApiClient("https://api.example", _token, session=_session(_response(200, "a,b\n")))
        assert client.request_text("GET", "f", "readText") == "a,b\n"


def test_env_token_provider(monkeypatch):
    provider = env_token_provider("TEST_TOKEN")
    monkeypatch.delenv("TEST_TOKEN", raising=False)
    with pytest.raises(RuntimeError, match="TEST_TOKEN"):
        provider()
    monkeypatch.setenv("TEST_TOKEN", "abc")
    assert provider() == "abc"


class TestDriveSharing:

    def test_private_without_link_permission(self):
        state = sharing_from_permissions([{"type": "user", "role": "owner"}])
        assert state == SharingState(Access.PRIVATE, Permission.NONE)

    def test_anyone_with_link(self):
        state = sharing_from_permissions([{"type": "anyone", "role": "reader", "allowFileDiscovery": False}])
        assert state == PUBLIC_LINK_VIEW

    def test_domain_discoverable(self):
        state = sharing_from_permissions(
            [{"type": "domain", "role": "writer", "allowFileDiscovery": True, "domain": "example.com"}]
        )
        assert state == SharingState(Access.DOMAIN, Permission.EDIT, domain="example.com")

    def test_permission_body(self):
        assert permission_body(SharingState(Access.PRIVATE, Permission.NONE)) is None
        assert permission_body(PUBLIC_LINK_VIEW) == {"role": "reader", "allowFileDiscovery": False, "type": "anyone"}
        assert permission_body(SharingState(Access.DOMAIN_WITH_LINK, Permission.COMMENT, "e.com")) == {
            "role": "commenter", "allowFileDiscovery": False, "type": "domain", "domain": "e.com",
        }


class TestDriveStorage:

    def test_list_files_follows_pages(self):
        session = _session(
            _response(200, {"files": [{"id": "1", "name": "a.csv", "mimeType": "text/csv"}], "nextPageToken": "p2"}),
            _response(200, {"files": [{"id": "2", "name": "b.xlsx", "mimeType": "x"}]}),
        )
        drive = DriveStorage("https://drive.example/v3", _token, session=session)

        files = list(drive.list_files("inbox"))

        assert [f.id for f in files] == ["1", "2"]
        second = session.request.call_args_list[1].kwargs["params"]
        assert second["pageToken"] == "p2"
        assert "'inbox' in parents" in second["q"]

    def test_set_sharing_replaces_link_permissions(self):
        session = _session(
            _response(200, {"permissions": [{"id": "p1", "type": "anyone", "role": "writer"}, {"id": "u1", "type": "user"}]}),
            _response(204, ""),
            _response(200, {"id": "p2"}),
        )
        drive = DriveStorage("https://drive.example/v3", _token, session=session)

        drive.set_sharing("f1", PUBLIC_LINK_VIEW)

        calls = [(c.args[0], c.args[1]) for c in session.request.call_args_list]
        assert calls == [
            ("GET", "https://drive.example/v3/files/f1/permissions"),
            ("DELETE", "https://drive.example/v3/files/f1/permissions/p1"),
            ("POST", "https://drive.example/v3/files/f1/permissions"),
        ]

    def test_set_private_only_deletes(self):
        session = _session(_response(200, {"permissions": [{"id": "p1", "type": "anyone"}]}), _response(204, ""))
        drive = DriveStorage("https://drive.example/v3", _token, session=session)
        drive.set_sharing("f1", SharingState(Access.PRIVATE, Permission.NONE))
        assert session.request.call_count == 2

    def test_move_swaps_parents(self):
        session = _session(_response(200, {"parents": ["inbox"]}), _response(200, {}))
        drive = DriveStorage("https://drive.example/v3", _token, session=session)
        drive.move("f1", "processed")
        params = session.request.call_args_list[1].kwargs["params"]
        assert params["addParents"] == "processed"
        assert params["removeParents"] == "inbox"


class TestSheetsEngine:

    def test_helpers(self):
        assert column_letter(1) == "A"
        assert column_letter(26) == "Z"
        assert column_letter(27) == "AA"
        assert a1_range("Details", 2, 1, 1, 10) == "'Details'!A2:J2"
        assert hex_to_rgb("#ffffff") == {"red": 1.0, "green": 1.0, "blue": 1.0}

    def test_get_values_defaults_to_first_sheet(self):
        session = _session(
            _response(200, {"sheets": [
                {"properties": {"sheetId": 5, "title": "Second", "index": 1}},
                {"properties": {"sheetId": 0, "title": "First", "index": 0}},
            ]}),
            _response(200, {"values": [["a", 1]]}),
        )
        engine = SheetsEngine("https://sheets.example/v4", _token, MagicMock(), session=session)

        assert engine.get_values("s1") == [["a", 1]]
        url = session.request.call_args_list[1].args[1]
        assert url == "https://sheets.example/v4/spreadsheets/s1/values/%27First%27"

    def test_append_row_returns_row_number(self):
        session = _session(_response(200, {"updates": {"updatedRange": "'Upload History'!A5:F5"}}))
        engine = SheetsEngine("https://sheets.example/v4", _token, MagicMock(), session=session)
        assert engine.append_row("s1", "Upload History", ["a"]) == 5

    def test_create_goes_through_drive(self):
        drive = MagicMock()
        drive.create_spreadsheet.return_value = "new-id"
        engine = SheetsEngine("https://sheets.example/v4", _token, drive, session=MagicMock())
        assert engine.create("Execution log_x", "results") == "new-id"
        drive.create_spreadsheet.assert_called_once_with("Execution log_x", "results")

    def test_set_style_without_attributes_is_noop(self):
        session = MagicMock()
        engine = SheetsEngine("https://sheets.example/v4", _token, MagicMock(), session=session)
        engine.set_style("s1", "Details", 1, 1)
        session.request.assert_not_called()


class TestBusinessProfileClient:

    def test_list_locations_paging_params(self):
        session = _session(_response(200, {"locations": []}))
        client = BusinessProfileClient("https://gbp.example/v4", "https://am.example/v1", _token, session=session)
        client.list_locations("accounts/1", page_size=100, page_token="t2")
        assert session.request.call_args.args[1] == "https://gbp.example/v4/accounts/1/locations"
        assert session.request.call_args.kwargs["params"] == {"pageSize": 100, "pageToken": "t2"}

    def test_list_accounts_uses_account_management_api(self):
        session = _session(_response(200, {"accounts": [{"name": "accounts/1"}]}))
        client = BusinessProfileClient("https://gbp.example/v4", "https://am.example/v1/", _token, session=session)
        assert client.list_accounts()["accounts"][0]["name"] == "accounts/1"
        assert session.request.call_args.args[1] == "https://am.example/v1/accounts"

    def test_create_local_post_error_context(self):
        session = _session(_response(400, {"error": {"message": "Invalid price"}}))
        client = BusinessProfileClient("https://gbp.example/v4", "https://am.example/v1", _token, session=session)
        with pytest.raises(ApiError, match=r"\[createProduct\] HTTP 400: Invalid price"):
            client.create_local_post("accounts/1/locations/2", {})

    def test_create_local_post_html_success_body(self):
        session = _session(_response(200, "<html>ok</html>"))
        client = BusinessProfileClient("https://gbp.example/v4", "https://am.example/v1", _token, session=session)
        with pytest.raises(ApiError, match=r"\[createProduct\] HTTP 200: invalid JSON response"):
            client.create_local_post("accounts/1/locations/2", {})
