from __future__ import annotations

import re
from typing import Any
from urllib.parse import quote

from listing_intake.collaborators.interfaces import SpreadsheetEngine
from listing_intake.google.api import GoogleApiClient, TokenProvider
from listing_intake.google.drive import DriveStorage

"""Google Sheets v4 implementation of SpreadsheetEngine.

New spreadsheets are created through Drive so they land directly in the
requested folder. Sheet ids are looked up once per spreadsheet and cached on
the instance.
"""

_UPDATED_ROW = re.compile(r"![A-Z]+(\d+)")


def column_letter(col: int) -> str:
    """1 -> A, 27 -> AA."""
    letters = ""
    while col > 0:
        col, rem = divmod(col - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def a1_range(sheet: str, row: int, col: int, height: int, width: int) -> str:
    start = f"{column_letter(col)}{row}"
    end = f"{column_letter(col + width - 1)}{row + height - 1}"
    return f"'{sheet}'!{start}:{end}"


def hex_to_rgb(color: str) -> dict[str, float]:
    value = color.lstrip("#")
    return {
        "red": int(value[0:2], 16) / 255,
        "green": int(value[2:4], 16) / 255,
        "blue": int(value[4:6], 16) / 255,
    }


class SheetsEngine(GoogleApiClient, SpreadsheetEngine):

    def __init__(
        self,
        base_url: str,
        token_provider: TokenProvider,
        drive: DriveStorage,
        *,
        timeout: float = 30.0,
        session: Any = None,
    ) -> None:
        super().__init__(base_url, token_provider, timeout=timeout, session=session)
        self._drive = drive
        self._sheet_ids: dict[str, dict[str, int]] = {}

    def _sheets(self, spreadsheet_id: str, refresh: bool = False) -> dict[str, int]:
        if refresh or spreadsheet_id not in self._sheet_ids:
            data = self.request(
                "GET", f"spreadsheets/{spreadsheet_id}", "getSheets",
                params={"fields": "sheets.properties(sheetId,title,index)"},
            )
            props = sorted(
                (s["properties"] for s in data.get("sheets", [])),
                key=lambda p: p.get("index", 0),
            )
            # dict keeps sheet order
            self._sheet_ids[spreadsheet_id] = {p["title"]: p["sheetId"] for p in props}
        return self._sheet_ids[spreadsheet_id]

    def _sheet_id(self, spreadsheet_id: str, title: str) -> int:
        sheets = self._sheets(spreadsheet_id)
        if title not in sheets:
            sheets = self._sheets(spreadsheet_id, refresh=True)
        return sheets[title]

    def _batch_update(self, spreadsheet_id: str, requests_: list[dict[str, Any]], context: str) -> dict[str, Any]:
        return self.request(
            "POST", f"spreadsheets/{spreadsheet_id}:batchUpdate", context,
            payload={"requests": requests_},
        )

    def get_values(self, spreadsheet_id: str, sheet: str | None = None) -> list[list[Any]]:
        if sheet is None:
            titles = list(self._sheets(spreadsheet_id))
            if not titles:
                return []
            sheet = titles[0]
        rng = quote(f"'{sheet}'", safe="")
        data = self.request(
            "GET", f"spreadsheets/{spreadsheet_id}/values/{rng}", "getValues",
            params={"valueRenderOption": "UNFORMATTED_VALUE", "majorDimension": "ROWS"},
        )
        return data.get("values", [])

    def create(self, title: str, folder_id: str | None = None) -> str:
        return self._drive.create_spreadsheet(title, folder_id)

    def url(self, spreadsheet_id: str) -> str:
        return f"https://docs.google.com/spreadsheets/d/{spreadsheet_id}/edit"

    def rename_sheet(self, spreadsheet_id: str, old_title: str | None, new_title: str) -> None:
        sheets = self._sheets(spreadsheet_id)
        old = old_title if old_title is not None else next(iter(sheets))
        self._batch_update(
            spreadsheet_id,
            [{
                "updateSheetProperties": {
                    "properties": {"sheetId": self._sheet_id(spreadsheet_id, old), "title": new_title},
                    "fields": "title",
                }
            }],
            "renameSheet",
        )
        self._sheets(spreadsheet_id, refresh=True)

    def insert_sheet(self, spreadsheet_id: str, title: str, index: int | None = None) -> None:
        props: dict[str, Any] = {"title": title}
        if index is not None:
            props["index"] = index
        self._batch_update(spreadsheet_id, [{"addSheet": {"properties": props}}], "insertSheet")
        self._sheets(spreadsheet_id, refresh=True)

    def set_values(
        self, spreadsheet_id: str, sheet: str, row: int, col: int, values: list[list[Any]]
    ) -> None:
        if not values:
            return
        width = max(len(r) for r in values)
        rng = a1_range(sheet, row, col, len(values), width)
        self.request(
            "PUT", f"spreadsheets/{spreadsheet_id}/values/{quote(rng, safe='')}", "setValues",
            params={"valueInputOption": "USER_ENTERED"},
            payload={"range": rng, "majorDimension": "ROWS", "values": values},
        )

    def append_row(self, spreadsheet_id: str, sheet: str, values: list[Any]) -> int:
        rng = f"'{sheet}'!A1"
        data = self.request(
            "POST", f"spreadsheets/{spreadsheet_id}/values/{quote(rng, safe='')}:append", "appendRow",
            params={"valueInputOption": "USER_ENTERED", "insertDataOption": "INSERT_ROWS"},
            payload={"majorDimension": "ROWS", "values": [values]},
        )
        match = _UPDATED_ROW.search(data.get("updates", {}).get("updatedRange", ""))
        return int(match.group(1)) if match else 0

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
        fmt: dict[str, Any] = {}
        fields: list[str] = []
        if background is not None:
            fmt["backgroundColor"] = hex_to_rgb(background)
            fields.append("userEnteredFormat.backgroundColor")
        text: dict[str, Any] = {}
        if font_color is not None:
            text["foregroundColor"] = hex_to_rgb(font_color)
            fields.append("userEnteredFormat.textFormat.foregroundColor")
        if bold is not None:
            text["bold"] = bold
            fields.append("userEnteredFormat.textFormat.bold")
        if text:
            fmt["textFormat"] = text
        if not fields:
            return
        self._batch_update(
            spreadsheet_id,
            [{
                "repeatCell": {
                    "range": {
                        "sheetId": self._sheet_id(spreadsheet_id, sheet),
                        "startRowIndex": row - 1,
                        "endRowIndex": row - 1 + height,
                        "startColumnIndex": col - 1,
                        "endColumnIndex": col - 1 + width,
                    },
                    "cell": {"userEnteredFormat": fmt},
                    "fields": ",".join(fields),
                }
            }],
            "setStyle",
        )

    def freeze_rows(self, spreadsheet_id: str, sheet: str, rows: int) -> None:
        self._batch_update(
            spreadsheet_id,
            [{
                "updateSheetProperties": {
                    "properties": {
                        "sheetId": self._sheet_id(spreadsheet_id, sheet),
                        "gridProperties": {"frozenRowCount": rows},
                    },
                    "fields": "gridProperties.frozenRowCount",
                }
            }],
            "freezeRows",
        )
