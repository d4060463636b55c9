from __future__ import annotations

import logging
import re
from datetime import UTC, datetime, tzinfo

from listing_intake.collaborators.interfaces import SpreadsheetEngine
from listing_intake.models.run_result import LogEntry, Outcome, RunSummary

"""Execution log spreadsheet, one per processed file.

Layout:
- "Summary" sheet (first): title, run timestamp, totals, success rate
- "Details" sheet: 10 fixed columns, frozen styled header, one row per
  recorded outcome with a coloured result cell
"""

logger = logging.getLogger(__name__)

__all__ = [
    "LOG_COLUMNS",
    "DETAIL_SHEET",
    "SUMMARY_SHEET",
    "ExecutionLogSheet",
    "log_spreadsheet_name",
]

LOG_COLUMNS = [
    "Timestamp",
    "Business Group ID",
    "Business Group Name",
    "Business Name",
    "Store Code",
    "Product Name",
    "Result",
    "Post ID",
    "Message",
    "Source File",
]
RESULT_COL = LOG_COLUMNS.index("Result") + 1

DETAIL_SHEET = "Details"
SUMMARY_SHEET = "Summary"
SUMMARY_TITLE = "Business Profile product registration log"

HEADER_BACKGROUND = "#1a73e8"
SECTION_BACKGROUND = "#4a86e8"
WHITE = "#ffffff"
RESULT_COLORS = {
    Outcome.SUCCESS: "#d9ead3",
    Outcome.SKIP: "#fff2cc",
    Outcome.ERROR: "#fce5cd",
}
HEADER_ERROR_BACKGROUND = "#ea4335"

_EXTENSION = re.compile(r"\.[^.]+$")


def log_spreadsheet_name(file_name: str, now: datetime) -> str:
    base = _EXTENSION.sub("", file_name)
    return f"Execution log_{base}_{now.strftime('%Y%m%d_%H%M%S')}"


class ExecutionLogSheet:
    """LogSink writing into a spreadsheet created in the Results folder."""

    def __init__(self, engine: SpreadsheetEngine, spreadsheet_id: str, tz: tzinfo = UTC) -> None:
        self._engine = engine
        self.spreadsheet_id = spreadsheet_id
        self._tz = tz
        self._next_row = 2

    @classmethod
    def create(
        cls,
        engine: SpreadsheetEngine,
        results_folder_id: str,
        file_name: str,
        tz: tzinfo = UTC,
    ) -> ExecutionLogSheet:
        name = log_spreadsheet_name(file_name, datetime.now(tz))
        spreadsheet_id = engine.create(name, results_folder_id)
        engine.rename_sheet(spreadsheet_id, None, DETAIL_SHEET)
        engine.insert_sheet(spreadsheet_id, SUMMARY_SHEET, index=0)

        engine.set_values(spreadsheet_id, DETAIL_SHEET, 1, 1, [LOG_COLUMNS])
        engine.set_style(
            spreadsheet_id, DETAIL_SHEET, 1, 1, 1, len(LOG_COLUMNS),
            background=HEADER_BACKGROUND, font_color=WHITE, bold=True,
        )
        engine.freeze_rows(spreadsheet_id, DETAIL_SHEET, 1)

        logger.info("execution log created: %s (id=%s)", name, spreadsheet_id)
        return cls(engine, spreadsheet_id, tz)

    @property
    def url(self) -> str:
        return self._engine.url(self.spreadsheet_id)

    def append(self, entry: LogEntry, header_error: bool = False) -> None:
        row = self._next_row
        self._engine.set_values(self.spreadsheet_id, DETAIL_SHEET, row, 1, [entry.to_cells()])
        if header_error:
            self._engine.set_style(
                self.spreadsheet_id, DETAIL_SHEET, row, RESULT_COL,
                background=HEADER_ERROR_BACKGROUND, font_color=WHITE,
            )
        else:
            self._engine.set_style(
                self.spreadsheet_id, DETAIL_SHEET, row, RESULT_COL,
                background=RESULT_COLORS[entry.outcome],
            )
        self._next_row += 1

    def finalize(self, summary: RunSummary) -> None:
        now = datetime.now(self._tz).strftime("%Y/%m/%d %H:%M:%S")
        data = [
            [SUMMARY_TITLE, ""],
            ["", ""],
            ["Run at", now],
            ["", ""],
            ["Result summary", ""],
            ["Total", summary.total],
            ["Success", summary.success],
            ["Skip", summary.skip],
            ["Error", summary.error],
            ["Success rate", summary.success_rate_label],
        ]
        sid = self.spreadsheet_id
        self._engine.set_values(sid, SUMMARY_SHEET, 1, 1, data)
        self._engine.set_style(sid, SUMMARY_SHEET, 1, 1, bold=True)
        self._engine.set_style(sid, SUMMARY_SHEET, 5, 1, background=SECTION_BACKGROUND, font_color=WHITE, bold=True)
        self._engine.set_style(sid, SUMMARY_SHEET, 6, 1, 5, 1, bold=True)
        self._engine.set_style(sid, SUMMARY_SHEET, 7, 2, background=RESULT_COLORS[Outcome.SUCCESS])
        self._engine.set_style(sid, SUMMARY_SHEET, 9, 2, background=RESULT_COLORS[Outcome.ERROR])
        self._engine.flush()
