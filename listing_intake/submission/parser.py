from __future__ import annotations

import logging
import math
import re
from dataclasses import replace
from typing import Any

import pandas as pd

from listing_intake.collaborators.interfaces import SpreadsheetEngine, StorageService
from listing_intake.models.source_file import StorageFile
from listing_intake.models.submission import ParsedSubmission, SubmissionHeader, SubmissionRow
from listing_intake.submission.columns import (
    BUTTON_ACTION_TYPES,
    DETAIL_COLUMN_LABELS,
    DETAIL_HEADER_ROW,
    HEADER_PLACEHOLDERS,
    HEADER_ROWS,
    HEADER_VALUE_COL,
    REQUIRED_HEADER_FIELDS,
)
from listing_intake.submission.reader import FatalDocumentError, read_grid
from listing_intake.submission.validation import validate_row

"""Submission parser.

Steps:
1. Reject grids shorter than the detail header row (fatal)
2. Header block from rows 1-4, column B (placeholders count as empty)
3. Detail header row -> field/column index map (no known label = fatal)
4. Detail rows: skip blank rows, extract fields, derive price and button
   action, attach validation errors
"""

logger = logging.getLogger(__name__)

__all__ = [
    "parse_submission",
    "build_submission",
    "parse_price",
]

_NON_PRICE_CHARS = re.compile(r"[^\d.]")


def _cell_text(value: Any) -> str:
    """Normalize one grid cell to trimmed text ('' for missing values)."""
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            # numeric store codes / prices come back as 1001.0
            return str(int(value))
    return str(value).strip()


def parse_price(raw: str) -> float:
    """Strip currency marks and separators; anything unparsable is 0."""
    cleaned = _NON_PRICE_CHARS.sub("", raw)
    if not cleaned:
        return 0.0
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def _row_cells(grid: pd.DataFrame, index: int) -> list[str]:
    return [_cell_text(v) for v in grid.iloc[index].tolist()]


def _is_blank(cells: list[str]) -> bool:
    return all(c == "" for c in cells)


def _parse_header(grid: pd.DataFrame) -> tuple[SubmissionHeader, list[str]]:
    values: dict[str, str] = {}
    col = HEADER_VALUE_COL - 1
    for row_number, field_name in HEADER_ROWS.items():
        cells = _row_cells(grid, row_number - 1)
        value = cells[col] if len(cells) > col else ""
        if value in HEADER_PLACEHOLDERS:
            value = ""
        values[field_name] = value

    errors = [message for name, message in REQUIRED_HEADER_FIELDS.items() if not values[name]]
    return SubmissionHeader(**values), errors


def _column_index_map(header_cells: list[str]) -> dict[str, int]:
    mapping: dict[str, int] = {}
    for idx, label in enumerate(header_cells):
        field_name = DETAIL_COLUMN_LABELS.get(label)
        if field_name is not None and field_name not in mapping:
            mapping[field_name] = idx
    return mapping


def _parse_row(cells: list[str], columns: dict[str, int], row_number: int) -> SubmissionRow:
    fields = {
        name: (cells[idx] if idx < len(cells) else "")
        for name, idx in columns.items()
    }
    price_raw = fields.pop("price", "")
    button_label = fields.get("button_label", "")

    row = SubmissionRow(
        row_number=row_number,
        price=parse_price(price_raw),
        button_action_type=BUTTON_ACTION_TYPES.get(button_label, button_label),
        **fields,
    )
    errors = validate_row(row)
    if errors:
        row = replace(row, errors=tuple(errors))
    return row


def build_submission(grid: pd.DataFrame) -> ParsedSubmission:
    if grid.shape[0] < DETAIL_HEADER_ROW:
        return ParsedSubmission(
            header=None,
            header_errors=[
                f"file has too few rows (at least {DETAIL_HEADER_ROW} rows are required)"
            ],
        )

    header, errors = _parse_header(grid)

    columns = _column_index_map(_row_cells(grid, DETAIL_HEADER_ROW - 1))
    if not columns:
        errors.append(f"detail header row (row {DETAIL_HEADER_ROW}) has no recognised column labels")
        # without a column map nothing below is usable; treat like an unreadable header
        return ParsedSubmission(header=None, header_errors=errors)

    rows: list[SubmissionRow] = []
    for index in range(DETAIL_HEADER_ROW, grid.shape[0]):
        cells = _row_cells(grid, index)
        if _is_blank(cells):
            continue
        rows.append(_parse_row(cells, columns, index + 1))

    if not rows:
        errors.append("no detail rows")

    logger.debug(
        "parsed submission rows=%d invalid=%d header_errors=%d",
        len(rows),
        sum(1 for r in rows if not r.is_valid),
        len(errors),
    )
    return ParsedSubmission(header=header, rows=rows, header_errors=errors)


def parse_submission(
    file: StorageFile, storage: StorageService, engine: SpreadsheetEngine
) -> ParsedSubmission:
    """Read and parse a submission file. Read failures become a fatal ParsedSubmission."""
    try:
        grid = read_grid(file, storage, engine)
    except FatalDocumentError as e:
        return ParsedSubmission(header=None, header_errors=[str(e)])
    return build_submission(grid)
