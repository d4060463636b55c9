from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from typing import Any

import pandas as pd

from listing_intake.collaborators.interfaces import SpreadsheetEngine, StorageService
from listing_intake.models.source_file import MimeType, StorageFile

"""Submission grid reader.

Turns a stored file into a header-less object DataFrame (row 0 = sheet row 1).
Three source formats are supported:

- native spreadsheets, read through the spreadsheet engine
- Excel workbooks (xlsx / xls), converted to a temporary native spreadsheet by
  the storage service; the temporary copy is always trashed after reading
- CSV / plain text, decoded as UTF-8 and split with the csv module so that
  ragged rows (2-column header block, 9-column details) are accepted
"""

logger = logging.getLogger(__name__)

__all__ = [
    "SourceFormat",
    "FatalDocumentError",
    "UnsupportedFormatError",
    "ReadFailureError",
    "detect_format",
    "read_grid",
    "converted_copy",
    "SUPPORTED_MIME_TYPES",
]


class FatalDocumentError(Exception):
    """The submission cannot be processed at all."""


class UnsupportedFormatError(FatalDocumentError):
    pass


class ReadFailureError(FatalDocumentError):
    pass


class SourceFormat(Enum):
    SPREADSHEET = "spreadsheet"
    EXCEL = "excel"
    CSV = "csv"


_FORMATS_BY_MIME = {
    MimeType.GOOGLE_SHEETS: SourceFormat.SPREADSHEET,
    MimeType.XLSX: SourceFormat.EXCEL,
    MimeType.XLS: SourceFormat.EXCEL,
    MimeType.CSV: SourceFormat.CSV,
    MimeType.TEXT: SourceFormat.CSV,
}

# Inbox scan only picks these up; text/plain is accepted when processing by id
SUPPORTED_MIME_TYPES = frozenset({
    MimeType.GOOGLE_SHEETS,
    MimeType.XLSX,
    MimeType.XLS,
    MimeType.CSV,
})


def detect_format(mime_type: str) -> SourceFormat:
    try:
        return _FORMATS_BY_MIME[mime_type]
    except KeyError:
        raise UnsupportedFormatError(
            f"unsupported file format: {mime_type} (supported: spreadsheet / Excel / CSV)"
        ) from None


def _to_frame(rows: list[list[Any]]) -> pd.DataFrame:
    if not rows:
        return pd.DataFrame()
    # ragged rows are padded with None
    return pd.DataFrame(rows, dtype=object)


@contextmanager
def converted_copy(storage: StorageService, file: StorageFile) -> Iterator[str]:
    """Yield the id of a temporary native copy of ``file``; trash it on exit."""
    temp_id = storage.convert_to_spreadsheet(file.id, f"temp_{file.name}")
    try:
        yield temp_id
    finally:
        try:
            storage.trash(temp_id)
        except Exception as e:
            logger.warning("failed to trash converted copy id=%s of %s: %s", temp_id, file.name, e)


def _read_csv(storage: StorageService, file: StorageFile) -> list[list[Any]]:
    content = storage.read_text(file.id, encoding="utf-8")
    if content.startswith("\ufeff"):
        content = content[1:]
    return [list(r) for r in csv.reader(io.StringIO(content))]


def read_grid(
    file: StorageFile, storage: StorageService, engine: SpreadsheetEngine
) -> pd.DataFrame:
    """Read ``file`` into a header-less grid.

    Raises:
        UnsupportedFormatError: MIME type is none of the supported formats
        ReadFailureError: the collaborator failed to deliver the content
    """
    fmt = detect_format(file.mime_type)
    try:
        if fmt is SourceFormat.SPREADSHEET:
            rows = engine.get_values(file.id)
        elif fmt is SourceFormat.EXCEL:
            with converted_copy(storage, file) as temp_id:
                rows = engine.get_values(temp_id)
        else:
            rows = _read_csv(storage, file)
    except FatalDocumentError:
        raise
    except Exception as e:
        raise ReadFailureError(f"failed to read file: {e}") from e

    logger.debug("read grid file=%s format=%s rows=%d", file.name, fmt.value, len(rows))
    return _to_frame(rows)
