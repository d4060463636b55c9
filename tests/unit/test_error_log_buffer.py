from __future__ import annotations

import json
from pathlib import Path

from listing_intake.logging.error_log import ErrorLogBuffer
from listing_intake.models.error_record import FILE_LEVEL_ROW, ErrorRecord

KEYS = {"timestamp", "file", "row", "store_code", "error_type", "message"}


def test_error_record_creation_and_json_line():
    rec = ErrorRecord.create(
        file="menu.csv",
        row=8,
        error_type="LOCATION_NOT_FOUND",
        message="no directory location matches store code '9999'",
        store_code="9999",
    )
    data = json.loads(rec.to_json_line())
    assert data["file"] == "menu.csv"
    assert data["row"] == 8
    assert data["store_code"] == "9999"
    assert data["error_type"] == "LOCATION_NOT_FOUND"
    assert data["timestamp"].endswith("Z")
    assert set(data) == KEYS


def test_error_record_keeps_non_ascii():
    rec = ErrorRecord.create("提出.xlsx", FILE_LEVEL_ROW, "HEADER_ERROR", "account ID is missing")
    line = rec.to_json_line()
    assert "提出.xlsx" in line
    assert json.loads(line)["row"] == -1


def test_error_log_buffer_flush(temp_workdir: Path):
    buf = ErrorLogBuffer()
    buf.append(ErrorRecord.create("a.csv", 7, "VALIDATION_ERROR", "row 7: store code is missing"))
    buf.append(ErrorRecord.create("a.csv", 8, "PUBLISH_ERROR", "[createProduct] HTTP 400: bad", "1001"))
    path = buf.flush()
    assert path is not None and path.exists()
    assert path.parent == Path("logs")
    assert path.name.startswith("errors-") and path.suffix == ".log"
    lines = path.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 2
    for raw in lines:
        assert set(json.loads(raw)) == KEYS
    assert len(buf) == 0


def test_error_log_buffer_multiple_flushes_append(temp_workdir: Path):
    buf = ErrorLogBuffer()
    buf.append(ErrorRecord.create("a.csv", 7, "VALIDATION_ERROR", "first"))
    path = buf.flush()
    buf.append(ErrorRecord.create("a.csv", 8, "VALIDATION_ERROR", "second"))
    path2 = buf.flush()
    assert path == path2
    assert len(path.read_text(encoding="utf-8").splitlines()) == 2


def test_error_log_buffer_empty_flush_creates_nothing(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path / "logs")
    assert buf.flush() is None
    assert not (tmp_path / "logs").exists()


def test_error_log_buffer_counts_by_type(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path / "logs")
    buf.append(ErrorRecord.create("a.csv", 7, "VALIDATION_ERROR", "first"))
    buf.append(ErrorRecord.create("a.csv", 8, "VALIDATION_ERROR", "second"))
    buf.append(ErrorRecord.create("b.csv", 7, "LOCATION_NOT_FOUND", "third", "9999"))

    assert buf.count_by_type() == {"VALIDATION_ERROR": 2, "LOCATION_NOT_FOUND": 1}
    buf.flush()
    assert buf.count_by_type() == {}
