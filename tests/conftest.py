# Shared pytest fixtures: temp workdir, config and in-memory collaborators
from __future__ import annotations

import tempfile
from collections.abc import Iterator
from pathlib import Path

import pytest

from listing_intake.config.loader import load_config
from listing_intake.logging.init import reset_logging
from listing_intake.services.orchestrator import IntakeServices
from tests.fakes import FakeDirectory, FakeEngine, FakeStorage


@pytest.fixture()
def temp_workdir(monkeypatch) -> Iterator[Path]:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture(autouse=True)
def _clean_logging() -> Iterator[None]:
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def sample_config_yaml() -> str:
    return """inbox:
  folder_id: inbox
delays:
  between_rows_sec: 0.3
  between_files_sec: 2
  between_images_sec: 0.5
  between_stores_sec: 1
media_sync:
  spreadsheet_id: store-config
timezone: Asia/Tokyo
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "intake.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def intake_config(write_config: Path):
    return load_config(write_config)


@pytest.fixture()
def storage() -> FakeStorage:
    fake = FakeStorage()
    fake.add_folder("root", "Submission Inbox", folder_id="inbox")
    return fake


@pytest.fixture()
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture()
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture()
def sleeps() -> list[float]:
    return []


@pytest.fixture()
def services(storage: FakeStorage, engine: FakeEngine, directory: FakeDirectory, sleeps: list[float]) -> IntakeServices:
    return IntakeServices(storage=storage, engine=engine, directory=directory, sleep=sleeps.append)
