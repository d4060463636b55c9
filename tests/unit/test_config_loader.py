from __future__ import annotations

from datetime import UTC
from pathlib import Path

import pytest

from listing_intake.config.loader import ConfigError, load_config, resolve_timezone


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.inbox.folder_id == "inbox"
    assert cfg.inbox.processed_folder_name == "Processed"
    assert cfg.delays.between_rows_sec == 0.3
    assert cfg.delays.between_files_sec == 2
    assert cfg.media_sync.spreadsheet_id == "store-config"
    assert cfg.timezone == "Asia/Tokyo"


def test_load_config_defaults_for_missing_sections(temp_workdir: Path):
    path = temp_workdir / "config" / "intake.yml"
    path.write_text("inbox: {}\n", encoding="utf-8")
    cfg = load_config(path)
    assert cfg.inbox.folder_id is None
    assert cfg.inbox.folder_name == "Submission Inbox"
    assert cfg.api.token_env == "GOOGLE_OAUTH_ACCESS_TOKEN"
    assert cfg.listing.currency_code == "JPY"
    assert cfg.delays.between_images_sec == 0.5
    assert cfg.delays.between_stores_sec == 1.0
    assert cfg.media_sync.allowed_extensions == ("jpg", "jpeg", "png")


def test_load_config_normalizes_extensions(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace(
        "media_sync:\n", "media_sync:\n  allowed_extensions: [.JPG, png]\n"
    )
    write_config.write_text(text, encoding="utf-8")
    cfg = load_config(write_config)
    assert cfg.media_sync.allowed_extensions == ("jpg", "png")


def test_load_config_missing_file(temp_workdir: Path):
    missing = temp_workdir / "config" / "not_exists.yml"
    with pytest.raises(ConfigError, match="config file not found"):
        load_config(missing)


def test_load_config_missing_required(write_config: Path):
    write_config.write_text("timezone: UTC\n", encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value) and "required property" in str(e.value)


def test_load_config_extra_field(write_config: Path):
    text = write_config.read_text(encoding="utf-8") + "\nextra_field: not_allowed\n"
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError, match="config validation failed"):
        load_config(write_config)


def test_load_config_negative_delay(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace("between_rows_sec: 0.3", "between_rows_sec: -1")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError, match="config validation failed"):
        load_config(write_config)


def test_load_config_invalid_yaml(write_config: Path):
    write_config.write_text("inbox: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(write_config)


def test_load_config_root_not_mapping(write_config: Path):
    write_config.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="must be a mapping"):
        load_config(write_config)


def test_resolve_timezone_known_and_unknown():
    assert str(resolve_timezone("Asia/Tokyo")) == "Asia/Tokyo"
    assert resolve_timezone("Mars/Olympus_Mons") is UTC
