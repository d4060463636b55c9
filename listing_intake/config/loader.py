from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import UTC, tzinfo
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

"""Config loader.

Responsibilities:
- Load YAML config (default config/intake.yml)
- Validate against config_schema.json (shipped next to this module)
- Apply defaults for every optional section
"""

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).parent / "config_schema.json"
DEFAULT_CONFIG_PATH = Path("config/intake.yml")

DEFAULT_DOWNLOAD_URL_TEMPLATE = "https://drive.google.com/uc?export=download&id={file_id}"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class InboxConfig:
    folder_id: str | None = None
    folder_name: str = "Submission Inbox"
    processed_folder_name: str = "Processed"
    error_folder_name: str = "Error"
    results_folder_name: str = "Results"
    image_root_folder_name: str = "Product Images"


@dataclass(frozen=True)
class ApiConfig:
    business_profile_base: str = "https://mybusiness.googleapis.com/v4"
    account_management_base: str = "https://mybusinessaccountmanagement.googleapis.com/v1"
    drive_base: str = "https://www.googleapis.com/drive/v3"
    sheets_base: str = "https://sheets.googleapis.com/v4"
    timeout_sec: float = 30.0
    token_env: str = "GOOGLE_OAUTH_ACCESS_TOKEN"


@dataclass(frozen=True)
class ListingConfig:
    language_code: str = "ja"
    currency_code: str = "JPY"
    download_url_template: str = DEFAULT_DOWNLOAD_URL_TEMPLATE


@dataclass(frozen=True)
class DelayConfig:
    between_rows_sec: float = 0.3
    between_files_sec: float = 2.0
    between_images_sec: float = 0.5
    between_stores_sec: float = 1.0


@dataclass(frozen=True)
class MediaSyncConfig:
    spreadsheet_id: str | None = None
    store_config_sheet: str = "Store Config"
    history_sheet: str = "Upload History"
    uploaded_folder_name: str = "uploaded"
    allowed_extensions: tuple[str, ...] = ("jpg", "jpeg", "png")
    active_status: str = "Active"
    default_category: str = "ADDITIONAL"


@dataclass(frozen=True)
class TriggerConfig:
    crontab_path: str = "./crontab"
    command: str = "python -m listing_intake.cli"


@dataclass(frozen=True)
class IntakeConfig:
    inbox: InboxConfig
    api: ApiConfig = field(default_factory=ApiConfig)
    listing: ListingConfig = field(default_factory=ListingConfig)
    delays: DelayConfig = field(default_factory=DelayConfig)
    media_sync: MediaSyncConfig = field(default_factory=MediaSyncConfig)
    triggers: TriggerConfig = field(default_factory=TriggerConfig)
    timezone: str = "Asia/Tokyo"


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: If the schema file is missing or unreadable, or the
            config data fails validation (missing required keys, wrong types,
            unknown keys).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    # yaml "key:" with no body loads as None
    return data.get(key) or {}


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> IntakeConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")

    _validate_config_schema(data)

    media_raw = dict(_section(data, "media_sync"))
    if "allowed_extensions" in media_raw:
        media_raw["allowed_extensions"] = tuple(
            ext.lower().lstrip(".") for ext in media_raw["allowed_extensions"]
        )

    return IntakeConfig(
        inbox=InboxConfig(**_section(data, "inbox")),
        api=ApiConfig(**_section(data, "api")),
        listing=ListingConfig(**_section(data, "listing")),
        delays=DelayConfig(**_section(data, "delays")),
        media_sync=MediaSyncConfig(**media_raw),
        triggers=TriggerConfig(**_section(data, "triggers")),
        timezone=data.get("timezone", "Asia/Tokyo"),
    )


def resolve_timezone(name: str) -> tzinfo:
    """IANA zone for timestamps written to sheets; unknown names fall back to UTC."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("unknown timezone %s, falling back to UTC", name)
        return UTC
