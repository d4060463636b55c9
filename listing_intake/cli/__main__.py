from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from listing_intake.config.loader import DEFAULT_CONFIG_PATH, ConfigError, IntakeConfig, load_config
from listing_intake.google.api import ApiError, env_token_provider
from listing_intake.google.business_profile import BusinessProfileClient
from listing_intake.google.drive import DriveStorage
from listing_intake.google.sheets import SheetsEngine
from listing_intake.logging.init import log_summary, set_debug, setup_logging
from listing_intake.models.source_file import FileRoutingState
from listing_intake.services.locations import LocationResolver, normalize_account_name
from listing_intake.services.media_sync import MediaSyncError, sync_store_media
from listing_intake.services.orchestrator import (
    IntakeServices,
    ProcessingError,
    process_file_by_id,
    process_inbox_files,
)
from listing_intake.services.summary import render_summary_line
from listing_intake.services.triggers import (
    ENTRY_POINTS,
    VALID_HOUR_INTERVALS,
    WEEKDAYS,
    CrontabTriggerService,
    TriggerError,
    setup_daily_trigger,
    setup_hourly_trigger,
    setup_weekly_trigger,
)

"""CLI entrypoint.

Commands:
  process-inbox             process every submission in the inbox folder
  process-file FILE_ID      process one file directly (manual reprocessing)
  sync-media [--store NAME] upload pending store photos
  accounts                  list accounts / locations / media (setup diagnostics)
  schedule ...              manage crontab triggers

Exit codes: 0 everything succeeded, 2 at least one file (or upload) failed,
1 fatal (configuration, credentials, unreachable folders).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env; its values win over the inherited environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="listing-intake", description="Submission file -> business listing publisher")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config YAML path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("process-inbox", help="Process all submission files in the inbox")

    pf = sub.add_parser("process-file", help="Process one file by id")
    pf.add_argument("file_id")

    sm = sub.add_parser("sync-media", help="Upload pending store photos")
    sm.add_argument("--store", default=None, help="Only this store name")

    ac = sub.add_parser("accounts", help="List accounts, locations or media")
    ac.add_argument("--account", default=None, help="List the locations of this account")
    ac.add_argument("--location", default=None, help="With --account: list media of this location")

    sc = sub.add_parser("schedule", help="Manage scheduled triggers")
    sc.add_argument("action", choices=["daily", "weekly", "hourly", "list", "clear"])
    sc.add_argument("--entry", choices=ENTRY_POINTS, default="process-inbox")
    sc.add_argument("--hour", type=int, default=None, help="0-23 (daily default 8, weekly default 2)")
    sc.add_argument("--weekday", choices=WEEKDAYS, type=str.upper, default="MONDAY")
    sc.add_argument("--hours", type=int, choices=VALID_HOUR_INTERVALS, default=None)
    return p.parse_args(argv)


def build_services(config: IntakeConfig) -> IntakeServices:
    token = env_token_provider(config.api.token_env)
    timeout = config.api.timeout_sec
    drive = DriveStorage(config.api.drive_base, token, timeout=timeout)
    return IntakeServices(
        storage=drive,
        engine=SheetsEngine(config.api.sheets_base, token, drive, timeout=timeout),
        directory=BusinessProfileClient(
            config.api.business_profile_base,
            config.api.account_management_base,
            token,
            timeout=timeout,
        ),
    )


def _cmd_process_inbox(cfg: IntakeConfig, services: IntakeServices) -> int:
    result = process_inbox_files(cfg, services)
    # log_summary adds the "SUMMARY " label itself
    log_summary(render_summary_line(result)[len("SUMMARY "):])
    return EXIT_PARTIAL_FAILURE if result.error_files > 0 else EXIT_SUCCESS_ALL


def _cmd_process_file(cfg: IntakeConfig, services: IntakeServices, file_id: str, logger) -> int:
    outcome = process_file_by_id(file_id, cfg, services)
    logger.info(
        "%s -> %s (success=%d error=%d) log=%s",
        outcome.name, outcome.routing.value, outcome.success_rows, outcome.error_rows, outcome.log_url or "-",
    )
    return EXIT_SUCCESS_ALL if outcome.routing is FileRoutingState.PROCESSED else EXIT_PARTIAL_FAILURE


def _cmd_sync_media(cfg: IntakeConfig, services: IntakeServices, store: str | None) -> int:
    result = sync_store_media(cfg, services, store_name=store)
    log_summary(f"stores={result.stores} uploaded={result.uploaded} failed={result.failed}")
    return EXIT_PARTIAL_FAILURE if result.failed > 0 else EXIT_SUCCESS_ALL


def _cmd_accounts(services: IntakeServices, account: str | None, location: str | None, logger) -> int:
    directory = services.directory
    if account is None:
        accounts = directory.list_accounts().get("accounts", [])
        if not accounts:
            logger.info("no accounts")
        for a in accounts:
            logger.info("%s  %s  (%s)", a.get("name", ""), a.get("accountName", ""), a.get("type", "-"))
        return EXIT_SUCCESS_ALL

    account_name = normalize_account_name(account)
    if location is None:
        for store_code, name in sorted(LocationResolver(directory).build_location_map(account_name).items()):
            logger.info("%s  %s", store_code, name)
        return EXIT_SUCCESS_ALL

    items = directory.list_media(account_name, location).get("mediaItems", [])
    logger.info("%d media item(s)", len(items))
    for item in items:
        category = item.get("locationAssociation", {}).get("category", "-")
        logger.info("%s  %s  %s", item.get("name", ""), category, item.get("googleUrl", ""))
    return EXIT_SUCCESS_ALL


def _cmd_schedule(cfg: IntakeConfig, args: argparse.Namespace, logger) -> int:
    service = CrontabTriggerService(Path(cfg.triggers.crontab_path), cfg.triggers.command)
    if args.action == "list":
        triggers = service.list_triggers()
        if not triggers:
            logger.info("no triggers")
        for spec in triggers:
            logger.info("%s", spec.describe())
        return EXIT_SUCCESS_ALL
    if args.action == "clear":
        service.delete_triggers(args.entry)
        return EXIT_SUCCESS_ALL

    if args.action == "daily":
        setup_daily_trigger(service, args.entry, 8 if args.hour is None else args.hour)
    elif args.action == "weekly":
        setup_weekly_trigger(service, args.entry, args.weekday, 2 if args.hour is None else args.hour)
    else:
        if args.hours is None:
            raise TriggerError(f"--hours is required (valid: {', '.join(map(str, VALID_HOUR_INTERVALS))})")
        setup_hourly_trigger(service, args.entry, args.hours)
    logger.info("crontab written: %s (install with: crontab %s)", service.crontab_path, service.crontab_path)
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # [] must not fall back to sys.argv (pytest arguments)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    if args.command == "schedule":
        try:
            return _cmd_schedule(cfg, args, logger)
        except (TriggerError, OSError) as e:
            logger.error(f"schedule: {e}")
            return EXIT_FATAL

    if not os.getenv(cfg.api.token_env):
        logger.error(f"credentials: environment variable {cfg.api.token_env} is not set")
        return EXIT_FATAL

    services = build_services(cfg)
    try:
        if args.command == "process-inbox":
            return _cmd_process_inbox(cfg, services)
        if args.command == "process-file":
            return _cmd_process_file(cfg, services, args.file_id, logger)
        if args.command == "sync-media":
            return _cmd_sync_media(cfg, services, args.store)
        return _cmd_accounts(services, args.account, args.location, logger)
    except (ProcessingError, MediaSyncError, ApiError) as e:
        logger.error(f"{args.command}: {e}")
        return EXIT_FATAL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
