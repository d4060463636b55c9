from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from listing_intake.collaborators.interfaces import DirectoryApi, SpreadsheetEngine, StorageService
from listing_intake.config.loader import IntakeConfig, resolve_timezone
from listing_intake.google.api import ApiError
from listing_intake.logging.error_log import ErrorLogBuffer
from listing_intake.models.error_record import FILE_LEVEL_ROW, ErrorRecord
from listing_intake.models.processing_result import FileStat, ProcessingResult
from listing_intake.models.run_result import Outcome, RowOutcome
from listing_intake.models.source_file import (
    FileOutcome,
    FileRoutingState,
    StorageFile,
    StorageFolder,
    WorkFolders,
)
from listing_intake.models.submission import SubmissionHeader, SubmissionRow
from listing_intake.services.accumulator import RunAccumulator
from listing_intake.services.execution_log import ExecutionLogSheet
from listing_intake.services.exposure import ExposureManager
from listing_intake.services.locations import (
    DirectoryFetchError,
    LocationResolver,
    resolve_location,
)
from listing_intake.services.progress import ProgressTracker
from listing_intake.services.publisher import ImagePreparationError, PublishError, Publisher
from listing_intake.submission.parser import parse_submission
from listing_intake.submission.reader import SUPPORTED_MIME_TYPES

"""Submission orchestration.

Per file:
  parse -> header check -> build location map -> row loop -> finalize log -> route

- Header errors are logged and recorded; only an unparsed header (fatal
  document) stops the file before the location lookup
- A failed location listing stops the file as well
- Row problems (validation, unknown store code, image, publish) are recorded
  as Error outcomes and the loop moves on
- Files with at least one published row go to Processed, everything else to
  Error; a failed move is logged and does not change the outcome
- Unexpected exceptions are caught per file and route the file to Error
"""

logger = logging.getLogger(__name__)

__all__ = [
    "ProcessingError",
    "IntakeServices",
    "SubmissionProcessor",
    "get_work_folders",
    "list_inbox_files",
    "process_inbox_files",
    "process_file_by_id",
]


class ProcessingError(Exception):
    """The run cannot start (inbox or work folders unavailable, file not found)."""


@dataclass
class IntakeServices:
    storage: StorageService
    engine: SpreadsheetEngine
    directory: DirectoryApi
    sleep: Callable[[float], None] = field(default=time.sleep)


def get_work_folders(config: IntakeConfig, storage: StorageService) -> WorkFolders:
    """Resolve the inbox and get-or-create its Processed / Error / Results subfolders."""
    inbox_cfg = config.inbox
    try:
        if inbox_cfg.folder_id:
            inbox = storage.get_folder(inbox_cfg.folder_id)
        else:
            inbox = storage.get_or_create_folder(storage.root_folder_id, inbox_cfg.folder_name)
        return WorkFolders(
            inbox=inbox,
            processed=storage.get_or_create_folder(inbox.id, inbox_cfg.processed_folder_name),
            error=storage.get_or_create_folder(inbox.id, inbox_cfg.error_folder_name),
            results=storage.get_or_create_folder(inbox.id, inbox_cfg.results_folder_name),
        )
    except ApiError as e:
        raise ProcessingError(f"failed to resolve work folders: {e}") from e


def list_inbox_files(storage: StorageService, inbox: StorageFolder) -> list[StorageFile]:
    """Direct children of the inbox with a supported MIME type (subfolders are not walked)."""
    try:
        return [f for f in storage.list_files(inbox.id) if f.mime_type in SUPPORTED_MIME_TYPES]
    except ApiError as e:
        raise ProcessingError(f"failed to list inbox files: {e}") from e


def _image_root_folder_id(storage: StorageService, inbox: StorageFolder, name: str) -> str | None:
    try:
        found = storage.find_folders(inbox.id, name)
    except ApiError as e:
        logger.debug("image root lookup failed: %s", e)
        return None
    return found[0].id if found else None


def _move_file(storage: StorageService, file: StorageFile, folder: StorageFolder) -> bool:
    try:
        storage.move(file.id, folder.id)
    except Exception as e:
        logger.error("failed to move %s to %s: %s", file.name, folder.name, e)
        return False
    logger.info("moved %s -> %s", file.name, folder.name)
    return True


class SubmissionProcessor:
    """Processes one submission file at a time; holds no state between files."""

    def __init__(
        self,
        services: IntakeServices,
        folders: WorkFolders,
        config: IntakeConfig,
        error_log: ErrorLogBuffer | None = None,
    ) -> None:
        self._services = services
        self._folders = folders
        self._config = config
        self._error_log = error_log if error_log is not None else ErrorLogBuffer()
        self._tz = resolve_timezone(config.timezone)

    def _log_error(self, file: StorageFile, row: int, error_type: str, message: str, store_code: str = "") -> None:
        self._error_log.append(ErrorRecord.create(file.name, row, error_type, message, store_code))

    def _header_error(self, acc: RunAccumulator, file: StorageFile, message: str, error_type: str) -> None:
        logger.warning("%s: %s", file.name, message)
        acc.record_header_error(message)
        self._log_error(file, FILE_LEVEL_ROW, error_type, message)

    def _publish_row(
        self, publisher: Publisher, location_map: dict[str, str], row: SubmissionRow
    ) -> RowOutcome:
        if not row.is_valid:
            return RowOutcome.error(" / ".join(row.errors), "VALIDATION_ERROR")

        location_name = resolve_location(location_map, row.store_code)
        if location_name is None:
            return RowOutcome.error(
                f"no directory location matches store code '{row.store_code}' "
                "(check the store code set on the location)",
                "LOCATION_NOT_FOUND",
            )

        try:
            result = publisher.publish(location_name, row)
        except ImagePreparationError as e:
            outcome = RowOutcome.error(str(e), "IMAGE_ERROR")
        except PublishError as e:
            outcome = RowOutcome.error(str(e), "PUBLISH_ERROR")
        except Exception as e:
            # a single row never aborts the file; earlier successes must still count
            logger.exception("unexpected error while publishing row %d", row.row_number)
            outcome = RowOutcome.error(str(e) or type(e).__name__, "PUBLISH_ERROR")
        else:
            outcome = RowOutcome.success(result.external_id)

        # rate limit between provider calls
        self._services.sleep(self._config.delays.between_rows_sec)
        return outcome

    def _finish(
        self,
        file: StorageFile,
        acc: RunAccumulator,
        sink: ExecutionLogSheet,
        start: datetime,
        counts: dict[Outcome, int],
        error: str | None = None,
    ) -> FileOutcome:
        acc.finalize()
        logger.info("execution log: %s", sink.url)

        routing = FileRoutingState.PROCESSED if counts[Outcome.SUCCESS] > 0 else FileRoutingState.ERROR
        target = self._folders.processed if routing is FileRoutingState.PROCESSED else self._folders.error
        _move_file(self._services.storage, file, target)

        return FileOutcome(
            file_id=file.id,
            name=file.name,
            routing=routing,
            start_time=start,
            end_time=datetime.now(UTC),
            attempted_rows=sum(counts.values()),
            success_rows=counts[Outcome.SUCCESS],
            skipped_rows=counts[Outcome.SKIP],
            error_rows=counts[Outcome.ERROR],
            log_url=sink.url,
            error=error,
        )

    def process(self, file: StorageFile) -> FileOutcome:
        start = datetime.now(UTC)
        storage = self._services.storage
        directory = self._services.directory

        parsed = parse_submission(file, storage, self._services.engine)
        sink = ExecutionLogSheet.create(
            self._services.engine, self._folders.results.id, file.name, self._tz
        )
        acc = RunAccumulator(file.name, sink, self._tz)
        counts = {Outcome.SUCCESS: 0, Outcome.SKIP: 0, Outcome.ERROR: 0}

        for message in parsed.header_errors:
            self._header_error(acc, file, message, "HEADER_ERROR")

        if parsed.is_fatal:
            return self._finish(file, acc, sink, start, counts, error="; ".join(parsed.header_errors))

        header: SubmissionHeader = parsed.header
        logger.info(
            "group: %s | account: %s | rows: %d",
            header.business_group_name, header.account_id, len(parsed.rows),
        )

        try:
            location_map = LocationResolver(directory).build_location_map(header.account_id)
        except DirectoryFetchError as e:
            message = f"failed to list directory locations: {e}"
            self._header_error(acc, file, message, "DIRECTORY_FETCH_ERROR")
            return self._finish(file, acc, sink, start, counts, error=message)

        exposure = ExposureManager(
            storage,
            _image_root_folder_id(storage, self._folders.inbox, self._config.inbox.image_root_folder_name),
            self._config.listing.download_url_template,
        )
        publisher = Publisher(
            directory,
            exposure,
            language_code=self._config.listing.language_code,
            currency_code=self._config.listing.currency_code,
        )

        for row in parsed.rows:
            logger.info("row %d: %s / %s", row.row_number, row.business_name, row.product_name)
            outcome = self._publish_row(publisher, location_map, row)
            counts[outcome.outcome] += 1
            acc.record_row(header, row, outcome.outcome, outcome.external_id, outcome.message)
            if outcome.outcome is Outcome.ERROR:
                logger.warning("row %d failed: %s", row.row_number, outcome.message)
                self._log_error(file, row.row_number, outcome.error_type, outcome.message, row.store_code)
            else:
                logger.info("row %d published: %s", row.row_number, outcome.external_id)

        result = self._finish(file, acc, sink, start, counts)
        logger.info(
            "%s: success=%d error=%d -> %s",
            file.name, result.success_rows, result.error_rows, result.routing.value,
        )
        return result


def _process_guarded(
    processor: SubmissionProcessor,
    file: StorageFile,
    services: IntakeServices,
    folders: WorkFolders,
    error_log: ErrorLogBuffer,
) -> FileOutcome:
    start = datetime.now(UTC)
    try:
        return processor.process(file)
    except Exception as e:
        logger.exception("unexpected error while processing %s", file.name)
        error_log.append(ErrorRecord.create(file.name, FILE_LEVEL_ROW, "PROCESSING_ERROR", str(e)))
        _move_file(services.storage, file, folders.error)
        return FileOutcome(
            file_id=file.id,
            name=file.name,
            routing=FileRoutingState.ERROR,
            start_time=start,
            end_time=datetime.now(UTC),
            error=str(e),
        )


def _flush_error_log(error_log: ErrorLogBuffer) -> None:
    by_type = error_log.count_by_type()
    try:
        path = error_log.flush()
    except OSError as e:
        logger.warning("failed to write error log: %s", e)
        return
    if path is not None:
        breakdown = ", ".join(f"{k}={v}" for k, v in sorted(by_type.items()))
        logger.info("error log written: %s (%s)", path, breakdown)


def process_inbox_files(
    config: IntakeConfig,
    services: IntakeServices,
    error_log: ErrorLogBuffer | None = None,
) -> ProcessingResult:
    """Process every supported file sitting directly in the inbox folder.

    Raises:
        ProcessingError: work folders or the inbox listing are unavailable
    """
    start_time = datetime.now(UTC)
    error_log = error_log if error_log is not None else ErrorLogBuffer()

    folders = get_work_folders(config, services.storage)
    files = list_inbox_files(services.storage, folders.inbox)
    if not files:
        logger.info("no submission files in inbox %s", folders.inbox.name)
    else:
        logger.info("submission files: %d", len(files))

    processor = SubmissionProcessor(services, folders, config, error_log)
    file_stats: list[FileStat] = []
    processed = failed = 0
    rows = success_rows = skipped_rows = error_rows = 0

    with ProgressTracker(len(files)) as progress:
        for idx, file in enumerate(files):
            progress.start_file(file.name)
            logger.info("--- file %d/%d: %s ---", idx + 1, len(files), file.name)

            outcome = _process_guarded(processor, file, services, folders, error_log)

            if outcome.routing is FileRoutingState.PROCESSED:
                processed += 1
            else:
                failed += 1
            rows += outcome.attempted_rows
            success_rows += outcome.success_rows
            skipped_rows += outcome.skipped_rows
            error_rows += outcome.error_rows

            elapsed = 0.0
            if outcome.start_time and outcome.end_time:
                elapsed = (outcome.end_time - outcome.start_time).total_seconds()
            file_stats.append(FileStat(
                file_name=file.name,
                routing=outcome.routing.value,
                success_rows=outcome.success_rows,
                error_rows=outcome.error_rows,
                elapsed_seconds=elapsed,
            ))

            progress.set_postfix(processed=processed, error=failed, rows=rows)
            progress.finish_file()

            if idx < len(files) - 1:
                services.sleep(config.delays.between_files_sec)

    _flush_error_log(error_log)

    end_time = datetime.now(UTC)
    return ProcessingResult(
        processed_files=processed,
        error_files=failed,
        total_rows=rows,
        success_rows=success_rows,
        skipped_rows=skipped_rows,
        error_rows=error_rows,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        file_stats=file_stats,
    )


def process_file_by_id(
    file_id: str,
    config: IntakeConfig,
    services: IntakeServices,
    error_log: ErrorLogBuffer | None = None,
) -> FileOutcome:
    """Process one file directly, bypassing the inbox scan (manual reprocessing)."""
    if not file_id:
        raise ProcessingError("file id is required")
    error_log = error_log if error_log is not None else ErrorLogBuffer()
    try:
        file = services.storage.get_file(file_id)
    except ApiError as e:
        raise ProcessingError(f"file not found: {file_id} ({e})") from e

    folders = get_work_folders(config, services.storage)
    logger.info("processing file: %s", file.name)
    processor = SubmissionProcessor(services, folders, config, error_log)
    outcome = _process_guarded(processor, file, services, folders, error_log)
    _flush_error_log(error_log)
    return outcome
