from __future__ import annotations

import logging
import math
from datetime import UTC, datetime, tzinfo
from typing import Protocol

from listing_intake.models.run_result import LogEntry, Outcome, RunSummary
from listing_intake.models.submission import SubmissionHeader, SubmissionRow

"""Per-file result accumulator.

A fresh accumulator is created for every file. It counts outcomes, keeps the
ordered log entries and forwards each entry to an optional sink (the
execution log spreadsheet). It never influences control flow: routing is
decided by the orchestrator's own counters.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "HEADER_ERROR_PREFIX",
    "LogSink",
    "RunAccumulator",
]

HEADER_ERROR_PREFIX = "[header error] "


def _half_up_percent(part: int, total: int) -> int | None:
    if total <= 0:
        return None
    # 12.5 -> 13, not banker's rounding
    return math.floor(part * 100 / total + 0.5)


class LogSink(Protocol):
    def append(self, entry: LogEntry, header_error: bool = False) -> None: ...

    def finalize(self, summary: RunSummary) -> None: ...


class RunAccumulator:

    def __init__(
        self,
        file_name: str,
        sink: LogSink | None = None,
        tz: tzinfo = UTC,
    ) -> None:
        self.file_name = file_name
        self._sink = sink
        self._tz = tz
        self._entries: list[LogEntry] = []
        self._counts = {Outcome.SUCCESS: 0, Outcome.SKIP: 0, Outcome.ERROR: 0}
        self._sealed = False

    @property
    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    @property
    def total(self) -> int:
        return len(self._entries)

    def _record(self, entry: LogEntry, header_error: bool = False) -> None:
        if self._sealed:
            logger.debug("record after finalize file=%s", self.file_name)
        self._entries.append(entry)
        self._counts[entry.outcome] += 1
        if self._sink is None:
            return
        try:
            self._sink.append(entry, header_error=header_error)
        except Exception as e:
            logger.warning("failed to write execution log row file=%s: %s", self.file_name, e)

    def record_row(
        self,
        header: SubmissionHeader | None,
        row: SubmissionRow,
        outcome: Outcome,
        external_id: str = "",
        message: str = "",
    ) -> LogEntry:
        entry = LogEntry(
            timestamp=datetime.now(self._tz),
            business_group_id=header.business_group_id if header else "",
            business_group_name=header.business_group_name if header else "",
            business_name=row.business_name,
            store_code=row.store_code,
            product_name=row.product_name,
            outcome=outcome,
            external_id=external_id,
            message=message,
            source_file_name=self.file_name,
        )
        self._record(entry)
        return entry

    def record_header_error(self, message: str) -> LogEntry:
        entry = LogEntry(
            timestamp=datetime.now(self._tz),
            business_group_id="",
            business_group_name="",
            business_name="",
            store_code="",
            product_name="",
            outcome=Outcome.ERROR,
            external_id="",
            message=HEADER_ERROR_PREFIX + message,
            source_file_name=self.file_name,
        )
        self._record(entry, header_error=True)
        return entry

    def finalize(self) -> RunSummary:
        total = self.total
        success = self._counts[Outcome.SUCCESS]
        summary = RunSummary(
            total=total,
            success=success,
            skip=self._counts[Outcome.SKIP],
            error=self._counts[Outcome.ERROR],
            success_rate=_half_up_percent(success, total),
        )
        self._sealed = True
        if self._sink is not None:
            try:
                self._sink.finalize(summary)
            except Exception as e:
                logger.warning("failed to finalize execution log file=%s: %s", self.file_name, e)
        logger.info(
            "execution log finalized: success=%d skip=%d error=%d total=%d",
            summary.success, summary.skip, summary.error, summary.total,
        )
        return summary
