from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from listing_intake.collaborators.interfaces import TriggerService

"""Time-based triggers kept as marked lines of a crontab file.

Every managed line ends with ``# listing-intake:<entry point>`` so that
triggers of one entry point can be listed and replaced without touching
unrelated crontab entries. Install the file with ``crontab <path>``.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "ENTRY_POINTS",
    "VALID_HOUR_INTERVALS",
    "WEEKDAYS",
    "TriggerError",
    "TriggerKind",
    "TriggerSpec",
    "CrontabTriggerService",
    "spec_from_schedule",
    "setup_daily_trigger",
    "setup_weekly_trigger",
    "setup_hourly_trigger",
]

ENTRY_POINTS = ("process-inbox", "sync-media")
VALID_HOUR_INTERVALS = (1, 2, 4, 6, 8, 12)
WEEKDAYS = ("SUNDAY", "MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY")

MARKER = "# listing-intake:"
_MANAGED_LINE = re.compile(r"^(?P<schedule>(?:\S+\s+){5})(?P<command>.*?)\s*# listing-intake:(?P<entry>\S+)\s*$")


class TriggerError(Exception):
    pass


class TriggerKind(Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    HOURLY = "hourly"


@dataclass(frozen=True)
class TriggerSpec:
    entry_point: str
    kind: TriggerKind
    hour: int = 0
    weekday: str | None = None
    every_hours: int | None = None

    def validate(self) -> None:
        if self.entry_point not in ENTRY_POINTS:
            raise TriggerError(f"unknown entry point: {self.entry_point} (expected one of {', '.join(ENTRY_POINTS)})")
        if self.kind is TriggerKind.HOURLY:
            if self.every_hours not in VALID_HOUR_INTERVALS:
                raise TriggerError(
                    f"invalid interval: {self.every_hours} (valid: {', '.join(map(str, VALID_HOUR_INTERVALS))})"
                )
            return
        if not 0 <= self.hour <= 23:
            raise TriggerError(f"hour must be between 0 and 23: {self.hour}")
        if self.kind is TriggerKind.WEEKLY and self.weekday not in WEEKDAYS:
            raise TriggerError(f"invalid weekday: {self.weekday}")

    def cron_schedule(self) -> str:
        if self.kind is TriggerKind.HOURLY:
            return f"0 */{self.every_hours} * * *"
        if self.kind is TriggerKind.WEEKLY:
            return f"0 {self.hour} * * {WEEKDAYS.index(self.weekday)}"
        return f"0 {self.hour} * * *"

    def describe(self) -> str:
        if self.kind is TriggerKind.HOURLY:
            return f"{self.entry_point}: every {self.every_hours} hours"
        if self.kind is TriggerKind.WEEKLY:
            return f"{self.entry_point}: every {self.weekday.capitalize()} at {self.hour}:00"
        return f"{self.entry_point}: daily at {self.hour}:00"


def spec_from_schedule(entry_point: str, schedule: str) -> TriggerSpec:
    _minute, hour, _dom, _month, dow = schedule.split()
    if hour.startswith("*/"):
        return TriggerSpec(entry_point, TriggerKind.HOURLY, every_hours=int(hour[2:]))
    if dow != "*":
        return TriggerSpec(entry_point, TriggerKind.WEEKLY, hour=int(hour), weekday=WEEKDAYS[int(dow) % 7])
    return TriggerSpec(entry_point, TriggerKind.DAILY, hour=int(hour))


class CrontabTriggerService(TriggerService):

    def __init__(self, crontab_path: Path, command: str) -> None:
        self.crontab_path = Path(crontab_path)
        self.command = command

    def _read_lines(self) -> list[str]:
        if not self.crontab_path.exists():
            return []
        return self.crontab_path.read_text(encoding="utf-8").splitlines()

    def _write_lines(self, lines: list[str]) -> None:
        self.crontab_path.parent.mkdir(parents=True, exist_ok=True)
        self.crontab_path.write_text("\n".join(lines) + ("\n" if lines else ""), encoding="utf-8")

    def list_triggers(self) -> list[TriggerSpec]:
        specs = []
        for line in self._read_lines():
            m = _MANAGED_LINE.match(line)
            if m is None:
                continue
            try:
                specs.append(spec_from_schedule(m.group("entry"), m.group("schedule")))
            except (ValueError, IndexError):
                logger.warning("unrecognised trigger line: %s", line)
        return specs

    def create_trigger(self, spec: TriggerSpec) -> None:
        spec.validate()
        line = f"{spec.cron_schedule()} {self.command} {spec.entry_point} {MARKER}{spec.entry_point}"
        self._write_lines(self._read_lines() + [line])
        logger.info("trigger set: %s", spec.describe())

    def delete_triggers(self, entry_point: str) -> int:
        kept: list[str] = []
        removed = 0
        for line in self._read_lines():
            m = _MANAGED_LINE.match(line)
            if m is not None and m.group("entry") == entry_point:
                removed += 1
            else:
                kept.append(line)
        if removed:
            self._write_lines(kept)
        logger.info("deleted %d trigger(s) of %s", removed, entry_point)
        return removed


def _replace(service: TriggerService, spec: TriggerSpec) -> TriggerSpec:
    spec.validate()
    service.delete_triggers(spec.entry_point)
    service.create_trigger(spec)
    return spec


def setup_daily_trigger(service: TriggerService, entry_point: str, hour: int = 8) -> TriggerSpec:
    return _replace(service, TriggerSpec(entry_point, TriggerKind.DAILY, hour=hour))


def setup_weekly_trigger(
    service: TriggerService, entry_point: str, weekday: str = "MONDAY", hour: int = 2
) -> TriggerSpec:
    return _replace(service, TriggerSpec(entry_point, TriggerKind.WEEKLY, hour=hour, weekday=weekday.upper()))


def setup_hourly_trigger(service: TriggerService, entry_point: str, hours: int) -> TriggerSpec:
    return _replace(service, TriggerSpec(entry_point, TriggerKind.HOURLY, every_hours=hours))
