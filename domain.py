# domain.py
from __future__ import annotations

import math
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from errors import InvalidInput
from utils import minutes_between, parse_instant, parse_instant_or_none, parse_pause_minutes


class ShiftStatus(str, Enum):
    PLANNED = "planned"
    RUNNING = "running"
    FINISHED = "finished"


@dataclass(frozen=True)
class Shift:
    """A single work session: planned/actual start, optional end and pause."""
    id: str
    start: datetime | None
    actual_start: datetime | None = None
    end: datetime | None = None
    pause_minutes: int = 0
    duration_minutes: int | None = None
    running: bool = False

    @property
    def status(self) -> ShiftStatus:
        """
        Single derived-status rule for both stored representations
        (explicit status strings and the running flag + end presence).
        """
        if self.end is not None:
            return ShiftStatus.FINISHED
        if self.actual_start is not None or self.running:
            return ShiftStatus.RUNNING
        return ShiftStatus.PLANNED

    @property
    def iso_year_week(self) -> tuple[int, int] | None:
        """(ISO year, ISO week) of the effective start."""
        begin = self.actual_start or self.start
        if begin is None:
            return None
        iso = begin.isocalendar()
        return (iso[0], iso[1])

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Shift":
        """
        Builds a Shift from a stored record. Accepts snake_case and the legacy
        camelCase keys. A malformed field never fails the whole record.
        """
        status = str(_pick(record, "status") or "").lower()
        running = bool(_pick(record, "running")) or status == ShiftStatus.RUNNING.value
        return cls(
            id=str(_pick(record, "id") or new_shift_id()),
            start=parse_instant_or_none(_pick(record, "start", "plannedStart", "planned_start")),
            actual_start=parse_instant_or_none(_pick(record, "actual_start", "actualStart")),
            end=parse_instant_or_none(_pick(record, "end")),
            pause_minutes=parse_pause_minutes(_pick(record, "pause_minutes", "pauseMinutes"), strict=False),
            duration_minutes=_as_minutes(_pick(record, "duration_minutes", "durationMinutes")),
            running=running,
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "start": _iso(self.start),
            "actual_start": _iso(self.actual_start),
            "end": _iso(self.end),
            "pause_minutes": self.pause_minutes,
            "duration_minutes": self.duration_minutes,
            "running": self.status is ShiftStatus.RUNNING,
            "status": self.status.value,
        }


def new_shift_id() -> str:
    return uuid.uuid4().hex


def compute_duration(start: datetime, end: datetime, pause_minutes: int = 0) -> int:
    """Worked minutes: max(0, minutes(end - start) - pause)."""
    return max(0, minutes_between(start, end) - max(0, pause_minutes))


def create_planned(start_time: Any, shift_id: str | None = None) -> Shift:
    start = parse_instant(start_time)
    return Shift(id=shift_id or new_shift_id(), start=start)


def create_backdated(start_time: Any, end_time: Any, pause_minutes: Any = 0,
                     shift_id: str | None = None) -> Shift:
    """A shift entered after the fact: finished immediately."""
    start = parse_instant(start_time)
    end = parse_instant(end_time)
    if end <= start:
        raise InvalidInput("End time must be after start time.")
    pause = parse_pause_minutes(pause_minutes)
    return Shift(
        id=shift_id or new_shift_id(),
        start=start,
        end=end,
        pause_minutes=pause,
        duration_minutes=compute_duration(start, end, pause),
    )


def _pick(record: Mapping[str, Any], *keys: str) -> Any:
    for k in keys:
        if record.get(k) is not None:
            return record[k]
    return None


def _as_minutes(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return max(0, int(number))


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


__all__ = [
    "Shift",
    "ShiftStatus",
    "new_shift_id",
    "compute_duration",
    "create_planned",
    "create_backdated",
]
