# services.py
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Tuple

from domain import Shift, ShiftStatus, compute_duration
from errors import InvalidInput, InvalidTransition
from utils import minutes_between, parse_instant, parse_pause_minutes

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("start", "end", "pause_minutes")


# =========================
# Duration calculator
# =========================
def effective_start(shift: Shift) -> datetime | None:
    """Actual start when known, else the planned start."""
    return shift.actual_start or shift.start


def final_duration(shift: Shift) -> int | None:
    """Billable minutes of a finished shift, or None if it cannot be known yet."""
    if shift.duration_minutes is not None:
        return shift.duration_minutes
    begin = effective_start(shift)
    if shift.end is None or begin is None:
        return None
    return compute_duration(begin, shift.end, shift.pause_minutes)


def live_duration(shift: Shift, now: datetime) -> int:
    """
    Elapsed minutes of a running shift. The pause is only deducted when the
    shift is finished, so it is not applied here.
    """
    if shift.status is not ShiftStatus.RUNNING:
        return 0
    begin = effective_start(shift)
    if begin is None:
        return 0
    return max(0, minutes_between(begin, now))


# =========================
# State machine
# =========================
def start(shift: Shift, at: datetime) -> Shift:
    if shift.status is not ShiftStatus.PLANNED:
        raise InvalidTransition(f"Shift {shift.id} is {shift.status.value}, only planned shifts can start.")
    logger.debug("Starting shift %s at %s", shift.id, at)
    return replace(shift, actual_start=parse_instant(at), running=True)


def finish(shift: Shift, end_time: Any, pause_minutes: Any = 0) -> Shift:
    """Ends a running shift and stores its final duration."""
    if shift.status is not ShiftStatus.RUNNING:
        raise InvalidTransition(f"Shift {shift.id} is {shift.status.value}, only running shifts can finish.")
    end = parse_instant(end_time)
    pause = parse_pause_minutes(pause_minutes)
    begin = effective_start(shift)
    if begin is None:
        raise InvalidInput(f"Shift {shift.id} has no start time.")
    if end <= begin:
        raise InvalidInput("End time must be after the shift start.")
    logger.debug("Finishing shift %s at %s (pause %s min)", shift.id, end, pause)
    return replace(
        shift,
        end=end,
        pause_minutes=pause,
        duration_minutes=compute_duration(begin, end, pause),
        running=False,
    )


def edit(shift: Shift, patch: Mapping[str, Any]) -> Shift:
    """
    Corrects start/end/pause_minutes in any state. None values are ignored.
    A new start also replaces actual_start when the shift already began, so the
    correction lands on the effective start.
    """
    unknown = set(patch) - set(EDITABLE_FIELDS)
    if unknown:
        raise InvalidInput(f"Cannot edit field(s): {', '.join(sorted(unknown))}")

    changes: dict[str, Any] = {}
    if patch.get("start") is not None:
        changes["start"] = parse_instant(patch["start"])
        if shift.actual_start is not None:
            changes["actual_start"] = changes["start"]
    if patch.get("end") is not None:
        changes["end"] = parse_instant(patch["end"])
    if patch.get("pause_minutes") is not None:
        changes["pause_minutes"] = parse_pause_minutes(patch["pause_minutes"])

    updated = replace(shift, **changes)
    begin = effective_start(updated)
    if updated.end is not None and begin is not None:
        if updated.end <= begin:
            raise InvalidInput("End time must be after start time.")
        updated = replace(
            updated,
            duration_minutes=compute_duration(begin, updated.end, updated.pause_minutes),
            running=False,
        )
    else:
        updated = replace(updated, duration_minutes=None)
    return updated


def remove(shift_id: str, collection: Iterable[Shift]) -> List[Shift]:
    """Drops the shift with that id. Unknown ids are a no-op."""
    return [s for s in collection if s.id != shift_id]


def find_shift(collection: Iterable[Shift], shift_id: str) -> Shift | None:
    return next((s for s in collection if s.id == shift_id), None)


def replace_shift(collection: Iterable[Shift], shift: Shift) -> List[Shift]:
    """New collection with `shift` swapped in by id (appended when new)."""
    result, found = [], False
    for s in collection:
        if s.id == shift.id:
            result.append(shift)
            found = True
        else:
            result.append(s)
    if not found:
        result.append(shift)
    return result


# =========================
# Auto-transition (one tick)
# =========================
def advance(collection: Iterable[Shift], now: datetime) -> Tuple[List[Shift], bool]:
    """
    Promotes every planned shift whose start has passed to running, with
    actual_start set to its own planned start (not `now`).
    Returns (new collection, changed).
    """
    result: List[Shift] = []
    changed = False
    for s in collection:
        if s.status is ShiftStatus.PLANNED and s.start is not None and s.start <= now:
            result.append(start(s, s.start))
            changed = True
        else:
            result.append(s)
    return result, changed


__all__ = [
    "effective_start",
    "final_duration",
    "live_duration",
    "start",
    "finish",
    "edit",
    "remove",
    "find_shift",
    "replace_shift",
    "advance",
]
