# utils.py
from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any

from errors import InvalidInput


def parse_instant(value: Any) -> datetime:
    """
    Parses a timestamp into a naive local datetime.
    Accepts datetime/date objects and ISO strings ("2024-01-01T08:00",
    "2024-01-01 08:00", "...Z", "...+01:00"). Raises InvalidInput otherwise.
    """
    if isinstance(value, datetime):
        return _to_local_naive(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"Not a timestamp: {value!r}")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise InvalidInput(f"Not a timestamp: {value!r}") from None
    return _to_local_naive(parsed)


def parse_instant_or_none(value: Any) -> datetime | None:
    if value is None:
        return None
    try:
        return parse_instant(value)
    except InvalidInput:
        return None


def _to_local_naive(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone().replace(tzinfo=None)


def parse_pause_minutes(value: Any, strict: bool = True) -> int:
    """
    Turns raw pause input into whole minutes.
    Missing, empty, non-numeric and NaN input recover to 0. Negative values
    raise InvalidInput (or recover to 0 when strict=False).
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            number = float(text)
        except ValueError:
            return 0
    elif isinstance(value, (int, float)):
        number = float(value)
    else:
        return 0
    if not math.isfinite(number):
        return 0
    minutes = int(number)
    if minutes < 0:
        if strict:
            raise InvalidInput(f"Pause cannot be negative: {value!r}")
        return 0
    return minutes


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, floored."""
    return math.floor((end - start).total_seconds() / 60)


def format_minutes(minutes: int | None) -> str:
    minutes = max(0, int(minutes or 0))
    h, m = divmod(minutes, 60)
    return f"{h}h {m}min"


def format_instant(value: datetime | None, fmt: str = "%d.%m.%Y %H:%M") -> str:
    return value.strftime(fmt) if value else ""


__all__ = [
    "parse_instant",
    "parse_instant_or_none",
    "parse_pause_minutes",
    "minutes_between",
    "format_minutes",
    "format_instant",
]
