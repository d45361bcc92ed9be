from datetime import date, datetime

import pytest

from errors import InvalidInput
from utils import (
    format_minutes,
    minutes_between,
    parse_instant,
    parse_instant_or_none,
    parse_pause_minutes,
)


@pytest.mark.parametrize("raw", ["2024-01-01T08:00", "2024-01-01 08:00", "2024-01-01T08:00:00"])
def test_parse_instant_accepts_iso_variants(raw):
    assert parse_instant(raw) == datetime(2024, 1, 1, 8, 0)


def test_parse_instant_date_is_midnight():
    assert parse_instant(date(2024, 3, 5)) == datetime(2024, 3, 5)


def test_parse_instant_aware_becomes_naive():
    assert parse_instant("2024-01-01T08:00:00Z").tzinfo is None


@pytest.mark.parametrize("raw", ["", "   ", "tomorrow", "2024-13-01T08:00", None, 42])
def test_parse_instant_rejects_garbage(raw):
    with pytest.raises(InvalidInput):
        parse_instant(raw)


def test_parse_instant_or_none():
    assert parse_instant_or_none("nope") is None
    assert parse_instant_or_none(None) is None
    assert parse_instant_or_none("2024-01-01T08:00") == datetime(2024, 1, 1, 8)


@pytest.mark.parametrize("raw, expected", [
    (None, 0), ("", 0), ("abc", 0), ("nan", 0), (float("nan"), 0),
    ("30", 30), (" 15 ", 15), ("30.7", 30), (45, 45), (12.9, 12),
])
def test_parse_pause_minutes_recovers_to_zero(raw, expected):
    assert parse_pause_minutes(raw) == expected


def test_parse_pause_minutes_negative():
    with pytest.raises(InvalidInput):
        parse_pause_minutes("-5")
    assert parse_pause_minutes(-5, strict=False) == 0


def test_minutes_between_floors():
    assert minutes_between(datetime(2024, 1, 1, 8, 0), datetime(2024, 1, 1, 8, 59, 59)) == 59


def test_format_minutes():
    assert format_minutes(450) == "7h 30min"
    assert format_minutes(-10) == "0h 0min"
    assert format_minutes(None) == "0h 0min"
