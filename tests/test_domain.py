from datetime import datetime

import pytest

from domain import Shift, ShiftStatus, create_backdated, create_planned
from errors import InvalidInput
from services import final_duration


def dt(text):
    return datetime.fromisoformat(text)


def test_status_is_derived_from_fields():
    assert Shift(id="a", start=dt("2024-01-01T08:00")).status is ShiftStatus.PLANNED
    assert Shift(id="b", start=None, running=True).status is ShiftStatus.RUNNING
    assert Shift(id="c", start=None, actual_start=dt("2024-01-01T08:00")).status is ShiftStatus.RUNNING
    finished = Shift(id="d", start=dt("2024-01-01T08:00"), end=dt("2024-01-01T09:00"), running=True)
    assert finished.status is ShiftStatus.FINISHED


def test_create_planned():
    s = create_planned("2024-01-01T08:00")
    assert s.status is ShiftStatus.PLANNED
    assert s.start == datetime(2024, 1, 1, 8)
    assert s.pause_minutes == 0
    assert s.duration_minutes is None
    assert s.id


def test_create_planned_rejects_unparseable():
    with pytest.raises(InvalidInput):
        create_planned("next monday")


def test_create_backdated_is_finished():
    s = create_backdated("2024-01-01T08:00", "2024-01-01T16:00", 30)
    assert s.status is ShiftStatus.FINISHED
    assert s.duration_minutes == 450


def test_create_backdated_rejects_end_not_after_start():
    with pytest.raises(InvalidInput):
        create_backdated("2024-01-01T08:00", "2024-01-01T08:00", 0)
    with pytest.raises(InvalidInput):
        create_backdated("2024-01-01T08:00", "2024-01-01T07:00", 0)


def test_create_backdated_bad_pause_is_zero():
    assert create_backdated("2024-01-01T08:00", "2024-01-01T09:00", "lots").duration_minutes == 60


def test_from_record_legacy_camel_case():
    s = Shift.from_record({
        "id": "x1",
        "start": "2024-01-01T08:00:00.000Z",
        "actualStart": "2024-01-01T08:00:00.000Z",
        "running": True,
        "pauseMinutes": "abc",
    })
    assert s.status is ShiftStatus.RUNNING
    assert s.pause_minutes == 0
    assert s.actual_start is not None and s.actual_start.tzinfo is None


def test_from_record_explicit_status_string():
    s = Shift.from_record({"id": "x2", "start": "2024-01-01T08:00", "status": "running"})
    assert s.status is ShiftStatus.RUNNING


def test_from_record_malformed_fields_do_not_raise():
    s = Shift.from_record({"id": "x3", "start": "garbage", "end": 12, "durationMinutes": "NaN"})
    assert s.start is None and s.end is None and s.duration_minutes is None
    assert final_duration(s) is None


def test_record_round_trip():
    s = create_backdated("2024-01-01T08:00", "2024-01-01T12:00", 15)
    rec = s.to_record()
    assert rec["status"] == "finished"
    assert rec["running"] is False
    assert Shift.from_record(rec) == s


def test_iso_year_week_uses_effective_start():
    s = Shift(id="w", start=dt("2024-01-07T22:00"), actual_start=dt("2024-01-08T06:00"))
    assert s.iso_year_week == (2024, 2)
    assert Shift(id="n", start=None).iso_year_week is None
