from datetime import datetime

import pytest

from domain import Shift, ShiftStatus, create_planned
from errors import DeleteError, InvalidInput, InvalidTransition, LoadError, SaveError
from tracker import ShiftTracker, edit_patch


def dt(text):
    return datetime.fromisoformat(text)


class FakeStore:
    def __init__(self, shifts=()):
        self.rows = {s.id: s for s in shifts}
        self.saves = []
        self.fail_load = False
        self.fail_save = False
        self.fail_delete = False

    def load_shifts(self, owner_id):
        if self.fail_load:
            raise LoadError("offline")
        return list(self.rows.values())

    def save_shifts(self, shifts, owner_id):
        if self.fail_save:
            raise SaveError("offline")
        shifts = list(shifts)
        self.saves.append(shifts)
        self.rows.update({s.id: s for s in shifts})

    def delete_shift(self, shift_id):
        if self.fail_delete:
            raise DeleteError("offline")
        self.rows.pop(shift_id, None)


@pytest.fixture
def store():
    return FakeStore([create_planned("2024-01-01T08:00", shift_id="a"),
                      create_planned("2024-01-02T08:00", shift_id="b")])


def test_refresh_and_load_failure_keeps_collection(store):
    tracker = ShiftTracker(store, "me")
    assert tracker.refresh() is True
    assert len(tracker.shifts) == 2
    store.fail_load = True
    assert tracker.refresh() is False
    assert len(tracker.shifts) == 2


def test_tick_persists_only_when_changed(store):
    tracker = ShiftTracker(store, "me")
    tracker.refresh()
    assert tracker.tick(dt("2024-01-01T07:00")) is False
    assert store.saves == []

    assert tracker.tick(dt("2024-01-01T08:05")) is True
    assert [s.id for s in store.saves[-1]] == ["a"]
    assert store.rows["a"].actual_start == dt("2024-01-01T08:00")

    assert tracker.tick(dt("2024-01-01T08:06")) is False
    assert len(store.saves) == 1


def test_finish_flow(store):
    tracker = ShiftTracker(store, "me")
    tracker.refresh()
    tracker.tick(dt("2024-01-01T08:05"))
    done = tracker.finish("a", "2024-01-01T16:00", "30")
    assert done.duration_minutes == 450
    assert store.rows["a"].status is ShiftStatus.FINISHED


def test_rejected_operation_leaves_collection_unchanged(store):
    tracker = ShiftTracker(store, "me")
    tracker.refresh()
    tracker.tick(dt("2024-01-01T08:05"))
    before = list(tracker.shifts)
    with pytest.raises(InvalidInput):
        tracker.finish("a", "2024-01-01T07:00", 0)
    with pytest.raises(InvalidTransition):
        tracker.start("a", dt("2024-01-01T09:00"))
    assert tracker.shifts == before


def test_save_failure_leaves_collection_unchanged(store):
    tracker = ShiftTracker(store, "me")
    tracker.refresh()
    before = list(tracker.shifts)
    store.fail_save = True
    with pytest.raises(SaveError):
        tracker.tick(dt("2024-01-05T00:00"))
    with pytest.raises(SaveError):
        tracker.add_planned("2024-02-01T08:00")
    assert tracker.shifts == before


def test_add_edit_remove(store):
    tracker = ShiftTracker(store, "me")
    old = tracker.add_backdated("2024-01-03T08:00", "2024-01-03T12:00", "")
    assert old.duration_minutes == 240
    tracker.edit(old.id, {"pause_minutes": "15"})
    assert store.rows[old.id].duration_minutes == 225
    tracker.remove(old.id)
    tracker.remove(old.id)
    assert old.id not in store.rows
    assert all(s.id != old.id for s in tracker.shifts)


def test_unknown_id_is_invalid(store):
    tracker = ShiftTracker(store, "me")
    with pytest.raises(InvalidInput):
        tracker.edit("missing", {"pause_minutes": 5})


def test_delete_failure_leaves_collection_unchanged(store):
    tracker = ShiftTracker(store, "me")
    tracker.refresh()
    before = list(tracker.shifts)
    store.fail_delete = True
    with pytest.raises(DeleteError):
        tracker.remove("a")
    assert tracker.shifts == before
    assert "a" in store.rows


def test_finish_with_clock_reading(store):
    tracker = ShiftTracker(store, "me")
    tracker.refresh()
    tracker.tick(dt("2024-01-01T08:05"))
    clicked = dt("2024-01-01T16:20")
    done = tracker.finish("a", clicked, "20")
    assert done.end == clicked
    assert done.duration_minutes == 480
    assert store.rows["a"].end == clicked


def test_edit_patch_leaves_untouched_start_out():
    shift = Shift(id="x", start=dt("2024-01-08T08:00"), actual_start=dt("2024-01-08T08:10"),
                  end=dt("2024-01-08T16:00"), duration_minutes=470)
    patch = edit_patch(shift, "2024-01-08 08:10", "2024-01-08 16:00", "30")
    assert "start" not in patch
    assert patch == {"end": "2024-01-08 16:00", "pause_minutes": "30"}

    tracker = ShiftTracker(FakeStore([shift]), "me", [shift])
    edited = tracker.edit("x", patch)
    assert edited.start == dt("2024-01-08T08:00")
    assert edited.actual_start == dt("2024-01-08T08:10")
    assert edited.duration_minutes == 440


def test_edit_patch_includes_changed_start():
    shift = Shift(id="x", start=dt("2024-01-08T08:00"), end=dt("2024-01-08T16:00"), duration_minutes=480)
    patch = edit_patch(shift, " 2024-01-08 09:00 ", "", "0")
    assert patch == {"start": "2024-01-08 09:00", "end": None, "pause_minutes": "0"}
    edited = ShiftTracker(FakeStore([shift]), "me", [shift]).edit("x", patch)
    assert edited.start == dt("2024-01-08T09:00")
    assert edited.duration_minutes == 420
