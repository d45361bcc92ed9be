# tracker.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Iterable, List, Mapping, Protocol

import services
from domain import Shift, create_backdated, create_planned
from errors import InvalidInput, LoadError
from utils import format_instant

logger = logging.getLogger(__name__)

FORM_FORMAT = "%Y-%m-%d %H:%M"


class ShiftStore(Protocol):
    def load_shifts(self, owner_id: str) -> List[Shift]: ...
    def save_shifts(self, shifts: Iterable[Shift], owner_id: str) -> None: ...
    def delete_shift(self, shift_id: str) -> None: ...


class ShiftTracker:
    """
    Holds one owner's current shift collection and applies engine operations
    to it. The collection is only swapped after the store accepted the write,
    so a failed operation leaves it unchanged.
    """
    def __init__(self, store: ShiftStore, owner_id: str, shifts: Iterable[Shift] = ()):
        self.store = store
        self.owner_id = owner_id
        self.shifts: List[Shift] = list(shifts)

    def refresh(self) -> bool:
        """Reloads from the store. A load failure keeps the current collection."""
        try:
            self.shifts = self.store.load_shifts(self.owner_id)
        except LoadError as e:
            logger.warning("Keeping %d cached shift(s): %s", len(self.shifts), e)
            return False
        return True

    def tick(self, now: datetime) -> bool:
        """One auto-transition step. Writes only when something changed."""
        updated, changed = services.advance(self.shifts, now)
        if not changed:
            return False
        before = {s.id: s for s in self.shifts}
        promoted = [s for s in updated if before.get(s.id) is not s]
        self.store.save_shifts(promoted, self.owner_id)
        logger.info("Auto-started %d shift(s)", len(promoted))
        self.shifts = updated
        return True

    def add_planned(self, start_time: Any) -> Shift:
        return self._put(create_planned(start_time))

    def add_backdated(self, start_time: Any, end_time: Any, pause_minutes: Any = 0) -> Shift:
        return self._put(create_backdated(start_time, end_time, pause_minutes))

    def start(self, shift_id: str, at: datetime) -> Shift:
        return self._apply(shift_id, lambda s: services.start(s, at))

    def finish(self, shift_id: str, end_time: Any, pause_minutes: Any = 0) -> Shift:
        return self._apply(shift_id, lambda s: services.finish(s, end_time, pause_minutes))

    def edit(self, shift_id: str, patch: Mapping[str, Any]) -> Shift:
        return self._apply(shift_id, lambda s: services.edit(s, patch))

    def remove(self, shift_id: str) -> None:
        self.store.delete_shift(shift_id)
        self.shifts = services.remove(shift_id, self.shifts)

    def _apply(self, shift_id: str, op: Callable[[Shift], Shift]) -> Shift:
        current = services.find_shift(self.shifts, shift_id)
        if current is None:
            raise InvalidInput(f"Unknown shift: {shift_id}")
        return self._put(op(current))

    def _put(self, shift: Shift) -> Shift:
        self.store.save_shifts([shift], self.owner_id)
        self.shifts = services.replace_shift(self.shifts, shift)
        return shift


def edit_patch(shift: Shift, start_raw: str, end_raw: str, pause_raw: str) -> dict:
    """
    Turns the edit form fields into an `edit` patch. The start field is
    pre-filled with the effective start, so it only goes into the patch when
    the user changed it.
    """
    patch: dict = {"end": end_raw.strip() or None, "pause_minutes": pause_raw}
    start_raw = start_raw.strip()
    if start_raw != format_instant(services.effective_start(shift), FORM_FORMAT):
        patch["start"] = start_raw or None
    return patch


__all__ = ["FORM_FORMAT", "ShiftStore", "ShiftTracker", "edit_patch"]
