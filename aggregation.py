# aggregation.py
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable, List, Sequence, Tuple

from domain import Shift, ShiftStatus
from services import effective_start, final_duration, live_duration

Window = Tuple[datetime, datetime]


@dataclass(frozen=True)
class DayTotal:
    """One bar of the daily chart."""
    day: date
    label: str
    minutes: int


def _as_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime(value.year, value.month, value.day)


def _in_window(shift: Shift, window_start: datetime, window_end: datetime) -> bool:
    begin = effective_start(shift)
    return begin is not None and window_start <= begin < window_end


class WorkHoursAggregator:
    """Rolls worked minutes up into day/week/month windows."""
    def __init__(self, week_start: int = 0):
        # 0 = Monday, as datetime.weekday()
        self.week_start = week_start

    def contribution(self, shift: Shift, now: datetime) -> int:
        """Finished -> final duration, running -> live duration, planned -> 0."""
        status = shift.status
        if status is ShiftStatus.FINISHED:
            return final_duration(shift) or 0
        if status is ShiftStatus.RUNNING:
            return live_duration(shift, now)
        return 0

    def total_minutes(self, shifts: Iterable[Shift], window_start: date | datetime,
                      window_end: date | datetime, now: datetime) -> int:
        """Sum over shifts whose effective start lies in [window_start, window_end)."""
        ws, we = _as_datetime(window_start), _as_datetime(window_end)
        return sum(self.contribution(s, now) for s in shifts if _in_window(s, ws, we))

    def daily_series(self, shifts: Iterable[Shift], days: Sequence[date | datetime], now: datetime,
                     label: Callable[[date], str] | None = None) -> List[DayTotal]:
        label = label or (lambda d: d.strftime("%a"))
        shifts = list(shifts)
        series = []
        for d in days:
            day_start = _as_datetime(d).replace(hour=0, minute=0, second=0, microsecond=0)
            minutes = self.total_minutes(shifts, day_start, day_start + timedelta(days=1), now)
            series.append(DayTotal(day=day_start.date(), label=label(day_start.date()), minutes=minutes))
        return series

    def average_per_shift(self, shifts: Iterable[Shift], now: datetime) -> int | None:
        values = [m for m in (self.contribution(s, now) for s in shifts) if m > 0]
        if not values:
            return None
        # half-up
        return math.floor(sum(values) / len(values) + 0.5)

    # ---- windows ----
    def week_window(self, day: date | datetime) -> Window:
        d = _as_datetime(day).replace(hour=0, minute=0, second=0, microsecond=0)
        begin = d - timedelta(days=(d.weekday() - self.week_start) % 7)
        return begin, begin + timedelta(days=7)

    def month_window(self, day: date | datetime) -> Window:
        d = _as_datetime(day)
        begin = datetime(d.year, d.month, 1)
        end = datetime(d.year + 1, 1, 1) if d.month == 12 else datetime(d.year, d.month + 1, 1)
        return begin, end

    def week_days(self, day: date | datetime) -> List[date]:
        begin, _ = self.week_window(day)
        return [(begin + timedelta(days=i)).date() for i in range(7)]

    def month_days(self, day: date | datetime) -> List[date]:
        begin, end = self.month_window(day)
        return [(begin + timedelta(days=i)).date() for i in range((end - begin).days)]

    def week_series(self, shifts: Iterable[Shift], day: date | datetime, now: datetime) -> List[DayTotal]:
        return self.daily_series(shifts, self.week_days(day), now)

    def month_series(self, shifts: Iterable[Shift], day: date | datetime, now: datetime) -> List[DayTotal]:
        return self.daily_series(shifts, self.month_days(day), now, label=lambda d: str(d.day))

    def weekly_totals(self, shifts: Iterable[Shift], now: datetime) -> Dict[Tuple[int, int], int]:
        """
        Aggregates worked minutes per ISO week.
        Returns dict {(year, week): minutes}; planned shifts are skipped.
        """
        weekly: Dict[Tuple[int, int], int] = {}
        for s in shifts:
            key = s.iso_year_week
            if key is None or s.status is ShiftStatus.PLANNED:
                continue
            weekly[key] = weekly.get(key, 0) + self.contribution(s, now)
        return weekly


# =========================
# Calendar queries
# =========================
def running_shift(shifts: Iterable[Shift]) -> Shift | None:
    return next((s for s in shifts if s.status is ShiftStatus.RUNNING), None)


def next_shift(shifts: Iterable[Shift], now: datetime) -> Shift | None:
    """Earliest planned shift that starts after `now`."""
    upcoming = [s for s in shifts
                if s.status is ShiftStatus.PLANNED and s.start is not None and s.start > now]
    return min(upcoming, key=lambda s: s.start, default=None)


def shifts_for_day(shifts: Iterable[Shift], day: date | datetime) -> List[Shift]:
    begin = _as_datetime(day).replace(hour=0, minute=0, second=0, microsecond=0)
    found = [s for s in shifts if _in_window(s, begin, begin + timedelta(days=1))]
    return sorted(found, key=effective_start)


def day_marker(shift: Shift, now: datetime, upcoming: Shift | None = None) -> str:
    """Calendar legend class: "next", "past" or "upcoming"."""
    if upcoming is not None and shift.id == upcoming.id:
        return "next"
    begin = effective_start(shift)
    if shift.status is ShiftStatus.FINISHED or (begin is not None and begin < now):
        return "past"
    return "upcoming"


__all__ = [
    "DayTotal",
    "WorkHoursAggregator",
    "running_shift",
    "next_shift",
    "shifts_for_day",
    "day_marker",
]
