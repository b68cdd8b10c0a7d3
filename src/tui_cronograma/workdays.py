"""Working-day calendar: weekends and registered holidays.

Non-working days are advisory. They feed the "upcoming holiday" warnings and
the working-day counts shown next to each task, but never block a placement.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable

from tui_cronograma.models import Holiday

DEFAULT_WEEKEND_DAYS = (5, 6)  # Saturday, Sunday


class WorkCalendar:
    """Immutable view over weekend days and holiday ranges."""

    def __init__(
        self,
        holidays: Iterable[Holiday] = (),
        weekend_days: Iterable[int] = DEFAULT_WEEKEND_DAYS,
    ) -> None:
        self._holidays = tuple(sorted(holidays, key=lambda h: (h.start, h.id)))
        self._weekend_days = frozenset(weekend_days)

    @property
    def holidays(self) -> tuple[Holiday, ...]:
        return self._holidays

    def is_weekend(self, d: date) -> bool:
        return d.weekday() in self._weekend_days

    def holiday_for(self, d: date) -> Holiday | None:
        """Return the holiday covering *d*, if any."""
        for holiday in self._holidays:
            if holiday.covers(d):
                return holiday
        return None

    def is_working_day(self, d: date) -> bool:
        return not self.is_weekend(d) and self.holiday_for(d) is None

    def shift_by_calendar_days(self, d: date, n: int) -> date:
        return d + timedelta(days=n)

    def add_working_days(self, d: date, n: int) -> date:
        """Step *n* working days from *d* (backwards when n < 0).

        ``n == 0`` returns *d* unchanged even when it is not a working day.
        """
        step = 1 if n >= 0 else -1
        remaining = abs(n)
        current = d
        while remaining > 0:
            current += timedelta(days=step)
            if self.is_working_day(current):
                remaining -= 1
        return current

    def working_days_between(self, start: date, end: date) -> int:
        """Count working days in the inclusive range."""
        if end < start:
            return 0
        return sum(1 for d in _date_range(start, end) if self.is_working_day(d))

    def non_working_days(self, start: date, end: date) -> list[date]:
        return [d for d in _date_range(start, end) if not self.is_working_day(d)]

    def upcoming_holidays(self, today: date, within_days: int) -> list[Holiday]:
        """Holidays overlapping ``[today, today + within_days]``."""
        horizon = today + timedelta(days=within_days)
        return [h for h in self._holidays if h.end >= today and h.start <= horizon]


def _date_range(start: date, end: date):
    d = start
    while d <= end:
        yield d
        d += timedelta(days=1)
