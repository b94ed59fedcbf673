from __future__ import annotations

import datetime as _dt

from .layout_models import WeekWindow

DAYS_PER_WEEK = 7


def week_dates(reference: _dt.date | _dt.datetime) -> list[_dt.date]:
    """Return Monday..Sunday of the ISO week containing `reference`."""

    day = _as_date(reference)
    monday = day - _dt.timedelta(days=day.weekday())
    return [monday + _dt.timedelta(days=offset) for offset in range(DAYS_PER_WEEK)]


def navigate(
    reference: _dt.date | _dt.datetime,
    delta_weeks: int,
    today: _dt.date | None = None,
) -> _dt.date:
    """
    Move the reference date by whole weeks.

    A delta of 0 jumps to today; any other delta shifts by 7-day steps, so a
    forward step followed by a backward step returns the same reference.
    """

    if delta_weeks == 0:
        return today or _dt.date.today()
    return _as_date(reference) + _dt.timedelta(days=DAYS_PER_WEEK * delta_weeks)


def week_window(reference: _dt.date | _dt.datetime) -> WeekWindow:
    """Build the visible window for the week containing `reference`."""

    days = week_dates(reference)
    start = _dt.datetime.combine(days[0], _dt.time.min)
    end = _dt.datetime.combine(days[-1], _dt.time.max)
    return WeekWindow(days=tuple(days), start=start, end=end)


def _as_date(value: _dt.date | _dt.datetime) -> _dt.date:
    if isinstance(value, _dt.datetime):
        return value.date()
    return value
