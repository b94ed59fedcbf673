from __future__ import annotations

import datetime as _dt

from .layout_models import Geometry, Item, RowAssignment, WeekWindow

DAY = _dt.timedelta(days=1)


def compute_geometry(
    item: Item,
    window: WeekWindow,
    assignment: RowAssignment | None = None,
) -> Geometry | None:
    """
    Place an item inside the visible week, or return None when it is not visible.

    Columns are whole days clamped to the window; fractions locate the item's
    exact start and end inside the spanned days and split the visible part at
    the allocated end into on-time and overdue portions.
    """

    if assignment is not None and item.id not in assignment:
        raise KeyError(f"item '{item.id}' has no row assignment")
    if item.end < window.start or item.start > window.end:
        return None

    visible_first_day = max(item.start, window.start).date()
    visible_last_day = min(item.end, window.end).date()
    column_start = (visible_first_day - window.days[0]).days
    column_span = max(1, (visible_last_day - visible_first_day).days + 1)

    span_start = _dt.datetime.combine(visible_first_day, _dt.time.min)
    span_duration = column_span * DAY
    span_end = span_start + span_duration

    visible_start = max(item.start, span_start)
    visible_end = min(item.end, span_end)
    left_fraction = (visible_start - span_start) / span_duration
    width_fraction = max(0.0, (visible_end - visible_start) / span_duration)

    normal_end = min(item.allocated_end, visible_end)
    if normal_end > visible_start:
        normal_fraction = min(width_fraction, (normal_end - visible_start) / span_duration)
    else:
        normal_fraction = 0.0
    overdue_fraction = width_fraction - normal_fraction

    return Geometry(
        column_start=column_start,
        column_span=column_span,
        left_fraction=left_fraction,
        width_fraction=width_fraction,
        normal_fraction=normal_fraction,
        overdue_fraction=overdue_fraction,
        starts_before_window=item.start < window.start,
        continues_past_window=item.end > window.end,
    )


def is_item_on_date(item: Item, day: _dt.date) -> bool:
    """True when the item covers the calendar day (compared at noon, day-rounded)."""

    first = _dt.datetime.combine(item.start.date(), _dt.time.min)
    last = _dt.datetime.combine(item.end.date(), _dt.time.max)
    noon = _dt.datetime.combine(day, _dt.time(12))
    return first <= noon <= last
