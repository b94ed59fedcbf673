from __future__ import annotations

import datetime as _dt
from dataclasses import replace

from .layout_models import Item


def reschedule(item: Item, new_start: _dt.datetime | _dt.date) -> Item:
    """
    Move an item to a new start, keeping its duration.

    The allocated end keeps its distance to the end (never past the new end).
    Rows must be reassigned for the whole item set afterwards.
    """

    if not isinstance(new_start, _dt.datetime):
        new_start = _dt.datetime.combine(new_start, _dt.time.min)
    shift = new_start - item.start
    new_end = new_start + item.duration
    return replace(
        item,
        start=new_start,
        end=new_end,
        allocated_end=min(item.allocated_end + shift, new_end),
    )
