from __future__ import annotations

import datetime as _dt

from .layout_models import Item

ASSIGNEE_PALETTE = (
    "#ef4444",
    "#eab308",
    "#22c55e",
    "#3b82f6",
    "#6366f1",
    "#a855f7",
    "#ec4899",
    "#14b8a6",
    "#f97316",
    "#06b6d4",
    "#84cc16",
    "#d946ef",
)
UNASSIGNED_COLOR = "#9ca3af"


def display_name(item: Item) -> str:
    """Bar label; activities shown to a restricted viewer carry their task's name."""
    if item.parent_name:
        return f"{item.name} - {item.parent_name}"
    return item.name


def format_date_range(start: _dt.datetime | None, end: _dt.datetime | None) -> str:
    if start is None or end is None:
        return "No date specified"
    return f"{_format_part(start)} to {_format_part(end)}"


def _format_part(value: _dt.datetime) -> str:
    hour = value.hour % 12 or 12
    meridiem = "AM" if value.hour < 12 else "PM"
    return f"{value:%b} - {value.day} ({hour}:{value.minute:02d} {meridiem})"


def color_for_assignee(assignee_id: str | None) -> str:
    """Stable palette colour for an assignee id (Java-style 32-bit string hash)."""
    if not assignee_id:
        return UNASSIGNED_COLOR
    value = 0
    for char in assignee_id:
        value = (ord(char) + ((value << 5) - value)) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return ASSIGNEE_PALETTE[abs(value) % len(ASSIGNEE_PALETTE)]
