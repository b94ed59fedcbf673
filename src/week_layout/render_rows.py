from __future__ import annotations

from typing import Iterable, List

from .geometry import compute_geometry, is_item_on_date
from .layout_models import Item, PlacedItem, RowAssignment, WeekRow, WeekWindow
from .row_assignment import sort_items


def to_week_rows(items: Iterable[Item], assignment: RowAssignment, window: WeekWindow) -> list[WeekRow]:
    """
    Lay the assigned items out as `total_rows` rows of seven day cells.

    Items are visited in placement order; each visible item fills the cells of
    the days it covers and is listed once in its row. Members of a placed
    group carry their position inside the group's row range.
    """

    rows: List[WeekRow] = [WeekRow(index=idx, cells=[None] * len(window.days)) for idx in range(assignment.total_rows)]
    ranges = {group.group_id: group for group in assignment.group_ranges}

    for item in sort_items(items):
        row_index = assignment.get(item.id)
        if row_index is None:
            continue
        geometry = compute_geometry(item, window)
        if geometry is None:
            continue

        placed = PlacedItem(item=item, row=row_index, geometry=geometry)
        group = ranges.get(item.group_id) if item.group_id is not None else None
        if group is not None:
            placed.is_grouped = True
            placed.is_parent = not item.is_activity
            placed.group_position = row_index - group.first_row
            placed.group_size = group.last_row - group.first_row + 1
            placed.is_first_in_group = row_index == group.first_row
            placed.is_last_in_group = row_index == group.last_row
            placed.group_start_row = group.first_row
            placed.group_end_row = group.last_row

        row = rows[row_index]
        row.items.append(placed)
        for col, day in enumerate(window.days):
            if is_item_on_date(item, day):
                row.cells[col] = placed

    return rows
