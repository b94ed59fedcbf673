from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable

from .layout_models import GroupRange, Item, RowAssignment

logger = logging.getLogger("week_layout.row_assignment")


@dataclass(frozen=True)
class Block:
    """
    Items placed together.

    A group block holds its parent first, then the activities in group order;
    a singleton block holds exactly one item and has no group id.
    """

    items: tuple[Item, ...]
    group_id: str | None = None

    @property
    def is_group(self) -> bool:
        return self.group_id is not None

    @property
    def parent(self) -> Item:
        return self.items[0]

    @property
    def activities(self) -> tuple[Item, ...]:
        return self.items[1:] if self.is_group else ()


def assign_rows(items: Iterable[Item]) -> RowAssignment:
    """
    Assign every item a display row.

    - Group blocks are placed first, all members at once on consecutive rows.
    - Singletons never take a row strictly inside a placed group block.
    - Items sharing a row never overlap in time.
    The result depends only on the item set, never on the visible week.
    """

    blocks = partition_blocks(sort_items(items))
    lanes: list[list[Item]] = []
    result = RowAssignment()

    for block in blocks:
        if block.is_group:
            _place_group(block, lanes, result)
    for block in blocks:
        if not block.is_group:
            _place_singleton(block.parent, lanes, result)

    result.total_rows = max(result.rows.values(), default=-1) + 1
    logger.debug(
        "placed %d items on %d rows (%d groups)", len(result.rows), result.total_rows, len(result.group_ranges)
    )
    return result


def sort_items(items: Iterable[Item]) -> list[Item]:
    """
    Deterministic placement order.

    Members of one group follow each other by group order; everything else is
    ordered by start, then id. A group sorts by its parent so the comparison
    stays a total order. Members of a group that cannot form a block sort as
    singletons.
    """

    item_list = list(items)
    members: dict[str, list[Item]] = defaultdict(list)
    for item in item_list:
        if item.group_id is not None:
            members[item.group_id].append(item)

    leads: dict[str, Item] = {}
    for group_id, group_items in members.items():
        block = _group_block(group_id, group_items)
        if block is not None:
            leads[group_id] = block.parent

    def key(item: Item) -> tuple:
        lead = leads.get(item.group_id) if item.group_id is not None else None
        if lead is None:
            return (item.start, item.id, 0, item.start, item.id)
        return (lead.start, lead.id, item.group_order, item.start, item.id)

    return sorted(item_list, key=key)


def partition_blocks(sorted_items: list[Item]) -> list[Block]:
    """
    Split sorted items into group blocks and singleton blocks, keeping order.

    Only groups with a task parent, at least two members and at least one
    activity are placed as blocks; members of any other group degrade to
    singletons.
    """

    members: dict[str, list[Item]] = defaultdict(list)
    for item in sorted_items:
        if item.group_id is not None:
            members[item.group_id].append(item)

    group_blocks: dict[str, Block] = {}
    for group_id, group_items in members.items():
        block = _group_block(group_id, group_items)
        if block is not None:
            group_blocks[group_id] = block

    blocks: list[Block] = []
    emitted: set[str] = set()
    for item in sorted_items:
        block = group_blocks.get(item.group_id) if item.group_id is not None else None
        if block is not None and item in block.items:
            if block.group_id not in emitted:
                emitted.add(block.group_id)
                blocks.append(block)
            continue
        blocks.append(Block(items=(item,)))
    return blocks


def _group_block(group_id: str, group_items: list[Item]) -> Block | None:
    parent = min((item for item in group_items if item.kind == "task"), key=_member_key, default=None)
    activities = [item for item in group_items if item.is_activity]
    if parent is None or not activities:
        return None
    activities.sort(key=_member_key)
    return Block(items=(parent, *activities), group_id=group_id)


def _member_key(item: Item) -> tuple:
    return (item.group_order, item.start, item.id)


def overlaps(a: Item, b: Item) -> bool:
    """True when two items cannot share a row; identical intervals always collide."""

    if a.start == b.start and a.end == b.end:
        return True
    return a.start < b.end and a.end > b.start


def _lane(lanes: list[list[Item]], row: int) -> list[Item]:
    while len(lanes) <= row:
        lanes.append([])
    return lanes[row]


def _place_group(block: Block, lanes: list[list[Item]], result: RowAssignment) -> None:
    base = 0
    while not _block_fits(block, lanes, base):
        base += 1

    for offset, item in enumerate(block.items):
        _lane(lanes, base + offset).append(item)
        result.rows[item.id] = base + offset
    result.group_ranges.append(GroupRange(block.group_id, base, base + len(block.items) - 1))


def _block_fits(block: Block, lanes: list[list[Item]], base: int) -> bool:
    for offset, item in enumerate(block.items):
        if any(overlaps(existing, item) for existing in _lane(lanes, base + offset)):
            return False
    return True


def _place_singleton(item: Item, lanes: list[list[Item]], result: RowAssignment) -> None:
    placed_groups = {group.group_id for group in result.group_ranges}
    row = 0
    while True:
        while any(group.is_interior(row) for group in result.group_ranges):
            row += 1
        occupants = _lane(lanes, row)
        if _singleton_fits(item, occupants, placed_groups):
            occupants.append(item)
            result.rows[item.id] = row
            return
        row += 1


def _singleton_fits(item: Item, occupants: list[Item], placed_groups: set[str]) -> bool:
    if any(overlaps(existing, item) for existing in occupants):
        return False
    # A grouped activity only vacates its row once it has finished.
    return all(
        existing.end < item.start
        for existing in occupants
        if existing.is_activity and existing.group_id in placed_groups
    )
