from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from .layout_models import Anchor, Arm, Connector, Item, PathCommand, RowAssignment, WeekWindow
from .row_assignment import partition_blocks, sort_items

# Bracket tuning knobs, in the consumer's pixel units.
ARM_INSET = 6  # how far an arm reaches into the item it points at
BRACKET_GAP = 12  # distance of the vertical line left of the parent
BRACKET_RADIUS = 10  # radius of the rounded top corner


def build_connectors(
    group_id: str,
    parent: Item,
    activities: Sequence[Item],
    assignment: RowAssignment,
    anchors: Mapping[str, Anchor],
    window: WeekWindow,
    *,
    row_height: float,
    area_width: float,
    arm_inset: float = ARM_INSET,
    bracket_gap: float = BRACKET_GAP,
    bracket_radius: float = BRACKET_RADIUS,
) -> Connector | None:
    """
    Build the bracket joining a group parent to its activities.

    - Activities with an anchor get a solid arm to that anchor.
    - Activities starting after the window get a dashed arm to the right edge,
      placed by row distance from the parent.
    - Activities that finished before the window are left out.
    Returns None when the parent is not rendered or no arm remains.
    """

    parent_anchor = anchors.get(parent.id)
    if parent_anchor is None:
        return None

    parent_y = _snap(parent_anchor.y)
    parent_arm_x = _snap(parent_anchor.x + arm_inset)
    x_brace = _snap(parent_anchor.x - bracket_gap)
    parent_row = assignment.get(parent.id)

    arms: list[Arm] = []
    for activity in activities:
        if activity.end < window.start:
            continue
        anchor = anchors.get(activity.id)
        if anchor is not None:
            y = _snap(anchor.y)
            arms.append(Arm(x_brace, y, _snap(anchor.x + arm_inset), y, dashed=False, item_id=activity.id))
            continue
        row = assignment.get(activity.id)
        if activity.start.date() > window.days[-1] and row is not None and parent_row is not None:
            y = _snap(parent_y + (row - parent_row) * row_height)
            arms.append(Arm(x_brace, y, _snap(area_width), y, dashed=True, item_id=activity.id))

    if not arms:
        return None

    bottom_y = _snap(max([parent_y, *(arm.y1 for arm in arms)]))
    r = bracket_radius
    path = [
        PathCommand("M", (parent_arm_x, parent_y)),
        PathCommand("L", (x_brace + r, parent_y)),
        PathCommand("Q", (x_brace, parent_y, x_brace, parent_y + r)),
        PathCommand("L", (x_brace, bottom_y)),
    ]
    return Connector(group_id=group_id, path=path, arms=arms, top_y=parent_y, bottom_y=bottom_y)


def build_all_connectors(
    items: Iterable[Item],
    assignment: RowAssignment,
    anchors: Mapping[str, Anchor],
    window: WeekWindow,
    *,
    row_height: float,
    area_width: float,
    **knobs: float,
) -> list[Connector]:
    """Build connectors for every placed group, in placement order."""

    connectors: list[Connector] = []
    for block in partition_blocks(sort_items(items)):
        if not block.is_group:
            continue
        connector = build_connectors(
            block.group_id,
            block.parent,
            block.activities,
            assignment,
            anchors,
            window,
            row_height=row_height,
            area_width=area_width,
            **knobs,
        )
        if connector is not None:
            connectors.append(connector)
    return connectors


def anchors_equal(a: Mapping[str, Anchor], b: Mapping[str, Anchor]) -> bool:
    """True when both measurements hold the same items at the same positions."""

    if a.keys() != b.keys():
        return False
    return all(a[key] == b[key] for key in a)


def _snap(value: float) -> float:
    return float(round(value))
