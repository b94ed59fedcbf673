from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Literal


ItemKind = Literal["task", "activity"]
"""Allowed item kinds: a task (possibly a group parent) or one of its activities."""

RESTRICTED_ROLE = "Employee"


@dataclass(frozen=True)
class Item:
    """Time-bounded unit of scheduling: a task or an activity of a task."""

    id: str
    kind: ItemKind
    name: str
    start: datetime
    end: datetime
    allocated_end: datetime
    group_id: str | None = None
    group_order: int = 0
    assignees: frozenset[str] = frozenset()
    parent_name: str | None = None

    @property
    def is_activity(self) -> bool:
        return self.kind == "activity"

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


@dataclass(frozen=True)
class Viewer:
    """Identity of the person looking at the calendar."""

    id: str | None = None
    role: str | None = None

    @property
    def restricted(self) -> bool:
        """Restricted viewers only see their own work and never see groups."""
        return self.role == RESTRICTED_ROLE


@dataclass(frozen=True)
class GroupRange:
    """Inclusive row range occupied by a placed group block."""

    group_id: str
    first_row: int
    last_row: int

    def is_interior(self, row: int) -> bool:
        """True when the row lies strictly between the block's first and last row."""
        return self.first_row < row < self.last_row


@dataclass
class RowAssignment:
    """Item id to row index, plus the bookkeeping needed by downstream stages."""

    rows: dict[str, int] = field(default_factory=dict)
    total_rows: int = 0
    group_ranges: list[GroupRange] = field(default_factory=list)

    def __getitem__(self, item_id: str) -> int:
        return self.rows[item_id]

    def __contains__(self, item_id: object) -> bool:
        return item_id in self.rows

    def get(self, item_id: str, default: int | None = None) -> int | None:
        return self.rows.get(item_id, default)


@dataclass(frozen=True)
class Geometry:
    """
    Placement of an item inside the visible week.

    Fractions are relative to the `column_span` days the item occupies, so a
    renderer can size the bar inside a cell spanning those columns.
    """

    column_start: int
    column_span: int
    left_fraction: float
    width_fraction: float
    normal_fraction: float
    overdue_fraction: float
    starts_before_window: bool
    continues_past_window: bool


@dataclass(frozen=True)
class Anchor:
    """Rendered position of an item, measured by the consumer."""

    x: float
    y: float
    width: float


@dataclass(frozen=True)
class Arm:
    """Horizontal segment joining the bracket line to one activity."""

    x1: float
    y1: float
    x2: float
    y2: float
    dashed: bool
    item_id: str


@dataclass(frozen=True)
class PathCommand:
    """One SVG-style path command, e.g. ("Q", (x1, y1, x, y))."""

    op: Literal["M", "L", "Q"]
    coords: tuple[float, ...]

    def __str__(self) -> str:
        return " ".join([self.op, *(_fmt(value) for value in self.coords)])


@dataclass(frozen=True)
class Connector:
    """Bracket from a group parent down to its activities."""

    group_id: str
    path: list[PathCommand]
    arms: list[Arm]
    top_y: float
    bottom_y: float

    @property
    def d(self) -> str:
        """Path as an SVG `d` attribute."""
        return " ".join(str(cmd) for cmd in self.path)


@dataclass
class PlacedItem:
    """
    An item as painted in one row of the week grid.

    Group fields are only filled for members of a placed group block.
    """

    item: Item
    row: int
    geometry: Geometry
    is_grouped: bool = False
    is_parent: bool = False
    group_position: int | None = None
    group_size: int | None = None
    is_first_in_group: bool = False
    is_last_in_group: bool = False
    group_start_row: int | None = None
    group_end_row: int | None = None


@dataclass
class WeekRow:
    """One display row: seven day cells plus the distinct items painted in it."""

    index: int
    cells: list[PlacedItem | None]
    items: list[PlacedItem] = field(default_factory=list)


@dataclass(frozen=True)
class WeekWindow:
    """Seven consecutive days, Monday first, with inclusive instant bounds."""

    days: tuple[date, ...]
    start: datetime
    end: datetime

    def contains_day(self, day: date) -> bool:
        return self.days[0] <= day <= self.days[-1]


def _fmt(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"
