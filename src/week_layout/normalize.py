from __future__ import annotations

import datetime as _dt
import logging
from dataclasses import dataclass, replace
from typing import Any, Iterable

import yaml

from .layout_models import Item, Viewer

logger = logging.getLogger("week_layout.normalize")

END_OF_DAY = _dt.time(23, 59, 59)


class LayoutError(Exception):
    """Base class for errors raised at the boundaries of the layout engine."""


class RecordsFormatError(LayoutError):
    """Raised when a records file does not have the expected structure."""


@dataclass(frozen=True)
class _Path:
    """Helper to produce readable record paths like tasks[0].activities[1]."""

    parts: tuple[str, ...] = ()

    def child(self, segment: str) -> "_Path":
        return _Path(self.parts + (segment,))

    def __str__(self) -> str:  # pragma: no cover - trivial
        return ".".join(self.parts) if self.parts else "root"


def load_records(path: str) -> list[dict[str, Any]]:
    """Load raw task records from a YAML file (no normalization)."""

    with open(path, "r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)

    if raw is None:
        return []
    if isinstance(raw, dict):
        for key in ("tasks", "data"):
            if key in raw:
                raw = raw[key]
                break
        else:
            raise RecordsFormatError(f"{path}: expected a list of tasks or a mapping with 'tasks'")
    if not isinstance(raw, list):
        raise RecordsFormatError(f"{path}: expected list of task records")
    return raw


def normalize(records: Iterable[Any], viewer: Viewer | None = None) -> list[Item]:
    """
    Flatten task records (with optional activities) into interval items.

    Records with unusable dates are dropped rather than reported. A restricted
    viewer only receives the activities (or activity-less tasks) assigned to
    them, with grouping removed.
    """

    viewer = viewer or Viewer()
    items: list[Item] = []
    root = _Path(("tasks",))
    for idx, record in enumerate(records):
        path = root.child(f"[{idx}]")
        if not isinstance(record, dict):
            logger.debug("%s: skipped non-mapping record", path)
            continue
        items.extend(_normalize_task(record, idx, path, viewer))
    return items


def _normalize_task(record: dict[str, Any], idx: int, path: _Path, viewer: Viewer) -> list[Item]:
    task_id = _record_id(record) or f"#{idx}"
    start = parse_datetime(record.get("startDate"), record.get("startTime"))
    end = parse_datetime(record.get("endDate"), record.get("endTime"), is_end=True)
    if start is None or end is None:
        logger.debug("%s: dropped task %r with unparseable dates", path, task_id)
        return []
    if end < start:
        logger.debug("%s: dropped task %r ending before it starts", path, task_id)
        return []
    allocated_end = _committed_end(parse_datetime(record.get("allocatedEndDate"), None, is_end=True), end)

    activities_raw = record.get("activities")
    if not isinstance(activities_raw, list):
        activities_raw = []
    group_id = f"task:{task_id}" if activities_raw else None
    name = _str_or(record.get("taskName"), "Untitled Task")

    activities: list[Item] = []
    for act_idx, activity in enumerate(activities_raw):
        act_path = path.child(f"activities[{act_idx}]")
        if not isinstance(activity, dict):
            logger.debug("%s: skipped non-mapping activity", act_path)
            continue
        item = _normalize_activity(activity, act_idx, act_path, task_id, group_id, start, end, allocated_end)
        if item is not None:
            activities.append(item)

    if activities_raw:
        assignees = frozenset(employee for act in activities for employee in act.assignees)
    else:
        assignees = frozenset(employee_ids(record))

    parent = Item(
        id=f"task:{task_id}",
        kind="task",
        name=name,
        start=start,
        end=end,
        allocated_end=allocated_end,
        group_id=group_id,
        group_order=0,
        assignees=assignees,
    )

    if viewer.restricted:
        return _restricted_view(parent, activities, bool(activities_raw), viewer)
    return [parent, *activities]


def _normalize_activity(
    activity: dict[str, Any],
    act_idx: int,
    path: _Path,
    task_id: str,
    group_id: str | None,
    parent_start: _dt.datetime,
    parent_end: _dt.datetime,
    parent_allocated_end: _dt.datetime,
) -> Item | None:
    act_id = _record_id(activity) or f"{task_id}#{act_idx}"
    start = parse_datetime(activity.get("startDate"), activity.get("startTime")) or parent_start
    own_end = parse_datetime(activity.get("endDate"), activity.get("endTime"), is_end=True)
    end = own_end or parent_end
    if end < start:
        logger.debug("%s: dropped activity %r ending before it starts", path, act_id)
        return None
    allocated_end = parse_datetime(activity.get("allocatedEndDate"), None, is_end=True)
    if allocated_end is None:
        # Without its own end the activity inherits the parent's commitment too.
        allocated_end = own_end or parent_allocated_end
    allocated_end = _committed_end(allocated_end, end)
    return Item(
        id=f"act:{act_id}",
        kind="activity",
        name=_str_or(activity.get("activityName"), "Activity"),
        start=start,
        end=end,
        allocated_end=allocated_end,
        group_id=group_id,
        group_order=act_idx + 1,
        assignees=frozenset(employee_ids(activity)),
    )


def _restricted_view(parent: Item, activities: list[Item], has_activities: bool, viewer: Viewer) -> list[Item]:
    if not has_activities:
        return [parent] if viewer.id in parent.assignees else []
    return [
        replace(act, group_id=None, parent_name=parent.name)
        for act in activities
        if viewer.id in act.assignees
    ]


def _committed_end(allocated_end: _dt.datetime | None, end: _dt.datetime) -> _dt.datetime:
    # A date-only deadline lands on 23:59:59 and must not outlast the item itself.
    if allocated_end is None:
        return end
    return min(allocated_end, end)


def parse_datetime(date_value: Any, time_value: Any = None, is_end: bool = False) -> _dt.datetime | None:
    """
    Combine a date and an optional HH:MM time into a naive datetime.

    Without a time a start falls on 00:00 and an end on 23:59:59. Returns None
    when either part cannot be parsed.
    """

    day = _parse_date(date_value)
    if day is None:
        return None

    if time_value not in (None, ""):
        clock = _parse_time(time_value)
        if clock is None:
            return None
    elif isinstance(date_value, _dt.datetime):
        return date_value.replace(tzinfo=None)
    else:
        clock = END_OF_DAY if is_end else _dt.time.min
    return _dt.datetime.combine(day, clock)


def _parse_date(value: Any) -> _dt.date | None:
    if isinstance(value, _dt.datetime):
        return value.date()
    if isinstance(value, _dt.date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return _dt.date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def _parse_time(value: Any) -> _dt.time | None:
    if isinstance(value, _dt.time):
        return value.replace(second=0, microsecond=0)
    if isinstance(value, int) and not isinstance(value, bool):
        # YAML 1.1 reads unquoted HH:MM and HH:MM:SS as base-60 integers.
        if value >= 24 * 60:
            value //= 60
        hours, minutes = divmod(value, 60)
        value = f"{hours}:{minutes}"
    if not isinstance(value, str):
        return None
    parts = value.strip().split(":")
    if len(parts) < 2:
        return None
    try:
        hours, minutes = int(parts[0]), int(parts[1])
        return _dt.time(hours, minutes)
    except ValueError:
        return None


def employee_ids(record: dict[str, Any]) -> list[str]:
    """Assignee ids of a task or activity record, in source order."""

    employee = record.get("employee")
    if isinstance(employee, list) and employee:
        return [str(value) for value in employee if value]
    if isinstance(employee, str) and employee:
        return [employee]
    employee_id = record.get("employeeID")
    if isinstance(employee_id, str) and employee_id:
        return [employee_id]
    return []


def _record_id(record: dict[str, Any]) -> str | None:
    raw = record.get("_id")
    if isinstance(raw, dict):
        raw = raw.get("$oid")
    if raw in (None, ""):
        raw = record.get("id")
    if raw in (None, ""):
        return None
    return str(raw)


def _str_or(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value
    return default
