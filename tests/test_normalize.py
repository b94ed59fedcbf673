import datetime as dt

import pytest

from week_layout.layout_models import Viewer
from week_layout.normalize import RecordsFormatError, load_records, normalize, parse_datetime


def _task_with_activities():
    return {
        "_id": {"$oid": "T1"},
        "taskName": "Build site",
        "startDate": "2024-03-04",
        "startTime": "09:00",
        "endDate": "2024-03-08",
        "endTime": "17:00",
        "allocatedEndDate": "2024-03-07",
        "activities": [
            {
                "_id": "A1",
                "activityName": "Foundations",
                "startDate": "2024-03-04",
                "startTime": "09:00",
                "endDate": "2024-03-05",
                "endTime": "09:00",
                "employee": ["e1", "e2"],
            },
            {"_id": "A2", "activityName": "Walls", "employee": "e3"},
        ],
    }


def _plain_task(task_id="T2", employee=("e1",)):
    return {
        "id": task_id,
        "taskName": "Paperwork",
        "startDate": "2024-03-05",
        "endDate": "2024-03-05",
        "employee": list(employee),
    }


def test_task_without_activities_is_ungrouped():
    (item,) = normalize([_plain_task()])

    assert item.id == "task:T2"
    assert item.kind == "task"
    assert item.group_id is None
    assert item.start == dt.datetime(2024, 3, 5, 0, 0)
    assert item.end == dt.datetime(2024, 3, 5, 23, 59, 59)
    assert item.allocated_end == item.end
    assert item.assignees == frozenset({"e1"})


def test_task_with_activities_becomes_a_group():
    parent, first, second = normalize([_task_with_activities()])

    assert parent.id == "task:T1"
    assert parent.group_id == first.group_id == second.group_id == "task:T1"
    assert [parent.group_order, first.group_order, second.group_order] == [0, 1, 2]
    assert parent.assignees == frozenset({"e1", "e2", "e3"})
    assert parent.allocated_end == dt.datetime(2024, 3, 7, 23, 59, 59)
    assert first.kind == second.kind == "activity"
    assert first.start == dt.datetime(2024, 3, 4, 9)
    assert first.end == dt.datetime(2024, 3, 5, 9)


def test_activity_without_dates_inherits_parent_range():
    parent, _, second = normalize([_task_with_activities()])

    assert second.start == parent.start
    assert second.end == parent.end
    assert second.allocated_end == parent.allocated_end
    assert second.assignees == frozenset({"e3"})


def test_same_day_deadline_never_outlasts_the_end_time():
    record = {
        "_id": "T",
        "taskName": "Inspection",
        "startDate": "2024-03-05",
        "startTime": "08:00",
        "endDate": "2024-03-05",
        "endTime": "17:00",
        "allocatedEndDate": "2024-03-05",
        "activities": [
            {
                "_id": "A",
                "startDate": "2024-03-05",
                "startTime": "09:00",
                "endDate": "2024-03-05",
                "endTime": "11:30",
                "allocatedEndDate": "2024-03-05",
            },
            {"_id": "B"},
        ],
    }

    parent, own_deadline, inherited = normalize([record])

    assert parent.allocated_end == parent.end == dt.datetime(2024, 3, 5, 17, 0)
    assert own_deadline.allocated_end == own_deadline.end == dt.datetime(2024, 3, 5, 11, 30)
    assert inherited.allocated_end == inherited.end
    for item in (parent, own_deadline, inherited):
        assert item.allocated_end <= item.end


def test_earlier_deadline_is_kept():
    record = {**_plain_task(), "endDate": "2024-03-08", "allocatedEndDate": "2024-03-06"}

    (item,) = normalize([record])

    assert item.allocated_end == dt.datetime(2024, 3, 6, 23, 59, 59)
    assert item.allocated_end < item.end


def test_restricted_viewer_sees_only_own_activities_ungrouped():
    items = normalize([_task_with_activities()], Viewer(id="e2", role="Employee"))

    assert [item.id for item in items] == ["act:A1"]
    assert items[0].group_id is None
    assert items[0].parent_name == "Build site"


def test_restricted_viewer_sees_own_plain_tasks_only():
    viewer = Viewer(id="e1", role="Employee")
    records = [_plain_task("T2", ("e1",)), _plain_task("T3", ("e9",))]

    assert [item.id for item in normalize(records, viewer)] == ["task:T2"]


def test_admin_viewer_sees_everything():
    items = normalize([_task_with_activities(), _plain_task()], Viewer(id="boss", role="Admin"))

    assert len(items) == 4


@pytest.mark.parametrize(
    "changes",
    [
        {"startDate": None},
        {"endDate": "not-a-date"},
        {"startDate": "2024-03-09"},
        {"startTime": "nine"},
    ],
)
def test_unusable_records_are_dropped(changes):
    record = {**_plain_task(), **changes}

    assert normalize([record, _plain_task("T9")]) == normalize([_plain_task("T9")])


def test_non_mapping_records_are_skipped():
    assert [item.id for item in normalize(["junk", None, _plain_task()])] == ["task:T2"]


def test_activity_ending_before_start_is_dropped():
    record = _task_with_activities()
    record["activities"][0]["endDate"] = "2024-03-01"

    ids = [item.id for item in normalize([record])]

    assert ids == ["task:T1", "act:A2"]


def test_missing_ids_get_stable_fallbacks():
    record = _task_with_activities()
    del record["_id"]
    del record["activities"][1]["_id"]

    ids = [item.id for item in normalize([_plain_task(), record])]

    assert ids == ["task:T2", "task:#1", "act:A1", "act:#1#1"]


def test_employee_id_field_is_used_as_fallback():
    record = {**_plain_task(), "employee": [], "employeeID": "e7"}

    (item,) = normalize([record])

    assert item.assignees == frozenset({"e7"})


def test_parse_datetime_handles_yaml_values():
    assert parse_datetime(dt.date(2024, 3, 4), "08:30") == dt.datetime(2024, 3, 4, 8, 30)
    assert parse_datetime("2024-03-04", 510) == dt.datetime(2024, 3, 4, 8, 30)
    assert parse_datetime(dt.datetime(2024, 3, 4, 7, 15)) == dt.datetime(2024, 3, 4, 7, 15)
    assert parse_datetime("2024-03-04", None, is_end=True) == dt.datetime(2024, 3, 4, 23, 59, 59)
    assert parse_datetime("", "10:00") is None


def test_load_records_accepts_list_and_mapping(tmp_path):
    as_list = tmp_path / "list.yaml"
    as_list.write_text("- id: T1\n  startDate: '2024-03-04'\n  endDate: '2024-03-05'\n", encoding="utf-8")
    as_mapping = tmp_path / "mapping.yaml"
    as_mapping.write_text("tasks:\n  - id: T1\n    startDate: '2024-03-04'\n", encoding="utf-8")

    assert load_records(str(as_list)) == [{"id": "T1", "startDate": "2024-03-04", "endDate": "2024-03-05"}]
    assert load_records(str(as_mapping)) == [{"id": "T1", "startDate": "2024-03-04"}]


def test_load_records_rejects_other_shapes(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("project: nope\n", encoding="utf-8")
    scalar = tmp_path / "scalar.yaml"
    scalar.write_text("tasks: 3\n", encoding="utf-8")

    with pytest.raises(RecordsFormatError):
        load_records(str(bad))
    with pytest.raises(RecordsFormatError):
        load_records(str(scalar))
