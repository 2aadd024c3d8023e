import uuid

import pytest

from smart_tasks.models import ClassificationResult, Task, TaskCreate, TaskHistoryEntry, TaskUpdate


def test_task_create_defaults():
    t = TaskCreate(title="Call plumber", description="Kitchen sink")
    assert t.status is None
    assert t.category is None
    assert t.assigned_to is None


def test_task_create_blank_title():
    with pytest.raises(Exception):
        TaskCreate(title="   ", description="x")


def test_task_create_missing_description():
    with pytest.raises(Exception):
        TaskCreate(title="Task")


def test_task_create_bad_status():
    with pytest.raises(Exception):
        TaskCreate(title="Task", description="x", status="archived")


def test_task_update_only_sent_fields():
    u = TaskUpdate(status="completed", assigned_to=None)
    assert u.changes() == {"status": "completed", "assigned_to": None}


def test_task_update_rejects_null_title():
    with pytest.raises(Exception):
        TaskUpdate(title=None)


def test_fallback_classification():
    r = ClassificationResult.fallback()
    assert r.category == "general"
    assert r.priority == "low"
    assert r.suggested_actions == []
    assert r.extracted_entities.model_dump() == {
        "dates": [], "persons": [], "locations": [], "actions": [],
    }


def test_history_entry_from_record_parses_json():
    task_id = uuid.uuid4()
    entry = TaskHistoryEntry.from_record({
        "id": 1,
        "task_id": task_id,
        "action": "updated",
        "old_value": '{"title": "a"}',
        "new_value": None,
        "changed_at": "2026-01-01T09:00:00+00:00",
    })
    assert entry.old_value == {"title": "a"}
    assert entry.new_value is None


def test_task_from_record():
    task_id = uuid.uuid4()
    t = Task.from_record({"id": task_id, "title": "T", "status": "in_progress"})
    assert t.id == task_id
    assert t.category == "general"


def test_task_update_strips_title():
    assert TaskUpdate(title="  Renamed ").changes() == {"title": "Renamed"}


def test_task_update_rejects_blank_description():
    with pytest.raises(Exception):
        TaskUpdate(description="   ")


@pytest.mark.parametrize("field", ["category", "priority"])
def test_task_update_rejects_null_not_null_columns(field):
    with pytest.raises(Exception):
        TaskUpdate(**{field: None})
