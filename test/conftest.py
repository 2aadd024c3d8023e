import uuid
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from smart_tasks.models import Task, TaskHistoryEntry


class FakeTaskStore:
    """In-memory stand-in for storage.task_store.TaskStore."""

    def __init__(self):
        self.tasks: dict = {}
        self.history: list = []
        self.fail_history = False

    async def create(self, data: dict) -> Task:
        now = datetime.now(timezone.utc)
        task = Task(id=uuid.uuid4(), created_at=now, updated_at=now, **data)
        self.tasks[task.id] = task
        return task

    async def list_tasks(self, status=None, category=None, priority=None, search=None,
                         limit=10, offset=0, sort_by="created_at", order="desc"):
        if sort_by not in Task.model_fields:
            raise ValueError(f"Invalid sort column: {sort_by}")
        items = list(self.tasks.values())
        for field, value in (("status", status), ("category", category), ("priority", priority)):
            if value and value != "all":
                items = [t for t in items if getattr(t, field) == value]
        if search:
            items = [t for t in items if search.lower() in t.title.lower()]
        items.sort(key=lambda t: str(getattr(t, sort_by)), reverse=order != "asc")
        return items[offset:offset + limit], len(items)

    async def get(self, task_id):
        return self.tasks.get(task_id)

    async def update(self, task_id, changes: dict):
        task = self.tasks.get(task_id)
        if task is None:
            return None
        updated = task.model_copy(update={**changes, "updated_at": datetime.now(timezone.utc)})
        self.tasks[task_id] = updated
        return updated

    async def delete(self, task_id) -> bool:
        self.history = [h for h in self.history if h.task_id != task_id]
        return self.tasks.pop(task_id, None) is not None

    async def add_history(self, task_id, action, old, new) -> None:
        if self.fail_history:
            raise RuntimeError("history table unavailable")
        self.history.append(
            TaskHistoryEntry(
                id=len(self.history) + 1,
                task_id=task_id,
                action=action,
                old_value=old.model_dump(mode="json") if old else None,
                new_value=new.model_dump(mode="json") if new else None,
                changed_at=new.updated_at if new else datetime.now(timezone.utc),
            )
        )

    async def get_history(self, task_id):
        entries = [h for h in self.history if h.task_id == task_id]
        return sorted(entries, key=lambda h: h.changed_at, reverse=True)


@pytest.fixture
def fake_store():
    return FakeTaskStore()


@pytest.fixture
def client(fake_store):
    from api.dependencies import get_task_store
    from api.main import app

    app.dependency_overrides[get_task_store] = lambda: fake_store
    yield TestClient(app)
    app.dependency_overrides.clear()
