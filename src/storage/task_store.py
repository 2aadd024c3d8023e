"""
Task store for the Smart Tasks backend.

PostgreSQL-backed persistence for tasks and their change history.
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, List, Tuple, Any

from storage import db
from smart_tasks.models import Task, TaskHistoryEntry

logger = logging.getLogger(__name__)

TASK_COLUMNS = (
    "id",
    "title",
    "description",
    "category",
    "priority",
    "status",
    "assigned_to",
    "due_date",
    "created_at",
    "updated_at",
)

# Columns a client may write; id and created_at are owned by the database.
WRITABLE_COLUMNS = (
    "title",
    "description",
    "category",
    "priority",
    "status",
    "assigned_to",
    "due_date",
    "updated_at",
)

FILTER_COLUMNS = ("status", "category", "priority")


def _snapshot(task: Optional[Task]) -> Optional[str]:
    if task is None:
        return None
    return json.dumps(task.model_dump(mode="json"))


class TaskStore:
    """
    PostgreSQL-backed store for tasks.

    All queries go through the pooled helpers in storage.db; column names
    interpolated into SQL always come from the whitelists above.
    """

    async def create(self, data: dict) -> Task:
        """
        Insert a task.

        Args:
            data: Column values; unknown keys are rejected

        Returns:
            The inserted row
        """
        columns = self._writable(data)
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
        query = f"""
            INSERT INTO tasks ({", ".join(columns)})
            VALUES ({placeholders})
            RETURNING *
        """

        record = await db.fetchrow(query, *(data[c] for c in columns))
        task = Task.from_record(record)

        logger.info(f"Created task {task.id} (title: {task.title[:30]})")
        return task

    async def list_tasks(
        self,
        status: Optional[str] = None,
        category: Optional[str] = None,
        priority: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
        sort_by: str = "created_at",
        order: str = "desc",
    ) -> Tuple[List[Task], int]:
        """
        List tasks with filtering, sorting and pagination.

        A filter value of "all" is the same as no filter.

        Returns:
            (tasks on the requested page, total number of matching tasks)

        Raises:
            ValueError: if sort_by is not a task column
        """
        if sort_by not in TASK_COLUMNS:
            raise ValueError(f"Invalid sort column: {sort_by}")

        conditions: List[str] = []
        args: List[Any] = []

        for column, value in zip(FILTER_COLUMNS, (status, category, priority)):
            if value and value != "all":
                args.append(value)
                conditions.append(f"{column} = ${len(args)}")

        if search:
            args.append(f"%{search}%")
            conditions.append(f"title ILIKE ${len(args)}")

        where = f" WHERE {' AND '.join(conditions)}" if conditions else ""
        direction = "ASC" if order == "asc" else "DESC"

        total = await db.fetchval(f"SELECT COUNT(*) FROM tasks{where}", *args)

        query = (
            f"SELECT * FROM tasks{where} "
            f"ORDER BY {sort_by} {direction} "
            f"LIMIT ${len(args) + 1} OFFSET ${len(args) + 2}"
        )
        records = await db.fetch(query, *args, limit, offset)

        return [Task.from_record(r) for r in records], total or 0

    async def get(self, task_id: uuid.UUID) -> Optional[Task]:
        """Get a task by ID, or None if it does not exist."""
        record = await db.fetchrow("SELECT * FROM tasks WHERE id = $1", task_id)

        if record is None:
            return None

        return Task.from_record(record)

    async def update(self, task_id: uuid.UUID, changes: dict) -> Optional[Task]:
        """
        Apply a partial update and bump updated_at.

        Returns:
            The updated row, or None if the task does not exist
        """
        data = {**changes, "updated_at": datetime.now(timezone.utc)}
        columns = self._writable(data)
        assignments = ", ".join(f"{c} = ${i}" for i, c in enumerate(columns, start=1))
        query = f"""
            UPDATE tasks
            SET {assignments}
            WHERE id = ${len(columns) + 1}
            RETURNING *
        """

        record = await db.fetchrow(query, *(data[c] for c in columns), task_id)

        if record is None:
            return None

        logger.info(f"Updated task {task_id} (fields: {', '.join(changes) or 'none'})")
        return Task.from_record(record)

    async def delete(self, task_id: uuid.UUID) -> bool:
        """
        Delete a task together with its history.

        Returns:
            True if a task row was removed
        """
        async with db.get_connection() as conn:
            async with conn.transaction():
                await conn.execute("DELETE FROM task_history WHERE task_id = $1", task_id)
                result = await conn.execute("DELETE FROM tasks WHERE id = $1", task_id)

        # execute returns e.g. "DELETE 1"
        deleted = result == "DELETE 1"
        if deleted:
            logger.info(f"Deleted task {task_id}")
        return deleted

    async def add_history(
        self,
        task_id: uuid.UUID,
        action: str,
        old: Optional[Task],
        new: Optional[Task],
    ) -> None:
        """Record a change to a task."""
        changed_at = (new.updated_at if new is not None else None) or datetime.now(timezone.utc)
        query = """
            INSERT INTO task_history (task_id, action, old_value, new_value, changed_at)
            VALUES ($1, $2, $3::jsonb, $4::jsonb, $5)
        """

        await db.execute(query, task_id, action, _snapshot(old), _snapshot(new), changed_at)

    async def get_history(self, task_id: uuid.UUID) -> List[TaskHistoryEntry]:
        """History of a task, newest first."""
        query = """
            SELECT * FROM task_history
            WHERE task_id = $1
            ORDER BY changed_at DESC
        """

        records = await db.fetch(query, task_id)
        return [TaskHistoryEntry.from_record(r) for r in records]

    @staticmethod
    def _writable(data: dict) -> List[str]:
        unknown = set(data) - set(WRITABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown task columns: {', '.join(sorted(unknown))}")
        return [c for c in WRITABLE_COLUMNS if c in data]
