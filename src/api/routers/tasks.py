import logging
import time
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_classifier, get_task_store
from api.metrics import (
    REQUESTS_TOTAL,
    REQUEST_LATENCY_SECONDS,
    TASKS_CLASSIFIED_TOTAL,
    CLASSIFICATION_FALLBACKS_TOTAL,
    HISTORY_WRITE_FAILURES_TOTAL,
)
from classification.task_classifier import TaskClassifier
from smart_tasks.models import (
    ClassificationResult,
    ClassifyRequest,
    Task,
    TaskCreate,
    TaskUpdate,
)
from storage.task_store import TaskStore

router = APIRouter()
logger = logging.getLogger(__name__)

# metrics label for the per-task routes
TASK_ENDPOINT = "/api/tasks/{task_id}"


def _observe(endpoint: str, status: str, start: float) -> None:
    REQUESTS_TOTAL.labels(endpoint=endpoint, status=status).inc()
    REQUEST_LATENCY_SECONDS.labels(endpoint=endpoint).observe(time.time() - start)


def _parse_task_id(task_id: str, start: float) -> uuid.UUID:
    try:
        return uuid.UUID(task_id)
    except ValueError:
        _observe(TASK_ENDPOINT, "not_found", start)
        raise HTTPException(status_code=404, detail="Task not found")


def _history_action(changes: dict, old_task: Task) -> str:
    new_status = changes.get("status")
    if new_status and new_status != old_task.status:
        return "completed" if new_status == "completed" else "status_changed"
    return "updated"


async def _save_history(
    store: TaskStore, task_id: uuid.UUID, action: str, old_task: Task, new_task: Task
) -> None:
    """History is best-effort: a failed insert must not fail the update."""
    try:
        await store.add_history(task_id, action, old_task, new_task)
    except Exception as e:
        HISTORY_WRITE_FAILURES_TOTAL.inc()
        logger.error(f"Failed to save history for task {task_id}: {e}")


@router.post("/classify")
async def classify_preview(
    payload: ClassifyRequest,
    classifier: TaskClassifier = Depends(get_classifier),
) -> ClassificationResult:
    """Preview the classification of a title/description without saving."""
    start = time.time()
    if not payload.title and not payload.description:
        _observe("/api/tasks/classify", "rejected", start)
        raise HTTPException(status_code=400, detail="Title or description required")

    result = classifier.classify(payload.title or "", payload.description or "")
    TASKS_CLASSIFIED_TOTAL.labels(category=result.category, priority=result.priority).inc()
    _observe("/api/tasks/classify", "ok", start)
    return result


@router.post("", status_code=201)
async def create_task(
    payload: TaskCreate,
    store: TaskStore = Depends(get_task_store),
    classifier: TaskClassifier = Depends(get_classifier),
) -> dict:
    """
    Create a task.

    Category and priority are filled in by the classifier unless the
    request provides them.
    """
    start = time.time()
    logger.info(f"Create task request: {payload.model_dump_json()}")

    try:
        classification = classifier.classify(payload.title, payload.description)
        TASKS_CLASSIFIED_TOTAL.labels(
            category=classification.category, priority=classification.priority
        ).inc()
    except Exception:
        logger.exception("Classification error, using default classification")
        CLASSIFICATION_FALLBACKS_TOTAL.inc()
        classification = ClassificationResult.fallback()

    task_data = {
        "title": payload.title,
        "description": payload.description,
        "category": payload.category or classification.category,
        "priority": payload.priority or classification.priority,
        "status": payload.status or "pending",
        "assigned_to": payload.assigned_to or None,
        "due_date": payload.due_date,
    }

    try:
        task = await store.create(task_data)
    except Exception as e:
        logger.error(f"Error creating task: {e}")
        _observe("/api/tasks", "error", start)
        raise HTTPException(status_code=500, detail=str(e))

    logger.info(f"Task created successfully: {task.id}")
    _observe("/api/tasks", "created", start)

    return {
        "task": task,
        "classification": {
            "auto_category": classification.category,
            "auto_priority": classification.priority,
        },
    }


@router.get("")
async def list_tasks(
    status: Optional[str] = None,
    category: Optional[str] = None,
    priority: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    sort_by: str = Query("created_at", alias="sortBy"),
    order: str = "desc",
    store: TaskStore = Depends(get_task_store),
) -> dict:
    """
    List tasks.

    Args:
        status, category, priority: exact filters ("all" disables the filter)
        search: case-insensitive substring match on the title
        limit, offset: pagination window
        sortBy: task column to sort on (default created_at)
        order: "asc" or "desc" (default)
    """
    start = time.time()
    try:
        tasks, total = await store.list_tasks(
            status=status,
            category=category,
            priority=priority,
            search=search,
            limit=limit,
            offset=offset,
            sort_by=sort_by,
            order=order,
        )
    except ValueError as e:
        _observe("/api/tasks", "rejected", start)
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error fetching tasks: {e}")
        _observe("/api/tasks", "error", start)
        raise HTTPException(status_code=500, detail=str(e))

    _observe("/api/tasks", "ok", start)
    return {
        "tasks": tasks,
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
        },
    }


@router.get("/{task_id}")
async def get_task(task_id: str, store: TaskStore = Depends(get_task_store)) -> dict:
    """Get a task together with its change history."""
    start = time.time()
    tid = _parse_task_id(task_id, start)

    try:
        task = await store.get(tid)
        if task is None:
            _observe(TASK_ENDPOINT, "not_found", start)
            raise HTTPException(status_code=404, detail="Task not found")
        history = await store.get_history(tid)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting task {task_id}: {e}")
        _observe(TASK_ENDPOINT, "error", start)
        raise HTTPException(status_code=500, detail=str(e))

    _observe(TASK_ENDPOINT, "ok", start)
    return {"task": task, "history": history}


@router.put("/{task_id}")
@router.patch("/{task_id}")
async def update_task(
    task_id: str,
    payload: TaskUpdate,
    store: TaskStore = Depends(get_task_store),
) -> dict:
    """Partially update a task and record the change in its history."""
    start = time.time()
    tid = _parse_task_id(task_id, start)
    changes = payload.changes()

    try:
        old_task = await store.get(tid)
        task = await store.update(tid, changes) if old_task is not None else None
    except Exception as e:
        logger.error(f"Error updating task {task_id}: {e}")
        _observe(TASK_ENDPOINT, "error", start)
        raise HTTPException(status_code=500, detail=str(e))

    # task is None also when the row was deleted between the two queries
    if task is None:
        _observe(TASK_ENDPOINT, "not_found", start)
        raise HTTPException(status_code=404, detail="Task not found")

    await _save_history(store, tid, _history_action(changes, old_task), old_task, task)

    _observe(TASK_ENDPOINT, "updated", start)
    return {"task": task}


@router.delete("/{task_id}")
async def delete_task(task_id: str, store: TaskStore = Depends(get_task_store)) -> dict:
    """Delete a task and its history."""
    start = time.time()
    tid = _parse_task_id(task_id, start)

    try:
        await store.delete(tid)
    except Exception as e:
        logger.error(f"Error deleting task {task_id}: {e}")
        _observe(TASK_ENDPOINT, "error", start)
        raise HTTPException(status_code=500, detail=str(e))

    _observe(TASK_ENDPOINT, "deleted", start)
    return {"message": "Task deleted successfully"}
