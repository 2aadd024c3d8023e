from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Literal, Optional, List
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator


Category = Literal["scheduling", "finance", "technical", "safety", "general"]
Priority = Literal["high", "medium", "low"]
TaskStatus = Literal["pending", "in_progress", "completed"]
HistoryAction = Literal["updated", "status_changed", "completed"]


class ExtractedEntities(BaseModel):
    dates: List[str] = Field(default_factory=list)
    persons: List[str] = Field(default_factory=list)
    # never populated
    locations: List[str] = Field(default_factory=list)
    actions: List[str] = Field(default_factory=list)


class ClassificationResult(BaseModel):
    category: Category = "general"
    priority: Priority = "low"
    extracted_entities: ExtractedEntities = Field(default_factory=ExtractedEntities)
    suggested_actions: List[str] = Field(default_factory=list)

    @classmethod
    def fallback(cls) -> "ClassificationResult":
        """Safe record used when classification blows up during task creation."""
        return cls()


class ClassifyRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None


def _strip_not_blank(v: str) -> str:
    v2 = v.strip()
    if not v2:
        raise ValueError("must not be blank")
    return v2


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    status: Optional[TaskStatus] = None
    category: Optional[str] = None
    priority: Optional[str] = None
    assigned_to: Optional[str] = None
    due_date: Optional[datetime] = None

    @field_validator("title", "description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        return _strip_not_blank(v)


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    status: Optional[TaskStatus] = None
    category: Optional[str] = None
    priority: Optional[str] = None
    assigned_to: Optional[str] = None
    due_date: Optional[datetime] = None

    @field_validator("title", "description")
    @classmethod
    def not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _strip_not_blank(v)

    @model_validator(mode="after")
    def required_columns_not_null(self) -> "TaskUpdate":
        # these columns are NOT NULL in the tasks table
        for name in ("title", "description", "status", "category", "priority"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} must not be null")
        return self

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class Task(BaseModel):
    id: UUID
    title: str
    description: str = ""
    category: str = "general"
    priority: str = "low"
    status: TaskStatus = "pending"
    assigned_to: Optional[str] = None
    due_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record) -> "Task":
        """Create a Task from a database record."""
        return cls(**dict(record))


class TaskHistoryEntry(BaseModel):
    id: int
    task_id: UUID
    action: HistoryAction
    old_value: Optional[dict] = None
    new_value: Optional[dict] = None
    changed_at: datetime

    @classmethod
    def from_record(cls, record) -> "TaskHistoryEntry":
        # jsonb comes back from asyncpg as text
        return cls(
            id=record["id"],
            task_id=record["task_id"],
            action=record["action"],
            old_value=json.loads(record["old_value"]) if record["old_value"] else None,
            new_value=json.loads(record["new_value"]) if record["new_value"] else None,
            changed_at=record["changed_at"],
        )
