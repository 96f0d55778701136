"""Task model - core unit of trackable work."""

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from tasktrack.models.enums import TaskPriority, TaskStatus


def normalize_tags(tags: list[str] | None) -> list[str]:
    """Collapse duplicates and blanks, keeping first-seen order."""
    seen: dict[str, None] = {}
    for tag in tags or []:
        label = tag.strip()
        if label:
            seen.setdefault(label, None)
    return list(seen)


class Task(BaseModel):
    """Core task entity."""

    task_id: UUID
    title: str
    description: Optional[str] = None

    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM

    # Weak references (never owned, may dangle)
    assignee_id: Optional[str] = None
    project_id: Optional[UUID] = None

    # Owned value set
    tags: list[str] = Field(default_factory=list)

    created_at: datetime
    updated_at: datetime

    def is_assigned(self) -> bool:
        return bool(self.assignee_id)


class TaskFilter(BaseModel):
    """Optional list filters; all given criteria must match."""

    status: Optional[TaskStatus] = None
    assignee_id: Optional[str] = None
    tag: Optional[str] = None
    priority: Optional[TaskPriority] = None
    project_id: Optional[UUID] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
