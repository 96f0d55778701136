"""API request/response schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from tasktrack.models import HistoryAction, TaskPriority, TaskStatus


# ============================================================================
# Task schemas
# ============================================================================


class CreateTaskRequest(BaseModel):
    """Create task request."""

    title: str = Field(..., description="Task title (non-empty)")
    description: Optional[str] = None
    status: Optional[TaskStatus] = Field(None, description="Defaults to todo")
    priority: Optional[TaskPriority] = Field(None, description="Defaults to medium")
    assignee_id: Optional[str] = Field(None, description="Member id (weak reference)")
    tags: list[str] = Field(default_factory=list)
    project_id: Optional[UUID] = None


class UpdateTaskRequest(BaseModel):
    """Partial task update. Only fields present in the body are applied."""

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    assignee_id: Optional[str] = None
    tags: Optional[list[str]] = None
    project_id: Optional[UUID] = None


class AssignTaskRequest(BaseModel):
    """Assign task request."""

    assignee_id: Optional[str] = None


class TaskResponse(BaseModel):
    """Task response."""

    task_id: UUID
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: TaskPriority
    assignee_id: Optional[str] = None
    project_id: Optional[UUID] = None
    tags: list[str]
    created_at: datetime
    updated_at: datetime


class TaskStatsResponse(BaseModel):
    """Task breakdown for dashboards."""

    total: int
    by_status: dict[str, int]
    by_priority: dict[str, int]
    by_assignee: dict[str, int]
    completed: int
    completion_rate: float


class ImportFailureSchema(BaseModel):
    row: int
    title: str
    error: str


class ImportTasksResponse(BaseModel):
    """CSV import outcome."""

    created: int
    failed: int
    tasks: list[TaskResponse]
    errors: list[ImportFailureSchema]


# ============================================================================
# Member schemas
# ============================================================================


class CreateMemberRequest(BaseModel):
    """Create member request."""

    name: str
    role: Optional[str] = None
    email: Optional[str] = None


class MemberResponse(BaseModel):
    """Member response."""

    member_id: UUID
    name: str
    role: str
    email: str
    created_at: datetime


class MemberWorkloadResponse(BaseModel):
    """Member in-progress load."""

    member_id: str
    in_progress: int
    capacity: int
    can_assign: bool


# ============================================================================
# Project schemas
# ============================================================================


class CreateProjectRequest(BaseModel):
    """Create project request."""

    name: str
    key: str
    description: Optional[str] = None


class ProjectResponse(BaseModel):
    """Project response."""

    project_id: UUID
    name: str
    key: str
    description: Optional[str] = None
    created_at: datetime


# ============================================================================
# History schemas
# ============================================================================


class HistoryEntryResponse(BaseModel):
    """History entry response."""

    history_id: UUID
    task_id: UUID
    action: HistoryAction
    details: str
    timestamp: datetime


# ============================================================================
# System schemas
# ============================================================================


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
