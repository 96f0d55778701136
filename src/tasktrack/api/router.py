"""REST API router."""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack import __version__
from tasktrack.api.deps import get_db_session, verify_api_key
from tasktrack.api.schemas import (
    AssignTaskRequest,
    CreateMemberRequest,
    CreateProjectRequest,
    CreateTaskRequest,
    HealthResponse,
    HistoryEntryResponse,
    ImportTasksResponse,
    MemberResponse,
    MemberWorkloadResponse,
    MessageResponse,
    ProjectResponse,
    TaskResponse,
    TaskStatsResponse,
    UpdateTaskRequest,
)
from tasktrack.engine import (
    CapacityExceeded,
    DuplicateKeyError,
    NotFoundError,
    StorageError,
    TaskTrackError,
    TaskWorkflowEngine,
    ValidationError,
)
from tasktrack.models import TaskFilter, TaskPriority, TaskStatus
from tasktrack.observability.metrics import metrics

router = APIRouter(prefix="/v1", dependencies=[Depends(verify_api_key)])


def _http_error(exc: TaskTrackError) -> HTTPException:
    """Map an engine error onto an HTTP status."""
    if isinstance(exc, ValidationError):
        status_code = 400
    elif isinstance(exc, NotFoundError):
        status_code = 404
    elif isinstance(exc, (CapacityExceeded, DuplicateKeyError)):
        status_code = 409
    elif isinstance(exc, StorageError):
        status_code = 503
    else:
        status_code = 500
    return HTTPException(
        status_code=status_code,
        detail=exc.message,
        headers={"X-Error-Code": exc.code},
    )


# ============================================================================
# Health & Metrics
# ============================================================================


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=__version__)


@router.get("/metrics")
async def get_metrics():
    """In-process metrics snapshot."""
    return metrics.snapshot()


# ============================================================================
# Tasks
# ============================================================================


@router.post("/tasks", response_model=TaskResponse, status_code=201)
async def create_task(
    request: CreateTaskRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """Create a new task."""
    engine = TaskWorkflowEngine(session)

    try:
        return await engine.create_task(
            title=request.title,
            description=request.description,
            priority=request.priority,
            assignee_id=request.assignee_id,
            tags=request.tags,
            status=request.status,
            project_id=request.project_id,
        )
    except TaskTrackError as e:
        raise _http_error(e)


@router.get("/tasks", response_model=list[TaskResponse])
async def list_tasks(
    status: Optional[TaskStatus] = Query(None),
    assignee_id: Optional[str] = Query(None),
    tag: Optional[str] = Query(None),
    priority: Optional[TaskPriority] = Query(None),
    project_id: Optional[UUID] = Query(None),
    start_date: Optional[date] = Query(None, description="Created on or after this day"),
    end_date: Optional[date] = Query(None, description="Created on or before this day"),
    limit: Optional[int] = Query(None, ge=1),
    session: AsyncSession = Depends(get_db_session),
):
    """List tasks with optional filtering."""
    engine = TaskWorkflowEngine(session)

    filters = TaskFilter(
        status=status,
        assignee_id=assignee_id,
        tag=tag,
        priority=priority,
        project_id=project_id,
        start_date=start_date,
        end_date=end_date,
    )
    try:
        return await engine.list_tasks(filters, limit=limit)
    except TaskTrackError as e:
        raise _http_error(e)


@router.get("/tasks/stats", response_model=TaskStatsResponse)
async def task_stats(
    project_id: Optional[UUID] = Query(None),
    session: AsyncSession = Depends(get_db_session),
):
    """Status, priority and assignee breakdown."""
    engine = TaskWorkflowEngine(session)

    try:
        return await engine.task_stats(project_id)
    except TaskTrackError as e:
        raise _http_error(e)


@router.get("/tasks/export")
async def export_tasks(
    project_id: Optional[UUID] = Query(None),
    session: AsyncSession = Depends(get_db_session),
):
    """Export tasks as CSV."""
    engine = TaskWorkflowEngine(session)

    try:
        text = await engine.export_tasks_csv(TaskFilter(project_id=project_id))
    except TaskTrackError as e:
        raise _http_error(e)

    filename = f"tasks_export_{date.today().isoformat()}.csv"
    return Response(
        content=text,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/tasks/import", response_model=ImportTasksResponse)
async def import_tasks(
    request: Request,
    project_id: Optional[UUID] = Query(None),
    session: AsyncSession = Depends(get_db_session),
):
    """Import tasks from CSV text. Assignees are not carried over."""
    engine = TaskWorkflowEngine(session)

    try:
        csv_text = (await request.body()).decode("utf-8-sig")
        report = await engine.import_tasks_csv(csv_text, project_id=project_id)
    except TaskTrackError as e:
        raise _http_error(e)

    return ImportTasksResponse(
        created=len(report.created),
        failed=len(report.failed),
        tasks=[TaskResponse(**task.model_dump()) for task in report.created],
        errors=[failure.model_dump() for failure in report.failed],
    )


@router.get("/tasks/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: UUID,
    session: AsyncSession = Depends(get_db_session),
):
    """Get a task by ID."""
    engine = TaskWorkflowEngine(session)

    try:
        return await engine.get_task(task_id)
    except TaskTrackError as e:
        raise _http_error(e)


@router.put("/tasks/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: UUID,
    request: UpdateTaskRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """Apply a partial update. Does not enforce assignment capacity."""
    engine = TaskWorkflowEngine(session)

    try:
        return await engine.update_task(task_id, request.model_dump(exclude_unset=True))
    except TaskTrackError as e:
        raise _http_error(e)


@router.delete("/tasks/{task_id}", response_model=MessageResponse)
async def delete_task(
    task_id: UUID,
    session: AsyncSession = Depends(get_db_session),
):
    """Delete a task. History for the task is kept."""
    engine = TaskWorkflowEngine(session)

    try:
        await engine.delete_task(task_id)
    except TaskTrackError as e:
        raise _http_error(e)
    return MessageResponse(message="Task deleted")


@router.post("/tasks/{task_id}/advance", response_model=TaskResponse)
async def advance_task(
    task_id: UUID,
    session: AsyncSession = Depends(get_db_session),
):
    """Advance status todo -> in_progress -> done."""
    engine = TaskWorkflowEngine(session)

    try:
        return await engine.advance_task(task_id)
    except TaskTrackError as e:
        raise _http_error(e)


@router.post("/tasks/{task_id}/assign", response_model=TaskResponse)
async def assign_task(
    task_id: UUID,
    request: AssignTaskRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """Assign a task to a member, subject to capacity."""
    engine = TaskWorkflowEngine(session)

    try:
        return await engine.assign_task(task_id, request.assignee_id)
    except TaskTrackError as e:
        raise _http_error(e)


# ============================================================================
# History
# ============================================================================


@router.get("/history/{task_id}", response_model=list[HistoryEntryResponse])
async def list_history(
    task_id: UUID,
    session: AsyncSession = Depends(get_db_session),
):
    """History for a task, newest first. Available after the task is deleted."""
    engine = TaskWorkflowEngine(session)

    try:
        return await engine.list_history(task_id)
    except TaskTrackError as e:
        raise _http_error(e)


# ============================================================================
# Members
# ============================================================================


@router.post("/members", response_model=MemberResponse, status_code=201)
async def create_member(
    request: CreateMemberRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """Create a member."""
    engine = TaskWorkflowEngine(session)

    try:
        return await engine.members.create_member(
            name=request.name,
            role=request.role,
            email=request.email,
        )
    except TaskTrackError as e:
        raise _http_error(e)


@router.get("/members", response_model=list[MemberResponse])
async def list_members(
    session: AsyncSession = Depends(get_db_session),
):
    """List members sorted by name."""
    engine = TaskWorkflowEngine(session)

    try:
        return await engine.members.list_members()
    except TaskTrackError as e:
        raise _http_error(e)


@router.get("/members/{member_id}/workload", response_model=MemberWorkloadResponse)
async def member_workload(
    member_id: str,
    session: AsyncSession = Depends(get_db_session),
):
    """In-progress load against the assignment capacity."""
    engine = TaskWorkflowEngine(session)

    try:
        return await engine.admission.workload(member_id)
    except TaskTrackError as e:
        raise _http_error(e)


@router.delete("/members/{member_id}", response_model=MessageResponse)
async def delete_member(
    member_id: UUID,
    session: AsyncSession = Depends(get_db_session),
):
    """Delete a member. Tasks keep their assignee reference."""
    engine = TaskWorkflowEngine(session)

    try:
        await engine.members.delete_member(member_id)
    except TaskTrackError as e:
        raise _http_error(e)
    return MessageResponse(message="Member deleted")


# ============================================================================
# Projects
# ============================================================================


@router.post("/projects", response_model=ProjectResponse, status_code=201)
async def create_project(
    request: CreateProjectRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """Create a project. Keys are stored upper-cased and must be unique."""
    engine = TaskWorkflowEngine(session)

    try:
        return await engine.projects.create_project(
            name=request.name,
            key=request.key,
            description=request.description,
        )
    except TaskTrackError as e:
        raise _http_error(e)


@router.get("/projects", response_model=list[ProjectResponse])
async def list_projects(
    session: AsyncSession = Depends(get_db_session),
):
    """List projects, newest first."""
    engine = TaskWorkflowEngine(session)

    try:
        return await engine.projects.list_projects()
    except TaskTrackError as e:
        raise _http_error(e)


@router.get("/projects/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: UUID,
    session: AsyncSession = Depends(get_db_session),
):
    """Get a project by ID."""
    engine = TaskWorkflowEngine(session)

    try:
        return await engine.projects.get_project(project_id)
    except TaskTrackError as e:
        raise _http_error(e)
