"""TaskTrack core engine - task workflow operations."""

import logging
from typing import Any
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.config import settings
from tasktrack.db.repositories import TaskRepository
from tasktrack.engine.admission import AdmissionController
from tasktrack.engine.audit import AuditRecorder
from tasktrack.engine.directory import MemberDirectory, ProjectRegistry
from tasktrack.errors import NotFoundError, StorageError, ValidationError
from tasktrack.interchange import decode_tasks, encode_tasks
from tasktrack.models import (
    HistoryAction,
    HistoryEntry,
    Task,
    TaskFilter,
    TaskPriority,
    TaskStatus,
    normalize_tags,
)
from tasktrack.observability.metrics import metrics
from tasktrack.utils.time import utc_now

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset(
    {"title", "description", "status", "priority", "assignee_id", "tags", "project_id"}
)


class ImportFailure(BaseModel):
    row: int
    title: str
    error: str


class ImportReport(BaseModel):
    created: list[Task]
    failed: list[ImportFailure]


class TaskWorkflowEngine:
    """Owns the task lifecycle: status machine, admission, and audit trail."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.tasks = TaskRepository(session)
        self.admission = AdmissionController(self.tasks)
        self.audit = AuditRecorder(session)
        self.members = MemberDirectory(session)
        self.projects = ProjectRegistry(session)

    # =========================================================================
    # Field validation
    # =========================================================================

    def _require_title(self, title: Any) -> str:
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("title is required", field="title")
        return title.strip()

    def _parse_status(self, value: Any) -> TaskStatus:
        try:
            return TaskStatus(value)
        except ValueError:
            raise ValidationError(f"Invalid status: {value}", field="status") from None

    def _parse_priority(self, value: Any) -> TaskPriority:
        try:
            return TaskPriority(value)
        except ValueError:
            raise ValidationError(f"Invalid priority: {value}", field="priority") from None

    def _parse_project_id(self, value: Any) -> UUID | None:
        if value is None or value == "":
            return None
        if isinstance(value, UUID):
            return value
        try:
            return UUID(str(value))
        except ValueError:
            raise ValidationError(f"Invalid project id: {value}", field="project_id") from None

    def _parse_tags(self, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str) or not all(isinstance(tag, str) for tag in value):
            raise ValidationError("tags must be a list of strings", field="tags")
        return normalize_tags(list(value))

    def _clean_update(self, fields: dict[str, Any]) -> dict[str, Any]:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

        values: dict[str, Any] = {}
        for name, value in fields.items():
            if name == "title":
                values[name] = self._require_title(value)
            elif name == "status":
                values[name] = self._parse_status(value)
            elif name == "priority":
                values[name] = self._parse_priority(value)
            elif name == "tags":
                values[name] = self._parse_tags(value)
            elif name == "project_id":
                values[name] = self._parse_project_id(value)
            elif name == "assignee_id":
                values[name] = str(value) if value else None
            else:
                values[name] = value
        return values

    # =========================================================================
    # Task operations
    # =========================================================================

    async def create_task(
        self,
        title: str,
        description: str | None = None,
        priority: TaskPriority | str | None = None,
        assignee_id: str | None = None,
        tags: list[str] | None = None,
        status: TaskStatus | str | None = None,
        project_id: UUID | str | None = None,
    ) -> Task:
        """
        Create a new task.

        Direct creation never consults admission control, even when the task
        starts out in_progress with an assignee.
        """
        task = await self.tasks.create(
            title=self._require_title(title),
            description=description,
            status=self._parse_status(status) if status else TaskStatus.TODO,
            priority=self._parse_priority(priority) if priority else TaskPriority.MEDIUM,
            assignee_id=str(assignee_id) if assignee_id else None,
            tags=self._parse_tags(tags),
            project_id=self._parse_project_id(project_id),
        )
        metrics.inc_counter("tasks.created.count")
        logger.info(f"Task created: {task.task_id}")

        await self.audit.record(task.task_id, HistoryAction.CREATE, f"Task created: {task.title}")
        return task

    async def get_task(self, task_id: UUID) -> Task:
        task = await self.tasks.get(task_id)
        if not task:
            raise NotFoundError("Task", str(task_id))
        return task

    async def list_tasks(
        self,
        filters: TaskFilter | None = None,
        limit: int | None = None,
    ) -> list[Task]:
        """
        List tasks matching all given filters, newest first.

        Every match is returned unless the caller asks for a limit, which is
        capped at max_list_limit.
        """
        if limit:
            limit = min(limit, settings.max_list_limit)
        return await self.tasks.list(filters, limit=limit)

    async def update_task(self, task_id: UUID, fields: dict[str, Any]) -> Task:
        """
        Apply a partial update and record one history entry describing it.

        Only status, priority, assignee and title changes are described.
        No admission check is made here, even if status or assignee change.
        """
        values = self._clean_update(fields)
        values["updated_at"] = utc_now()

        try:
            previous = await self.tasks.get(task_id)
        except StorageError as exc:
            logger.warning(f"Could not read prior state of task {task_id}: {exc}")
            previous = None

        task = await self.tasks.update(task_id, values)
        if not task:
            raise NotFoundError("Task", str(task_id))
        metrics.inc_counter("tasks.updated.count")

        if previous:
            changes = self._describe_changes(previous, task)
            if changes:
                await self.audit.record(task.task_id, HistoryAction.UPDATE, ", ".join(changes))

        return task

    def _describe_changes(self, before: Task, after: Task) -> list[str]:
        changes = []
        if before.status != after.status:
            changes.append(
                f"Status changed from {before.status.value} to {after.status.value}"
            )
        if before.priority != after.priority:
            changes.append(
                f"Priority changed from {before.priority.value} to {after.priority.value}"
            )
        if (before.assignee_id or None) != (after.assignee_id or None):
            changes.append("Assignee changed")
        if before.title != after.title:
            changes.append("Title updated")
        return changes

    async def delete_task(self, task_id: UUID) -> None:
        """Delete a task. Its history is kept. Deleting a missing task is a no-op."""
        if await self.tasks.delete(task_id):
            metrics.inc_counter("tasks.deleted.count")
            logger.info(f"Task deleted: {task_id}")

    async def advance_task(self, task_id: UUID) -> Task:
        """
        Move a task one step along todo -> in_progress -> done.

        done is terminal. blocked is outside the sequence, so advancing a
        blocked task returns it unchanged.
        """
        task = await self.get_task(task_id)
        next_status = task.status.next_in_sequence()
        if next_status is None:
            return task

        if next_status == TaskStatus.IN_PROGRESS and task.is_assigned():
            await self.admission.ensure_admits(task.assignee_id)

        old_status = task.status
        task = await self.tasks.update(
            task_id, {"status": next_status, "updated_at": utc_now()}
        )
        if not task:
            raise NotFoundError("Task", str(task_id))
        metrics.inc_counter("tasks.advanced.count")

        await self.audit.record(
            task.task_id,
            HistoryAction.STATUS_CHANGE,
            f"Status advanced from {old_status.value} to {next_status.value}",
        )
        return task

    async def assign_task(self, task_id: UUID, assignee_id: str | None) -> Task:
        """Assign a task to a member, subject to admission control."""
        if not assignee_id or not str(assignee_id).strip():
            raise ValidationError("assignee_id required", field="assignee_id")
        assignee_id = str(assignee_id).strip()

        await self.admission.ensure_admits(assignee_id)

        task = await self.tasks.update(
            task_id, {"assignee_id": assignee_id, "updated_at": utc_now()}
        )
        if not task:
            raise NotFoundError("Task", str(task_id))
        metrics.inc_counter("tasks.assigned.count")

        await self.audit.record(task.task_id, HistoryAction.UPDATE, "Task assigned to member")
        return task

    async def list_history(self, task_id: UUID) -> list[HistoryEntry]:
        return await self.audit.list_for_task(task_id)

    # =========================================================================
    # Reporting and interchange
    # =========================================================================

    async def task_stats(self, project_id: UUID | None = None) -> dict[str, Any]:
        """Status, priority and assignee breakdown for dashboards."""
        tasks = await self.tasks.list(TaskFilter(project_id=project_id))
        names = await self.members.name_lookup()

        by_status = {status.value: 0 for status in TaskStatus}
        by_priority = {priority.value: 0 for priority in TaskPriority}
        by_assignee: dict[str, int] = {}
        for task in tasks:
            by_status[task.status.value] += 1
            by_priority[task.priority.value] += 1
            if task.assignee_id:
                label = names.get(task.assignee_id, "Unknown")
            else:
                label = "Unassigned"
            by_assignee[label] = by_assignee.get(label, 0) + 1

        total = len(tasks)
        completed = by_status[TaskStatus.DONE.value]
        return {
            "total": total,
            "by_status": by_status,
            "by_priority": by_priority,
            "by_assignee": by_assignee,
            "completed": completed,
            "completion_rate": round(completed * 100.0 / total, 1) if total else 0.0,
        }

    async def export_tasks_csv(self, filters: TaskFilter | None = None) -> str:
        tasks = await self.tasks.list(filters)
        names = await self.members.name_lookup()
        return encode_tasks(tasks, names)

    async def import_tasks_csv(self, text: str, project_id: UUID | None = None) -> ImportReport:
        """
        Create one task per CSV row through the normal create path.

        A failing row is reported and does not stop the rest of the import.
        """
        rows = decode_tasks(text)
        if not rows:
            raise ValidationError("CSV file is empty or invalid")

        report = ImportReport(created=[], failed=[])
        for row in rows:
            try:
                async with self.session.begin_nested():
                    task = await self.create_task(
                        title=row.title,
                        description=row.description,
                        priority=row.priority,
                        tags=row.tags,
                        status=row.status,
                        project_id=project_id,
                    )
            except (ValidationError, StorageError) as exc:
                logger.warning(f"CSV import row {row.row_number} failed: {exc}")
                report.failed.append(
                    ImportFailure(row=row.row_number, title=row.title, error=str(exc))
                )
                continue
            report.created.append(task)

        logger.info(
            f"CSV import finished: {len(report.created)} created, {len(report.failed)} failed"
        )
        return report
