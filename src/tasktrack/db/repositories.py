"""Database repositories for TaskTrack entities."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.db.tables import (
    HistoryTable,
    MemberTable,
    ProjectTable,
    TaskTable,
    TaskTagTable,
)
from tasktrack.errors import DuplicateKeyError, StorageError
from tasktrack.models import (
    HistoryAction,
    HistoryEntry,
    Member,
    Project,
    Task,
    TaskFilter,
    TaskPriority,
    TaskStatus,
)
from tasktrack.utils.time import end_of_day, ensure_utc, start_of_day, utc_now


@asynccontextmanager
async def storage_call(operation: str) -> AsyncIterator[None]:
    """Translate driver failures into StorageError."""
    try:
        yield
    except SQLAlchemyError as exc:
        raise StorageError(operation, exc) from exc


class TaskRepository:
    """Repository for task operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        title: str,
        description: str | None = None,
        status: TaskStatus = TaskStatus.TODO,
        priority: TaskPriority = TaskPriority.MEDIUM,
        assignee_id: str | None = None,
        tags: list[str] | None = None,
        project_id: UUID | None = None,
    ) -> Task:
        """Insert a new task. Tags must already be normalized."""
        now = utc_now()
        task_row = TaskTable(
            task_id=uuid4(),
            title=title,
            description=description,
            status=status,
            priority=priority,
            assignee_id=assignee_id or None,
            project_id=project_id,
            created_at=now,
            updated_at=now,
        )
        task_row.tags = [
            TaskTagTable(tag=tag, position=position) for position, tag in enumerate(tags or [])
        ]

        async with storage_call("task insert"):
            self.session.add(task_row)
            await self.session.flush()
        return self._row_to_model(task_row)

    async def get(self, task_id: UUID) -> Task | None:
        """Get a task by ID."""
        row = await self._get_row(task_id)
        return self._row_to_model(row) if row else None

    async def list(self, filters: TaskFilter | None = None, limit: int | None = None) -> list[Task]:
        """List tasks matching every given filter, newest first."""
        query = select(TaskTable)
        filters = filters or TaskFilter()

        if filters.status:
            query = query.where(TaskTable.status == filters.status)
        if filters.assignee_id:
            query = query.where(TaskTable.assignee_id == filters.assignee_id)
        if filters.priority:
            query = query.where(TaskTable.priority == filters.priority)
        if filters.project_id:
            query = query.where(TaskTable.project_id == filters.project_id)
        if filters.tag:
            tagged = select(TaskTagTable.task_id).where(TaskTagTable.tag == filters.tag)
            query = query.where(TaskTable.task_id.in_(tagged))
        if filters.start_date:
            query = query.where(TaskTable.created_at >= start_of_day(filters.start_date))
        if filters.end_date:
            query = query.where(TaskTable.created_at <= end_of_day(filters.end_date))

        query = query.order_by(TaskTable.created_at.desc())
        if limit:
            query = query.limit(limit)

        async with storage_call("task list"):
            result = await self.session.execute(query)
            rows = list(result.scalars().all())
        return [self._row_to_model(r) for r in rows]

    async def update(self, task_id: UUID, values: dict[str, Any]) -> Task | None:
        """Apply field values to a task. Returns None if it does not exist."""
        row = await self._get_row(task_id)
        if row is None:
            return None

        async with storage_call("task update"):
            for field, value in values.items():
                if field == "tags":
                    self._replace_tags(row, value or [])
                else:
                    setattr(row, field, value)
            await self.session.flush()
        return self._row_to_model(row)

    async def delete(self, task_id: UUID) -> bool:
        """Delete a task and its tags. Returns False if it did not exist."""
        row = await self._get_row(task_id)
        if row is None:
            return False
        async with storage_call("task delete"):
            await self.session.delete(row)
            await self.session.flush()
        return True

    async def count_in_progress(self, assignee_id: str) -> int:
        """Count in-progress tasks held by an assignee."""
        query = select(func.count()).select_from(TaskTable).where(
            TaskTable.assignee_id == assignee_id,
            TaskTable.status == TaskStatus.IN_PROGRESS,
        )
        async with storage_call("task count"):
            result = await self.session.execute(query)
            return int(result.scalar_one())

    async def _get_row(self, task_id: UUID) -> TaskTable | None:
        async with storage_call("task lookup"):
            result = await self.session.execute(
                select(TaskTable).where(TaskTable.task_id == task_id)
            )
            return result.scalar_one_or_none()

    def _replace_tags(self, row: TaskTable, tags: list[str]) -> None:
        """Replace the tag set wholesale, reusing rows for surviving labels."""
        existing = {tag_row.tag: tag_row for tag_row in row.tags}
        replacement = []
        for position, tag in enumerate(tags):
            tag_row = existing.get(tag) or TaskTagTable(tag=tag)
            tag_row.position = position
            replacement.append(tag_row)
        row.tags = replacement

    def _row_to_model(self, row: TaskTable) -> Task:
        return Task(
            task_id=row.task_id,
            title=row.title,
            description=row.description,
            status=row.status,
            priority=row.priority,
            assignee_id=row.assignee_id,
            project_id=row.project_id,
            tags=[tag_row.tag for tag_row in sorted(row.tags, key=lambda t: t.position)],
            created_at=ensure_utc(row.created_at),
            updated_at=ensure_utc(row.updated_at),
        )


class MemberRepository:
    """Repository for member operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, name: str, role: str = "member", email: str = "") -> Member:
        row = MemberTable(
            member_id=uuid4(),
            name=name,
            role=role,
            email=email,
            created_at=utc_now(),
        )
        async with storage_call("member insert"):
            self.session.add(row)
            await self.session.flush()
        return self._row_to_model(row)

    async def get(self, member_id: UUID) -> Member | None:
        async with storage_call("member lookup"):
            row = await self.session.get(MemberTable, member_id)
        return self._row_to_model(row) if row else None

    async def list(self) -> list[Member]:
        """List members sorted by name."""
        async with storage_call("member list"):
            result = await self.session.execute(
                select(MemberTable).order_by(MemberTable.name.asc())
            )
            rows = list(result.scalars().all())
        return [self._row_to_model(r) for r in rows]

    async def delete(self, member_id: UUID) -> bool:
        async with storage_call("member delete"):
            row = await self.session.get(MemberTable, member_id)
            if row is None:
                return False
            await self.session.delete(row)
            await self.session.flush()
        return True

    def _row_to_model(self, row: MemberTable) -> Member:
        return Member(
            member_id=row.member_id,
            name=row.name,
            role=row.role,
            email=row.email or "",
            created_at=ensure_utc(row.created_at),
        )


class ProjectRepository:
    """Repository for project operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, name: str, key: str, description: str | None = None) -> Project:
        """
        Insert a project. The key must already be upper-cased.

        The unique index is the last line of defence against a concurrent
        insert that slipped past the caller's lookup.
        """
        row = ProjectTable(
            project_id=uuid4(),
            name=name,
            key=key,
            description=description,
            created_at=utc_now(),
        )
        try:
            async with self.session.begin_nested():
                self.session.add(row)
                await self.session.flush()
        except IntegrityError as exc:
            raise DuplicateKeyError(key) from exc
        except SQLAlchemyError as exc:
            raise StorageError("project insert", exc) from exc
        return self._row_to_model(row)

    async def get(self, project_id: UUID) -> Project | None:
        async with storage_call("project lookup"):
            row = await self.session.get(ProjectTable, project_id)
        return self._row_to_model(row) if row else None

    async def get_by_key(self, key: str) -> Project | None:
        async with storage_call("project lookup"):
            result = await self.session.execute(
                select(ProjectTable).where(ProjectTable.key == key)
            )
            row = result.scalar_one_or_none()
        return self._row_to_model(row) if row else None

    async def list(self) -> list[Project]:
        """List projects, newest first."""
        async with storage_call("project list"):
            result = await self.session.execute(
                select(ProjectTable).order_by(ProjectTable.created_at.desc())
            )
            rows = list(result.scalars().all())
        return [self._row_to_model(r) for r in rows]

    def _row_to_model(self, row: ProjectTable) -> Project:
        return Project(
            project_id=row.project_id,
            name=row.name,
            key=row.key,
            description=row.description,
            created_at=ensure_utc(row.created_at),
        )


class HistoryRepository:
    """Repository for the append-only audit trail."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, task_id: UUID, action: HistoryAction, details: str) -> HistoryEntry:
        row = HistoryTable(
            history_id=uuid4(),
            task_id=task_id,
            action=action,
            details=details,
            timestamp=utc_now(),
        )
        async with storage_call("history insert"):
            self.session.add(row)
            await self.session.flush()
        return self._row_to_model(row)

    async def list_for_task(self, task_id: UUID) -> list[HistoryEntry]:
        """List entries for a task, newest first. The task may no longer exist."""
        async with storage_call("history list"):
            result = await self.session.execute(
                select(HistoryTable)
                .where(HistoryTable.task_id == task_id)
                .order_by(HistoryTable.timestamp.desc())
            )
            rows = list(result.scalars().all())
        return [self._row_to_model(r) for r in rows]

    def _row_to_model(self, row: HistoryTable) -> HistoryEntry:
        return HistoryEntry(
            history_id=row.history_id,
            task_id=row.task_id,
            action=row.action,
            details=row.details,
            timestamp=ensure_utc(row.timestamp),
        )
