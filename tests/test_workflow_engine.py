"""
Task workflow engine: creation, status machine, updates, deletion, listing.
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from typing import get_type_hints
from uuid import uuid4

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.config import settings
from tasktrack.db.repositories import TaskRepository
from tasktrack.db.tables import TaskTable
from tasktrack.engine import NotFoundError, StorageError, TaskWorkflowEngine, ValidationError
from tasktrack.models import HistoryAction, TaskFilter, TaskPriority, TaskStatus
from tasktrack.observability.metrics import metrics


@pytest.mark.asyncio
async def test_create_applies_defaults(session: AsyncSession):
    engine = TaskWorkflowEngine(session)

    task = await engine.create_task(title="  Write docs  ")

    assert task.title == "Write docs"
    assert task.status == TaskStatus.TODO
    assert task.priority == TaskPriority.MEDIUM
    assert task.assignee_id is None
    assert task.tags == []
    assert task.created_at == task.updated_at


@pytest.mark.asyncio
async def test_create_rejects_empty_title(session: AsyncSession):
    engine = TaskWorkflowEngine(session)

    for title in ("", "   ", None):
        with pytest.raises(ValidationError) as exc_info:
            await engine.create_task(title=title)
        assert exc_info.value.field == "title"

    assert await engine.list_tasks() == []


@pytest.mark.asyncio
async def test_create_rejects_unknown_status_and_priority(session: AsyncSession):
    engine = TaskWorkflowEngine(session)

    with pytest.raises(ValidationError):
        await engine.create_task(title="bad status", status="archived")
    with pytest.raises(ValidationError):
        await engine.create_task(title="bad priority", priority="urgent")


@pytest.mark.asyncio
async def test_create_normalizes_tags(session: AsyncSession):
    engine = TaskWorkflowEngine(session)

    task = await engine.create_task(title="tagged", tags=["ui", " api ", "ui", "", "db"])

    assert task.tags == ["ui", "api", "db"]
    assert (await engine.get_task(task.task_id)).tags == ["ui", "api", "db"]


@pytest.mark.asyncio
async def test_get_missing_task_raises(session: AsyncSession):
    engine = TaskWorkflowEngine(session)

    with pytest.raises(NotFoundError):
        await engine.get_task(uuid4())


@pytest.mark.asyncio
async def test_advance_walks_linear_sequence(session: AsyncSession):
    engine = TaskWorkflowEngine(session)
    task = await engine.create_task(title="walk")

    in_progress = await engine.advance_task(task.task_id)
    assert in_progress.status == TaskStatus.IN_PROGRESS

    done = await engine.advance_task(task.task_id)
    assert done.status == TaskStatus.DONE

    again = await engine.advance_task(task.task_id)
    assert again.status == TaskStatus.DONE
    assert again.updated_at == done.updated_at

    history = await engine.list_history(task.task_id)
    status_changes = sorted(
        h.details for h in history if h.action == HistoryAction.STATUS_CHANGE
    )
    assert status_changes == [
        "Status advanced from in_progress to done",
        "Status advanced from todo to in_progress",
    ]


@pytest.mark.asyncio
async def test_advance_blocked_is_noop_without_history(session: AsyncSession):
    engine = TaskWorkflowEngine(session)
    task = await engine.create_task(title="stuck", status=TaskStatus.BLOCKED)
    history_before = await engine.list_history(task.task_id)

    result = await engine.advance_task(task.task_id)

    assert result == task
    assert len(await engine.list_history(task.task_id)) == len(history_before) == 1


@pytest.mark.asyncio
async def test_blocked_reachable_only_through_update(session: AsyncSession):
    engine = TaskWorkflowEngine(session)
    task = await engine.create_task(title="will block")

    blocked = await engine.update_task(task.task_id, {"status": "blocked"})
    assert blocked.status == TaskStatus.BLOCKED

    unchanged = await engine.advance_task(task.task_id)
    assert unchanged.status == TaskStatus.BLOCKED


@pytest.mark.asyncio
async def test_advance_missing_task_raises(session: AsyncSession):
    engine = TaskWorkflowEngine(session)

    with pytest.raises(NotFoundError):
        await engine.advance_task(uuid4())


@pytest.mark.asyncio
async def test_update_describes_tracked_changes_in_one_entry(session: AsyncSession):
    engine = TaskWorkflowEngine(session)
    task = await engine.create_task(title="old title")
    member = str(uuid4())

    updated = await engine.update_task(
        task.task_id,
        {
            "title": "new title",
            "status": "in_progress",
            "priority": "high",
            "assignee_id": member,
        },
    )

    assert updated.title == "new title"
    assert updated.status == TaskStatus.IN_PROGRESS
    assert updated.priority == TaskPriority.HIGH
    assert updated.assignee_id == member
    assert updated.updated_at >= task.updated_at

    updates = [
        h for h in await engine.list_history(task.task_id) if h.action == HistoryAction.UPDATE
    ]
    assert len(updates) == 1
    assert updates[0].details == (
        "Status changed from todo to in_progress, "
        "Priority changed from medium to high, "
        "Assignee changed, "
        "Title updated"
    )


@pytest.mark.asyncio
async def test_update_of_untracked_fields_records_nothing(session: AsyncSession):
    engine = TaskWorkflowEngine(session)
    task = await engine.create_task(title="quiet", tags=["a"])

    updated = await engine.update_task(
        task.task_id,
        {"description": "more words", "tags": ["b", "a"], "title": "quiet"},
    )

    assert updated.description == "more words"
    assert updated.tags == ["b", "a"]
    assert updated.updated_at >= task.updated_at

    history = await engine.list_history(task.task_id)
    assert [h.action for h in history] == [HistoryAction.CREATE]


@pytest.mark.asyncio
async def test_update_replaces_tags_wholesale(session: AsyncSession):
    engine = TaskWorkflowEngine(session)
    task = await engine.create_task(title="retag", tags=["x", "y", "z"])

    updated = await engine.update_task(task.task_id, {"tags": ["z", "w"]})
    assert updated.tags == ["z", "w"]

    cleared = await engine.update_task(task.task_id, {"tags": []})
    assert cleared.tags == []


@pytest.mark.asyncio
async def test_update_rejects_invalid_values(session: AsyncSession):
    engine = TaskWorkflowEngine(session)
    task = await engine.create_task(title="strict")

    with pytest.raises(ValidationError):
        await engine.update_task(task.task_id, {"status": "archived"})
    with pytest.raises(ValidationError):
        await engine.update_task(task.task_id, {"priority": "critical"})
    with pytest.raises(ValidationError):
        await engine.update_task(task.task_id, {"title": ""})
    with pytest.raises(ValidationError):
        await engine.update_task(task.task_id, {"created_at": datetime.now(timezone.utc)})

    assert (await engine.get_task(task.task_id)).status == TaskStatus.TODO


@pytest.mark.asyncio
async def test_update_missing_task_raises(session: AsyncSession):
    engine = TaskWorkflowEngine(session)

    with pytest.raises(NotFoundError):
        await engine.update_task(uuid4(), {"title": "ghost"})


@pytest.mark.asyncio
async def test_delete_is_idempotent_and_keeps_history(session: AsyncSession):
    engine = TaskWorkflowEngine(session)
    task = await engine.create_task(title="short lived")
    await engine.advance_task(task.task_id)

    await engine.delete_task(task.task_id)
    await engine.delete_task(task.task_id)

    with pytest.raises(NotFoundError):
        await engine.get_task(task.task_id)

    history = await engine.list_history(task.task_id)
    assert sorted(h.action for h in history) == sorted(
        [HistoryAction.CREATE, HistoryAction.STATUS_CHANGE]
    )


@pytest.mark.asyncio
async def test_list_filters_combine(session: AsyncSession):
    engine = TaskWorkflowEngine(session)
    member = str(uuid4())
    project_id = uuid4()

    match = await engine.create_task(
        title="match",
        priority="high",
        assignee_id=member,
        tags=["backend", "api"],
        project_id=project_id,
    )
    await engine.create_task(title="wrong tag", priority="high", assignee_id=member, tags=["ui"])
    await engine.create_task(title="wrong priority", priority="low", assignee_id=member, tags=["api"])
    await engine.create_task(title="wrong assignee", priority="high", tags=["api"])
    await engine.create_task(title="wrong status", status="done", tags=["api"])

    found = await engine.list_tasks(
        TaskFilter(assignee_id=member, tag="api", priority=TaskPriority.HIGH)
    )
    assert [t.task_id for t in found] == [match.task_id]

    by_project = await engine.list_tasks(TaskFilter(project_id=project_id))
    assert [t.task_id for t in by_project] == [match.task_id]

    by_status = await engine.list_tasks(TaskFilter(status=TaskStatus.DONE))
    assert [t.title for t in by_status] == ["wrong status"]

    assert len(await engine.list_tasks()) == 5


@pytest.mark.asyncio
async def test_list_date_range_end_day_is_inclusive(session: AsyncSession):
    engine = TaskWorkflowEngine(session)

    async def created_on(title: str, when: datetime):
        task = await engine.create_task(title=title)
        await session.execute(
            update(TaskTable).where(TaskTable.task_id == task.task_id).values(created_at=when)
        )
        return task

    day = date(2024, 3, 10)
    await created_on("before", datetime(2024, 3, 9, 23, 59, 59, tzinfo=timezone.utc))
    await created_on("morning", datetime(2024, 3, 10, 0, 0, 0, tzinfo=timezone.utc))
    await created_on("late", datetime(2024, 3, 10, 23, 59, 59, 500000, tzinfo=timezone.utc))
    await created_on("after", datetime(2024, 3, 11, 0, 0, 0, tzinfo=timezone.utc))
    session.expire_all()

    same_day = await engine.list_tasks(TaskFilter(start_date=day, end_date=day))
    assert sorted(t.title for t in same_day) == ["late", "morning"]

    from_day = await engine.list_tasks(TaskFilter(start_date=day))
    assert sorted(t.title for t in from_day) == ["after", "late", "morning"]

    until_day = await engine.list_tasks(TaskFilter(end_date=day))
    assert sorted(t.title for t in until_day) == ["before", "late", "morning"]

    window = await engine.list_tasks(
        TaskFilter(start_date=day - timedelta(days=1), end_date=day + timedelta(days=1))
    )
    assert len(window) == 4


@pytest.mark.asyncio
async def test_stats_count_every_status(session: AsyncSession):
    engine = TaskWorkflowEngine(session)
    alice = await engine.members.create_member(name="Alice")

    await engine.create_task(title="a", assignee_id=str(alice.member_id))
    await engine.create_task(title="b", status="done")
    await engine.create_task(title="c", status="done", assignee_id="gone")

    stats = await engine.task_stats()

    assert stats["total"] == 3
    assert stats["by_status"] == {"todo": 1, "in_progress": 0, "done": 2, "blocked": 0}
    assert stats["by_assignee"] == {"Alice": 1, "Unassigned": 1, "Unknown": 1}
    assert stats["completion_rate"] == pytest.approx(66.7)


def test_repository_annotations_resolve_to_builtins():
    """Repository methods named `list` must not shadow the builtin in annotations."""
    hints = get_type_hints(TaskRepository._replace_tags)

    assert hints["tags"] == list[str]


@pytest.mark.asyncio
async def test_list_returns_every_match_without_limit(session: AsyncSession, monkeypatch):
    engine = TaskWorkflowEngine(session)
    for i in range(205):
        await engine.create_task(title=f"bulk {i}")

    assert len(await engine.list_tasks()) == 205
    assert len(await engine.list_tasks(limit=3)) == 3

    monkeypatch.setattr(settings, "max_list_limit", 10)
    assert len(await engine.list_tasks(limit=50)) == 10

    print("OK. Unlimited listing returns all 205 tasks")


@pytest.mark.asyncio
async def test_storage_failure_on_update_propagates(session: AsyncSession, monkeypatch):
    engine = TaskWorkflowEngine(session)
    task = await engine.create_task(title="fragile")

    async def failing_update(*args, **kwargs):
        raise StorageError("task update")

    monkeypatch.setattr(engine.tasks, "update", failing_update)

    with pytest.raises(StorageError):
        await engine.update_task(task.task_id, {"status": "done"})
    with pytest.raises(StorageError):
        await engine.advance_task(task.task_id)

    monkeypatch.undo()
    assert (await engine.get_task(task.task_id)).status == TaskStatus.TODO
    history = await engine.list_history(task.task_id)
    assert [h.action for h in history] == [HistoryAction.CREATE]


@pytest.mark.asyncio
async def test_storage_failure_on_create_propagates(session: AsyncSession, monkeypatch):
    engine = TaskWorkflowEngine(session)

    async def failing_create(*args, **kwargs):
        raise StorageError("task insert")

    monkeypatch.setattr(engine.tasks, "create", failing_create)

    with pytest.raises(StorageError):
        await engine.create_task(title="never stored")

    assert metrics.counter_value("audit.record.count") == 0
    assert metrics.counter_value("tasks.created.count") == 0


@pytest.mark.asyncio
async def test_update_proceeds_when_prior_read_fails(session: AsyncSession, monkeypatch):
    """Without the prior state no diff can be described, but the update lands."""
    engine = TaskWorkflowEngine(session)
    task = await engine.create_task(title="blind update")

    async def failing_get(*args, **kwargs):
        raise StorageError("task lookup")

    monkeypatch.setattr(engine.tasks, "get", failing_get)

    updated = await engine.update_task(task.task_id, {"status": "blocked", "priority": "high"})

    assert updated.status == TaskStatus.BLOCKED
    assert updated.priority == TaskPriority.HIGH

    monkeypatch.undo()
    assert (await engine.get_task(task.task_id)).status == TaskStatus.BLOCKED
    history = await engine.list_history(task.task_id)
    assert [h.action for h in history] == [HistoryAction.CREATE]
