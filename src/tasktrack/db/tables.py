"""SQLAlchemy table definitions."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tasktrack.db.base import Base
from tasktrack.models.enums import HistoryAction, TaskPriority, TaskStatus


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class TaskTable(Base):
    """Tasks table - core work units."""

    __tablename__ = "tasks"

    task_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[TaskStatus] = mapped_column(
        Enum(TaskStatus, name="taskstatus", values_callable=_enum_values),
        nullable=False,
        default=TaskStatus.TODO,
    )
    priority: Mapped[TaskPriority] = mapped_column(
        Enum(TaskPriority, name="taskpriority", values_callable=_enum_values),
        nullable=False,
        default=TaskPriority.MEDIUM,
    )

    # Weak references: no foreign keys, referents may be deleted independently
    assignee_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    project_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    tags: Mapped[list["TaskTagTable"]] = relationship(
        "TaskTagTable",
        back_populates="task",
        cascade="all, delete-orphan",
        order_by="TaskTagTable.position",
        lazy="selectin",
    )

    __table_args__ = (
        # Admission control counts
        Index("idx_tasks_assignee_status", "assignee_id", "status"),
        Index("idx_tasks_project_created", "project_id", "created_at"),
        Index("idx_tasks_created", "created_at"),
    )


class TaskTagTable(Base):
    """Task tags - ordered labels owned by a task."""

    __tablename__ = "task_tags"

    task_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tasks.task_id", ondelete="CASCADE"), primary_key=True
    )
    tag: Mapped[str] = mapped_column(String(255), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    task: Mapped[TaskTable] = relationship("TaskTable", back_populates="tags")

    __table_args__ = (Index("idx_task_tags_tag", "tag"),)


class MemberTable(Base):
    """Members table - assignable people."""

    __tablename__ = "members"

    member_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(255), nullable=False, default="member")
    email: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("idx_members_name", "name"),)


class ProjectTable(Base):
    """Projects table - task namespaces."""

    __tablename__ = "projects"

    project_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    key: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class HistoryTable(Base):
    """History table - append-only audit trail."""

    __tablename__ = "history"

    history_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    # No foreign key: entries outlive the task they describe
    task_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    action: Mapped[HistoryAction] = mapped_column(
        Enum(HistoryAction, name="historyaction", values_callable=_enum_values),
        nullable=False,
    )
    details: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("idx_history_task_timestamp", "task_id", "timestamp"),)
