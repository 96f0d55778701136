"""Initial TaskTrack schema."""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create base tables and enums."""
    # Enum types are created with the first table that uses them
    taskstatus = sa.Enum("todo", "in_progress", "done", "blocked", name="taskstatus")
    taskpriority = sa.Enum("low", "medium", "high", name="taskpriority")
    historyaction = sa.Enum(
        "create",
        "update",
        "status_change",
        "delete",
        name="historyaction",
    )

    op.create_table(
        "tasks",
        sa.Column("task_id", sa.Uuid(), primary_key=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", taskstatus, nullable=False, server_default="todo"),
        sa.Column("priority", taskpriority, nullable=False, server_default="medium"),
        sa.Column("assignee_id", sa.String(length=64), nullable=True),
        sa.Column("project_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_tasks_assignee_status", "tasks", ["assignee_id", "status"])
    op.create_index("idx_tasks_project_created", "tasks", ["project_id", "created_at"])
    op.create_index("idx_tasks_created", "tasks", ["created_at"])

    op.create_table(
        "task_tags",
        sa.Column(
            "task_id",
            sa.Uuid(),
            sa.ForeignKey("tasks.task_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("tag", sa.String(length=255), primary_key=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("idx_task_tags_tag", "task_tags", ["tag"])

    op.create_table(
        "members",
        sa.Column("member_id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=255), nullable=False, server_default="member"),
        sa.Column("email", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_members_name", "members", ["name"])

    op.create_table(
        "projects",
        sa.Column("project_id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("key", sa.String(length=64), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("key", name="uq_projects_key"),
    )

    # No foreign key to tasks: history outlives the task it describes
    op.create_table(
        "history",
        sa.Column("history_id", sa.Uuid(), primary_key=True),
        sa.Column("task_id", sa.Uuid(), nullable=False),
        sa.Column("action", historyaction, nullable=False),
        sa.Column("details", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_history_task_timestamp", "history", ["task_id", "timestamp"])


def downgrade() -> None:
    """Drop all tables and enums."""
    op.drop_index("idx_history_task_timestamp", table_name="history")
    op.drop_table("history")

    op.drop_table("projects")

    op.drop_index("idx_members_name", table_name="members")
    op.drop_table("members")

    op.drop_index("idx_task_tags_tag", table_name="task_tags")
    op.drop_table("task_tags")

    op.drop_index("idx_tasks_created", table_name="tasks")
    op.drop_index("idx_tasks_project_created", table_name="tasks")
    op.drop_index("idx_tasks_assignee_status", table_name="tasks")
    op.drop_table("tasks")

    bind = op.get_bind()
    sa.Enum(name="historyaction").drop(bind, checkfirst=True)
    sa.Enum(name="taskpriority").drop(bind, checkfirst=True)
    sa.Enum(name="taskstatus").drop(bind, checkfirst=True)
