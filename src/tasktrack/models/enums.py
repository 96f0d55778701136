"""TaskTrack enumerations."""

from enum import Enum


class TaskStatus(str, Enum):
    """Task lifecycle status."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    BLOCKED = "blocked"

    @classmethod
    def advance_sequence(cls) -> list["TaskStatus"]:
        """Ordered states walked by advance; blocked is not part of it."""
        return [cls.TODO, cls.IN_PROGRESS, cls.DONE]

    def next_in_sequence(self) -> "TaskStatus | None":
        """Return the following state, or None if terminal or off-sequence."""
        order = self.advance_sequence()
        if self not in order:
            return None
        idx = order.index(self)
        if idx == len(order) - 1:
            return None
        return order[idx + 1]


class TaskPriority(str, Enum):
    """Task priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class HistoryAction(str, Enum):
    """Kinds of audit trail entries."""

    CREATE = "create"
    UPDATE = "update"
    STATUS_CHANGE = "status_change"
    DELETE = "delete"
