"""TaskTrack data models."""

from tasktrack.models.enums import HistoryAction, TaskPriority, TaskStatus
from tasktrack.models.history import HistoryEntry
from tasktrack.models.member import Member, MemberWorkload
from tasktrack.models.project import Project
from tasktrack.models.task import Task, TaskFilter, normalize_tags

__all__ = [
    "HistoryAction",
    "HistoryEntry",
    "Member",
    "MemberWorkload",
    "Project",
    "Task",
    "TaskFilter",
    "TaskPriority",
    "TaskStatus",
    "normalize_tags",
]
