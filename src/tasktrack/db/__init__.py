"""TaskTrack database layer."""

from tasktrack.db.base import Base, get_session, init_db
from tasktrack.db.tables import (
    HistoryTable,
    MemberTable,
    ProjectTable,
    TaskTable,
    TaskTagTable,
)

__all__ = [
    "Base",
    "get_session",
    "init_db",
    "HistoryTable",
    "MemberTable",
    "ProjectTable",
    "TaskTable",
    "TaskTagTable",
]
