"""History entry model - immutable audit trail."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from tasktrack.models.enums import HistoryAction


class HistoryEntry(BaseModel):
    """Audit record for a workflow mutation. Outlives the task it describes."""

    history_id: UUID
    task_id: UUID
    action: HistoryAction
    details: str
    timestamp: datetime
