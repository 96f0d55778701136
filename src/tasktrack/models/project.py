"""Project model - namespaces tasks by key."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class Project(BaseModel):
    """Project with a globally unique, upper-cased key."""

    project_id: UUID
    name: str
    key: str
    description: Optional[str] = None
    created_at: datetime
