"""Member model - assignable people."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class Member(BaseModel):
    """Assignable member. No uniqueness on name or email."""

    member_id: UUID
    name: str
    role: str = "member"
    email: str = ""
    created_at: datetime


class MemberWorkload(BaseModel):
    """Current in-progress load for a member."""

    member_id: str
    in_progress: int
    capacity: int
    can_assign: bool
