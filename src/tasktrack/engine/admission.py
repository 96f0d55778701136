"""Assignment admission control."""

import logging

from tasktrack.config import settings
from tasktrack.db.repositories import TaskRepository
from tasktrack.errors import CapacityExceeded
from tasktrack.models import MemberWorkload
from tasktrack.observability.metrics import metrics

logger = logging.getLogger(__name__)


class AdmissionController:
    """
    Decides whether a member may take on another in-progress task.

    This is a read-only predicate over persisted state. Callers check, then
    write separately, so two concurrent admissions for the same member can
    both observe capacity and transiently push the member past the limit.
    """

    def __init__(self, tasks: TaskRepository, capacity: int | None = None):
        self.tasks = tasks
        self.capacity = capacity or settings.max_in_progress_per_member

    async def count_in_progress(self, member_id: str | None) -> int:
        if not member_id:
            return 0
        return await self.tasks.count_in_progress(member_id)

    async def can_assign(self, member_id: str | None) -> bool:
        count = await self.count_in_progress(member_id)
        return count < self.capacity

    async def ensure_admits(self, member_id: str) -> None:
        """Raise CapacityExceeded if the member is at capacity."""
        if not await self.can_assign(member_id):
            metrics.inc_counter("admission.refused.count")
            logger.info(f"Admission refused for member {member_id} (limit {self.capacity})")
            raise CapacityExceeded(member_id, self.capacity)

    async def workload(self, member_id: str) -> MemberWorkload:
        count = await self.count_in_progress(member_id)
        return MemberWorkload(
            member_id=member_id,
            in_progress=count,
            capacity=self.capacity,
            can_assign=count < self.capacity,
        )
