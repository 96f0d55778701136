"""Audit trail recorder."""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.db.repositories import HistoryRepository
from tasktrack.models import HistoryAction, HistoryEntry
from tasktrack.observability.metrics import metrics
from tasktrack.observability.trace import get_trace_id

logger = logging.getLogger(__name__)


class AuditRecorder:
    """
    Appends history entries after a workflow mutation.

    Recording is best-effort. Each entry is written inside a savepoint so a
    failed insert leaves the surrounding transaction (and the mutation that
    triggered it) intact. Failures are logged and counted, never raised.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.history = HistoryRepository(session)

    async def record(
        self,
        task_id: UUID,
        action: HistoryAction,
        details: str,
    ) -> HistoryEntry | None:
        try:
            async with self.session.begin_nested():
                entry = await self.history.create(task_id, action, details)
        except Exception as exc:
            metrics.inc_counter("audit.record.failed")
            logger.warning(
                f"Failed to record {action.value} history for task {task_id} "
                f"(trace {get_trace_id()}): {exc}"
            )
            return None

        metrics.inc_counter("audit.record.count")
        return entry

    async def list_for_task(self, task_id: UUID) -> list[HistoryEntry]:
        return await self.history.list_for_task(task_id)
