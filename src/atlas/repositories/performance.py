"""
Performance Repository.

Append-only log of task outcomes (agent_performance). Rows are written
once and never mutated.
"""

from typing import List, Optional

from atlas.models.entities import PerformanceRecord
from atlas.repositories.base import BaseRepository


class PerformanceRepository(BaseRepository[PerformanceRecord]):
    """Repository for agent_performance."""

    table_name = "agent_performance"
    model_class = PerformanceRecord

    async def append(self, record: PerformanceRecord) -> Optional[PerformanceRecord]:
        """
        Append a performance record.

        When the record carries a client-supplied id, a retry of the same
        record is ignored.

        Returns:
            The stored record, or None if this id was already recorded
        """
        if record.id:
            return await self.create_once(record)
        return await self.create(record)

    async def recent_for_agent(self, agent_id: str, limit: int = 10) -> List[PerformanceRecord]:
        """Get an agent's most recent outcomes, newest first."""
        return await self.get_many(
            {"agent_id": agent_id}, limit=limit, order_by="created_at", descending=True
        )
