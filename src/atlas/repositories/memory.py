"""
Agent Memory Repository.

Importance-weighted memories (agent_memory) derived from performance
records and orchestration events.
"""

from typing import List, Optional

from atlas.models.entities import Memory
from atlas.repositories.base import BaseRepository


class MemoryRepository(BaseRepository[Memory]):
    """Repository for agent_memory."""

    table_name = "agent_memory"
    model_class = Memory

    async def remember(self, memory: Memory) -> Optional[Memory]:
        """
        Store a memory. Memories with a deterministic id are written at most once.

        Returns:
            The stored memory, or None if it already existed
        """
        if memory.id:
            return await self.create_once(memory)
        return await self.create(memory)

    async def recent_for_agent(
        self,
        agent_id: str,
        limit: int = 20,
        memory_type: Optional[str] = None,
    ) -> List[Memory]:
        """
        Get an agent's memories, newest first.

        Args:
            agent_id: Agent UUID
            limit: Maximum memories
            memory_type: Optional filter ('success', 'error', 'interaction')

        Returns:
            Memories ordered by created_at descending
        """
        filters = {"agent_id": agent_id}
        if memory_type:
            filters["memory_type"] = memory_type
        return await self.get_many(filters, limit=limit, order_by="created_at", descending=True)
