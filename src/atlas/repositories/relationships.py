"""
Agent Relationship Repository.

Undirected agent pairs (agent_relationships). Callers must pass ids in
canonical order; the table enforces one row per (agent_a_id, agent_b_id).
"""

from typing import List, Optional

from atlas.models.entities import Relationship
from atlas.repositories.base import BaseRepository


def canonical_pair(agent_x: str, agent_y: str) -> tuple:
    """Order two agent ids so the smaller one comes first."""
    return (agent_x, agent_y) if agent_x <= agent_y else (agent_y, agent_x)


class RelationshipRepository(BaseRepository[Relationship]):
    """Repository for agent_relationships."""

    table_name = "agent_relationships"
    model_class = Relationship

    async def get_pair(self, agent_x: str, agent_y: str) -> Optional[Relationship]:
        """Get the row for an unordered pair, in either argument order."""
        if not self.client:
            return None

        first_id, second_id = canonical_pair(agent_x, agent_y)
        query = (
            self.client.table(self.table_name)
            .select("*")
            .eq("agent_a_id", first_id)
            .eq("agent_b_id", second_id)
            .limit(1)
        )
        rows = await self._execute(query, "get_pair")
        return self._to_model(rows[0]) if rows else None

    async def for_agent(
        self,
        agent_id: str,
        limit: int = 10,
        min_synergy: Optional[float] = None,
    ) -> List[Relationship]:
        """
        Get an agent's relationships from either side, best synergy first.

        Args:
            agent_id: Agent UUID
            limit: Maximum rows
            min_synergy: Only rows with synergy strictly above this

        Returns:
            Relationships ordered by synergy_score descending
        """
        if not self.client:
            return []

        query = (
            self.client.table(self.table_name)
            .select("*")
            .or_(f"agent_a_id.eq.{agent_id},agent_b_id.eq.{agent_id}")
        )
        if min_synergy is not None:
            query = query.gt("synergy_score", min_synergy)

        query = query.order("synergy_score", desc=True).limit(limit)
        rows = await self._execute(query, "for_agent")
        return [self._to_model(row) for row in rows]
