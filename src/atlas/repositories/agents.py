"""
Agent Repository.

Reads the agent catalog (sonic_agents) and refreshes the aggregate
counters the learning ledger maintains on each agent row.
"""

from typing import Any, Dict, List, Sequence

from atlas.models.entities import Agent, AgentStatus
from atlas.repositories.base import BaseRepository

CATALOG_COLUMNS = (
    "id, name, sector, description, capabilities, status, total_tasks_completed, "
    "success_rate, specialization_level, task_specializations, preferred_task_types, "
    "learning_velocity"
)


class AgentRepository(BaseRepository[Agent]):
    """
    Repository for sonic_agents.

    Agents are created out-of-band and never deleted here.
    """

    table_name = "sonic_agents"
    model_class = Agent

    async def list_catalog(self, limit: int = 50) -> List[Agent]:
        """
        Get the available-agent catalog with performance metrics.

        Args:
            limit: Maximum agents to return

        Returns:
            Agents, unordered
        """
        if not self.client:
            return []

        query = self.client.table(self.table_name).select(CATALOG_COLUMNS).limit(limit)
        rows = await self._execute(query, "list_catalog")
        return [self._to_model(row) for row in rows]

    async def get_by_ids(self, agent_ids: Sequence[str]) -> List[Agent]:
        """Fetch several agents in one round trip."""
        if not self.client or not agent_ids:
            return []

        query = self.client.table(self.table_name).select("*").in_("id", list(agent_ids))
        rows = await self._execute(query, "get_by_ids")
        return [self._to_model(row) for row in rows]

    async def get_routable_by_ids(self, agent_ids: Sequence[str]) -> Dict[str, Agent]:
        """Fetch agents by id, dropping DORMANT ones."""
        agents = await self.get_by_ids(agent_ids)
        return {a.id: a for a in agents if a.status.upper() != AgentStatus.DORMANT.value}

    async def update_aggregates(self, agent_id: str, updates: Dict[str, Any]) -> None:
        """Write learning aggregates (counters, specialization map) to an agent."""
        await self.update(agent_id, updates)
