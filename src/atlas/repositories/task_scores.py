"""
Task Score Repository.

The specialization store: one row per (agent_id, task_type) holding the
competence estimate the deterministic router ranks on.
"""

from typing import List, Optional

from atlas.models.entities import TaskScore
from atlas.repositories.base import BaseRepository


class TaskScoreRepository(BaseRepository[TaskScore]):
    """
    Repository for agent_task_scores.

    Supports:
    - Ranked lookup by task type (Tier 1 read path)
    - Per-agent specialization listings (enrichment, profiles)
    - Versioned updates from the learning ledger
    """

    table_name = "agent_task_scores"
    model_class = TaskScore

    async def ranked_for_task(self, task_type: str, limit: int = 5) -> List[TaskScore]:
        """
        Get rows for a task type, best specialization first.

        Args:
            task_type: Task type to rank
            limit: Maximum rows

        Returns:
            TaskScore rows ordered by specialization_score descending
        """
        if not self.client:
            return []

        query = (
            self.client.table(self.table_name)
            .select("*")
            .eq("task_type", task_type)
            .order("specialization_score", desc=True)
            .limit(limit)
        )
        rows = await self._execute(query, "ranked_for_task")
        return [self._to_model(row) for row in rows]

    async def for_agent(
        self,
        agent_id: str,
        limit: int = 3,
        min_score: Optional[float] = None,
    ) -> List[TaskScore]:
        """
        Get an agent's strongest specializations.

        Args:
            agent_id: Agent UUID
            limit: Maximum rows
            min_score: Only rows scoring strictly above this

        Returns:
            TaskScore rows ordered by specialization_score descending
        """
        if not self.client:
            return []

        query = self.client.table(self.table_name).select("*").eq("agent_id", agent_id)
        if min_score is not None:
            query = query.gt("specialization_score", min_score)

        query = query.order("specialization_score", desc=True).limit(limit)
        rows = await self._execute(query, "for_agent")
        return [self._to_model(row) for row in rows]

    async def get_for_agent_task(self, agent_id: str, task_type: str) -> Optional[TaskScore]:
        """Get the single row for an agent/task-type pair."""
        if not self.client:
            return None

        query = (
            self.client.table(self.table_name)
            .select("*")
            .eq("agent_id", agent_id)
            .eq("task_type", task_type)
            .limit(1)
        )
        rows = await self._execute(query, "get_for_agent_task")
        return self._to_model(rows[0]) if rows else None

    async def ensure_row(self, agent_id: str, task_type: str) -> TaskScore:
        """
        Get the row for a pair, creating an empty one if missing.

        Concurrent creators collapse onto the unique (agent_id, task_type) key.
        """
        existing = await self.get_for_agent_task(agent_id, task_type)
        if existing:
            return existing

        await self.create_once(
            TaskScore(agent_id=agent_id, task_type=task_type), on_conflict="agent_id,task_type"
        )
        created = await self.get_for_agent_task(agent_id, task_type)
        return created or TaskScore(agent_id=agent_id, task_type=task_type)

    async def list_all(self, limit: int = 5000) -> List[TaskScore]:
        """Get every score row, for aggregate statistics."""
        return await self.get_many({}, limit=limit)
