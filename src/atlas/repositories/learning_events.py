"""Learning Event Repository (agent_learning_events, append-only)."""

from atlas.models.entities import LearningEvent
from atlas.repositories.base import BaseRepository


class LearningEventRepository(BaseRepository[LearningEvent]):
    """Repository for agent_learning_events."""

    table_name = "agent_learning_events"
    model_class = LearningEvent

    async def append(self, event: LearningEvent) -> LearningEvent:
        return await self.create(event)
