"""
Repository layer for the orchestration store.

One repository per table, all sharing the Supabase client handed in at
construction.
"""

from atlas.repositories.agents import AgentRepository
from atlas.repositories.base import BaseRepository, is_unique_violation
from atlas.repositories.conversation import ConversationRepository
from atlas.repositories.learning_events import LearningEventRepository
from atlas.repositories.memory import MemoryRepository
from atlas.repositories.performance import PerformanceRepository
from atlas.repositories.relationships import RelationshipRepository, canonical_pair
from atlas.repositories.task_scores import TaskScoreRepository

__all__ = [
    "AgentRepository",
    "BaseRepository",
    "ConversationRepository",
    "LearningEventRepository",
    "MemoryRepository",
    "PerformanceRepository",
    "RelationshipRepository",
    "TaskScoreRepository",
    "canonical_pair",
    "is_unique_violation",
]
