"""
Atlas Store Row Models
======================

Typed rows for every table the routing engine reads or writes. Rows are
validated with ``model_validate`` at the repository boundary so the engine
never handles untyped dictionaries.

Tables:
- sonic_agents           Agent
- agent_task_scores      TaskScore
- agent_performance      PerformanceRecord
- agent_memory           Memory
- agent_relationships    Relationship
- agent_learning_events  LearningEvent
- atlas_conversations    ConversationTurn
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# =============================================================================
# ENUMS
# =============================================================================


class AgentStatus(str, Enum):
    """Lifecycle status of an agent. DORMANT agents are never routed to."""

    ACTIVE = "ACTIVE"
    IDLE = "IDLE"
    PROCESSING = "PROCESSING"
    DORMANT = "DORMANT"


class SpecializationLevel(str, Enum):
    """Ordinal competence level, novice to expert, by tasks completed."""

    NOVICE = "novice"
    APPRENTICE = "apprentice"
    COMPETENT = "competent"
    PROFICIENT = "proficient"
    EXPERT = "expert"

    @classmethod
    def for_experience(cls, total_tasks: int) -> "SpecializationLevel":
        if total_tasks >= 100:
            return cls.EXPERT
        if total_tasks >= 50:
            return cls.PROFICIENT
        if total_tasks >= 20:
            return cls.COMPETENT
        if total_tasks >= 5:
            return cls.APPRENTICE
        return cls.NOVICE


class MemoryType(str, Enum):
    """Kinds of retained agent memory."""

    SUCCESS = "success"
    ERROR = "error"
    INTERACTION = "interaction"


class LearningEventType(str, Enum):
    """Learning events appended alongside memories."""

    SKILL_GAINED = "skill_gained"
    SPECIALIZATION_UP = "specialization_up"
    RELATIONSHIP_FORMED = "relationship_formed"


def clamp_unit(value: float) -> float:
    """Clamp a score into [0, 1]."""
    return max(0.0, min(1.0, float(value)))


# =============================================================================
# ROW MODELS
# =============================================================================


class Agent(BaseModel):
    """An autonomous agent that can be assigned tasks."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    sector: Optional[str] = Field(None, description="Sector/domain tag")
    description: Optional[str] = None
    capabilities: List[str] = Field(default_factory=list)
    status: str = AgentStatus.ACTIVE.value
    total_tasks_completed: int = 0
    success_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    specialization_level: str = SpecializationLevel.NOVICE.value
    learning_velocity: float = 0.5
    task_specializations: Dict[str, float] = Field(default_factory=dict)
    preferred_task_types: List[str] = Field(default_factory=list)
    user_id: Optional[str] = None

    @field_validator("capabilities", "preferred_task_types", mode="before")
    @classmethod
    def none_to_list(cls, v: Any) -> Any:
        return v or []

    @field_validator("task_specializations", mode="before")
    @classmethod
    def none_to_dict(cls, v: Any) -> Any:
        return v or {}

    @field_validator("success_rate", mode="before")
    @classmethod
    def clamp_rate(cls, v: Any) -> float:
        return clamp_unit(v or 0.0)

    @field_validator("learning_velocity", mode="before")
    @classmethod
    def default_velocity(cls, v: Any) -> float:
        return 0.5 if v is None else float(v)

    @property
    def is_dormant(self) -> bool:
        return self.status.upper() == AgentStatus.DORMANT.value


class TaskScore(BaseModel):
    """
    Per-agent, per-task-type competence row.

    One row per (agent_id, task_type). ``version`` guards compare-and-swap
    updates; ``last_performance_id`` makes recalculation idempotent.
    """

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    agent_id: str
    task_type: str
    specialization_score: float = Field(default=0.0, ge=0.0, le=1.0)
    success_count: int = 0
    failure_count: int = 0
    total_execution_time_ms: int = 0
    avg_confidence: float = 0.0
    last_performed_at: Optional[datetime] = None
    last_performance_id: Optional[str] = None
    version: int = 0

    @field_validator("specialization_score", mode="before")
    @classmethod
    def clamp_score(cls, v: Any) -> float:
        return clamp_unit(v or 0.0)

    @field_validator("avg_confidence", mode="before")
    @classmethod
    def none_to_zero(cls, v: Any) -> float:
        return float(v or 0.0)

    @property
    def total_tasks(self) -> int:
        return self.success_count + self.failure_count

    @property
    def success_rate(self) -> float:
        return self.success_count / self.total_tasks if self.total_tasks else 0.0


class PerformanceRecord(BaseModel):
    """Immutable task outcome. Written once, never mutated."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    agent_id: str
    user_id: str
    task_type: str
    task_description: Optional[str] = None
    success: bool
    execution_time_ms: Optional[int] = Field(None, ge=0)
    confidence_score: Optional[float] = Field(None, ge=0.0, le=1.0)
    error_type: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None


class Memory(BaseModel):
    """Importance-weighted textual record used to ground reasoning."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    agent_id: str
    user_id: str
    memory_type: str = MemoryType.INTERACTION.value
    content: str
    context: Dict[str, Any] = Field(default_factory=dict)
    importance_score: float = Field(default=0.5, ge=0.0, le=1.0)
    created_at: Optional[datetime] = None

    @field_validator("importance_score", mode="before")
    @classmethod
    def clamp_importance(cls, v: Any) -> float:
        return clamp_unit(0.5 if v is None else v)

    @field_validator("context", mode="before")
    @classmethod
    def none_to_dict(cls, v: Any) -> Any:
        return v or {}


class Relationship(BaseModel):
    """Undirected agent pair; ``agent_a_id`` is always the smaller id."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    agent_a_id: str
    agent_b_id: str
    relationship_type: str = "collaboration"
    synergy_score: float = Field(default=0.5, ge=0.0, le=1.0)
    interaction_count: int = 0
    success_rate: Optional[float] = Field(None, ge=0.0, le=1.0)
    last_interaction_id: Optional[str] = None
    version: int = 0

    @field_validator("synergy_score", mode="before")
    @classmethod
    def clamp_synergy(cls, v: Any) -> float:
        return clamp_unit(0.5 if v is None else v)

    def partner_of(self, agent_id: str) -> str:
        return self.agent_b_id if self.agent_a_id == agent_id else self.agent_a_id


class LearningEvent(BaseModel):
    """Append-only learning signal distinct from Memory."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    agent_id: str
    event_type: str
    event_data: Dict[str, Any] = Field(default_factory=dict)
    impact_score: float = 0.0
    created_at: Optional[datetime] = None


class ConversationTurn(BaseModel):
    """One user/assistant exchange in atlas_conversations."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    user_id: str
    session_id: Optional[str] = None
    role: str
    content: str
    created_at: Optional[datetime] = None
