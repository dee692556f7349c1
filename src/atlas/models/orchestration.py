"""
Atlas Orchestration Models
==========================

Transient types that flow between the routing tiers:

    IntentResult -> RouteDecision -> EnrichmentResult -> OrchestrationPlan

None of these are persisted directly. A plan only leaves a trace through the
learning ledger's memory and learning-event writes.
"""

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from atlas.models.entities import clamp_unit

RoutingTier = Literal["tier1", "tier2", "tier3"]
SpecializationMatch = Literal["high", "medium", "low", "none"]


def specialization_match_for(score: float) -> SpecializationMatch:
    """Bucket a specialization score into high/medium/low."""
    if score >= 0.8:
        return "high"
    if score >= 0.5:
        return "medium"
    return "low"


# =============================================================================
# INTENT
# =============================================================================


class IntentResult(BaseModel):
    """Coarse classification of a free-text request."""

    task_type: str = "unknown"
    domain: Optional[str] = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    requires_llm: bool = True
    matched_keywords: List[str] = Field(default_factory=list)

    def is_confident(self, floor: float = 0.7) -> bool:
        """True when the intent alone may drive Tier 1 routing."""
        return self.confidence >= floor and not self.requires_llm


# =============================================================================
# TIER 1
# =============================================================================


class RankedSpecialist(BaseModel):
    """A candidate agent ranked for one task type."""

    agent_id: str
    agent_name: str
    sector: Optional[str] = None
    specialization_score: float = Field(default=0.0, ge=0.0, le=1.0)
    success_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    avg_confidence: float = 0.0
    total_tasks: int = 0
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    routing_reason: str = ""
    requires_llm_fallback: bool = False


class RouteDecision(BaseModel):
    """
    Outcome of a deterministic route lookup.

    ``tier1_hit`` means the ranked list is final. Otherwise the candidates
    (possibly empty) seed the reasoning tier.
    """

    task_type: str
    candidates: List[RankedSpecialist] = Field(default_factory=list)
    tier1_hit: bool = False

    @property
    def best_score(self) -> float:
        return self.candidates[0].specialization_score if self.candidates else 0.0

    @property
    def seed_tier(self) -> RoutingTier:
        """Tier a non-terminal decision hands to the reasoning tier."""
        return "tier2" if self.best_score > 0 else "tier3"


# =============================================================================
# ENRICHMENT
# =============================================================================


class ScoredMemory(BaseModel):
    """A memory annotated with its computed relevance to the current query."""

    memory_type: str
    content: str
    importance_score: float = 0.5
    relevance: float = Field(default=0.0, ge=0.0, le=1.0)


class SpecializationSummary(BaseModel):
    task_type: str
    score: float = Field(default=0.0, ge=0.0, le=1.0)
    successes: int = 0


class SynergyPartner(BaseModel):
    agent_id: str
    agent_name: Optional[str] = None
    synergy_score: float = Field(default=0.5, ge=0.0, le=1.0)
    interaction_count: int = 0


class AgentEnrichment(BaseModel):
    """Grounding context gathered for one priority agent."""

    agent_id: str
    agent_name: str
    memories: List[ScoredMemory] = Field(default_factory=list)
    specializations: List[SpecializationSummary] = Field(default_factory=list)
    partners: List[SynergyPartner] = Field(default_factory=list)
    degraded: bool = False


class EnrichmentResult(BaseModel):
    agents: List[AgentEnrichment] = Field(default_factory=list)

    @property
    def memory_enabled(self) -> bool:
        return any(a.memories for a in self.agents)

    @property
    def degraded_agents(self) -> List[str]:
        return [a.agent_id for a in self.agents if a.degraded]


# =============================================================================
# PLAN
# =============================================================================


class RecommendedAgent(BaseModel):
    """
    One entry of an orchestration plan.

    Produced either by Tier 1 directly or parsed from model output, so every
    field is lenient. Model output may name an agent without a usable id.
    """

    model_config = ConfigDict(extra="ignore")

    agent_id: Optional[str] = None
    agent_name: Optional[str] = None
    role: str = ""
    confidence: Optional[float] = None
    requires_approval: bool = True
    reasoning: Optional[str] = None
    specialization_match: Optional[str] = None

    @field_validator("agent_id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> Any:
        return str(v) if v is not None else v

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v: Any) -> Optional[float]:
        if v is None or v == "":
            return None
        if isinstance(v, bool) or not isinstance(v, (int, float, str)):
            raise ValueError(f"confidence must be a number, got {type(v).__name__}")
        return clamp_unit(v)


class OrchestrationPlan(BaseModel):
    """Structured output of a routing decision."""

    model_config = ConfigDict(extra="ignore")

    recommended_agents: List[RecommendedAgent] = Field(default_factory=list)
    orchestration_plan: Optional[str] = None
    task_type: Optional[str] = None
    estimated_duration: Optional[str] = None
    learning_opportunity: Optional[str] = None
    routing_tier: RoutingTier = "tier3"
    routing_time_ms: Optional[float] = None
    llm_bypassed: bool = False

    @field_validator("recommended_agents", mode="before")
    @classmethod
    def none_to_list(cls, v: Any) -> Any:
        return v or []

    @model_validator(mode="after")
    def tier1_bypasses_llm(self) -> "OrchestrationPlan":
        if self.routing_tier == "tier1":
            self.llm_bypassed = True
        return self


class ReasoningResult(BaseModel):
    """Everything the reasoning tier learned, plan or not."""

    plan: Optional[OrchestrationPlan] = None
    available_agents: int = 0
    memory_enabled: bool = False
    raw_response: str = ""
