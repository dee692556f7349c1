"""
Atlas RPC Request and Response Models
=====================================

The orchestrator exposes a single generic RPC endpoint. The body carries an
``action`` tag and the action's fields in camelCase:

    {"action": "orchestrate", "query": "...", "userId": "...", "sessionId": "..."}

Each action is a closed, typed variant. ``parse_rpc_request`` decodes and
validates the raw body in one step; nothing downstream sees an untyped dict.

Actions:
- orchestrate              route a free-text request to agents
- record_performance       append a task outcome to the learning ledger
- update_relationship      update the pair synergy after a joint task
- get_agent_memory         list an agent's memories, newest first
- get_agent_profile        agent profile with specializations and relationships
- get_routing_stats        per task type tier readiness
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationInfo, field_validator

from atlas.models.entities import (
    Agent,
    Memory,
    PerformanceRecord,
    Relationship,
    TaskScore,
)
from atlas.models.orchestration import OrchestrationPlan, RankedSpecialist, RoutingTier


class RpcModel(BaseModel):
    """Base for camelCase wire models that also accept snake_case names."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


# =============================================================================
# REQUEST VARIANTS
# =============================================================================


class OrchestrateRequest(RpcModel):
    """Route a natural-language request."""

    action: Literal["orchestrate", "orchestrate_agents"]
    query: str = Field(..., min_length=1, max_length=8000)
    task_type: Optional[str] = Field(None, alias="taskType")
    user_id: str = Field(..., min_length=1, alias="userId")
    session_id: Optional[str] = Field(None, alias="sessionId")

    @field_validator("task_type")
    @classmethod
    def blank_task_type_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class RecordPerformanceRequest(RpcModel):
    """Report the outcome of a task an agent executed."""

    action: Literal["record_performance", "record_agent_performance"]
    agent_id: str = Field(..., min_length=1, alias="agentId")
    user_id: str = Field(..., min_length=1, alias="userId")
    task_type: str = Field(..., min_length=1, alias="taskType")
    success: bool
    task_description: Optional[str] = Field(None, alias="taskDescription")
    execution_time_ms: Optional[int] = Field(None, ge=0, alias="executionTimeMs")
    confidence_score: Optional[float] = Field(None, ge=0.0, le=1.0, alias="confidenceScore")
    error_type: Optional[str] = Field(None, alias="errorType")
    context: Dict[str, Any] = Field(default_factory=dict)
    record_id: Optional[str] = Field(
        None, alias="recordId", description="Client-supplied id that makes retries idempotent"
    )


class UpdateRelationshipRequest(RpcModel):
    """Report a joint outcome for two agents."""

    action: Literal["update_relationship", "update_agent_relationship"]
    agent_a_id: str = Field(..., min_length=1, alias="agentAId")
    agent_b_id: str = Field(..., min_length=1, alias="agentBId")
    success: bool
    user_id: Optional[str] = Field(None, alias="userId")
    interaction_id: Optional[str] = Field(
        None, alias="interactionId", description="Repeats of the last applied id are skipped"
    )

    @field_validator("agent_b_id")
    @classmethod
    def distinct_agents(cls, v: str, info: ValidationInfo) -> str:
        if v == info.data.get("agent_a_id"):
            raise ValueError("agentAId and agentBId must differ")
        return v


class GetAgentMemoryRequest(RpcModel):
    action: Literal["get_agent_memory"]
    agent_id: str = Field(..., min_length=1, alias="agentId")
    memory_type: Optional[str] = Field(None, alias="memoryType")
    limit: int = Field(default=20, ge=1, le=200)
    user_id: Optional[str] = Field(None, alias="userId")


class GetAgentProfileRequest(RpcModel):
    action: Literal["get_agent_profile", "get_sonic_dna"]
    agent_id: str = Field(..., min_length=1, alias="agentId")
    user_id: Optional[str] = Field(None, alias="userId")


class GetRoutingStatsRequest(RpcModel):
    action: Literal["get_routing_stats"]
    user_id: Optional[str] = Field(None, alias="userId")


RpcRequest = Annotated[
    Union[
        OrchestrateRequest,
        RecordPerformanceRequest,
        UpdateRelationshipRequest,
        GetAgentMemoryRequest,
        GetAgentProfileRequest,
        GetRoutingStatsRequest,
    ],
    Field(discriminator="action"),
]

_rpc_adapter: TypeAdapter = TypeAdapter(RpcRequest)


def parse_rpc_request(body: Any) -> RpcRequest:
    """
    Decode a raw JSON body into its typed request variant.

    Raises:
        pydantic.ValidationError: On a missing/unknown action or bad fields
    """
    return _rpc_adapter.validate_python(body)


# =============================================================================
# RESPONSES
# =============================================================================


class OrchestrateResponse(RpcModel):
    """Success envelope for ``orchestrate``. A null plan is a valid outcome."""

    orchestration: Optional[OrchestrationPlan] = None
    available_agents: int = Field(0, alias="availableAgents")
    specialized_agents: List[RankedSpecialist] = Field(
        default_factory=list, alias="specializedAgents"
    )
    memory_enabled: bool = Field(False, alias="memoryEnabled")
    routing_tier: RoutingTier = Field(..., alias="routingTier")
    routing_time_ms: float = Field(..., alias="routingTimeMs")
    llm_bypassed: bool = Field(False, alias="llmBypassed")
    task_type: Optional[str] = Field(None, alias="taskType")


class RecordPerformanceResponse(RpcModel):
    success: bool = True
    performance: PerformanceRecord
    memory: Optional[Memory] = None
    duplicate: bool = False
    message: str


class UpdateRelationshipResponse(RpcModel):
    relationship: Relationship
    created: bool = False
    duplicate: bool = False


class AgentMemoryResponse(RpcModel):
    memories: List[Memory] = Field(default_factory=list)


class DnaProfile(RpcModel):
    learning_velocity: float = Field(0.5, alias="learningVelocity")
    specialization_level: str = Field("novice", alias="specializationLevel")
    success_rate: float = Field(0.0, alias="successRate")
    total_experience: int = Field(0, alias="totalExperience")


class AgentProfileResponse(RpcModel):
    agent: Agent
    task_specializations: List[TaskScore] = Field(default_factory=list, alias="taskSpecializations")
    recent_performance: List[PerformanceRecord] = Field(
        default_factory=list, alias="recentPerformance"
    )
    relationships: List[Relationship] = Field(default_factory=list)
    dna_profile: DnaProfile = Field(alias="dnaProfile")


class TaskTypeRoutingStats(RpcModel):
    task_type: str = Field(alias="taskType")
    total_specialists: int = Field(0, alias="totalSpecialists")
    avg_specialization: float = Field(0.0, alias="avgSpecialization")
    can_tier1_route: bool = Field(False, alias="canTier1Route")
    recommended_tier: RoutingTier = Field("tier3", alias="recommendedTier")


class RoutingStatsResponse(RpcModel):
    stats: List[TaskTypeRoutingStats] = Field(default_factory=list)
