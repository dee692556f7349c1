from atlas.models.entities import (
    Agent,
    AgentStatus,
    ConversationTurn,
    LearningEvent,
    LearningEventType,
    Memory,
    MemoryType,
    PerformanceRecord,
    Relationship,
    TaskScore,
    clamp_unit,
)
from atlas.models.orchestration import (
    AgentEnrichment,
    EnrichmentResult,
    IntentResult,
    OrchestrationPlan,
    RankedSpecialist,
    ReasoningResult,
    RecommendedAgent,
    RouteDecision,
    RoutingTier,
    ScoredMemory,
    SpecializationSummary,
    SynergyPartner,
    specialization_match_for,
)
from atlas.models.requests import (
    GetAgentMemoryRequest,
    GetAgentProfileRequest,
    GetRoutingStatsRequest,
    OrchestrateRequest,
    OrchestrateResponse,
    RecordPerformanceRequest,
    RpcRequest,
    UpdateRelationshipRequest,
    parse_rpc_request,
)

__all__ = [
    "Agent",
    "AgentEnrichment",
    "AgentStatus",
    "ConversationTurn",
    "EnrichmentResult",
    "GetAgentMemoryRequest",
    "GetAgentProfileRequest",
    "GetRoutingStatsRequest",
    "IntentResult",
    "LearningEvent",
    "LearningEventType",
    "Memory",
    "MemoryType",
    "OrchestrateRequest",
    "OrchestrateResponse",
    "OrchestrationPlan",
    "PerformanceRecord",
    "RankedSpecialist",
    "ReasoningResult",
    "RecommendedAgent",
    "RecordPerformanceRequest",
    "Relationship",
    "RouteDecision",
    "RoutingTier",
    "RpcRequest",
    "ScoredMemory",
    "SpecializationSummary",
    "SynergyPartner",
    "TaskScore",
    "UpdateRelationshipRequest",
    "clamp_unit",
    "parse_rpc_request",
]
