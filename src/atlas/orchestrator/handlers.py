"""
RPC action handlers.

``dispatch`` maps each typed request variant to its handler. Handlers take
the request and a ``HandlerContext`` and return a ``HandlerResult``; none of
them touch HTTP.
"""

import logging
from collections import defaultdict
from typing import Awaitable, Callable, Dict, List, Type

from atlas.api.errors import NotFoundError
from atlas.models.entities import PerformanceRecord, TaskScore
from atlas.models.requests import (
    AgentMemoryResponse,
    AgentProfileResponse,
    DnaProfile,
    GetAgentMemoryRequest,
    GetAgentProfileRequest,
    GetRoutingStatsRequest,
    OrchestrateRequest,
    RecordPerformanceRequest,
    RecordPerformanceResponse,
    RoutingStatsResponse,
    RpcModel,
    TaskTypeRoutingStats,
    UpdateRelationshipRequest,
    UpdateRelationshipResponse,
)
from atlas.orchestrator.engine import HandlerContext, HandlerResult, orchestrate

logger = logging.getLogger(__name__)

PROFILE_ROWS = 10
TIER2_SPECIALIZATION = 0.4


async def record_performance(
    ctx: HandlerContext, request: RecordPerformanceRequest
) -> HandlerResult:
    record = PerformanceRecord(
        id=request.record_id,
        agent_id=request.agent_id,
        user_id=request.user_id,
        task_type=request.task_type,
        task_description=request.task_description,
        success=request.success,
        execution_time_ms=request.execution_time_ms,
        confidence_score=request.confidence_score,
        error_type=request.error_type,
        context=request.context,
    )
    outcome = await ctx.ledger.record_performance(record)

    message = (
        "Performance already recorded"
        if outcome.duplicate
        else "Performance recorded and learning updated"
    )
    return HandlerResult(
        body=RecordPerformanceResponse(
            performance=outcome.performance,
            memory=outcome.memory,
            duplicate=outcome.duplicate,
            message=message,
        ),
        deferred=outcome.deferred,
    )


async def update_relationship(
    ctx: HandlerContext, request: UpdateRelationshipRequest
) -> HandlerResult:
    outcome = await ctx.ledger.update_relationship(
        request.agent_a_id,
        request.agent_b_id,
        request.success,
        interaction_id=request.interaction_id,
    )
    return HandlerResult(
        body=UpdateRelationshipResponse(
            relationship=outcome.relationship,
            created=outcome.created,
            duplicate=outcome.duplicate,
        )
    )


async def get_agent_memory(ctx: HandlerContext, request: GetAgentMemoryRequest) -> HandlerResult:
    memories = await ctx.memories.recent_for_agent(
        request.agent_id, limit=request.limit, memory_type=request.memory_type
    )
    return HandlerResult(body=AgentMemoryResponse(memories=memories))


async def get_agent_profile(ctx: HandlerContext, request: GetAgentProfileRequest) -> HandlerResult:
    """Agent row with its specializations, recent outcomes and best partners."""
    agent = await ctx.agents.get_by_id(request.agent_id)
    if agent is None:
        raise NotFoundError("Agent", request.agent_id)

    specializations = await ctx.task_scores.for_agent(agent.id, limit=PROFILE_ROWS)
    recent = await ctx.performance.recent_for_agent(agent.id, limit=PROFILE_ROWS)
    relationships = await ctx.relationships.for_agent(agent.id, limit=PROFILE_ROWS)

    return HandlerResult(
        body=AgentProfileResponse(
            agent=agent,
            task_specializations=specializations,
            recent_performance=recent,
            relationships=relationships,
            dna_profile=DnaProfile(
                learning_velocity=agent.learning_velocity,
                specialization_level=agent.specialization_level,
                success_rate=agent.success_rate,
                total_experience=agent.total_tasks_completed,
            ),
        )
    )


def routing_stats(rows: List[TaskScore], threshold: float = 0.7) -> List[TaskTypeRoutingStats]:
    """Summarize per task type how far routing can get without reasoning."""
    by_task: Dict[str, List[float]] = defaultdict(list)
    for row in rows:
        if row.specialization_score > 0:
            by_task[row.task_type].append(row.specialization_score)

    stats = []
    for task_type, scores in sorted(by_task.items()):
        best = max(scores)
        if best >= threshold:
            tier = "tier1"
        elif best >= TIER2_SPECIALIZATION:
            tier = "tier2"
        else:
            tier = "tier3"
        stats.append(
            TaskTypeRoutingStats(
                task_type=task_type,
                total_specialists=len(scores),
                avg_specialization=round(sum(scores) / len(scores), 3),
                can_tier1_route=best >= threshold,
                recommended_tier=tier,
            )
        )
    return stats


async def get_routing_stats(ctx: HandlerContext, request: GetRoutingStatsRequest) -> HandlerResult:
    rows = await ctx.task_scores.list_all()
    stats = routing_stats(rows, threshold=ctx.config.tier1.confidence_threshold)
    return HandlerResult(body=RoutingStatsResponse(stats=stats))


Handler = Callable[[HandlerContext, RpcModel], Awaitable[HandlerResult]]

HANDLERS: Dict[Type[RpcModel], Handler] = {
    OrchestrateRequest: orchestrate,
    RecordPerformanceRequest: record_performance,
    UpdateRelationshipRequest: update_relationship,
    GetAgentMemoryRequest: get_agent_memory,
    GetAgentProfileRequest: get_agent_profile,
    GetRoutingStatsRequest: get_routing_stats,
}


async def dispatch(ctx: HandlerContext, request: RpcModel) -> HandlerResult:
    """Run the handler for a parsed request variant."""
    handler = HANDLERS[type(request)]
    logger.debug(f"Dispatching {request.action} to {handler.__name__}")
    return await handler(ctx, request)
