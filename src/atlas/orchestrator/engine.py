"""
Orchestration engine.

Request pipeline for ``orchestrate``:

    start -> intent-classified -> tier1-terminal
                               -> tier2-seeded -> tier3-terminal
                               -> tier3-terminal

- A caller-supplied task type skips intent classification
- Tier 1 runs only when a task type is known with enough confidence; a hit
  terminates without calling the completion service
- Otherwise the reasoning tier runs, seeded with whatever Tier 1 ranked
- Terminal responses carry routing_tier and routing_time_ms; only Tier 1
  sets llm_bypassed

All collaborators arrive through a ``HandlerContext``; the engine holds no
state between requests.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, List, Optional

from pydantic import BaseModel

from atlas.config.loader import RoutingConfig, load_routing_config
from atlas.models.orchestration import RouteDecision, RoutingTier
from atlas.models.requests import OrchestrateRequest, OrchestrateResponse
from atlas.orchestrator.completion import CompletionService, LangChainCompletionService
from atlas.orchestrator.context_enricher import ContextEnricher
from atlas.orchestrator.deferred import DeferredWrite
from atlas.orchestrator.intent_classifier import IntentClassifier
from atlas.orchestrator.ledger import LearningLedger
from atlas.orchestrator.reasoning import ReasoningOrchestrator
from atlas.orchestrator.router import DeterministicRouter, elapsed_ms
from atlas.repositories import (
    AgentRepository,
    ConversationRepository,
    LearningEventRepository,
    MemoryRepository,
    PerformanceRepository,
    RelationshipRepository,
    TaskScoreRepository,
)
from atlas.utils.logging_config import set_request_context, timed_operation

logger = logging.getLogger(__name__)


# =============================================================================
# Handler plumbing
# =============================================================================


@dataclass
class HandlerResult:
    """Primary response plus the best-effort writes to run after it."""

    body: BaseModel
    status_code: int = 200
    deferred: List[DeferredWrite] = field(default_factory=list)

    def payload(self) -> Any:
        return self.body.model_dump(mode="json", by_alias=True)


@dataclass
class HandlerContext:
    """Every collaborator a handler may use, built once per request."""

    agents: AgentRepository
    task_scores: TaskScoreRepository
    performance: PerformanceRepository
    memories: MemoryRepository
    relationships: RelationshipRepository
    events: LearningEventRepository
    conversations: ConversationRepository
    completion: CompletionService
    config: RoutingConfig
    classifier: IntentClassifier = field(default_factory=IntentClassifier)

    def __post_init__(self):
        self.router = DeterministicRouter(self.task_scores, self.agents, self.config.tier1)
        self.enricher = ContextEnricher(
            self.memories, self.task_scores, self.relationships, self.config.enrichment
        )
        self.reasoning = ReasoningOrchestrator(
            self.completion,
            self.agents,
            self.conversations,
            self.enricher,
            self.config.reasoning,
        )
        self.ledger = LearningLedger(
            self.performance,
            self.memories,
            self.task_scores,
            self.relationships,
            self.events,
            self.agents,
            self.config.learning,
            self.config.reasoning,
        )

    @classmethod
    def from_client(
        cls,
        client,
        completion: Optional[CompletionService] = None,
        config: Optional[RoutingConfig] = None,
    ) -> "HandlerContext":
        """Build a context whose repositories share one Supabase client."""
        return cls(
            agents=AgentRepository(client),
            task_scores=TaskScoreRepository(client),
            performance=PerformanceRepository(client),
            memories=MemoryRepository(client),
            relationships=RelationshipRepository(client),
            events=LearningEventRepository(client),
            conversations=ConversationRepository(client),
            completion=completion or LangChainCompletionService(),
            config=config or load_routing_config(),
        )


# =============================================================================
# Orchestrate
# =============================================================================


def _resolve_task_type(ctx: HandlerContext, request: OrchestrateRequest) -> Optional[str]:
    """Task type to route on, or None when only the reasoning tier can decide."""
    if request.task_type:
        logger.info(f"Caller supplied task_type '{request.task_type}'; skipping intent parse")
        return request.task_type

    intent = ctx.classifier.classify(request.query)
    if intent.is_confident(ctx.config.tier1.intent_confidence_floor):
        logger.info(
            f"Intent classified as '{intent.task_type}' "
            f"(confidence {intent.confidence:.2f}, keywords={intent.matched_keywords})"
        )
        return intent.task_type

    logger.info(
        f"Intent not confident (task_type={intent.task_type}, "
        f"confidence {intent.confidence:.2f}); deferring to reasoning tier"
    )
    return None


async def orchestrate(ctx: HandlerContext, request: OrchestrateRequest) -> HandlerResult:
    """
    Route one request to agents.

    Raises:
        DatabaseError: If the specialization store or catalog cannot be read
        CompletionServiceError: If the reasoning tier's completion call fails
    """
    started_at = time.perf_counter()
    task_type = _resolve_task_type(ctx, request)

    decision: Optional[RouteDecision] = None
    if task_type:
        with timed_operation("tier1_route", logger):
            decision = await ctx.router.route(task_type)

    if decision is not None and decision.tier1_hit:
        set_request_context(routing_tier="tier1")
        plan = ctx.router.build_plan(decision, started_at)
        response = OrchestrateResponse(
            orchestration=plan,
            available_agents=len(decision.candidates),
            specialized_agents=decision.candidates,
            memory_enabled=False,
            routing_tier="tier1",
            routing_time_ms=elapsed_ms(started_at),
            llm_bypassed=True,
            task_type=task_type,
        )
        logger.info(f"Routed via tier1 in {response.routing_time_ms}ms")
        return HandlerResult(body=response)

    tier: RoutingTier = decision.seed_tier if decision is not None else "tier3"
    seeds = decision.candidates if decision is not None else []
    set_request_context(routing_tier=tier)

    with timed_operation("tier3_reason", logger, level=logging.INFO):
        result = await ctx.reasoning.reason(
            request.query,
            task_type,
            request.user_id,
            session_id=request.session_id,
            seeds=seeds,
        )

    routing_time_ms = elapsed_ms(started_at)
    deferred: List[DeferredWrite] = []
    plan = result.plan
    if plan is not None:
        plan.routing_tier = tier
        plan.routing_time_ms = routing_time_ms
        plan.llm_bypassed = False
        deferred = ctx.ledger.plan_followups(plan, request.query, request.user_id, task_type)

    response = OrchestrateResponse(
        orchestration=plan,
        available_agents=result.available_agents,
        specialized_agents=seeds,
        memory_enabled=result.memory_enabled,
        routing_tier=tier,
        routing_time_ms=routing_time_ms,
        llm_bypassed=False,
        task_type=task_type,
    )
    logger.info(
        f"Routed via {tier} in {routing_time_ms}ms "
        f"(plan={'yes' if plan else 'null'}, deferred writes={len(deferred)})"
    )
    return HandlerResult(body=response, deferred=deferred)
