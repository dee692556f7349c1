"""Deterministic routing (Tier 1).

Ranks agents for a task type straight from the specialization store:

    specialization_score DESC, success_rate DESC

Decision rule:
- Top candidate scores >= threshold and is not erratic: terminal Tier 1 plan
- Top candidate scores > 0 but misses the bar: candidates seed Tier 3 (tier2)
- No rows: empty seed, Tier 3 reasons over the whole catalog

A candidate is erratic (requires_llm_fallback) when its historical outcome
confidence for the task type averages below the erratic floor.
"""

import logging
import time
from typing import List, Optional

from atlas.config.loader import Tier1Config
from atlas.models.orchestration import (
    OrchestrationPlan,
    RankedSpecialist,
    RecommendedAgent,
    RouteDecision,
    specialization_match_for,
)
from atlas.repositories.agents import AgentRepository
from atlas.repositories.task_scores import TaskScoreRepository

logger = logging.getLogger(__name__)

TIER1_REASON = "Tier 1: Deterministic routing via proven specialization"
TIER2_REASON = "Tier 2: Partial match - LLM refinement recommended"

# Over-fetch so DORMANT agents can be dropped without starving the list
_FETCH_FACTOR = 3


class DeterministicRouter:
    """Tier 1 specialist lookup over the specialization store."""

    def __init__(
        self,
        task_scores: TaskScoreRepository,
        agents: AgentRepository,
        config: Optional[Tier1Config] = None,
    ):
        self.task_scores = task_scores
        self.agents = agents
        self.config = config or Tier1Config()

    async def route(
        self,
        task_type: str,
        threshold: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> RouteDecision:
        """Rank specialists for a task type and decide whether Tier 1 terminates.

        Args:
            task_type: Task type to route
            threshold: Minimum specialization score (default from config)
            limit: Maximum ranked candidates (default from config)

        Returns:
            RouteDecision with candidates best-first
        """
        threshold = self.config.confidence_threshold if threshold is None else threshold
        limit = self.config.route_limit if limit is None else limit

        rows = await self.task_scores.ranked_for_task(task_type, limit=limit * _FETCH_FACTOR)
        if not rows:
            logger.info(f"Tier 1: no specialization rows for '{task_type}'")
            return RouteDecision(task_type=task_type)

        agents = await self.agents.get_routable_by_ids([row.agent_id for row in rows])

        candidates: List[RankedSpecialist] = []
        for row in rows:
            agent = agents.get(row.agent_id)
            if agent is None:
                continue

            erratic = 0 < row.avg_confidence < self.config.erratic_confidence_floor
            meets_bar = row.specialization_score >= threshold
            candidates.append(
                RankedSpecialist(
                    agent_id=agent.id,
                    agent_name=agent.name,
                    sector=agent.sector,
                    specialization_score=row.specialization_score,
                    success_rate=agent.success_rate,
                    avg_confidence=row.avg_confidence,
                    total_tasks=row.total_tasks,
                    confidence=row.specialization_score,
                    routing_reason=TIER1_REASON if meets_bar and not erratic else TIER2_REASON,
                    requires_llm_fallback=erratic or not meets_bar,
                )
            )

        candidates.sort(key=lambda c: (c.specialization_score, c.success_rate), reverse=True)
        candidates = candidates[:limit]

        top = candidates[0] if candidates else None
        tier1_hit = bool(
            top and top.specialization_score >= threshold and not top.requires_llm_fallback
        )

        if tier1_hit:
            # Only proven specialists make the final plan
            candidates = [c for c in candidates if not c.requires_llm_fallback]
            logger.info(
                f"Tier 1 hit for '{task_type}': {len(candidates)} specialists, "
                f"top={top.agent_name} ({top.specialization_score:.2f})"
            )
        elif top:
            logger.info(
                f"Tier 1 miss for '{task_type}': best={top.specialization_score:.2f} "
                f"(threshold {threshold:.2f}, erratic={top.requires_llm_fallback})"
            )

        return RouteDecision(task_type=task_type, candidates=candidates, tier1_hit=tier1_hit)

    def build_plan(self, decision: RouteDecision, started_at: float) -> OrchestrationPlan:
        """Turn a terminal Tier 1 decision into an orchestration plan.

        Args:
            decision: A decision with ``tier1_hit`` set
            started_at: ``time.perf_counter()`` at request start

        Returns:
            Tier 1 plan with llm_bypassed set
        """
        task_type = decision.task_type
        recommended = [
            RecommendedAgent(
                agent_id=c.agent_id,
                agent_name=c.agent_name,
                role=f"{c.sector or 'General'} specialist for {task_type}",
                confidence=c.confidence,
                requires_approval=c.confidence < self.config.approval_confidence,
                reasoning=c.routing_reason,
                specialization_match=specialization_match_for(c.specialization_score),
            )
            for c in decision.candidates
        ]

        return OrchestrationPlan(
            recommended_agents=recommended,
            orchestration_plan=(
                f"Tier 1 deterministic routing: {len(recommended)} pre-qualified specialists "
                "assigned based on proven track record"
            ),
            task_type=task_type,
            estimated_duration="instant",
            learning_opportunity=f"Reinforce {task_type} specialization",
            routing_tier="tier1",
            routing_time_ms=elapsed_ms(started_at),
            llm_bypassed=True,
        )


def elapsed_ms(started_at: float) -> float:
    """Milliseconds since a perf_counter reading, rounded to 0.01."""
    return round((time.perf_counter() - started_at) * 1000, 2)
