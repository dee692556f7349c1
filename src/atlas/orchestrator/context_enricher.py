"""Memory and context enrichment for the reasoning tier.

For each priority agent (at most five) gathers:
- up to 3 memories relevant to the query, each with a relevance score
- up to 3 specializations scoring above the floor, with success counts
- up to 3 high-synergy partners

Agents are enriched concurrently. If anything fails for one agent, that
agent degrades to an un-ranked specialization listing and the failure is
logged; the other agents and the request carry on. Nothing here raises.
"""

import asyncio
import logging
import re
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence

from atlas.config.loader import EnrichmentConfig
from atlas.models.entities import Agent, Memory, TaskScore
from atlas.models.orchestration import (
    AgentEnrichment,
    EnrichmentResult,
    ScoredMemory,
    SpecializationSummary,
    SynergyPartner,
)
from atlas.repositories.memory import MemoryRepository
from atlas.repositories.relationships import RelationshipRepository
from atlas.repositories.task_scores import TaskScoreRepository

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"[a-z0-9]+")

STOPWORDS: FrozenSet[str] = frozenset(
    "a an and are as at be by can for from has have i in is it me my of on or our "
    "please so that the this to up was we what when with you your".split()
)


def _normalize(token: str) -> str:
    if len(token) > 3 and token.endswith("s") and not token.endswith("ss"):
        return token[:-1]
    return token


def terms(text: str) -> FrozenSet[str]:
    """Content terms of a text: lowercased, stopwords removed, plurals folded."""
    return frozenset(
        _normalize(t) for t in _TOKEN_RE.findall((text or "").lower()) if t not in STOPWORDS
    )


def relevance(query_terms: FrozenSet[str], memory: Memory) -> float:
    """Share of query terms found in the memory content, in [0, 1]."""
    if not query_terms:
        return 0.0
    return len(query_terms & terms(memory.content)) / len(query_terms)


def rank_memories(query: str, memories: Iterable[Memory], limit: int = 3) -> List[ScoredMemory]:
    """Keep memories that match the query, most relevant first.

    Ties break on importance, then recency.
    """
    query_terms = terms(query)
    scored = []
    for memory in memories:
        score = relevance(query_terms, memory)
        if score > 0:
            scored.append((score, memory))

    scored.sort(
        key=lambda pair: (
            pair[0],
            pair[1].importance_score,
            pair[1].created_at.timestamp() if pair[1].created_at else 0.0,
        ),
        reverse=True,
    )
    return [
        ScoredMemory(
            memory_type=m.memory_type,
            content=m.content,
            importance_score=m.importance_score,
            relevance=round(score, 4),
        )
        for score, m in scored[:limit]
    ]


def _summaries(rows: Sequence[TaskScore]) -> List[SpecializationSummary]:
    return [
        SpecializationSummary(
            task_type=row.task_type, score=row.specialization_score, successes=row.success_count
        )
        for row in rows
    ]


class ContextEnricher:
    """Gathers memories, specializations and partners for candidate agents."""

    def __init__(
        self,
        memories: MemoryRepository,
        task_scores: TaskScoreRepository,
        relationships: RelationshipRepository,
        config: Optional[EnrichmentConfig] = None,
    ):
        self.memories = memories
        self.task_scores = task_scores
        self.relationships = relationships
        self.config = config or EnrichmentConfig()

    async def enrich(
        self,
        query: str,
        task_type: Optional[str],
        priority_agents: Sequence[Agent],
        agent_names: Optional[Dict[str, str]] = None,
    ) -> EnrichmentResult:
        """Enrich up to ``max_priority_agents`` agents concurrently.

        Args:
            query: The user's request text
            task_type: Detected task type, if any
            priority_agents: Agents to enrich, highest priority first
            agent_names: Optional id -> name map used to label partners

        Returns:
            EnrichmentResult in priority order; degraded agents are flagged
        """
        selected = list(priority_agents)[: self.config.max_priority_agents]
        if not selected:
            return EnrichmentResult()

        names = agent_names or {}
        outcomes = await asyncio.gather(
            *(self._enrich_agent(query, agent, names) for agent in selected),
            return_exceptions=True,
        )

        enriched: List[AgentEnrichment] = []
        for agent, outcome in zip(selected, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(
                    f"Enrichment degraded for agent {agent.name} ({agent.id}): {outcome}"
                )
                outcome = await self._fallback(agent)
            enriched.append(outcome)

        result = EnrichmentResult(agents=enriched)
        logger.info(
            f"Enriched {len(enriched)} agents for task_type={task_type} "
            f"(memory_enabled={result.memory_enabled}, degraded={len(result.degraded_agents)})"
        )
        return result

    async def _enrich_agent(
        self, query: str, agent: Agent, names: Dict[str, str]
    ) -> AgentEnrichment:
        cfg = self.config
        recent, specs, partners = await asyncio.gather(
            self.memories.recent_for_agent(agent.id, limit=cfg.memory_scan_limit),
            self.task_scores.for_agent(
                agent.id,
                limit=cfg.specializations_per_agent,
                min_score=cfg.min_specialization_score,
            ),
            self.relationships.for_agent(
                agent.id, limit=cfg.max_partners, min_synergy=cfg.synergy_partner_threshold
            ),
        )

        return AgentEnrichment(
            agent_id=agent.id,
            agent_name=agent.name,
            memories=rank_memories(query, recent, limit=cfg.memories_per_agent),
            specializations=_summaries(specs),
            partners=[
                SynergyPartner(
                    agent_id=rel.partner_of(agent.id),
                    agent_name=names.get(rel.partner_of(agent.id)),
                    synergy_score=rel.synergy_score,
                    interaction_count=rel.interaction_count,
                )
                for rel in partners
            ],
        )

    async def _fallback(self, agent: Agent) -> AgentEnrichment:
        """Plain specialization listing for an agent whose enrichment failed."""
        try:
            rows = await self.task_scores.for_agent(
                agent.id, limit=self.config.specializations_per_agent
            )
        except Exception as e:
            logger.warning(f"Specialization fallback also failed for agent {agent.id}: {e}")
            rows = []

        return AgentEnrichment(
            agent_id=agent.id,
            agent_name=agent.name,
            specializations=_summaries(rows),
            degraded=True,
        )
