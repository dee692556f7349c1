"""Reasoning orchestration (Tier 3).

Builds one prompt from:
- recent conversation history (bounded window)
- enrichment for the priority agents (memories, specializations, partners)
- the Tier 1/Tier 2 seed ranking, marked as pre-ranked specialists
- the available-agent catalog with aggregate stats
- the selection priority list

then calls the completion service and parses the first JSON object in the
reply. A reply with no usable plan yields ``plan=None``; the result still
reports the catalog size and whether memory enrichment was available.
Completion-service failures propagate as ``CompletionServiceError``.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from atlas.config.loader import ReasoningConfig
from atlas.models.entities import Agent
from atlas.models.orchestration import (
    EnrichmentResult,
    RankedSpecialist,
    ReasoningResult,
)
from atlas.orchestrator.completion import ChatMessage, CompletionService
from atlas.orchestrator.context_enricher import ContextEnricher
from atlas.orchestrator.plan_parser import parse_plan
from atlas.repositories.agents import AgentRepository
from atlas.repositories.conversation import ConversationRepository

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are Atlas, an expert agent orchestrator with access to agent learning history. "
    "Prioritize proven specialists and relevant memory matches. "
    "Always respond with valid JSON."
)

SELECTION_PRIORITIES = (
    "PRE-RANKED SPECIALISTS, when listed, have proven track records for this task type",
    "SPECIALIZATION SCORES for the detected task type",
    "SEMANTIC MEMORY MATCHES showing relevant past experience",
    "LEARNING VELOCITY, favouring fast learners for novel tasks",
    "Success rate and total experience as baseline qualifiers",
)

RESPONSE_SCHEMA = """{
  "recommended_agents": [
    {
      "agent_id": "uuid from the catalog",
      "agent_name": "name",
      "role": "what this agent will do",
      "confidence": 0.0-1.0,
      "requires_approval": true/false,
      "reasoning": "why this agent was selected based on specialization/memory",
      "specialization_match": "high|medium|low|none"
    }
  ],
  "orchestration_plan": "brief description of how agents will work together",
  "task_type": "specific task type for specialization tracking",
  "estimated_duration": "time estimate",
  "learning_opportunity": "what agents will learn from this task"
}"""


def _pct(value: Optional[float]) -> int:
    return round((value or 0.0) * 100)


# =============================================================================
# Prompt sections
# =============================================================================


def memory_section(enrichment: EnrichmentResult) -> str:
    blocks = []
    for agent in enrichment.agents:
        if not agent.memories:
            continue
        lines = "\n".join(
            f"- [{m.memory_type}] {m.content} (relevance: {_pct(m.relevance)}%)"
            for m in agent.memories
        )
        blocks.append(f"[{agent.agent_name} Contextual Memory]\n{lines}")

    if not blocks:
        return ""
    return (
        "\n\n=== Agent Learning History (Semantically Matched) ===\n"
        + "\n\n".join(blocks)
        + "\n=== End Agent Memory ===\n"
    )


def specialization_section(enrichment: EnrichmentResult) -> str:
    lines = []
    for agent in enrichment.agents:
        if not agent.specializations:
            continue
        specs = ", ".join(
            f"{s.task_type}: {_pct(s.score)}% ({s.successes} successes)"
            for s in agent.specializations
        )
        lines.append(f"[{agent.agent_name}] Specializations: {specs}")

    if not lines:
        return ""
    return (
        "\n\n=== Agent Task Specializations ===\n"
        + "\n".join(lines)
        + "\n=== End Specializations ===\n"
    )


def partner_section(enrichment: EnrichmentResult) -> str:
    lines = []
    for agent in enrichment.agents:
        if not agent.partners:
            continue
        partners = ", ".join(
            f"{p.agent_name or p.agent_id} (synergy {_pct(p.synergy_score)}%)"
            for p in agent.partners
        )
        lines.append(f"[{agent.agent_name}] Works well with: {partners}")

    if not lines:
        return ""
    return "\n\n=== High-Synergy Partners ===\n" + "\n".join(lines) + "\n=== End Partners ===\n"


def seed_section(task_type: Optional[str], seeds: Sequence[RankedSpecialist]) -> str:
    if not seeds:
        return ""
    lines = "\n".join(
        f"{i}. {s.agent_name} [id: {s.agent_id}] - Specialization: {_pct(s.specialization_score)}%, "
        f"Success: {_pct(s.success_rate)}%, Tasks: {s.total_tasks}"
        for i, s in enumerate(seeds, start=1)
    )
    return f'\n\nPRE-RANKED SPECIALISTS for "{task_type}":\n{lines}\n'


def catalog_lines(catalog: Sequence[Agent]) -> str:
    lines = []
    for a in catalog:
        specs = (
            ", ".join(f"{k}:{_pct(v)}%" for k, v in list(a.task_specializations.items())[:3])
            or "None yet"
        )
        preferred = ", ".join(a.preferred_task_types[:3]) or "None"
        lines.append(
            f"- {a.name} [id: {a.id}] ({a.sector or 'general'}): "
            f"{a.description or 'No description'}\n"
            f"  Capabilities: {', '.join(a.capabilities) or 'None listed'}\n"
            f"  Level: {a.specialization_level} | Tasks: {a.total_tasks_completed} | "
            f"Success: {_pct(a.success_rate)}%\n"
            f"  Specializations: {specs} | Preferred Tasks: {preferred} | "
            f"Learning Velocity: {a.learning_velocity}"
        )
    return "\n".join(lines)


def build_prompt(
    query: str,
    task_type: Optional[str],
    catalog: Sequence[Agent],
    seeds: Sequence[RankedSpecialist],
    enrichment: EnrichmentResult,
    conversation: str = "",
) -> str:
    """Assemble the Tier 3 user prompt."""
    history = f"Use this conversation history for context:{conversation}" if conversation else ""
    priorities = "\n".join(f"{i}. {p}" for i, p in enumerate(SELECTION_PRIORITIES, start=1))

    return (
        "You are Atlas, an agent orchestrator. Analyze the following user request and "
        "determine which agents should be engaged.\n\n"
        f"{history}"
        f"{memory_section(enrichment)}"
        f"{specialization_section(enrichment)}"
        f"{partner_section(enrichment)}"
        f"{seed_section(task_type, seeds)}\n"
        f"Current User Request: {query}\n"
        f"{f'Detected Task Type: {task_type}' if task_type else ''}\n\n"
        "Available Agents (with performance metrics):\n"
        f"{catalog_lines(catalog) or '- None available'}\n\n"
        "CRITICAL SELECTION CRITERIA (in order):\n"
        f"{priorities}\n\n"
        f"Respond with a JSON object:\n{RESPONSE_SCHEMA}"
    )


def select_priority_agents(
    catalog: Sequence[Agent], seeds: Sequence[RankedSpecialist], limit: int = 5
) -> List[Agent]:
    """Seed agents in rank order if any, else the catalog's best success rates."""
    if seeds:
        by_id: Dict[str, Agent] = {a.id: a for a in catalog}
        chosen = []
        for seed in seeds[:limit]:
            agent = by_id.get(seed.agent_id) or Agent(
                id=seed.agent_id,
                name=seed.agent_name,
                sector=seed.sector,
                success_rate=seed.success_rate,
            )
            chosen.append(agent)
        return chosen

    ranked = sorted(catalog, key=lambda a: a.success_rate, reverse=True)
    return [a for a in ranked if not a.is_dormant][:limit]


# =============================================================================
# Orchestrator
# =============================================================================


class ReasoningOrchestrator:
    """Tier 3: grounds a completion-service call and parses its plan."""

    def __init__(
        self,
        completion: CompletionService,
        agents: AgentRepository,
        conversations: ConversationRepository,
        enricher: ContextEnricher,
        config: Optional[ReasoningConfig] = None,
    ):
        self.completion = completion
        self.agents = agents
        self.conversations = conversations
        self.enricher = enricher
        self.config = config or ReasoningConfig()

    async def reason(
        self,
        query: str,
        task_type: Optional[str],
        user_id: str,
        session_id: Optional[str] = None,
        seeds: Sequence[RankedSpecialist] = (),
    ) -> ReasoningResult:
        """Produce a plan for a request that Tier 1 could not settle.

        Args:
            query: The user's request
            task_type: Detected or caller-supplied task type, if any
            user_id: Caller, for conversation history
            session_id: Optional session for conversation history
            seeds: Tier 1/Tier 2 ranking to pass on as pre-ranked specialists

        Returns:
            ReasoningResult; ``plan`` is None when the reply had no usable plan

        Raises:
            DatabaseError: If the agent catalog cannot be read
            CompletionServiceError: If the completion service fails
        """
        conversation, catalog = await asyncio.gather(
            self.conversations.get_context(
                user_id, session_id=session_id, turns=self.config.conversation_turns
            ),
            self.agents.list_catalog(limit=self.config.catalog_limit),
        )

        priority = select_priority_agents(
            catalog, seeds, limit=self.enricher.config.max_priority_agents
        )
        enrichment = await self.enricher.enrich(
            query, task_type, priority, agent_names={a.id: a.name for a in catalog}
        )

        prompt = build_prompt(query, task_type, catalog, seeds, enrichment, conversation)
        messages = [
            ChatMessage(role="system", content=SYSTEM_PROMPT),
            ChatMessage(role="user", content=prompt),
        ]

        logger.info(
            f"Tier 3: reasoning over {len(catalog)} agents "
            f"({len(seeds)} pre-ranked, {len(enrichment.agents)} enriched)"
        )
        reply = await self.completion.complete(messages)
        plan = parse_plan(reply)

        if plan is not None and not plan.task_type:
            plan.task_type = task_type

        return ReasoningResult(
            plan=plan,
            available_agents=len(catalog),
            memory_enabled=enrichment.memory_enabled,
            raw_response=reply,
        )
