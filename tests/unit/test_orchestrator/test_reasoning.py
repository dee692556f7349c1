"""Unit tests for Tier 3 prompt assembly and reasoning."""

import pytest

from atlas.api.errors import CompletionServiceError, DatabaseError
from atlas.models.entities import Agent
from atlas.models.orchestration import (
    AgentEnrichment,
    EnrichmentResult,
    RankedSpecialist,
    ScoredMemory,
    SpecializationSummary,
    SynergyPartner,
)
from atlas.orchestrator.reasoning import (
    SYSTEM_PROMPT,
    build_prompt,
    select_priority_agents,
)
from tests.fixtures.helpers import (
    HERALD_ID,
    SCRIBE_ID,
    SLEEPER_ID,
    USER_ID,
    make_context,
    plan_reply,
    score_row,
)
from tests.fixtures.mocks.llm import MockCompletionService

CATALOG = [
    Agent(
        id=SCRIBE_ID,
        name="Scribe",
        sector="communications",
        description="Writes things",
        capabilities=["writing", "editing"],
        total_tasks_completed=40,
        success_rate=0.9,
        specialization_level="competent",
        task_specializations={"communications_draft": 0.92},
        preferred_task_types=["communications_draft"],
        learning_velocity=0.7,
    ),
    Agent(id=HERALD_ID, name="Herald", success_rate=0.5),
]

SEED = RankedSpecialist(
    agent_id=SCRIBE_ID,
    agent_name="Scribe",
    sector="communications",
    specialization_score=0.55,
    success_rate=0.9,
    total_tasks=12,
    confidence=0.55,
    requires_llm_fallback=True,
)


def enrichment():
    return EnrichmentResult(
        agents=[
            AgentEnrichment(
                agent_id=SCRIBE_ID,
                agent_name="Scribe",
                memories=[
                    ScoredMemory(
                        memory_type="success",
                        content="Drafted a reply to a vendor email",
                        relevance=0.67,
                    )
                ],
                specializations=[
                    SpecializationSummary(task_type="communications_draft", score=0.55, successes=9)
                ],
                partners=[SynergyPartner(agent_id=HERALD_ID, agent_name="Herald", synergy_score=0.8)],
            )
        ]
    )


@pytest.mark.unit
class TestBuildPrompt:
    def test_contains_every_grounding_section(self):
        prompt = build_prompt(
            "Draft a reply to this email",
            "communications_draft",
            CATALOG,
            [SEED],
            enrichment(),
            conversation="\n\n=== Recent Conversation History ===\nUser: hi\n=== End History ===\n",
        )

        assert "Use this conversation history for context:" in prompt
        assert "=== Agent Learning History (Semantically Matched) ===" in prompt
        assert "[Scribe Contextual Memory]" in prompt
        assert "- [success] Drafted a reply to a vendor email (relevance: 67%)" in prompt
        assert "[Scribe] Specializations: communications_draft: 55% (9 successes)" in prompt
        assert "[Scribe] Works well with: Herald (synergy 80%)" in prompt
        assert 'PRE-RANKED SPECIALISTS for "communications_draft":' in prompt
        assert "Current User Request: Draft a reply to this email" in prompt
        assert "Detected Task Type: communications_draft" in prompt
        assert "CRITICAL SELECTION CRITERIA (in order):" in prompt
        assert '"recommended_agents"' in prompt

    def test_catalog_lines_include_metrics_and_defaults(self):
        prompt = build_prompt("q", None, CATALOG, [], EnrichmentResult())

        assert f"- Scribe [id: {SCRIBE_ID}] (communications): Writes things" in prompt
        assert "  Capabilities: writing, editing" in prompt
        assert "  Level: competent | Tasks: 40 | Success: 90%" in prompt
        assert "Specializations: communications_draft:92% | Preferred Tasks: communications_draft" in prompt
        assert f"- Herald [id: {HERALD_ID}] (general): No description" in prompt
        assert "  Capabilities: None listed" in prompt
        assert "Specializations: None yet | Preferred Tasks: None" in prompt

    def test_empty_sections_are_omitted(self):
        prompt = build_prompt("q", None, CATALOG, [], EnrichmentResult())

        assert "PRE-RANKED SPECIALISTS" not in prompt
        assert "=== Agent Learning History" not in prompt
        assert "=== Agent Task Specializations ===" not in prompt
        assert "Detected Task Type" not in prompt
        assert "conversation history" not in prompt

    def test_selection_priorities_are_numbered_in_order(self):
        prompt = build_prompt("q", None, CATALOG, [], EnrichmentResult())

        first = prompt.index("1. PRE-RANKED SPECIALISTS")
        fifth = prompt.index("5. Success rate and total experience")
        assert first < fifth


@pytest.mark.unit
class TestSelectPriorityAgents:
    def test_seed_order_wins(self):
        seeds = [
            SEED.model_copy(update={"agent_id": HERALD_ID, "agent_name": "Herald"}),
            SEED,
        ]

        chosen = select_priority_agents(CATALOG, seeds)

        assert [a.id for a in chosen] == [HERALD_ID, SCRIBE_ID]

    def test_without_seed_uses_best_success_rate_and_skips_dormant(self):
        catalog = CATALOG + [Agent(id=SLEEPER_ID, name="Sleeper", status="DORMANT", success_rate=1)]

        chosen = select_priority_agents(catalog, [], limit=2)

        assert [a.id for a in chosen] == [SCRIBE_ID, HERALD_ID]

    def test_seed_missing_from_catalog_is_synthesized(self):
        chosen = select_priority_agents([], [SEED])

        assert chosen[0].id == SCRIBE_ID
        assert chosen[0].name == "Scribe"


@pytest.mark.unit
class TestReason:
    @pytest.mark.asyncio
    async def test_sends_system_and_user_messages_and_parses_plan(self, seeded_client):
        seeded_client.seed(
            "atlas_conversations",
            [
                {"user_id": USER_ID, "role": "user", "content": "I got an email from Acme"},
                {"user_id": USER_ID, "role": "assistant", "content": "Want me to answer it?"},
            ],
        )
        completion = MockCompletionService(plan_reply())
        ctx = make_context(seeded_client, completion)

        result = await ctx.reasoning.reason(
            "Draft a reply to this email", "communications_draft", USER_ID
        )

        messages = completion.calls[0]
        assert [m.role for m in messages] == ["system", "user"]
        assert messages[0].content == SYSTEM_PROMPT
        assert "User: I got an email from Acme" in completion.last_prompt
        assert "Atlas: Want me to answer it?" in completion.last_prompt
        assert result.plan.recommended_agents[0].agent_id == SCRIBE_ID
        assert result.available_agents == 4

    @pytest.mark.asyncio
    async def test_plan_without_task_type_inherits_detected(self, seeded_client):
        completion = MockCompletionService('{"recommended_agents": [], "task_type": null}')
        ctx = make_context(seeded_client, completion)

        result = await ctx.reasoning.reason("q", "research", USER_ID)

        assert result.plan.task_type == "research"

    @pytest.mark.asyncio
    async def test_memory_enabled_reflects_enrichment(self, seeded_client):
        seeded_client.seed(
            "agent_memory",
            [
                {
                    "agent_id": SCRIBE_ID,
                    "user_id": USER_ID,
                    "memory_type": "success",
                    "content": "reply to email drafted",
                }
            ],
        )
        seeded_client.seed("agent_task_scores", [score_row(SCRIBE_ID, "communications_draft", 0.5)])
        ctx = make_context(seeded_client)

        result = await ctx.reasoning.reason("reply to the email", None, USER_ID)

        assert result.memory_enabled is True

    @pytest.mark.asyncio
    async def test_conversation_failure_is_tolerated(self, seeded_client):
        seeded_client.fail("atlas_conversations")
        ctx = make_context(seeded_client)

        result = await ctx.reasoning.reason("q", None, USER_ID)

        assert result.plan is not None

    @pytest.mark.asyncio
    async def test_catalog_failure_raises(self, seeded_client):
        seeded_client.fail("sonic_agents")
        ctx = make_context(seeded_client)

        with pytest.raises(DatabaseError):
            await ctx.reasoning.reason("q", None, USER_ID)

    @pytest.mark.asyncio
    async def test_completion_failure_propagates(self, seeded_client):
        completion = MockCompletionService(error=CompletionServiceError("rate limited", upstream_status=429))
        ctx = make_context(seeded_client, completion)

        with pytest.raises(CompletionServiceError) as exc_info:
            await ctx.reasoning.reason("q", None, USER_ID)

        assert exc_info.value.status_code == 429
