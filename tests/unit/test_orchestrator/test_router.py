"""Unit tests for the deterministic (Tier 1) router."""

import time

import pytest

from atlas.api.errors import DatabaseError
from atlas.config.loader import Tier1Config
from atlas.orchestrator.router import TIER1_REASON, TIER2_REASON, DeterministicRouter
from atlas.repositories import AgentRepository, TaskScoreRepository
from tests.fixtures.helpers import (
    HERALD_ID,
    LEDGER_ID,
    SCRIBE_ID,
    SLEEPER_ID,
    default_agents,
    score_row,
)
from tests.fixtures.mocks.databases import MockSupabaseClient


def make_router(client, config=None):
    return DeterministicRouter(TaskScoreRepository(client), AgentRepository(client), config)


@pytest.fixture
def client():
    client = MockSupabaseClient()
    client.seed("sonic_agents", default_agents())
    return client


@pytest.mark.unit
class TestRoute:
    @pytest.mark.asyncio
    async def test_no_rows_gives_empty_tier3_seed(self, client):
        decision = await make_router(client).route("communications_draft")

        assert decision.candidates == []
        assert decision.tier1_hit is False
        assert decision.seed_tier == "tier3"

    @pytest.mark.asyncio
    async def test_top_candidate_above_threshold_is_tier1_hit(self, client):
        client.seed(
            "agent_task_scores",
            [
                score_row(SCRIBE_ID, "communications_draft", 0.92),
                score_row(HERALD_ID, "communications_draft", 0.75),
            ],
        )

        decision = await make_router(client).route("communications_draft")

        assert decision.tier1_hit is True
        assert [c.agent_id for c in decision.candidates] == [SCRIBE_ID, HERALD_ID]
        top = decision.candidates[0]
        assert top.confidence == pytest.approx(0.92)
        assert top.routing_reason == TIER1_REASON
        assert top.requires_llm_fallback is False

    @pytest.mark.asyncio
    async def test_below_threshold_seeds_tier2(self, client):
        client.seed("agent_task_scores", [score_row(SCRIBE_ID, "communications_draft", 0.5)])

        decision = await make_router(client).route("communications_draft")

        assert decision.tier1_hit is False
        assert decision.seed_tier == "tier2"
        assert decision.candidates[0].routing_reason == TIER2_REASON
        assert decision.candidates[0].requires_llm_fallback is True

    @pytest.mark.asyncio
    async def test_erratic_top_candidate_is_not_terminal(self, client):
        client.seed(
            "agent_task_scores",
            [score_row(SCRIBE_ID, "communications_draft", 0.85, avg_confidence=0.2)],
        )

        decision = await make_router(client).route("communications_draft")

        assert decision.tier1_hit is False
        assert decision.candidates[0].requires_llm_fallback is True
        assert decision.seed_tier == "tier2"

    @pytest.mark.asyncio
    async def test_tier1_hit_drops_flagged_candidates(self, client):
        client.seed(
            "agent_task_scores",
            [
                score_row(SCRIBE_ID, "communications_draft", 0.9),
                score_row(HERALD_ID, "communications_draft", 0.4),
            ],
        )

        decision = await make_router(client).route("communications_draft")

        assert decision.tier1_hit is True
        assert [c.agent_id for c in decision.candidates] == [SCRIBE_ID]

    @pytest.mark.asyncio
    async def test_dormant_agents_are_never_routed(self, client):
        client.seed(
            "agent_task_scores",
            [
                score_row(SLEEPER_ID, "communications_draft", 0.99),
                score_row(HERALD_ID, "communications_draft", 0.8),
            ],
        )

        decision = await make_router(client).route("communications_draft")

        assert [c.agent_id for c in decision.candidates] == [HERALD_ID]

    @pytest.mark.asyncio
    async def test_ties_break_on_success_rate(self, client):
        client.seed(
            "agent_task_scores",
            [
                score_row(LEDGER_ID, "communications_draft", 0.8),
                score_row(SCRIBE_ID, "communications_draft", 0.8),
            ],
        )

        decision = await make_router(client).route("communications_draft")

        # Scribe's agent success_rate is 0.9, Ledger's 0.6
        assert [c.agent_id for c in decision.candidates] == [SCRIBE_ID, LEDGER_ID]

    @pytest.mark.asyncio
    async def test_limit_truncates_candidates(self, client):
        client.seed(
            "agent_task_scores",
            [
                score_row(SCRIBE_ID, "research", 0.9),
                score_row(HERALD_ID, "research", 0.85),
                score_row(LEDGER_ID, "research", 0.8),
            ],
        )

        decision = await make_router(client).route("research", limit=2)

        assert len(decision.candidates) == 2

    @pytest.mark.asyncio
    async def test_custom_threshold_from_config(self, client):
        client.seed("agent_task_scores", [score_row(SCRIBE_ID, "research", 0.6)])

        decision = await make_router(client, Tier1Config(confidence_threshold=0.5)).route(
            "research"
        )

        assert decision.tier1_hit is True

    @pytest.mark.asyncio
    async def test_store_failure_raises_database_error(self, client):
        client.fail("agent_task_scores")

        with pytest.raises(DatabaseError) as exc_info:
            await make_router(client).route("research")

        assert exc_info.value.status_code == 500
        assert exc_info.value.details["table"] == "agent_task_scores"


@pytest.mark.unit
class TestBuildPlan:
    @pytest.mark.asyncio
    async def test_high_confidence_specialist_needs_no_approval(self, client):
        client.seed("agent_task_scores", [score_row(SCRIBE_ID, "communications_draft", 0.92)])
        router = make_router(client)
        decision = await router.route("communications_draft")

        plan = router.build_plan(decision, time.perf_counter())

        assert plan.routing_tier == "tier1"
        assert plan.llm_bypassed is True
        assert plan.task_type == "communications_draft"
        rec = plan.recommended_agents[0]
        assert rec.agent_id == SCRIBE_ID
        assert rec.requires_approval is False
        assert rec.specialization_match == "high"
        assert rec.role == "communications specialist for communications_draft"
        assert plan.routing_time_ms >= 0

    @pytest.mark.asyncio
    async def test_moderate_confidence_requires_approval(self, client):
        client.seed("agent_task_scores", [score_row(HERALD_ID, "communications_draft", 0.75)])
        router = make_router(client)
        decision = await router.route("communications_draft")

        plan = router.build_plan(decision, time.perf_counter())

        assert plan.recommended_agents[0].requires_approval is True
        assert plan.recommended_agents[0].specialization_match == "medium"
